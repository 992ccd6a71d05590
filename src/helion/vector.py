"""
Three-component vector value type used throughout the particle system.

Vector3D follows value semantics: every operation returns a new vector,
except add_vector, which accumulates in place and is reserved for summation
loops inside the force model and integrators.
"""

import math
from typing import Iterator, Sequence, Union

import numpy as np

from .config import config


class Vector3D:
    """
    Cartesian (x, y, z) vector.

    Parameters
    ----------
    x, y, z : float, optional
        Components (default: 0.0)

    Examples
    --------
    >>> v = Vector3D(1.0, 2.0, 2.0)
    >>> v.magnitude()
    3.0
    >>> v.plus(Vector3D(1.0, 0.0, 0.0))
    Vector3D(2.0, 2.0, 2.0)
    """
    __slots__ = ('x', 'y', 'z')

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0):
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)

    # ========== CONSTRUCTION ==========
    @classmethod
    def from_array(cls, values: Sequence[float]) -> "Vector3D":
        """Create vector from any length-3 array-like."""
        arr = np.asarray(values, dtype=float)
        if arr.shape != (3,):
            raise ValueError(f"Vector must have 3 components, got shape {arr.shape}")
        return cls(arr[0], arr[1], arr[2])

    def copy(self) -> "Vector3D":
        return Vector3D(self.x, self.y, self.z)

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z])

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z)

    # ========== ARITHMETIC ==========
    def plus(self, v: "Vector3D") -> "Vector3D":
        return Vector3D(self.x + v.x, self.y + v.y, self.z + v.z)

    def minus(self, v: "Vector3D") -> "Vector3D":
        return Vector3D(self.x - v.x, self.y - v.y, self.z - v.z)

    def scalar_product(self, scalar: float) -> "Vector3D":
        return Vector3D(self.x * scalar, self.y * scalar, self.z * scalar)

    def dot_product(self, v: "Vector3D") -> float:
        return self.x * v.x + self.y * v.y + self.z * v.z

    def cross_product(self, v: "Vector3D") -> "Vector3D":
        # https://en.wikipedia.org/wiki/Cross_product
        return Vector3D(self.y * v.z - self.z * v.y,
                        self.z * v.x - self.x * v.z,
                        self.x * v.y - self.y * v.x)

    def add_vector(self, v: "Vector3D") -> None:
        """Accumulate v into this vector in place."""
        self.x += v.x
        self.y += v.y
        self.z += v.z

    # ========== METRICS ==========
    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def magnitude_square(self) -> float:
        return self.x * self.x + self.y * self.y + self.z * self.z

    def euclidean_distance(self, v: "Vector3D") -> float:
        return math.sqrt(self.euclidean_distance_square(v))

    def euclidean_distance_square(self, v: "Vector3D") -> float:
        dx = self.x - v.x
        dy = self.y - v.y
        dz = self.z - v.z
        return dx * dx + dy * dy + dz * dz

    def normalize(self) -> "Vector3D":
        """
        Unit vector in the direction of this vector.

        Returns the zero vector when the magnitude is exactly zero; callers
        that need a genuine unit vector near coincident points must guard
        separately.
        """
        mag = self.magnitude()
        if mag > 0.0:
            return Vector3D(self.x / mag, self.y / mag, self.z / mag)
        return Vector3D()

    def direction(self, v: "Vector3D") -> "Vector3D":
        """Unit vector pointing from this vector to v."""
        return Vector3D(v.x - self.x, v.y - self.y, v.z - self.z).normalize()

    def angle_rad(self, v: "Vector3D") -> float:
        """Angle between this vector and v in radians."""
        cos_angle = self.dot_product(v) / (self.magnitude() * v.magnitude())
        # Clip round-off excursions outside [-1, 1]
        return math.acos(max(-1.0, min(1.0, cos_angle)))

    def angle_deg(self, v: "Vector3D") -> float:
        """Angle between this vector and v in degrees."""
        return math.degrees(self.angle_rad(v))

    # ========== ROTATIONS ==========
    def rotate(self, vx: "Vector3D", vy: "Vector3D", vz: "Vector3D") -> "Vector3D":
        """
        Change of basis: express this vector in the frame whose axes are
        vx, vy, vz (rows of the rotation matrix).
        """
        return Vector3D(vx.dot_product(self), vy.dot_product(self), vz.dot_product(self))

    def rotate_x_rad(self, angle: float) -> "Vector3D":
        # https://en.wikipedia.org/wiki/Rotation_matrix
        c, s = math.cos(angle), math.sin(angle)
        return Vector3D(self.x, self.y * c - self.z * s, self.y * s + self.z * c)

    def rotate_y_rad(self, angle: float) -> "Vector3D":
        c, s = math.cos(angle), math.sin(angle)
        return Vector3D(self.x * c + self.z * s, self.y, -self.x * s + self.z * c)

    def rotate_z_rad(self, angle: float) -> "Vector3D":
        c, s = math.cos(angle), math.sin(angle)
        return Vector3D(self.x * c - self.y * s, self.x * s + self.y * c, self.z)

    def rotate_x_deg(self, angle: float) -> "Vector3D":
        return self.rotate_x_rad(math.radians(angle))

    def rotate_y_deg(self, angle: float) -> "Vector3D":
        return self.rotate_y_rad(math.radians(angle))

    def rotate_z_deg(self, angle: float) -> "Vector3D":
        return self.rotate_z_rad(math.radians(angle))

    # ========== SPECIAL METHODS ==========
    def __add__(self, other: "Vector3D") -> "Vector3D":
        if not isinstance(other, Vector3D):
            return NotImplemented
        return self.plus(other)

    def __sub__(self, other: "Vector3D") -> "Vector3D":
        if not isinstance(other, Vector3D):
            return NotImplemented
        return self.minus(other)

    def __mul__(self, scalar: float) -> "Vector3D":
        if isinstance(scalar, Vector3D):
            return NotImplemented
        return self.scalar_product(scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> "Vector3D":
        return self.scalar_product(1.0 / scalar)

    def __neg__(self) -> "Vector3D":
        return Vector3D(-self.x, -self.y, -self.z)

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y
        yield self.z

    def __len__(self) -> int:
        return 3

    def __getitem__(self, index: int) -> float:
        return (self.x, self.y, self.z)[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Vector3D):
            return NotImplemented
        rtol, atol = config.EQUALITY_RTOL, config.EQUALITY_ATOL
        return (math.isclose(self.x, other.x, rel_tol=rtol, abs_tol=atol) and
                math.isclose(self.y, other.y, rel_tol=rtol, abs_tol=atol) and
                math.isclose(self.z, other.z, rel_tol=rtol, abs_tol=atol))

    # Mutable through add_vector, so not hashable
    __hash__ = None

    def __repr__(self) -> str:
        return f"Vector3D({self.x!r}, {self.y!r}, {self.z!r})"

    def __str__(self) -> str:
        return f"({self.x}, {self.y}, {self.z})"


VectorLike = Union[Vector3D, Sequence[float], np.ndarray]


def as_vector(value: VectorLike, name: str = "vector") -> Vector3D:
    """
    Coerce a Vector3D or length-3 array-like into a fresh Vector3D.

    Raises
    ------
    ValueError
        If the input does not have three components or is not finite
    """
    if isinstance(value, Vector3D):
        vector = value.copy()
    else:
        try:
            vector = Vector3D.from_array(value)
        except (TypeError, ValueError) as err:
            raise ValueError(f"{name} must be a 3-vector, got {value!r}") from err
    if not vector.is_finite():
        raise ValueError(f"{name} contains NaN or Inf values: {vector}")
    return vector
