"""
Particle class definition.

A Particle carries the physical state of one body (mass, mu, position,
velocity) and the outputs of the latest force evaluation (acceleration,
Newtonian snapshot, potential energy). Integrator scratch data is kept out
of the particle; see ``helion.integrators``.
"""

from typing import Optional, Sequence, Tuple

import math

from .config import config
from .forces import newton_acceleration, relativistic_acceleration
from .vector import Vector3D, VectorLike, as_vector


class Particle:
    """
    Represents a single particle of a particle system.

    Parameters
    ----------
    mass : float, optional
        Mass [kg]. May be omitted when ``mu`` is given, in which case it is
        derived as mu / G.
    position : Vector3D or array_like
        Initial position [m]
    velocity : Vector3D or array_like
        Initial velocity [m/s]
    mu : float, optional
        Standard gravitational parameter [m³/s²]. Defaults to G * mass.
        Supply it directly for bodies whose mu is known more accurately
        than their mass.
    name : str, optional
        Particle identifier, set by ParticleSystem on registration
    exerts_force : bool, optional
        Whether the particle acts as a perturber on others (default: True)

    Raises
    ------
    ValueError
        If neither mass nor mu is given, either is not positive, or the
        position or velocity is not a finite 3-vector
    """

    def __init__(
        self,
        mass: Optional[float],
        position: VectorLike,
        velocity: VectorLike,
        mu: Optional[float] = None,
        name: Optional[str] = None,
        exerts_force: bool = True,
    ):
        if mass is None and mu is None:
            raise ValueError("Particle requires mass, mu, or both")
        if mass is not None and not (math.isfinite(mass) and mass > 0):
            raise ValueError(f"Mass must be positive, got {mass}")
        if mu is not None and not (math.isfinite(mu) and mu > 0):
            raise ValueError(f"Gravitational parameter must be positive, got {mu}")

        G = config.GRAVITATIONAL_CONSTANT
        self._mass = float(mass) if mass is not None else float(mu) / G
        self._mu = float(mu) if mu is not None else G * self._mass
        self.position = as_vector(position, "position")
        self.velocity = as_vector(velocity, "velocity")
        self.name = name
        self.exerts_force = bool(exerts_force)

        # Outputs of the latest force evaluation
        self.acceleration = Vector3D()
        self.acceleration_newton_mechanics: Optional[Vector3D] = None
        self.potential_energy = 0.0
        # Position and velocity the Newtonian snapshot was taken at
        self._snapshot_state: Optional[Tuple[Tuple[float, ...], Tuple[float, ...]]] = None

    # ========== PROPERTY ACCESS ==========
    @property
    def mass(self) -> float:
        """Mass [kg]"""
        return self._mass

    @mass.setter
    def mass(self, mass: float):
        """Set mass; mu is recomputed as G * mass."""
        if not (math.isfinite(mass) and mass > 0):
            raise ValueError(f"Mass must be positive, got {mass}")
        self._mass = float(mass)
        self._mu = config.GRAVITATIONAL_CONSTANT * self._mass

    @property
    def mu(self) -> float:
        """Standard gravitational parameter [m³/s²]"""
        return self._mu

    @property
    def momentum(self) -> Vector3D:
        """Linear momentum p = m v [kg m/s]"""
        return self.velocity.scalar_product(self._mass)

    @property
    def kinetic_energy(self) -> float:
        """Kinetic energy [J] of a non-rotating particle"""
        return 0.5 * self._mass * self.velocity.magnitude_square()

    # ========== STATE ADJUSTMENT ==========
    def correct_drift(self, drift_position: Vector3D, drift_velocity: Vector3D) -> None:
        """Subtract a drift in position and velocity."""
        self.position = self.position.minus(drift_position)
        self.velocity = self.velocity.minus(drift_velocity)

    def adjust_kinetic_energy(self, factor: float) -> None:
        """Scale kinetic energy by ``factor`` by scaling velocity by sqrt(factor)."""
        if factor < 0:
            raise ValueError(f"Kinetic energy factor must be non-negative, got {factor}")
        self.velocity = self.velocity.scalar_product(math.sqrt(factor))

    # ========== FORCE MODEL ==========
    def store_newton_result(self, acceleration: Vector3D, potential_energy: float) -> None:
        """
        Store the result of a Newtonian pass and take the snapshot used by
        the relativistic pass of every other particle.
        """
        self.acceleration = acceleration
        self.potential_energy = potential_energy
        self.acceleration_newton_mechanics = acceleration.copy()
        self._snapshot_state = (tuple(self.position), tuple(self.velocity))

    def newton_snapshot(self) -> Vector3D:
        """
        Newtonian acceleration from the latest Newtonian pass.

        Raises
        ------
        RuntimeError
            If no Newtonian pass has run, or the particle moved since
        """
        if self._snapshot_state is None or self.acceleration_newton_mechanics is None:
            raise RuntimeError(
                f"Particle '{self.name}' has no Newtonian acceleration; "
                f"compute Newtonian acceleration of all particles first"
            )
        if self._snapshot_state != (tuple(self.position), tuple(self.velocity)):
            raise RuntimeError(
                f"Newtonian acceleration of particle '{self.name}' is stale; "
                f"its state changed after the Newtonian pass"
            )
        return self.acceleration_newton_mechanics

    def compute_acceleration_newton_mechanics(self, perturbers: Sequence["Particle"]) -> None:
        """
        Compute acceleration applied to this particle by Newton mechanics.

        The potential energy of this particle is also computed. Every pair
        of particles is counted twice over a system, so the stored value is
        half the sum of pair energies.
        """
        acceleration, potential_energy = newton_acceleration(self, perturbers)
        self.store_newton_result(acceleration, 0.5 * potential_energy)

    def compute_acceleration_general_relativity(self, perturbers: Sequence["Particle"]) -> None:
        """
        Compute acceleration applied to this particle by general relativity.

        Uses the Newtonian acceleration snapshot of every perturber, so
        ``compute_acceleration_newton_mechanics`` must have run for all of
        them at their current state.
        """
        snapshots = {p: p.newton_snapshot() for p in perturbers if p is not self}
        self.acceleration = relativistic_acceleration(self, perturbers, snapshots)

    # ========== SPECIAL METHODS ==========
    def __repr__(self) -> str:
        name_str = f"'{self.name}'" if self.name else "unnamed"
        kind = "" if self.exerts_force else ", massless"
        return (f"Particle({name_str}, mass={self._mass:.6e} kg, "
                f"mu={self._mu:.6e} m³/s²{kind})")
