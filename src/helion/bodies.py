"""
Physical constants of Solar System bodies.

Masses from the NSSDC planetary fact sheets; standard gravitational
parameters mu = G*M from the DE430 ephemeris, which are known to far
greater accuracy than either G or M. Diameters are mean diameters,
ellipticity is the eccentricity of the reference ellipsoid, rotation
periods are sidereal (negative for retrograde rotation), and semi-major
axes are mean values relative to the primary body.

All values in SI units (kg, m³/s², m, s).
"""

from dataclasses import dataclass
from typing import Dict, Optional

ASTRONOMICAL_UNIT = 1.49597870691e11   # m
SECONDS_PER_DAY = 86400.0
SIDEREAL_YEAR = 365.256363004 * SECONDS_PER_DAY
DAYS_PER_CENTURY = 36524.25


@dataclass(frozen=True)
class BodyParams:
    """
    Immutable physical parameters for a celestial body.

    Attributes
    ----------
    name : str
        Body name, also the key in BODIES
    mass : float
        Mass [kg]
    mu : float
        Standard gravitational parameter [m³/s²]
    diameter : float
        Mean diameter [m]
    ellipticity : float, optional
        Eccentricity of the reference ellipsoid [dimensionless]
    rotation_period : float, optional
        Sidereal rotation period [s], negative for retrograde rotation
    semi_major_axis : float, optional
        Mean orbital semi-major axis about the primary [m]
    primary : str, optional
        Name of the body this one orbits
    """
    name: str
    mass: float
    mu: float
    diameter: float
    ellipticity: float = 0.0
    rotation_period: Optional[float] = None
    semi_major_axis: Optional[float] = None
    primary: Optional[str] = None

    def __post_init__(self):
        if self.mass <= 0:
            raise ValueError(f"Mass must be positive, got {self.mass}")
        if self.mu <= 0:
            raise ValueError(f"Gravitational parameter must be positive, got {self.mu}")
        if self.diameter <= 0:
            raise ValueError(f"Diameter must be positive, got {self.diameter}")
        if not 0.0 <= self.ellipticity < 1.0:
            raise ValueError(f"Ellipticity must be in [0, 1), got {self.ellipticity}")
        if self.semi_major_axis is not None and self.primary is None:
            raise ValueError(f"{self.name}: semi_major_axis requires a primary body")

    @property
    def radius(self) -> float:
        """Mean radius [m]"""
        return 0.5 * self.diameter


def _hours(h: float) -> float:
    return h * 3600.0


SUN = BodyParams(
    name='Sun',
    mass=1988500e24,
    mu=1.3271244001798698e20,
    diameter=1.3914e9,
    rotation_period=_hours(609.12),
)

MERCURY = BodyParams(
    name='Mercury',
    mass=0.33011e24,
    mu=2.2032080486417923e13,
    diameter=4.879e6,
    rotation_period=_hours(1407.6),
    semi_major_axis=0.38709893 * ASTRONOMICAL_UNIT,
    primary='Sun',
)

VENUS = BodyParams(
    name='Venus',
    mass=4.8675e24,
    mu=3.2485859882645978e14,
    diameter=1.2104e7,
    rotation_period=_hours(-5832.5),
    semi_major_axis=0.72333199 * ASTRONOMICAL_UNIT,
    primary='Sun',
)

EARTH = BodyParams(
    name='Earth',
    mass=5.9723e24,
    mu=3.9860043289693922e14,
    diameter=1.2756e7,
    ellipticity=0.081821,
    rotation_period=_hours(23.9345),
    semi_major_axis=1.00000011 * ASTRONOMICAL_UNIT,
    primary='Sun',
)

MOON = BodyParams(
    name='Moon',
    mass=0.07346e24,
    mu=4.9028005821477636e12,
    diameter=3.475e6,
    rotation_period=_hours(655.72),
    semi_major_axis=3.844e8,
    primary='Earth',
)

MARS = BodyParams(
    name='Mars',
    mass=0.64171e24,
    mu=4.2828314258067119e13,
    diameter=6.792e6,
    rotation_period=_hours(24.6229),
    semi_major_axis=1.52366231 * ASTRONOMICAL_UNIT,
    primary='Sun',
)

JUPITER = BodyParams(
    name='Jupiter',
    mass=1898.19e24,
    mu=1.2671276785779600e17,
    diameter=1.42984e8,
    ellipticity=0.354,
    rotation_period=_hours(9.9250),
    semi_major_axis=5.20336301 * ASTRONOMICAL_UNIT,
    primary='Sun',
)

SATURN = BodyParams(
    name='Saturn',
    mass=568.34e24,
    mu=3.7940626061137281e16,
    diameter=1.20536e8,
    ellipticity=0.432,
    rotation_period=_hours(10.656),
    semi_major_axis=9.53707032 * ASTRONOMICAL_UNIT,
    primary='Sun',
)

URANUS = BodyParams(
    name='Uranus',
    mass=86.813e24,
    mu=5.7945490070718741e15,
    diameter=5.1118e7,
    ellipticity=0.213,
    rotation_period=_hours(-17.24),
    semi_major_axis=19.19126393 * ASTRONOMICAL_UNIT,
    primary='Sun',
)

NEPTUNE = BodyParams(
    name='Neptune',
    mass=102.413e24,
    mu=6.8365340638792608e15,
    diameter=4.9528e7,
    ellipticity=0.184,
    rotation_period=_hours(16.11),
    semi_major_axis=30.06896348 * ASTRONOMICAL_UNIT,
    primary='Sun',
)

# mu differs greatly from G * mass for Pluto
PLUTO = BodyParams(
    name='Pluto',
    mass=0.01303e24,
    mu=9.8160088770700440e11,
    diameter=2.370e6,
    rotation_period=_hours(-153.2928),
    semi_major_axis=39.48168677 * ASTRONOMICAL_UNIT,
    primary='Sun',
)

BODIES: Dict[str, BodyParams] = {
    body.name: body for body in (
        SUN, MERCURY, VENUS, EARTH, MOON, MARS,
        JUPITER, SATURN, URANUS, NEPTUNE, PLUTO,
    )
}

PLANETS = ('Mercury', 'Venus', 'Earth', 'Mars',
           'Jupiter', 'Saturn', 'Uranus', 'Neptune')


def get_body(name: str) -> BodyParams:
    """
    Look up physical parameters by body name.

    Raises
    ------
    KeyError
        If the body is not in the table
    """
    try:
        return BODIES[name]
    except KeyError:
        raise KeyError(
            f"Unknown body '{name}'. Known bodies: {list(BODIES.keys())}"
        ) from None
