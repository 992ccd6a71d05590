"""
Default Particle Systems
========================

Factory functions for commonly-used particle systems. These functions
create ParticleSystem objects on demand with bodies from the body table on
idealized orbits: useful for tests, experiments and demonstrations where
an ephemeris is not needed.

Examples
--------
>>> from helion import sun_earth, circular_solar_system
>>> system = sun_earth()                       # Sun at rest, Earth at 1 AU
>>> inner = circular_solar_system(('Mercury', 'Venus', 'Earth', 'Mars'))
"""
import math
from typing import Sequence

from .bodies import ASTRONOMICAL_UNIT, BODIES, EARTH, MERCURY, PLANETS, SUN
from .particle_system import ParticleSystem
from .vector import Vector3D

# Mean eccentricity of Mercury's orbit (J2000)
MERCURY_ECCENTRICITY = 0.20563661


def circular_velocity(mu: float, radius: float) -> float:
    """
    Speed [m/s] of a circular orbit.

    Parameters
    ----------
    mu : float
        Gravitational parameter of the two-body problem [m³/s²]; use the
        sum of both bodies' mu for the relative orbit
    radius : float
        Orbit radius [m]
    """
    if mu <= 0:
        raise ValueError(f"Gravitational parameter must be positive, got {mu}")
    if radius <= 0:
        raise ValueError(f"Radius must be positive, got {radius}")
    return math.sqrt(mu / radius)


def sun_earth(general_relativity=False):
    """
    Create a Sun-Earth system.

    The Sun is at rest at the origin; the Earth starts at 1 AU on the
    x-axis with the speed of a circular relative orbit, moving along +y.

    Parameters
    ----------
    general_relativity : bool, optional
        Apply the post-Newtonian correction (default: False)

    Returns
    -------
    ParticleSystem
        Two-body Sun-Earth system (not in the barycentric frame)
    """
    system = ParticleSystem(general_relativity=general_relativity)
    speed = circular_velocity(SUN.mu + EARTH.mu, ASTRONOMICAL_UNIT)
    system.add_particle('Sun', SUN.mass, [0.0, 0.0, 0.0], [0.0, 0.0, 0.0], mu=SUN.mu)
    system.add_particle('Earth', EARTH.mass, [ASTRONOMICAL_UNIT, 0.0, 0.0],
                        [0.0, speed, 0.0], mu=EARTH.mu)
    return system


def sun_mercury(general_relativity=False):
    """
    Create a Sun-Mercury system with Mercury at perihelion.

    The orbit has Mercury's mean semi-major axis and eccentricity, with
    perihelion on the +x axis. This is the classic setting for measuring
    the relativistic perihelion precession.

    Parameters
    ----------
    general_relativity : bool, optional
        Apply the post-Newtonian correction (default: False)

    Returns
    -------
    ParticleSystem
        Two-body Sun-Mercury system

    Notes
    -----
    Relative to the Sun, perihelion distance is a(1 - e) and perihelion
    speed is sqrt(mu (1 + e) / (a (1 - e))) with mu = mu_Sun + mu_Mercury.
    """
    system = ParticleSystem(general_relativity=general_relativity)
    a = MERCURY.semi_major_axis
    e = MERCURY_ECCENTRICITY
    mu = SUN.mu + MERCURY.mu
    r_perihelion = a * (1.0 - e)
    v_perihelion = math.sqrt(mu * (1.0 + e) / r_perihelion)
    system.add_particle('Sun', SUN.mass, [0.0, 0.0, 0.0], [0.0, 0.0, 0.0], mu=SUN.mu)
    system.add_particle('Mercury', MERCURY.mass, [r_perihelion, 0.0, 0.0],
                        [0.0, v_perihelion, 0.0], mu=MERCURY.mu)
    return system


def circular_solar_system(names: Sequence[str] = PLANETS, general_relativity=False,
                          correct_drift=True):
    """
    Create the Sun with bodies on coplanar circular orbits.

    Each body orbits its primary at its mean semi-major axis. Bodies are
    spread in phase so that no two start aligned with the Sun. A body
    whose primary is not the Sun (e.g. the Moon) is placed relative to its
    primary, which must come earlier in ``names``.

    Parameters
    ----------
    names : sequence of str, optional
        Bodies to add besides the Sun (default: the eight planets)
    general_relativity : bool, optional
        Apply the post-Newtonian correction (default: False)
    correct_drift : bool, optional
        Move the system to its barycentric frame (default: True)

    Returns
    -------
    ParticleSystem

    Raises
    ------
    KeyError
        If a body is not in the body table
    ValueError
        If a body has no orbit or its primary is missing
    """
    system = ParticleSystem(general_relativity=general_relativity)
    system.add_particle('Sun', SUN.mass, [0.0, 0.0, 0.0], [0.0, 0.0, 0.0], mu=SUN.mu)

    n = max(len(names), 1)
    for k, name in enumerate(names):
        if name == 'Sun':
            continue
        try:
            body = BODIES[name]
        except KeyError:
            raise KeyError(
                f"Unknown body '{name}'. Known bodies: {list(BODIES.keys())}"
            ) from None
        if body.semi_major_axis is None or body.primary is None:
            raise ValueError(f"{name} has no orbit in the body table")
        if body.primary not in system:
            raise ValueError(
                f"Primary '{body.primary}' of {name} must be added before {name}"
            )
        primary = system.get_particle(body.primary)
        radius = body.semi_major_axis
        speed = circular_velocity(primary.mu + body.mu, radius)
        phase = 2.0 * math.pi * k / n
        c, s = math.cos(phase), math.sin(phase)
        position = primary.position.plus(Vector3D(radius * c, radius * s, 0.0))
        velocity = primary.velocity.plus(Vector3D(-speed * s, speed * c, 0.0))
        system.add_particle(name, body.mass, position, velocity, mu=body.mu)

    if correct_drift:
        system.correct_drift()
    return system
