"""
Seeding particle systems from ephemerides.

Any object with a ``state(name, t)`` method returning position and velocity
can act as an ephemeris: a tabulated ephemeris reader, an analytic model,
or the heyoka ReferencePropagator.
"""

from typing import Iterable, Optional, Protocol, Tuple, runtime_checkable

from .bodies import BODIES
from .particle_system import ParticleSystem
from .vector import Vector3D, VectorLike


@runtime_checkable
class EphemerisProvider(Protocol):
    """
    Source of body positions and velocities.

    ``state(name, t)`` returns (position [m], velocity [m/s]) of body
    ``name`` at ``t`` seconds past the provider's epoch. Implementations
    raise KeyError for bodies they do not cover.
    """

    def state(self, name: str, t: float) -> Tuple[VectorLike, VectorLike]:
        ...


def system_from_ephemeris(
    provider: EphemerisProvider,
    names: Iterable[str],
    t: float = 0.0,
    massless: Iterable[str] = (),
    general_relativity: bool = False,
    correct_drift: bool = False,
    system: Optional[ParticleSystem] = None,
) -> ParticleSystem:
    """
    Create a particle system with bodies placed as the provider reports at ``t``.

    Mass and mu of every body in ``names`` come from the body table;
    bodies in ``massless`` are added without mass (these need not be in
    the table).

    Parameters
    ----------
    provider : EphemerisProvider
        Source of positions and velocities
    names : iterable of str
        Bodies that exert force
    t : float, optional
        Time [s] past the provider epoch (default: 0.0)
    massless : iterable of str, optional
        Bodies added without mass, e.g. spacecraft
    general_relativity : bool, optional
        Relativity flag of a newly created system (default: False)
    correct_drift : bool, optional
        Move the system to its barycentric frame after seeding (default: False)
    system : ParticleSystem, optional
        Existing system to add the bodies to

    Returns
    -------
    ParticleSystem

    Raises
    ------
    TypeError
        If ``provider`` has no ``state`` method
    KeyError
        If a body is neither in the body table nor known to the provider
    """
    if not isinstance(provider, EphemerisProvider):
        raise TypeError(
            f"provider must implement state(name, t), got {type(provider).__name__}"
        )
    if system is None:
        system = ParticleSystem(general_relativity=general_relativity)

    for name in names:
        try:
            body = BODIES[name]
        except KeyError:
            raise KeyError(
                f"No physical parameters for body '{name}'. "
                f"Known bodies: {list(BODIES.keys())}"
            ) from None
        position, velocity = provider.state(name, t)
        system.add_particle(name, body.mass, position, velocity, mu=body.mu)

    for name in massless:
        position, velocity = provider.state(name, t)
        system.add_particle_without_mass(name, position, velocity)

    if correct_drift:
        system.correct_drift()
    return system


class SystemSnapshot:
    """
    Ephemeris that reports the state of a particle system at one instant.

    Only ``t`` equal to the snapshot time is available; useful to copy a
    system, optionally with a subset of its bodies.
    """

    def __init__(self, system: ParticleSystem):
        self._time = system.time
        self._states = {
            name: (p.position.copy(), p.velocity.copy())
            for name, p in zip(system.names, system.particles)
        }

    def state(self, name: str, t: float) -> Tuple[Vector3D, Vector3D]:
        if t != self._time:
            raise ValueError(
                f"Snapshot taken at t = {self._time} s cannot report t = {t} s"
            )
        try:
            position, velocity = self._states[name]
        except KeyError:
            raise KeyError(f"Body '{name}' not in snapshot") from None
        return position.copy(), velocity.copy()
