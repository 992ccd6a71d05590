"""
Numerical experiments on particle systems.

Each experiment advances a system in place and reports through pandas
DataFrames or plain floats, ready for plotting or tabulation.
"""

import math
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from .ephemeris import EphemerisProvider
from .integrators import Scheme, parse_scheme
from .particle_system import ParticleSystem
from .utils import Timer, check_step_size
from .vector import Vector3D, VectorLike, as_vector

ARCSECONDS_PER_RADIAN = 180.0 * 3600.0 / math.pi


def _check_counts(n_steps, sample_every):
    if isinstance(n_steps, bool) or int(n_steps) != n_steps or n_steps < 0:
        raise ValueError(f"n_steps must be a non-negative integer, got {n_steps}")
    if isinstance(sample_every, bool) or int(sample_every) != sample_every or sample_every < 1:
        raise ValueError(f"sample_every must be a positive integer, got {sample_every}")
    return int(n_steps), int(sample_every)


def simulation_accuracy(
    system: ParticleSystem,
    provider: EphemerisProvider,
    delta_t: float,
    n_steps: int,
    sample_every: int = 1,
    scheme: Union[Scheme, str] = Scheme.RUNGE_KUTTA,
    correct_drift: bool = False,
    names: Optional[Sequence[str]] = None,
    t_offset: float = 0.0,
) -> pd.DataFrame:
    """
    Deviation of simulated positions from an ephemeris over time.

    The provider is queried at ``t_offset`` plus the time elapsed since
    the start of the experiment, so the system should have been seeded
    from the provider at ``t_offset``.

    Parameters
    ----------
    system : ParticleSystem
        System to advance (modified in place)
    provider : EphemerisProvider
        Reference positions, e.g. a ReferencePropagator
    delta_t : float
        Step size [s]
    n_steps : int
        Number of steps
    sample_every : int, optional
        Compare every n-th step; the first and last are always compared
    scheme : Scheme or str, optional
        Integration scheme (default: 'rk4')
    correct_drift : bool, optional
        Correct barycentric drift after every step (default: False).
        Only meaningful when the provider also reports barycentric states.
    names : sequence of str, optional
        Bodies to compare (default: all particles)
    t_offset : float, optional
        Provider time of the experiment start [s] (default: 0.0)

    Returns
    -------
    pd.DataFrame
        Long format with columns time, body, deviation [m]
    """
    delta_t = check_step_size(delta_t)
    scheme = parse_scheme(scheme)
    n_steps, sample_every = _check_counts(n_steps, sample_every)
    if names is None:
        names = system.names
    particles = [system.get_particle(name) for name in names]
    t_start = system.time

    rows = []

    def compare():
        elapsed = system.time - t_start
        for name, particle in zip(names, particles):
            position, _ = provider.state(name, t_offset + elapsed)
            deviation = particle.position.euclidean_distance(as_vector(position, "position"))
            rows.append({'time': elapsed, 'body': name, 'deviation': deviation})

    compare()
    for step in range(1, n_steps + 1):
        system.advance(delta_t, scheme)
        if correct_drift:
            system.correct_drift()
        if step % sample_every == 0 or step == n_steps:
            compare()
    return pd.DataFrame(rows, columns=['time', 'body', 'deviation'])


def energy_history(
    system: ParticleSystem,
    delta_t: float,
    n_steps: int,
    scheme: Union[Scheme, str] = Scheme.RUNGE_KUTTA,
    sample_every: int = 1,
) -> pd.DataFrame:
    """
    Kinetic, potential and total energy while the system is advanced.

    Potential energy is recomputed at every sample so that it matches the
    sampled positions.

    Returns
    -------
    pd.DataFrame
        Columns time, kinetic, potential, total, relative_error where
        relative_error = (E - E0) / abs(E0)
    """
    delta_t = check_step_size(delta_t)
    scheme = parse_scheme(scheme)
    n_steps, sample_every = _check_counts(n_steps, sample_every)
    t_start = system.time

    rows = []

    def sample():
        kinetic = system.kinetic_energy()
        potential = system.potential_energy(refresh=True)
        rows.append({'time': system.time - t_start, 'kinetic': kinetic,
                     'potential': potential, 'total': kinetic + potential})

    sample()
    for step in range(1, n_steps + 1):
        system.advance(delta_t, scheme)
        if step % sample_every == 0 or step == n_steps:
            sample()

    df = pd.DataFrame(rows, columns=['time', 'kinetic', 'potential', 'total'])
    e0 = df['total'].iloc[0]
    if e0 == 0.0:
        df['relative_error'] = np.nan
    else:
        df['relative_error'] = (df['total'] - e0) / abs(e0)
    return df


def eccentricity_vector(mu: float, position: VectorLike, velocity: VectorLike) -> Vector3D:
    """
    Eccentricity vector of a Keplerian orbit.

    e = ((v² - mu/r) r - (r . v) v) / mu, pointing towards periapsis.

    Parameters
    ----------
    mu : float
        Gravitational parameter of the two-body problem [m³/s²]
    position, velocity : Vector3D or array_like
        Relative position [m] and velocity [m/s]
    """
    if mu <= 0:
        raise ValueError(f"Gravitational parameter must be positive, got {mu}")
    r = as_vector(position, "position")
    v = as_vector(velocity, "velocity")
    radius = r.magnitude()
    if radius == 0.0:
        raise ValueError("Eccentricity vector is undefined at zero radius")
    term = r.scalar_product(v.magnitude_square() - mu / radius).minus(
        v.scalar_product(r.dot_product(v)))
    return term.scalar_product(1.0 / mu)


def _relative_eccentricity(system: ParticleSystem, body: str, central: str) -> Vector3D:
    orbiter = system.get_particle(body)
    primary = system.get_particle(central)
    mu = primary.mu + (orbiter.mu if orbiter.exerts_force else 0.0)
    return eccentricity_vector(mu,
                               orbiter.position.minus(primary.position),
                               orbiter.velocity.minus(primary.velocity))


def perihelion_precession(
    system: ParticleSystem,
    body: str,
    central: str,
    delta_t: float,
    n_steps: int,
    scheme: Union[Scheme, str] = Scheme.RUNGE_KUTTA,
    correct_drift: bool = True,
    verbose: bool = False,
) -> float:
    """
    Rotation of the orbit of ``body`` about ``central`` over a propagation.

    The angle between the eccentricity vectors before and after
    ``n_steps`` steps. Run once with and once without general relativity
    to isolate the relativistic precession (about 43 arcseconds per
    century for Mercury).

    Returns
    -------
    float
        Precession [arcsec]

    Raises
    ------
    ValueError
        If the initial orbit is circular, so its periapsis is undefined
    """
    delta_t = check_step_size(delta_t)
    scheme = parse_scheme(scheme)
    n_steps, _ = _check_counts(n_steps, 1)

    e_initial = _relative_eccentricity(system, body, central)
    if e_initial.magnitude() < 1e-12:
        raise ValueError(f"Orbit of {body} is circular; precession is undefined")

    mode = "general relativity" if system.general_relativity else "Newton mechanics"
    with Timer(f"{body} precession ({mode}, {n_steps} steps)", verbose=verbose):
        for _ in range(n_steps):
            system.advance(delta_t, scheme)
            if correct_drift:
                system.correct_drift()

    e_final = _relative_eccentricity(system, body, central)
    return e_initial.angle_rad(e_final) * ARCSECONDS_PER_RADIAN
