"""
Test suite for long-run integration accuracy.

Tests cover:
- Return of the Earth to its starting point after one orbit
- Bounded energy error of leapfrog on an eccentric orbit
- Energy drift of Runge-Kutta shrinking with the step size
- Relativistic perihelion precession of Mercury
"""

import math

import pytest

from helion import (
    ASTRONOMICAL_UNIT, EARTH, SUN, ParticleSystem, energy_history,
    perihelion_precession, sun_earth, sun_mercury,
)

# =============================================================================
# Test Configuration
# =============================================================================

ECCENTRIC_MU = 1.327e20
ECCENTRIC_A = 1.0e11
ECCENTRIC_E = 0.5
ECCENTRIC_PERIOD = 2.0 * math.pi * math.sqrt(ECCENTRIC_A ** 3 / (ECCENTRIC_MU + 1.0e10))


def _eccentric_orbit():
    """Light body at perihelion of an e = 0.5 orbit around a heavy one."""
    mu = ECCENTRIC_MU + 1.0e10
    r_p = ECCENTRIC_A * (1.0 - ECCENTRIC_E)
    v_p = math.sqrt(mu * (1.0 + ECCENTRIC_E) / r_p)
    system = ParticleSystem()
    system.add_particle('Star', None, [0.0, 0.0, 0.0], [0.0, 0.0, 0.0], mu=ECCENTRIC_MU)
    system.add_particle('Planet', None, [r_p, 0.0, 0.0], [0.0, v_p, 0.0], mu=1.0e10)
    system.correct_drift()
    return system


class TestEarthOrbit:
    """Test one full orbit of the Earth around the Sun."""

    def test_earth_returns_after_one_year(self):
        system = sun_earth()
        period = 2.0 * math.pi * math.sqrt(ASTRONOMICAL_UNIT ** 3 / (SUN.mu + EARTH.mu))
        delta_t = 3600.0
        n_steps = int(period // delta_t)
        traj = system.propagate(delta_t, n_steps, scheme='rk4')
        remainder = period - system.time
        if remainder > 0.0:
            system.advance_runge_kutta(remainder)

        # Within 0.1% of 1 AU at every step of the year
        distances = traj.distances('Earth', 'Sun')
        assert len(distances) == n_steps + 1
        assert abs(distances / ASTRONOMICAL_UNIT - 1.0).max() < 1e-3

        start = traj.state_at_index(0, 'Earth')[:3] - traj.state_at_index(0, 'Sun')[:3]
        end = (system['Earth'].position.minus(system['Sun'].position)).to_array()
        assert math.dist(start, end) < 300.0e3
        assert math.hypot(*end) == pytest.approx(ASTRONOMICAL_UNIT, rel=1e-3)

    def test_distance_stays_constant(self):
        system = sun_earth()
        traj = system.propagate(86400.0, 365, scheme='abm4', record_every=5)
        distances = traj.distances('Earth', 'Sun')
        assert distances.max() / distances.min() - 1.0 < 1e-5


class TestEnergy:
    """Test energy conservation behaviour of the schemes."""

    def test_leapfrog_energy_error_bounded(self):
        """Leapfrog energy oscillates without secular growth."""
        steps_per_orbit = 2000
        delta_t = ECCENTRIC_PERIOD / steps_per_orbit
        df = energy_history(_eccentric_orbit(), delta_t, 10 * steps_per_orbit,
                            scheme='leapfrog', sample_every=10)
        first = df[df['time'] <= ECCENTRIC_PERIOD]['relative_error']
        last = df[df['time'] >= 9.0 * ECCENTRIC_PERIOD]['relative_error']
        early = first.max() - first.min()
        late = last.max() - last.min()
        assert late / early < 1.5

    def test_runge_kutta_drift_shrinks_with_step(self):
        def drift(steps_per_orbit):
            delta_t = ECCENTRIC_PERIOD / steps_per_orbit
            df = energy_history(_eccentric_orbit(), delta_t, 2 * steps_per_orbit, scheme='rk4',
                                sample_every=steps_per_orbit // 50)
            return df['relative_error'].abs().max()

        assert drift(500) / drift(1000) > 8.0

    def test_energy_history_columns(self):
        df = energy_history(sun_earth(), 3600.0, 10, scheme='rk4', sample_every=5)
        assert list(df.columns) == ['time', 'kinetic', 'potential', 'total', 'relative_error']
        assert len(df) == 3
        assert df['relative_error'].iloc[0] == 0.0
        assert (df['potential'] < 0).all()


class TestPerihelionPrecession:
    """Test the relativistic precession of Mercury's perihelion."""

    @pytest.mark.slow
    def test_mercury_one_year(self):
        """About 43 arcseconds per century, so about 0.43 in one year."""
        n_steps = 8766
        newton = perihelion_precession(sun_mercury(general_relativity=False),
                                       'Mercury', 'Sun', 3600.0, n_steps)
        relativity = perihelion_precession(sun_mercury(general_relativity=True),
                                           'Mercury', 'Sun', 3600.0, n_steps)
        assert 0.2 < relativity - newton < 0.7

    def test_circular_orbit_rejected(self):
        system = ParticleSystem()
        system.add_particle('Sun', None, [0.0, 0.0, 0.0], [0.0, 0.0, 0.0], mu=SUN.mu)
        system.add_particle_without_mass(
            'Probe', [ASTRONOMICAL_UNIT, 0.0, 0.0],
            [0.0, math.sqrt(SUN.mu / ASTRONOMICAL_UNIT), 0.0])
        with pytest.raises(ValueError, match="circular"):
            perihelion_precession(system, 'Probe', 'Sun', 3600.0, 10)
