"""
Test suite for ParticleSystem propagation.

Tests cover:
- Convergence order of each scheme on an exact circular two-body orbit
- Backward integration
- Accuracy across step size and scheme changes
- Massless particles leaving massive ones untouched
"""

import math

import numpy as np
import pytest

from helion import ParticleSystem, sun_earth

# =============================================================================
# Exact circular binary
# =============================================================================

MU_1 = 1.0e20
MU_2 = 2.0e19
SEPARATION = 1.0e11
MU = MU_1 + MU_2
OMEGA = math.sqrt(MU / SEPARATION ** 3)
PERIOD = 2.0 * math.pi / OMEGA


def _binary_state(t):
    """Exact barycentric positions and velocities of both bodies at time t."""
    c, s = math.cos(OMEGA * t), math.sin(OMEGA * t)
    radial = np.array([c, s, 0.0])
    tangential = np.array([-s, c, 0.0])
    r1 = MU_2 / MU * SEPARATION
    r2 = MU_1 / MU * SEPARATION
    return {
        'Primary': (-r1 * radial, -r1 * OMEGA * tangential),
        'Secondary': (r2 * radial, r2 * OMEGA * tangential),
    }


def _binary(general_relativity=False):
    system = ParticleSystem(general_relativity=general_relativity)
    for name, (position, velocity) in _binary_state(0.0).items():
        mu = MU_1 if name == 'Primary' else MU_2
        system.add_particle(name, None, position, velocity, mu=mu)
    return system


def _error_after_one_period(scheme, n_steps):
    system = _binary()
    traj = system.propagate(PERIOD / n_steps, n_steps, scheme=scheme, record_every=n_steps)
    exact, _ = _binary_state(traj.tf)['Secondary']
    return np.linalg.norm(traj.positions('Secondary')[-1] - exact)


class TestConvergence:
    """Test that errors shrink at the rate of each scheme's order."""

    def test_final_time(self):
        system = _binary()
        traj = system.propagate(PERIOD / 100, 100, record_every=100)
        assert traj.tf == pytest.approx(PERIOD, rel=1e-12)
        assert len(traj) == 2

    def test_runge_kutta_fourth_order(self):
        errors = [_error_after_one_period('rk4', n) for n in (200, 400, 800)]
        for coarse, fine in zip(errors, errors[1:]):
            assert 8.0 < coarse / fine < 32.0

    def test_abm4_fourth_order(self):
        coarse = _error_after_one_period('abm4', 200)
        fine = _error_after_one_period('abm4', 400)
        assert 8.0 < coarse / fine < 32.0
        assert fine / SEPARATION < 1e-5

    def test_leapfrog_second_order(self):
        coarse = _error_after_one_period('leapfrog', 200)
        fine = _error_after_one_period('leapfrog', 400)
        assert 2.0 < coarse / fine < 8.0

    def test_runge_kutta_more_accurate_than_leapfrog(self):
        assert (_error_after_one_period('rk4', 200)
                < _error_after_one_period('leapfrog', 200))

    def test_barycenter_stays_at_origin(self):
        system = _binary()
        system.propagate(PERIOD / 200, 100, scheme='rk4')
        position, velocity = system.barycenter()
        assert position.magnitude() < 1.0
        assert velocity.magnitude() < 1e-9


class TestBackwardIntegration:
    """Test integration with negative step size."""

    def test_forward_then_backward(self):
        system = _binary()
        initial = system.state_array()
        system.propagate(PERIOD / 400, 100, scheme='rk4')
        traj = system.propagate(-PERIOD / 400, 100, scheme='rk4')
        assert traj.tf == pytest.approx(0.0, abs=1e-6)
        np.testing.assert_allclose(system.state_array()[:, :3], initial[:, :3],
                                   rtol=0, atol=1.0e4)

    def test_times_decrease(self):
        system = _binary()
        traj = system.propagate(-60.0, 3)
        np.testing.assert_allclose(traj.times, [0.0, -60.0, -120.0, -180.0])


class TestStepChanges:
    """Test accuracy when the step size or scheme changes mid-run."""

    def reference_earth(self, duration):
        system = sun_earth()
        system.propagate(60.0, int(duration / 60.0), scheme='rk4')
        return system['Earth']

    def test_leapfrog_step_size_change(self):
        switched = sun_earth()
        switched.propagate(3600.0, 10, scheme='leapfrog')
        switched.propagate(1800.0, 20, scheme='leapfrog')
        uniform = sun_earth()
        uniform.propagate(1800.0, 40, scheme='leapfrog')

        reference = self.reference_earth(36000.0).position
        switched_error = switched['Earth'].position.euclidean_distance(reference)
        uniform_error = uniform['Earth'].position.euclidean_distance(reference)
        assert switched_error < 10.0 * uniform_error

    def test_leapfrog_forward_then_backward(self):
        """Leapfrog is time-reversible when restarted at the turning point."""
        system = _binary()
        initial = system.state_array()
        system.propagate(PERIOD / 400, 100, scheme='leapfrog')
        system.propagate(-PERIOD / 400, 100, scheme='leapfrog')
        np.testing.assert_allclose(system.state_array()[:, :3], initial[:, :3],
                                   rtol=0, atol=1.0)

    def test_leapfrog_then_runge_kutta(self):
        system = sun_earth()
        system.propagate(3600.0, 10, scheme='leapfrog')
        system.advance(3600.0, 'rk4')
        reference = self.reference_earth(39600.0)
        assert system['Earth'].velocity.euclidean_distance(reference.velocity) < 0.1
        assert system['Earth'].position.euclidean_distance(reference.position) < 1.0e3

    def test_synchronize_leapfrog(self):
        system = sun_earth()
        system.propagate(3600.0, 10, scheme='leapfrog')
        staggered = system['Earth'].velocity.copy()
        system.synchronize_leapfrog()
        reference = self.reference_earth(36000.0).velocity
        assert system['Earth'].velocity.euclidean_distance(reference) < 0.1
        assert staggered.euclidean_distance(reference) > 1.0
        before = system.force_evaluations
        system.synchronize_leapfrog()
        assert system.force_evaluations == before


class TestMasslessParticles:
    """Test that massless particles do not disturb massive ones."""

    @pytest.mark.parametrize("scheme", ['rk4', 'abm4', 'leapfrog'])
    @pytest.mark.parametrize("general_relativity", [False, True])
    def test_massive_bodies_unchanged(self, scheme, general_relativity):
        plain = sun_earth(general_relativity=general_relativity)
        with_probe = sun_earth(general_relativity=general_relativity)
        with_probe.add_particle_without_mass('Probe', [0.0, 1.2e11, 0.0], [-3.3e4, 0.0, 0.0])

        a = plain.propagate(3600.0, 30, scheme=scheme)
        b = with_probe.propagate(3600.0, 30, scheme=scheme, names=['Sun', 'Earth'])
        for name in ('Sun', 'Earth'):
            assert np.array_equal(a.states(name), b.states(name))

    def test_probe_is_moved(self):
        system = sun_earth()
        probe = system.add_particle_without_mass('Probe', [0.0, 1.2e11, 0.0], [-3.3e4, 0.0, 0.0])
        start = probe.position.copy()
        system.propagate(3600.0, 10)
        assert probe.position != start
