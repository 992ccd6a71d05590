"""
Test suite for Particle.

Tests cover:
- Construction from mass, mu or both
- Derived quantities (momentum, kinetic energy)
- State adjustment (drift, kinetic energy scaling)
- Newtonian snapshot bookkeeping
"""

import pytest

from helion import Particle, Vector3D, config


class TestConstruction:
    """Test particle creation and validation."""

    def test_mu_from_mass(self):
        p = Particle(2.0e24, [0, 0, 0], [0, 0, 0])
        assert p.mu == pytest.approx(config.GRAVITATIONAL_CONSTANT * 2.0e24)

    def test_mass_from_mu(self):
        p = Particle(None, [0, 0, 0], [0, 0, 0], mu=4.0e14)
        assert p.mass == pytest.approx(4.0e14 / config.GRAVITATIONAL_CONSTANT)

    def test_mass_and_mu_independent(self):
        """A supplied mu is kept even when it disagrees with G * mass."""
        p = Particle(1.0e22, [0, 0, 0], [0, 0, 0], mu=1.0e12)
        assert p.mass == 1.0e22
        assert p.mu == 1.0e12

    def test_requires_mass_or_mu(self):
        with pytest.raises(ValueError, match="requires mass, mu, or both"):
            Particle(None, [0, 0, 0], [0, 0, 0])

    @pytest.mark.parametrize("mass", [0.0, -1.0, float('nan'), float('inf')])
    def test_invalid_mass(self, mass):
        with pytest.raises(ValueError, match="Mass must be positive"):
            Particle(mass, [0, 0, 0], [0, 0, 0])

    def test_invalid_mu(self):
        with pytest.raises(ValueError, match="Gravitational parameter must be positive"):
            Particle(1.0, [0, 0, 0], [0, 0, 0], mu=-3.0)

    def test_invalid_position(self):
        with pytest.raises(ValueError, match="position"):
            Particle(1.0, [0, 0], [0, 0, 0])

    def test_state_is_copied(self):
        position = Vector3D(1.0, 2.0, 3.0)
        p = Particle(1.0, position, [0, 0, 0])
        p.position.add_vector(Vector3D(1.0, 1.0, 1.0))
        assert position == Vector3D(1.0, 2.0, 3.0)

    def test_mass_setter_updates_mu(self):
        p = Particle(None, [0, 0, 0], [0, 0, 0], mu=1.0e12)
        p.mass = 3.0e20
        assert p.mu == pytest.approx(config.GRAVITATIONAL_CONSTANT * 3.0e20)

    def test_mass_setter_rejects_zero(self):
        p = Particle(1.0, [0, 0, 0], [0, 0, 0])
        with pytest.raises(ValueError):
            p.mass = 0.0

    def test_identity_hash(self):
        """Particles with equal state remain distinct dictionary keys."""
        a = Particle(1.0, [0, 0, 0], [0, 0, 0])
        b = Particle(1.0, [0, 0, 0], [0, 0, 0])
        assert len({a: 1, b: 2}) == 2

    def test_repr(self):
        p = Particle(1.0, [0, 0, 0], [0, 0, 0], name='Probe', exerts_force=False)
        text = repr(p)
        assert "'Probe'" in text
        assert "massless" in text


class TestDerivedQuantities:
    """Test momentum and kinetic energy."""

    def test_momentum(self):
        p = Particle(2.0, [0, 0, 0], [1.0, -2.0, 3.0])
        assert p.momentum == Vector3D(2.0, -4.0, 6.0)

    def test_kinetic_energy(self):
        p = Particle(2.0, [0, 0, 0], [3.0, 4.0, 0.0])
        assert p.kinetic_energy == pytest.approx(25.0)


class TestStateAdjustment:
    """Test drift correction and kinetic energy scaling."""

    def test_correct_drift(self):
        p = Particle(1.0, [10.0, 10.0, 10.0], [1.0, 1.0, 1.0])
        p.correct_drift(Vector3D(1.0, 2.0, 3.0), Vector3D(1.0, 0.0, -1.0))
        assert p.position == Vector3D(9.0, 8.0, 7.0)
        assert p.velocity == Vector3D(0.0, 1.0, 2.0)

    def test_adjust_kinetic_energy(self):
        p = Particle(1.0, [0, 0, 0], [1.0, 2.0, -2.0])
        before = p.kinetic_energy
        p.adjust_kinetic_energy(4.0)
        assert p.velocity == Vector3D(2.0, 4.0, -4.0)
        assert p.kinetic_energy == pytest.approx(4.0 * before)

    def test_adjust_kinetic_energy_negative(self):
        p = Particle(1.0, [0, 0, 0], [1.0, 0, 0])
        with pytest.raises(ValueError, match="non-negative"):
            p.adjust_kinetic_energy(-1.0)


class TestNewtonSnapshot:
    """Test storage and staleness of the Newtonian acceleration."""

    def make_pair(self):
        a = Particle(None, [0, 0, 0], [0, 0, 0], mu=1.0e20, name='A')
        b = Particle(None, [1.0e10, 0, 0], [0, 1.0e4, 0], mu=1.0e18, name='B')
        return a, b

    def test_no_snapshot_before_newton_pass(self):
        a, _ = self.make_pair()
        with pytest.raises(RuntimeError, match="no Newtonian acceleration"):
            a.newton_snapshot()

    def test_newton_pass_stores_acceleration_and_halved_potential(self):
        a, b = self.make_pair()
        b.compute_acceleration_newton_mechanics([a, b])
        assert b.acceleration == Vector3D(-1.0e20 / 1.0e20, 0.0, 0.0)
        assert b.potential_energy == pytest.approx(-0.5 * 1.0e20 * b.mass / 1.0e10)
        assert b.newton_snapshot() == b.acceleration

    def test_snapshot_is_copy(self):
        a, b = self.make_pair()
        b.compute_acceleration_newton_mechanics([a, b])
        snapshot = b.newton_snapshot()
        b.acceleration.add_vector(Vector3D(1.0, 1.0, 1.0))
        assert b.newton_snapshot() == snapshot

    def test_stale_snapshot_raises(self):
        a, b = self.make_pair()
        b.compute_acceleration_newton_mechanics([a, b])
        b.position = b.position.plus(Vector3D(1.0, 0.0, 0.0))
        with pytest.raises(RuntimeError, match="stale"):
            b.newton_snapshot()

    def test_relativity_requires_perturber_snapshots(self):
        a, b = self.make_pair()
        b.compute_acceleration_newton_mechanics([a, b])
        with pytest.raises(RuntimeError, match="'A'"):
            b.compute_acceleration_general_relativity([a, b])

    def test_relativity_after_newton_pass(self):
        a, b = self.make_pair()
        a.compute_acceleration_newton_mechanics([a, b])
        b.compute_acceleration_newton_mechanics([a, b])
        newton = b.newton_snapshot()
        b.compute_acceleration_general_relativity([a, b])
        # Correction is tiny but nonzero
        assert b.acceleration != newton
        assert b.acceleration.minus(newton).magnitude() < 1e-6 * newton.magnitude()
