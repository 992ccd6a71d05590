"""
Test suite for package configuration.

Tests cover:
- Default values and derived properties
- reset() and temp_config() restoration
- Rejection of unknown settings
- Settings taking effect in force evaluation and validation
"""

import pytest
import warnings

import helion
from helion import config, temp_config, ParticleSystem


class TestDefaults:
    """Test default configuration values."""

    def test_physical_constants(self):
        assert config.GRAVITATIONAL_CONSTANT == 6.6740831e-11
        assert config.LIGHT_SPEED == 299792458.0
        assert config.PPN_BETA == 1.0
        assert config.PPN_GAMMA == 1.0

    def test_light_speed_square(self):
        assert config.LIGHT_SPEED_SQUARE == pytest.approx(8.987551787368176e16, rel=1e-15)

    def test_repr_lists_settings(self):
        text = repr(config)
        assert "HelionConfig:" in text
        assert "LIGHT_SPEED" in text
        assert "STRICT_VALIDATION" in text

    def test_package_exports_same_instance(self):
        assert helion.config is config


class TestReset:
    """Test reset() restoring defaults."""

    def test_reset_restores_values(self):
        try:
            config.LIGHT_SPEED = 1.0
            config.STRICT_VALIDATION = False
            config.reset()
            assert config.LIGHT_SPEED == 299792458.0
            assert config.STRICT_VALIDATION is True
        finally:
            config.reset()


class TestTempConfig:
    """Test temporary configuration context manager."""

    def test_values_inside_context(self):
        with temp_config(LIGHT_SPEED=1e9, MASSLESS_PARTICLE_MASS=2.0) as cfg:
            assert cfg is config
            assert config.LIGHT_SPEED == 1e9
            assert config.MASSLESS_PARTICLE_MASS == 2.0
        assert config.LIGHT_SPEED == 299792458.0
        assert config.MASSLESS_PARTICLE_MASS == 1.0

    def test_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with temp_config(STRICT_VALIDATION=False):
                raise RuntimeError("boom")
        assert config.STRICT_VALIDATION is True

    def test_unknown_key_raises(self):
        with pytest.raises(AttributeError, match="no attribute 'SPEED_OF_SOUND'"):
            with temp_config(SPEED_OF_SOUND=343.0):
                pass

    def test_unknown_key_leaves_config_untouched(self):
        """A valid key before an unknown one is never applied."""
        with pytest.raises(AttributeError):
            with temp_config(LIGHT_SPEED=1.0, NOT_A_SETTING=1):
                pass
        assert config.LIGHT_SPEED == 299792458.0

    def test_unknown_key_checked_before_entering(self):
        entered = False
        with pytest.raises(AttributeError):
            with temp_config(STRICT_VALIDATION=False, NOT_A_SETTING=1):
                entered = True
        assert not entered
        assert config.STRICT_VALIDATION is True


class TestSettingsTakeEffect:
    """Test that configuration changes reach the code that reads them."""

    def test_massless_particle_mass(self):
        with temp_config(MASSLESS_PARTICLE_MASS=5.0):
            system = ParticleSystem()
            probe = system.add_particle_without_mass('Probe', [1.0, 0, 0], [0, 0, 0])
        assert probe.mass == 5.0

    def test_non_strict_validation_warns(self):
        system = ParticleSystem()
        system.add_particle('A', 1.0e20, [0, 0, 0], [0, 0, 0])
        with temp_config(STRICT_VALIDATION=False):
            with pytest.warns(UserWarning, match="already exists"):
                system.add_particle('A', 2.0e20, [0, 0, 0], [0, 0, 0])
        assert system.get_particle('A').mass == 2.0e20
        assert len(system) == 1

    def test_history_reset_warning(self):
        system = helion.sun_earth()
        for _ in range(2):
            system.advance_abm4(3600.0)
        with temp_config(WARN_ON_HISTORY_RESET=True):
            with pytest.warns(UserWarning, match="step size changed"):
                system.advance_abm4(1800.0)

    def test_history_reset_silent_by_default(self):
        system = helion.sun_earth()
        system.advance_abm4(3600.0)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            system.advance_abm4(1800.0)
