"""
Global Configuration for Helion Package
=======================================

This module provides package-wide configuration settings that users can modify
to control physical constants, numerical tolerances, validation behavior, and
default plotting options.

Examples
--------
View current configuration:

>>> import helion
>>> print(helion.config)

Modify settings:

>>> helion.config.STRICT_VALIDATION = False  # Warn instead of raising
>>> helion.config.LIGHT_SPEED = 1e12         # Push relativity towards Newton

Reset to defaults:

>>> helion.config.reset()

Temporarily modify settings:

>>> with helion.temp_config(LIGHT_SPEED=1e12):
...     system.compute_acceleration()

Notes
-----
These settings affect package-wide behavior. Modifying them will impact
all subsequent operations until changed again or reset. Force evaluation
reads LIGHT_SPEED and the PPN parameters on every call, so a change takes
effect on the next step.
"""

from dataclasses import dataclass
from contextlib import contextmanager


@dataclass
class HelionConfig:
    """
    Global configuration for Helion package.

    Attributes
    ----------
    GRAVITATIONAL_CONSTANT : float
        Newtonian constant of gravitation G [m³/(kg s²)], used to derive mu
        from mass when mu is not supplied.
        Default: 6.6740831e-11
    LIGHT_SPEED : float
        Speed of light c [m/s] used by the post-Newtonian correction.
        Default: 299792458.0
    PPN_BETA : float
        PPN parameter measuring nonlinearity in superposition of gravity.
        Default: 1.0 (general relativity)
    PPN_GAMMA : float
        PPN parameter measuring space curvature produced by unit rest mass.
        Default: 1.0 (general relativity)
    MASSLESS_PARTICLE_MASS : float
        Mass [kg] given to particles registered without mass. They never
        act as perturbers; the mass only enters energy diagnostics.
        Default: 1.0
    EQUALITY_RTOL : float
        Relative tolerance for floating-point equality comparisons.
        Default: 1e-12
    EQUALITY_ATOL : float
        Absolute tolerance for floating-point equality comparisons.
        Default: 1e-14
    STRICT_VALIDATION : bool
        If True, validation failures raise exceptions.
        If False, validation failures issue warnings.
        Default: True
    WARN_ON_HISTORY_RESET : bool
        If True, a warning is issued when a step size change discards a
        warm Adams-Bashforth-Moulton history.
        Default: False
    REFERENCE_TOLERANCE : float
        Tolerance passed to the heyoka Taylor integrator used as the
        reference propagator. Values <= 0 select heyoka's default
        (machine epsilon).
        Default: 0.0
    INSTANCE_WARNING_THRESHOLD : int
        Number of compiled reference propagators in memory before a
        warning is issued.
        Default: 10
    DEFAULT_BODY_COLOR : str
        Default marker color for body positions in plots.
        Default: 'gold'
    DEFAULT_TRAJ_COLOR : str
        Default color for trajectory lines in plots.
        Default: 'red'
    DEFAULT_MARKER_SIZE : int
        Default marker size for final body positions in plots.
        Default: 4
    """

    # Physical constants
    GRAVITATIONAL_CONSTANT: float = 6.6740831e-11
    LIGHT_SPEED: float = 299792458.0
    PPN_BETA: float = 1.0
    PPN_GAMMA: float = 1.0

    # Particle defaults
    MASSLESS_PARTICLE_MASS: float = 1.0

    # Numerical tolerance for equality comparisons
    EQUALITY_RTOL: float = 1e-12
    EQUALITY_ATOL: float = 1e-14

    # Validation behavior
    STRICT_VALIDATION: bool = True
    WARN_ON_HISTORY_RESET: bool = False

    # Reference propagator
    REFERENCE_TOLERANCE: float = 0.0
    INSTANCE_WARNING_THRESHOLD: int = 10

    # Plotting defaults
    DEFAULT_BODY_COLOR: str = 'gold'
    DEFAULT_TRAJ_COLOR: str = 'red'
    DEFAULT_MARKER_SIZE: int = 4

    @property
    def LIGHT_SPEED_SQUARE(self) -> float:
        """Square of the speed of light [m²/s²]."""
        return self.LIGHT_SPEED * self.LIGHT_SPEED

    def reset(self):
        """
        Reset all configuration values to package defaults.

        Examples
        --------
        >>> import helion
        >>> helion.config.LIGHT_SPEED = 1.0
        >>> helion.config.reset()
        >>> helion.config.LIGHT_SPEED
        299792458.0
        """
        defaults = HelionConfig()
        for key in self.__dataclass_fields__:
            setattr(self, key, getattr(defaults, key))

    def __repr__(self):
        """Return formatted string showing all configuration values."""
        lines = ["HelionConfig:"]
        lines.append("  Physical Constants:")
        lines.append(f"    GRAVITATIONAL_CONSTANT = {self.GRAVITATIONAL_CONSTANT}")
        lines.append(f"    LIGHT_SPEED = {self.LIGHT_SPEED}")
        lines.append(f"    PPN_BETA = {self.PPN_BETA}")
        lines.append(f"    PPN_GAMMA = {self.PPN_GAMMA}")
        lines.append("  Particles:")
        lines.append(f"    MASSLESS_PARTICLE_MASS = {self.MASSLESS_PARTICLE_MASS}")
        lines.append("  Numerical Tolerances:")
        lines.append(f"    EQUALITY_RTOL = {self.EQUALITY_RTOL}")
        lines.append(f"    EQUALITY_ATOL = {self.EQUALITY_ATOL}")
        lines.append("  Behavior:")
        lines.append(f"    STRICT_VALIDATION = {self.STRICT_VALIDATION}")
        lines.append(f"    WARN_ON_HISTORY_RESET = {self.WARN_ON_HISTORY_RESET}")
        lines.append("  Reference Propagator:")
        lines.append(f"    REFERENCE_TOLERANCE = {self.REFERENCE_TOLERANCE}")
        lines.append(f"    INSTANCE_WARNING_THRESHOLD = {self.INSTANCE_WARNING_THRESHOLD}")
        lines.append("  Plotting:")
        lines.append(f"    DEFAULT_BODY_COLOR = '{self.DEFAULT_BODY_COLOR}'")
        lines.append(f"    DEFAULT_TRAJ_COLOR = '{self.DEFAULT_TRAJ_COLOR}'")
        lines.append(f"    DEFAULT_MARKER_SIZE = {self.DEFAULT_MARKER_SIZE}")
        return "\n".join(lines)


# Global configuration instance
config = HelionConfig()


@contextmanager
def temp_config(**kwargs):
    """
    Context manager for temporarily modifying configuration values.

    Configuration is automatically restored when the context exits,
    even if an exception occurs.

    Parameters
    ----------
    **kwargs
        Configuration attributes to temporarily modify.

    Examples
    --------
    >>> import helion
    >>> with helion.temp_config(LIGHT_SPEED=1e12, STRICT_VALIDATION=False):
    ...     system.compute_acceleration()
    >>> # Original config restored here
    >>> helion.config.LIGHT_SPEED
    299792458.0

    Raises
    ------
    AttributeError
        If an invalid configuration attribute is specified.
    """
    for key in kwargs:
        if key not in config.__dataclass_fields__:
            raise AttributeError(
                f"HelionConfig has no attribute '{key}'. "
                f"Valid attributes: {list(config.__dataclass_fields__.keys())}"
            )

    old_values = {key: getattr(config, key) for key in kwargs}
    try:
        for key, value in kwargs.items():
            setattr(config, key, value)
        yield config
    finally:
        for key, value in old_values.items():
            setattr(config, key, value)
