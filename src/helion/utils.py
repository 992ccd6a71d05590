"""
Utility functions and classes for the Helion package.
"""

from time import perf_counter
import math
import warnings
from typing import Type
from .config import config

class Timer:
    """
    Context manager for timing code execution.

    Examples
    --------
    >>> from helion.utils import Timer
    >>> with Timer("One year of RK4"):
    ...     system.propagate(3600.0, 8766, scheme='rk4')
    One year of RK4: 1.234567 s

    >>> with Timer(verbose=False) as t:
    ...     # ... code ...
    >>> print(f"Took {t.elapsed:.6f} seconds")
    """
    def __init__(self, name="Operation", verbose=True):
        """
        Parameters
        ----------
        name : str, optional
            Name to display when timing completes (default: "Operation")
        verbose : bool, optional
            Whether to print timing automatically (default: True)
        """
        self.name = name
        self.verbose = verbose
        self.elapsed = None

    def __enter__(self):
        self.start = perf_counter()
        return self

    def __exit__(self, *args):
        self.end = perf_counter()
        self.elapsed = self.end - self.start
        if self.verbose:
            print(f"{self.name}: {self.elapsed:.6f} s")

def validation_error(message: str, error_class: Type[Exception] = ValueError):
    """
    Raise error or warn based on config.STRICT_VALIDATION.

    When STRICT_VALIDATION is True (default), raises the specified exception.
    When False, issues a UserWarning instead and the caller carries on.

    Parameters
    ----------
    message : str
        Validation error message
    error_class : Type[Exception], optional
        Exception class to raise if STRICT_VALIDATION is True.
        Default: ValueError

    Raises
    ------
    Exception (of type error_class)
        If config.STRICT_VALIDATION is True

    Warns
    -----
    UserWarning
        If config.STRICT_VALIDATION is False
    """
    if config.STRICT_VALIDATION:
        raise error_class(message)
    else:
        warnings.warn(message, UserWarning, stacklevel=2)

def check_step_size(delta_t) -> float:
    """
    Validate a fixed integration step size and return it as float.

    Negative steps are allowed (backward integration), zero and
    non-finite steps are not.
    """
    try:
        delta_t = float(delta_t)
    except (TypeError, ValueError):
        raise ValueError(f"Step size must be a real number, got {delta_t!r}")
    if not math.isfinite(delta_t) or delta_t == 0.0:
        raise ValueError(f"Step size must be finite and nonzero, got {delta_t}")
    return delta_t
