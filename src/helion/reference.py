"""
High-accuracy reference propagator built on heyoka's Taylor integrator.

A ReferencePropagator takes a snapshot of a ParticleSystem and integrates
the same Newtonian n-body problem with an adaptive Taylor method to near
machine precision. It implements the EphemerisProvider protocol, so it can
stand in for tabulated ephemerides when measuring the accuracy of the
fixed-step schemes.
"""

import warnings
from typing import Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

import heyoka as hy
import numpy as np

from .config import config
from .vector import Vector3D

if TYPE_CHECKING:
    from .particle_system import ParticleSystem


class ReferencePropagator:
    """
    Newtonian n-body reference solution from heyoka.

    Parameters
    ----------
    system : ParticleSystem
        System whose current particles and state are copied. Massless
        particles enter with zero mass.
    names : sequence of str, optional
        Particles to include (default: all)
    tol : float, optional
        Integrator tolerance. Default: config.REFERENCE_TOLERANCE, where
        values <= 0 select heyoka's default (machine epsilon).
    compile : bool, optional
        Compile the integrator immediately (default: True)

    Notes
    -----
    - Time ``t`` in ``state`` is seconds past the time of the snapshot.
    - Instance counting: a ResourceWarning is issued when more than
      config.INSTANCE_WARNING_THRESHOLD propagators exist simultaneously
      (each holds a compiled integrator).
    - The relativistic correction is not modelled.
    """
    # ========== CLASS CONSTANTS ==========
    _instance_count = 0

    # ========== CONSTRUCTION ==========
    def __init__(self, system: "ParticleSystem", names: Optional[Sequence[str]] = None,
                 tol: Optional[float] = None, compile: bool = True):
        self._counted = False
        if names is None:
            names = system.names
        if len(names) < 2:
            raise ValueError(f"Reference propagator needs at least 2 particles, got {len(names)}")
        self._names: Tuple[str, ...] = tuple(names)
        self._index: Dict[str, int] = {name: i for i, name in enumerate(self._names)}
        particles = [system.get_particle(name) for name in self._names]

        # Gconst = 1 with masses = mu gives accelerations mu / r²
        self._mus: List[float] = [p.mu if p.exerts_force else 0.0 for p in particles]
        self._initial_state = system.state_array(list(self._names)).flatten()
        if not np.all(np.isfinite(self._initial_state)):
            raise ValueError(f"Initial state contains NaN or Inf values: {self._initial_state}")

        if tol is None:
            tol = config.REFERENCE_TOLERANCE
        self._tol = float(tol)

        self._cached_eom = hy.model.nbody(len(self._names), Gconst=1.0, masses=self._mus)
        self._cached_integrator = None
        if compile:
            self._compile_integrator()

        # Instance counting
        ReferencePropagator._instance_count += 1
        self._counted = True
        if ReferencePropagator._instance_count > config.INSTANCE_WARNING_THRESHOLD:
            warnings.warn(
                f"Created {ReferencePropagator._instance_count} ReferencePropagator "
                f"instances. Each one caches a compiled Heyoka integrator, "
                f"which can consume significant memory. Consider reusing "
                f"propagators when possible.",
                ResourceWarning,
                stacklevel=2
            )

    def _compile_integrator(self):
        """
        Compile Heyoka integrator (expensive operation).

        Compilation time grows with the number of particles, from about a
        second for two bodies to tens of seconds for the full Solar System.
        """
        if self._cached_integrator is not None:
            return

        print(f"Compiling {len(self._names)}-body reference integrator...")
        kwargs = {}
        if self._tol > 0.0:
            kwargs['tol'] = self._tol
        self._cached_integrator = hy.taylor_adaptive(
            sys=self._cached_eom,
            state=self._initial_state.tolist(),
            **kwargs
        )
        print(f"✓ Compilation complete")

    def compile(self):
        """
        Explicitly compile integrator if not already compiled.

        Returns
        -------
        self
            Returns self for method chaining
        """
        self._compile_integrator()
        return self

    # ========== PROPERTY ACCESS ==========
    @property
    def names(self) -> Tuple[str, ...]:
        return self._names

    @property
    def is_compiled(self) -> bool:
        return self._cached_integrator is not None

    @property
    def time(self) -> float:
        """Current time [s] of the integrator, past the snapshot."""
        if self._cached_integrator is None:
            return 0.0
        return float(self._cached_integrator.time)

    @classmethod
    def get_instance_count(cls):
        """Get current number of ReferencePropagator instances."""
        return cls._instance_count

    @classmethod
    def reset_instance_count(cls):
        """Reset instance counter (useful for testing)."""
        cls._instance_count = 0

    # ========== PROPAGATION ==========
    def propagate_to(self, t: float) -> np.ndarray:
        """
        Propagate to time ``t`` [s] and return the full state vector.

        The integrator continues from its current time, forwards or
        backwards, so querying increasing times is cheapest.

        Returns
        -------
        np.ndarray
            State [x0, y0, z0, vx0, vy0, vz0, x1, ...], shape (6 n,)

        Raises
        ------
        ValueError
            If the integration fails or the state becomes non-finite
        """
        if not self.is_compiled:
            self._compile_integrator()
        ta = self._cached_integrator
        assert ta is not None, "Integrator should be compiled"

        t = float(t)
        if t != ta.time:
            outcome = ta.propagate_until(t)[0]
            if outcome != hy.taylor_outcome.time_limit:
                raise ValueError(
                    f"Reference integration stopped early with outcome {outcome} "
                    f"at t = {ta.time} s (target {t} s)"
                )

        if not np.all(np.isfinite(ta.state)):
            raise ValueError(
                f"Integration failed: state became invalid during propagation.\n"
                f"Final time: {ta.time}\n"
                f"Final state: {ta.state}\n"
                f"Likely causes:\n"
                f"  - Close encounter between particles\n"
                f"  - Particles starting at the same position"
            )
        return np.array(ta.state, dtype=float)

    def state(self, name: str, t: float) -> Tuple[Vector3D, Vector3D]:
        """
        Position [m] and velocity [m/s] of a particle ``t`` seconds past the snapshot.

        Raises
        ------
        KeyError
            If the particle is not part of this propagator
        """
        try:
            i = self._index[name]
        except KeyError:
            raise KeyError(
                f"Unknown particle '{name}'. Known particles: {list(self._names)}"
            ) from None
        state = self.propagate_to(t)
        row = state[6 * i:6 * i + 6]
        return Vector3D.from_array(row[0:3]), Vector3D.from_array(row[3:6])

    def states(self, t: float) -> Dict[str, Tuple[Vector3D, Vector3D]]:
        """Position and velocity of every particle at time ``t``."""
        state = self.propagate_to(t).reshape(-1, 6)
        return {name: (Vector3D.from_array(row[0:3]), Vector3D.from_array(row[3:6]))
                for name, row in zip(self._names, state)}

    def reset(self):
        """Return the integrator to the snapshot state."""
        if self._cached_integrator is not None:
            self._cached_integrator.time = 0.0
            self._cached_integrator.state[:] = self._initial_state

    # ========== SPECIAL METHODS ==========
    def __del__(self):
        """Decrement instance count when propagator is garbage collected."""
        if getattr(self, "_counted", False):
            ReferencePropagator._instance_count -= 1

    def __repr__(self):
        return (f"ReferencePropagator(bodies={list(self._names)}, "
                f"compiled={self.is_compiled}, t={self.time})")
