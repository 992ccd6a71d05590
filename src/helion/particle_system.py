"""
ParticleSystem class definition.

A ParticleSystem owns all particles of a simulation and drives them through
force evaluation and time stepping. One force evaluation is always a
Newtonian pass over all particles followed, when general relativity is
enabled, by a relativistic pass over all particles; state updates only
happen after both passes are complete.
"""

import warnings
from typing import Dict, Iterator, List, Optional, Tuple, Union

import numpy as np

from .config import config
from .forces import newton_pass, relativity_pass
from .integrators import (
    HISTORY_DEPTH,
    RKStage,
    RungeKuttaState,
    Scheme,
    abm4_correct,
    abm4_predict,
    abm4_sample,
    init_state_leapfrog,
    new_scheme_state,
    parse_scheme,
    runge_kutta_stage,
    synchronize_state_leapfrog,
    update_state_leapfrog,
)
from .particle import Particle
from .trajectory import Trajectory
from .utils import check_step_size, validation_error
from .vector import Vector3D, VectorLike, as_vector


class ParticleSystem:
    """
    Gravitating n-body system advanced with fixed-step integration.

    Particles with mass act as perturbers on all others. Particles without
    mass (small bodies, spacecraft) are moved by the perturbers but exert
    no force themselves.

    Parameters
    ----------
    general_relativity : bool, optional
        Apply the post-Newtonian correction when computing acceleration
        (default: False)

    Attributes
    ----------
    force_evaluations : int
        Number of whole-system force evaluations performed so far

    Notes
    -----
    - Particles are mutated in place and never removed.
    - Adams-Bashforth-Moulton history is discarded whenever the step size
      changes, another scheme was used in between, a particle is added,
      or the relativity flag changes. The next four ``advance_abm4`` calls
      then each take a Runge-Kutta step to rebuild it.

    Examples
    --------
    >>> system = ParticleSystem()
    >>> system.add_particle('Sun', None, [0, 0, 0], [0, 0, 0], mu=SUN.mu)
    >>> system.add_particle('Earth', None, [AU, 0, 0], [0, 29784.7, 0], mu=EARTH.mu)
    >>> traj = system.propagate(3600.0, 24 * 365, scheme='rk4')
    """

    # ========== CONSTRUCTION ==========
    def __init__(self, general_relativity: bool = False):
        self._particles: Dict[str, Particle] = {}
        self._general_relativity = bool(general_relativity)
        self._time = 0.0
        self.force_evaluations = 0

        # Per-scheme state records keyed by particle name
        self._scheme: Optional[Scheme] = None
        self._scheme_states: Dict[Scheme, Dict[str, object]] = {
            Scheme.RUNGE_KUTTA: {},
            Scheme.ABM4: {},
        }
        self._leapfrog_step_size: Optional[float] = None
        self._abm4_step_size: Optional[float] = None
        self._abm4_samples = 0

    def add_particle(
        self,
        name: str,
        mass: Optional[float],
        position: VectorLike,
        velocity: VectorLike,
        mu: Optional[float] = None,
    ) -> Particle:
        """
        Add a particle that exerts force on all other particles.

        Parameters
        ----------
        name : str
            Particle name, unique within the system
        mass : float or None
            Mass [kg]; None to derive it from ``mu``
        position : Vector3D or array_like
            Initial position [m]
        velocity : Vector3D or array_like
            Initial velocity [m/s]
        mu : float, optional
            Standard gravitational parameter [m³/s²], default G * mass

        Returns
        -------
        Particle
            The registered particle
        """
        particle = Particle(mass, position, velocity, mu=mu, name=name)
        return self._register(name, particle)

    def add_particle_without_mass(
        self,
        name: str,
        position: Union[VectorLike, Particle],
        velocity: Optional[VectorLike] = None,
    ) -> Particle:
        """
        Add a particle that does not exert force on other particles.

        Massless particles are used for small Solar System bodies and
        spacecraft. They are given ``config.MASSLESS_PARTICLE_MASS`` so that
        energy diagnostics remain defined.

        Can be called as ``add_particle_without_mass(name, position, velocity)``
        or ``add_particle_without_mass(name, particle)`` to register an
        existing Particle object, which is then marked as massless.
        """
        if isinstance(position, Particle):
            if velocity is not None:
                raise ValueError("velocity must not be given together with a Particle")
            particle = position
            particle.name = name
            particle.exerts_force = False
        else:
            if velocity is None:
                raise ValueError("velocity is required when position is given")
            particle = Particle(config.MASSLESS_PARTICLE_MASS, position, velocity,
                                name=name, exerts_force=False)
        return self._register(name, particle)

    def _register(self, name: str, particle: Particle) -> Particle:
        if not isinstance(name, str) or not name:
            raise ValueError(f"Particle name must be a non-empty string, got {name!r}")
        if name in self._particles:
            validation_error(f"Particle '{name}' already exists in the system")
            # Non-strict mode: replace the existing particle
            del self._particles[name]
        self._particles[name] = particle
        self._invalidate_abm4("a particle was added")
        return particle

    # ========== PROPERTY ACCESS ==========
    def get_particle(self, name: str) -> Particle:
        """
        Get particle with given name.

        Raises
        ------
        KeyError
            If no particle with this name exists
        """
        try:
            return self._particles[name]
        except KeyError:
            raise KeyError(
                f"Unknown particle '{name}'. Known particles: {list(self._particles)}"
            ) from None

    @property
    def particles(self) -> List[Particle]:
        """All particles in insertion order."""
        return list(self._particles.values())

    @property
    def perturbers(self) -> List[Particle]:
        """Particles that exert force, in insertion order."""
        return [p for p in self._particles.values() if p.exerts_force]

    @property
    def names(self) -> List[str]:
        return list(self._particles)

    @property
    def time(self) -> float:
        """Simulation time [s] advanced by completed steps."""
        return self._time

    @property
    def scheme(self) -> Optional[Scheme]:
        """Scheme of the latest step, None before the first step."""
        return self._scheme

    @property
    def general_relativity(self) -> bool:
        return self._general_relativity

    @general_relativity.setter
    def general_relativity(self, flag: bool):
        self.set_general_relativity_flag(flag)

    def set_general_relativity_flag(self, flag: bool) -> None:
        """Set/reset flag to apply general relativity when computing acceleration."""
        flag = bool(flag)
        if flag != self._general_relativity:
            self._general_relativity = flag
            self._invalidate_abm4("the general relativity flag changed")

    def get_general_relativity_flag(self) -> bool:
        return self._general_relativity

    @property
    def abm4_history_size(self) -> int:
        """Number of valid Adams-Bashforth-Moulton history samples (0-4)."""
        return self._abm4_samples

    # ========== FORCE EVALUATION ==========
    def compute_acceleration(self) -> None:
        """
        Compute acceleration for all particles.

        The Newtonian pass completes for every particle before the
        relativistic pass starts, because the latter reads the Newtonian
        acceleration of every perturber.
        """
        particles = self.particles
        perturbers = self.perturbers
        for particle, (acceleration, potential_energy) in zip(
                particles, newton_pass(particles, perturbers)):
            particle.store_newton_result(acceleration, potential_energy)

        if self._general_relativity:
            newton_accelerations = {p: p.newton_snapshot() for p in perturbers}
            for particle, acceleration in zip(
                    particles, relativity_pass(particles, perturbers, newton_accelerations)):
                particle.acceleration = acceleration

        self.force_evaluations += 1

    # ========== TIME STEPPING ==========
    def init_leapfrog(self, delta_t: float) -> None:
        """
        Initialize state for leapfrog algorithm (half kick backwards).

        If velocities are still staggered from earlier leapfrog steps, they
        are first brought back to the current time with the old step size.
        Both kicks use the same force evaluation.
        """
        delta_t = check_step_size(delta_t)
        former_step_size = self._leapfrog_step_size if self.leapfrog_staggered else None
        self.compute_acceleration()
        for particle in self._particles.values():
            if former_step_size is not None:
                synchronize_state_leapfrog(particle, former_step_size)
            init_state_leapfrog(particle, delta_t)
        self._scheme = Scheme.LEAPFROG
        self._leapfrog_step_size = delta_t

    @property
    def leapfrog_staggered(self) -> bool:
        """True if velocities lag the positions by half a leapfrog step"""
        return self._scheme == Scheme.LEAPFROG and self._leapfrog_step_size is not None

    def synchronize_leapfrog(self) -> None:
        """
        Bring staggered leapfrog velocities back to the current time.

        Does nothing unless the last step was a leapfrog step. Costs one
        force evaluation.
        """
        if not self.leapfrog_staggered:
            return
        self.compute_acceleration()
        for particle in self._particles.values():
            synchronize_state_leapfrog(particle, self._leapfrog_step_size)
        self._leapfrog_step_size = None

    def advance_leapfrog(self, delta_t: float) -> None:
        """
        Advance a time step using leapfrog algorithm.

        ``init_leapfrog`` must have been called with the same step size,
        otherwise velocities are not staggered by half a step.
        """
        delta_t = check_step_size(delta_t)
        self.compute_acceleration()
        for particle in self._particles.values():
            update_state_leapfrog(particle, delta_t)
        self._scheme = Scheme.LEAPFROG
        self._time += delta_t

    def advance_runge_kutta(self, delta_t: float) -> None:
        """Advance a time step using fourth-order Runge-Kutta method."""
        delta_t = check_step_size(delta_t)
        self._runge_kutta_step(delta_t, self._states(Scheme.RUNGE_KUTTA))
        self._scheme = Scheme.RUNGE_KUTTA
        self._time += delta_t

    def advance_abm4(self, delta_t: float) -> None:
        """
        Advance a time step using fourth-order Adams-Bashforth-Moulton method.

        Each call advances exactly one step. While fewer than four history
        samples exist, the step is a Runge-Kutta step followed by one force
        evaluation to sample the new state (five force evaluations). After
        that, each step is predictor, one force evaluation at the predicted
        state, corrector.
        """
        delta_t = check_step_size(delta_t)
        if self._scheme != Scheme.ABM4 or self._abm4_step_size is None:
            self._invalidate_abm4(None)
            self._abm4_step_size = delta_t
        elif delta_t != self._abm4_step_size:
            self._invalidate_abm4(
                f"the step size changed from {self._abm4_step_size} to {delta_t}")
            self._abm4_step_size = delta_t
        self._scheme = Scheme.ABM4

        states = self._states(Scheme.ABM4)
        saved = self._save_state()
        if self._abm4_samples < HISTORY_DEPTH:
            try:
                self._runge_kutta_step(delta_t, {name: s.rk for name, s in states.items()})
                self.compute_acceleration()
            except Exception:
                self._restore_state(saved)
                raise
            for name, particle in self._particles.items():
                abm4_sample(particle, states[name])
            self._abm4_samples += 1
        else:
            sampled = False
            try:
                for name, particle in self._particles.items():
                    abm4_predict(particle, states[name], delta_t)
                self.compute_acceleration()
                sampled = True
                for name, particle in self._particles.items():
                    abm4_sample(particle, states[name])
                for name, particle in self._particles.items():
                    abm4_correct(particle, states[name], delta_t)
            except Exception:
                self._restore_state(saved)
                if sampled:
                    # The history already holds the sample at the predicted state
                    self._invalidate_abm4(None)
                else:
                    for state in states.values():
                        state.former_position = None
                        state.former_velocity = None
                raise
        self._time += delta_t

    def advance(self, delta_t: float, scheme: Union[Scheme, str] = Scheme.RUNGE_KUTTA) -> None:
        """
        Advance a time step with the given scheme.

        Leapfrog is initialized automatically when it was not the scheme of
        the previous step or the step size changed. Staggered leapfrog
        velocities are synchronized before switching to another scheme.
        """
        scheme = parse_scheme(scheme)
        if scheme == Scheme.LEAPFROG:
            delta_t = check_step_size(delta_t)
            if not self.leapfrog_staggered or self._leapfrog_step_size != delta_t:
                self.init_leapfrog(delta_t)
            self.advance_leapfrog(delta_t)
            return

        self.synchronize_leapfrog()
        if scheme == Scheme.RUNGE_KUTTA:
            self.advance_runge_kutta(delta_t)
        else:
            self.advance_abm4(delta_t)

    def propagate(
        self,
        delta_t: float,
        n_steps: int,
        scheme: Union[Scheme, str] = Scheme.RUNGE_KUTTA,
        record_every: int = 1,
        correct_drift: bool = False,
        names: Optional[List[str]] = None,
    ) -> Trajectory:
        """
        Advance many time steps and record the states visited.

        Parameters
        ----------
        delta_t : float
            Step size [s]; negative to integrate backwards
        n_steps : int
            Number of steps
        scheme : Scheme or str, optional
            'leapfrog', 'rk4' or 'abm4' (default: 'rk4')
        record_every : int, optional
            Record every n-th step; the initial and final states are
            always recorded (default: 1)
        correct_drift : bool, optional
            Remove barycentric drift before the first step and after every
            step (default: False)
        names : list of str, optional
            Particles to record (default: all)

        Returns
        -------
        Trajectory
            Sampled history of the recorded particles

        Raises
        ------
        ValueError
            If arguments are invalid or the state becomes non-finite
        """
        delta_t = check_step_size(delta_t)
        scheme = parse_scheme(scheme)
        if isinstance(n_steps, bool) or int(n_steps) != n_steps or n_steps < 0:
            raise ValueError(f"n_steps must be a non-negative integer, got {n_steps}")
        if isinstance(record_every, bool) or int(record_every) != record_every or record_every < 1:
            raise ValueError(f"record_every must be a positive integer, got {record_every}")
        n_steps = int(n_steps)
        if names is None:
            names = self.names
        else:
            for name in names:
                self.get_particle(name)

        if correct_drift:
            self.correct_drift()
        trajectory = Trajectory(names, scheme=scheme,
                                general_relativity=self._general_relativity)
        trajectory.record(self)
        for step in range(1, n_steps + 1):
            self.advance(delta_t, scheme)
            if correct_drift:
                self.correct_drift()
            self._check_finite(step)
            if step % record_every == 0 or step == n_steps:
                trajectory.record(self)
        return trajectory

    def _runge_kutta_step(self, delta_t: float, states: Dict[str, RungeKuttaState]) -> None:
        saved = self._save_state()
        try:
            for stage in RKStage:
                self.compute_acceleration()
                for name, particle in self._particles.items():
                    runge_kutta_stage(particle, states[name], stage, delta_t)
        except Exception:
            # Abandon the step so the next one starts at stage A from the
            # state the step started at
            self._restore_state(saved)
            for state in states.values():
                state.reset()
            raise

    def _save_state(self) -> Dict[str, Tuple[Vector3D, Vector3D]]:
        return {name: (p.position.copy(), p.velocity.copy())
                for name, p in self._particles.items()}

    def _restore_state(self, saved: Dict[str, Tuple[Vector3D, Vector3D]]) -> None:
        for name, (position, velocity) in saved.items():
            particle = self._particles[name]
            particle.position = position
            particle.velocity = velocity

    def _states(self, scheme: Scheme) -> Dict[str, object]:
        """State records of a scheme, created for particles that lack one."""
        states = self._scheme_states[scheme]
        for name in self._particles:
            if name not in states:
                states[name] = new_scheme_state(scheme)
        return states

    def _check_finite(self, step: int) -> None:
        for name, particle in self._particles.items():
            if not (particle.position.is_finite() and particle.velocity.is_finite()):
                raise ValueError(
                    f"Integration failed: state became invalid at step {step} "
                    f"(t = {self._time} s).\n"
                    f"Particle: {name}\n"
                    f"Position: {particle.position}\n"
                    f"Velocity: {particle.velocity}\n"
                    f"Likely causes:\n"
                    f"  - Step size too large for a close encounter\n"
                    f"  - Particles passing through each other"
                )

    def reset_abm4(self) -> None:
        """Discard Adams-Bashforth-Moulton history; the next step restarts it."""
        self._invalidate_abm4(None)

    def _invalidate_abm4(self, reason: Optional[str]) -> None:
        if reason is not None and config.WARN_ON_HISTORY_RESET and self._abm4_samples > 0:
            warnings.warn(
                f"Discarding {self._abm4_samples} Adams-Bashforth-Moulton history "
                f"samples because {reason}; the next {HISTORY_DEPTH} steps use "
                f"Runge-Kutta to rebuild the history.",
                UserWarning,
                stacklevel=3
            )
        for state in self._scheme_states[Scheme.ABM4].values():
            state.reset()
        self._abm4_step_size = None
        self._abm4_samples = 0

    # ========== DRIFT CORRECTION ==========
    def barycenter(self) -> Tuple[Vector3D, Vector3D]:
        """
        Position and velocity of the barycenter, weighted by mu.

        All particles take part, massless ones with the mu of their
        nominal mass.
        """
        position = Vector3D()
        velocity = Vector3D()
        total_mu = 0.0
        for particle in self._particles.values():
            position.add_vector(particle.position.scalar_product(particle.mu))
            velocity.add_vector(particle.velocity.scalar_product(particle.mu))
            total_mu += particle.mu
        if total_mu != 0.0:
            position = position.scalar_product(1.0 / total_mu)
            velocity = velocity.scalar_product(1.0 / total_mu)
        return position, velocity

    def correct_drift(self, drift_position: Optional[VectorLike] = None,
                      drift_velocity: Optional[VectorLike] = None) -> None:
        """
        Correct for drift of the entire particle system.

        Without arguments, the barycenter position and velocity are
        subtracted from every particle. With arguments, the given offsets
        are subtracted instead. Adams-Bashforth-Moulton history velocities
        are shifted by the same offset so that a warm history stays valid.
        """
        if (drift_position is None) != (drift_velocity is None):
            raise ValueError("drift_position and drift_velocity must be given together")
        if drift_position is None:
            drift_position, drift_velocity = self.barycenter()
        else:
            drift_position = as_vector(drift_position, "drift_position")
            drift_velocity = as_vector(drift_velocity, "drift_velocity")
        for particle in self._particles.values():
            particle.correct_drift(drift_position, drift_velocity)
        for state in self._scheme_states[Scheme.ABM4].values():
            state.history.shift_velocities(drift_velocity)

    # ========== DIAGNOSTICS ==========
    def kinetic_energy(self) -> float:
        """Total kinetic energy [J]."""
        return sum(p.kinetic_energy for p in self._particles.values())

    def potential_energy(self, refresh: bool = False) -> float:
        """
        Total potential energy [J].

        By default the per-particle values stored by the latest Newtonian
        pass are summed. With ``refresh=True`` they are recomputed for the
        current positions first; accelerations are left untouched.
        """
        if refresh:
            particles = self.particles
            for particle, result in zip(particles, newton_pass(particles, self.perturbers)):
                particle.potential_energy = result.potential_energy
        return sum(p.potential_energy for p in self._particles.values())

    def total_energy(self, refresh: bool = False) -> float:
        """Kinetic plus potential energy [J]."""
        return self.kinetic_energy() + self.potential_energy(refresh=refresh)

    def total_momentum(self) -> Vector3D:
        """Total linear momentum [kg m/s]."""
        momentum = Vector3D()
        for particle in self._particles.values():
            momentum.add_vector(particle.momentum)
        return momentum

    def adjust_kinetic_energy(self, factor: float) -> None:
        """Scale the kinetic energy of every particle by ``factor``."""
        for particle in self._particles.values():
            particle.adjust_kinetic_energy(factor)
        self._invalidate_abm4("velocities were rescaled")

    def state_array(self, names: Optional[List[str]] = None) -> np.ndarray:
        """
        Positions and velocities as an array of shape (n, 6).

        Rows follow ``names`` (default: all particles in insertion order),
        columns are [x, y, z, vx, vy, vz].
        """
        if names is None:
            names = self.names
        rows = []
        for name in names:
            particle = self.get_particle(name)
            rows.append(list(particle.position) + list(particle.velocity))
        return np.array(rows, dtype=float).reshape(len(rows), 6)

    def summary(self):
        """Print summary of particles and integration settings."""
        print(f"Particles: {len(self._particles)} "
              f"({len(self.perturbers)} with mass)")
        print(f"General relativity: {'on' if self._general_relativity else 'off'}")
        print(f"Time: {self._time:.3f} s")
        if self._scheme is not None:
            print(f"Scheme: {self._scheme.value}")
        for name, particle in self._particles.items():
            kind = "" if particle.exerts_force else " (massless)"
            print(f"  {name}{kind}: μ = {particle.mu:.6e} m³/s², "
                  f"|r| = {particle.position.magnitude():.6e} m, "
                  f"|v| = {particle.velocity.magnitude():.6e} m/s")

    # ========== SPECIAL METHODS ==========
    def __len__(self) -> int:
        return len(self._particles)

    def __contains__(self, name: str) -> bool:
        return name in self._particles

    def __iter__(self) -> Iterator[Particle]:
        return iter(list(self._particles.values()))

    def __getitem__(self, name: str) -> Particle:
        return self.get_particle(name)

    def __repr__(self):
        parts = [f"ParticleSystem(n_particles={len(self._particles)}",
                 f"n_perturbers={len(self.perturbers)}",
                 f"general_relativity={self._general_relativity}"]
        if self._scheme is not None:
            parts.append(f"scheme='{self._scheme.value}'")
        return ", ".join(parts) + ")"
