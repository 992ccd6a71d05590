"""
Fixed-step time integration schemes.

Each function here advances the state of a single particle, assuming the
acceleration of every particle has already been computed for the current
state. Scheme scratch data lives in the state records defined here, which
the ParticleSystem holds per particle and selects by ``Scheme``.

Leapfrog and Runge-Kutta follow
http://physics.bu.edu/py502/lectures3/cmotion.pdf

Adams-Bashforth-Moulton (fourth order, PEC mode) follows
https://en.wikipedia.org/wiki/Linear_multistep_method
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, NamedTuple, Optional, TYPE_CHECKING

from .vector import Vector3D

if TYPE_CHECKING:
    from .particle import Particle


class Scheme(Enum):
    LEAPFROG = 'leapfrog'
    RUNGE_KUTTA = 'rk4'
    ABM4 = 'abm4'


def parse_scheme(scheme) -> Scheme:
    """Convert string or enum to Scheme enum"""
    if isinstance(scheme, Scheme):
        return scheme
    elif isinstance(scheme, str):
        scheme_map = {
            'leapfrog': Scheme.LEAPFROG,
            'rk4': Scheme.RUNGE_KUTTA,
            'runge_kutta': Scheme.RUNGE_KUTTA,
            'abm4': Scheme.ABM4,
            'adams_bashforth_moulton': Scheme.ABM4,
        }
        key = scheme.lower()
        if key in scheme_map:
            return scheme_map[key]
        raise ValueError(f"Unknown integration scheme '{scheme}'. "
                         f"Use: {list(scheme_map.keys())}")
    else:
        raise TypeError(f"scheme must be str or Scheme, got {type(scheme).__name__}")


# ========== LEAPFROG ==========
def init_state_leapfrog(particle: "Particle", delta_t: float) -> None:
    """
    Initialize velocity for leapfrog algorithm.

    Computes v(-1/2) = v(0) - 0.5 * dt * a(0).
    """
    particle.velocity = particle.velocity.minus(particle.acceleration.scalar_product(0.5 * delta_t))


def update_state_leapfrog(particle: "Particle", delta_t: float) -> None:
    """
    Update velocity and position of particle using leapfrog algorithm.

    v(n+1/2) = v(n-1/2) + dt * a(n), then p(n+1) = p(n) + dt * v(n+1/2).
    """
    particle.velocity = particle.velocity.plus(particle.acceleration.scalar_product(delta_t))
    particle.position = particle.position.plus(particle.velocity.scalar_product(delta_t))


def synchronize_state_leapfrog(particle: "Particle", delta_t: float) -> None:
    """
    Bring a staggered leapfrog velocity back to the time of the position.

    Computes v(n) = v(n-1/2) + 0.5 * dt * a(n), the inverse of
    ``init_state_leapfrog``.
    """
    particle.velocity = particle.velocity.plus(particle.acceleration.scalar_product(0.5 * delta_t))


# ========== RUNGE-KUTTA ==========
class RKStage(IntEnum):
    A = 1
    B = 2
    C = 3
    D = 4


@dataclass
class RungeKuttaState:
    """
    Scratch state of a fourth-order Runge-Kutta step in progress.

    Attributes
    ----------
    former_position, former_velocity : Vector3D or None
        State at the start of the step
    k : list of Vector3D
        Velocity increments dt * a of the completed stages
    l : list of Vector3D
        Position increments dt * v of the completed stages
    next_stage : RKStage
        Stage expected next
    step_size : float or None
        Step size of the step in progress, None between steps
    """
    former_position: Optional[Vector3D] = None
    former_velocity: Optional[Vector3D] = None
    k: List[Vector3D] = field(default_factory=list)
    l: List[Vector3D] = field(default_factory=list)
    next_stage: RKStage = RKStage.A
    step_size: Optional[float] = None

    def reset(self):
        """Abandon any step in progress."""
        self.former_position = None
        self.former_velocity = None
        self.k = []
        self.l = []
        self.next_stage = RKStage.A
        self.step_size = None


def runge_kutta_stage(particle: "Particle", state: RungeKuttaState,
                      stage: RKStage, delta_t: float) -> None:
    """
    Perform one stage of a Runge-Kutta step for one particle.

    Stage A stores the state at the start of the step. Stages A-C leave the
    particle at the intermediate state the next force evaluation is taken
    at; stage D leaves it at the end of the step.

    Raises
    ------
    RuntimeError
        If ``stage`` is not the stage expected next, or the step size
        differs from the one the step was started with
    """
    if stage != state.next_stage:
        raise RuntimeError(
            f"Runge-Kutta stage {stage.name} out of order for particle "
            f"'{particle.name}'; expected stage {state.next_stage.name}"
        )
    if stage == RKStage.A:
        state.former_position = particle.position.copy()
        state.former_velocity = particle.velocity.copy()
        state.k = []
        state.l = []
        state.step_size = delta_t
    elif delta_t != state.step_size:
        raise RuntimeError(
            f"Step size changed from {state.step_size} to {delta_t} in the "
            f"middle of a Runge-Kutta step for particle '{particle.name}'"
        )

    former_position = state.former_position
    former_velocity = state.former_velocity
    k_new = particle.acceleration.scalar_product(delta_t)
    if stage == RKStage.A:
        l_new = former_velocity.scalar_product(delta_t)
    elif stage == RKStage.D:
        l_new = former_velocity.plus(state.k[-1]).scalar_product(delta_t)
    else:
        l_new = former_velocity.plus(state.k[-1].scalar_product(0.5)).scalar_product(delta_t)
    state.k.append(k_new)
    state.l.append(l_new)

    if stage == RKStage.D:
        k1, k2, k3, k4 = state.k
        l1, l2, l3, l4 = state.l
        velocity_term = k1.plus(k2.scalar_product(2.0)).plus(k3.scalar_product(2.0)).plus(k4)
        position_term = l1.plus(l2.scalar_product(2.0)).plus(l3.scalar_product(2.0)).plus(l4)
        particle.velocity = former_velocity.plus(velocity_term.scalar_product(1.0 / 6.0))
        particle.position = former_position.plus(position_term.scalar_product(1.0 / 6.0))
        state.reset()
        return

    # Intermediate state for the next force evaluation; the velocity is
    # needed there by the relativistic correction
    weight = 1.0 if stage == RKStage.C else 0.5
    particle.velocity = former_velocity.plus(k_new.scalar_product(weight))
    particle.position = former_position.plus(l_new.scalar_product(weight))
    state.next_stage = RKStage(stage + 1)


# ========== ADAMS-BASHFORTH-MOULTON ==========
HISTORY_DEPTH = 4

# Adams-Bashforth 4 coefficients, newest sample first
PREDICTOR_COEFFICIENTS = (55.0, -59.0, 37.0, -9.0)
# Adams-Moulton 4 coefficients, sample at the predicted state first
CORRECTOR_COEFFICIENTS = (9.0, 19.0, -5.0, 1.0)


class Sample(NamedTuple):
    """Time derivative of the state: (velocity, acceleration)."""
    velocity: Vector3D
    acceleration: Vector3D


class HistoryBuffer:
    """
    Fixed-depth ring buffer of derivative samples.

    The buffer keeps an explicit count of valid samples and the write
    cursor; once full, each push overwrites the oldest sample.
    """

    def __init__(self, depth: int = HISTORY_DEPTH):
        if depth < 1:
            raise ValueError(f"History depth must be positive, got {depth}")
        self._depth = depth
        self._slots: List[Optional[Sample]] = [None] * depth
        self._cursor = 0
        self._valid_count = 0

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def cursor(self) -> int:
        """Index of the slot written by the next push"""
        return self._cursor

    @property
    def valid_count(self) -> int:
        return self._valid_count

    @property
    def is_full(self) -> bool:
        return self._valid_count == self._depth

    def push(self, sample: Sample) -> None:
        self._slots[self._cursor] = sample
        self._cursor = (self._cursor + 1) % self._depth
        self._valid_count = min(self._valid_count + 1, self._depth)

    def clear(self) -> None:
        self._slots = [None] * self._depth
        self._cursor = 0
        self._valid_count = 0

    def oldest_first(self) -> List[Sample]:
        """Valid samples ordered from oldest to newest."""
        start = (self._cursor - self._valid_count) % self._depth
        return [self._slots[(start + i) % self._depth] for i in range(self._valid_count)]

    def newest_first(self) -> List[Sample]:
        return self.oldest_first()[::-1]

    def shift_velocities(self, drift_velocity: Vector3D) -> None:
        """Subtract a constant velocity from every stored sample."""
        for i, sample in enumerate(self._slots):
            if sample is not None:
                self._slots[i] = Sample(sample.velocity.minus(drift_velocity), sample.acceleration)

    def __len__(self) -> int:
        return self._valid_count

    def __repr__(self) -> str:
        return f"HistoryBuffer(depth={self._depth}, valid={self._valid_count}, cursor={self._cursor})"


@dataclass
class ABM4State:
    """
    Scratch state of the Adams-Bashforth-Moulton scheme for one particle.

    Attributes
    ----------
    history : HistoryBuffer
        Derivative samples at the latest steps
    former_position, former_velocity : Vector3D or None
        State at the start of the predictor-corrector step in progress
    rk : RungeKuttaState
        Runge-Kutta scratch state used while the history is filled
    """
    history: HistoryBuffer = field(default_factory=HistoryBuffer)
    former_position: Optional[Vector3D] = None
    former_velocity: Optional[Vector3D] = None
    rk: RungeKuttaState = field(default_factory=RungeKuttaState)

    def reset(self):
        self.history.clear()
        self.former_position = None
        self.former_velocity = None
        self.rk.reset()


def _weighted_sum(vectors, coefficients) -> Vector3D:
    total = Vector3D()
    for vector, coefficient in zip(vectors, coefficients):
        total.add_vector(vector.scalar_product(coefficient))
    return total


def abm4_sample(particle: "Particle", state: ABM4State) -> None:
    """Push the derivative at the particle's current state into its history."""
    state.history.push(Sample(particle.velocity.copy(), particle.acceleration.copy()))


def abm4_predict(particle: "Particle", state: ABM4State, delta_t: float) -> None:
    """
    Adams-Bashforth predictor.

    y(n+1) = y(n) + dt/24 * (55 f(n) - 59 f(n-1) + 37 f(n-2) - 9 f(n-3))

    Raises
    ------
    RuntimeError
        If the history does not hold four samples
    """
    if not state.history.is_full:
        raise RuntimeError(
            f"Adams-Bashforth predictor needs {state.history.depth} history samples "
            f"for particle '{particle.name}', found {state.history.valid_count}"
        )
    samples = state.history.newest_first()
    state.former_position = particle.position.copy()
    state.former_velocity = particle.velocity.copy()
    factor = delta_t / 24.0
    position_term = _weighted_sum([s.velocity for s in samples], PREDICTOR_COEFFICIENTS)
    velocity_term = _weighted_sum([s.acceleration for s in samples], PREDICTOR_COEFFICIENTS)
    particle.position = state.former_position.plus(position_term.scalar_product(factor))
    particle.velocity = state.former_velocity.plus(velocity_term.scalar_product(factor))


def abm4_correct(particle: "Particle", state: ABM4State, delta_t: float) -> None:
    """
    Adams-Moulton corrector.

    y(n+1) = y(n) + dt/24 * (9 f(n+1) + 19 f(n) - 5 f(n-1) + f(n-2))

    f(n+1) is the newest history sample, taken at the predicted state.

    Raises
    ------
    RuntimeError
        If no prediction is in progress or the history is incomplete
    """
    if state.former_position is None or state.former_velocity is None:
        raise RuntimeError(
            f"Adams-Moulton corrector called without a prediction for particle '{particle.name}'"
        )
    if not state.history.is_full:
        raise RuntimeError(
            f"Adams-Moulton corrector needs {state.history.depth} history samples "
            f"for particle '{particle.name}', found {state.history.valid_count}"
        )
    samples = state.history.newest_first()
    factor = delta_t / 24.0
    position_term = _weighted_sum([s.velocity for s in samples], CORRECTOR_COEFFICIENTS)
    velocity_term = _weighted_sum([s.acceleration for s in samples], CORRECTOR_COEFFICIENTS)
    particle.position = state.former_position.plus(position_term.scalar_product(factor))
    particle.velocity = state.former_velocity.plus(velocity_term.scalar_product(factor))
    state.former_position = None
    state.former_velocity = None


def new_scheme_state(scheme: Scheme):
    """Fresh per-particle state record for a scheme (None for leapfrog)."""
    scheme = parse_scheme(scheme)
    if scheme == Scheme.RUNGE_KUTTA:
        return RungeKuttaState()
    if scheme == Scheme.ABM4:
        return ABM4State()
    return None
