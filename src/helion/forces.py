"""
Gravitational force model.

Two passes make up one force evaluation of a particle system:

1. ``newton_pass``: Newtonian acceleration and potential energy of every
   particle due to the perturbers.
2. ``relativity_pass``: isotropic parameterized post-Newtonian (PPN)
   acceleration of every particle. It reads the Newtonian acceleration of
   each perturber produced by pass 1, so pass 1 must be complete for all
   particles before pass 2 starts.

Both passes are pure: they read particle state and return new vectors.
Storing results on the particles is left to the caller.

References
----------
W.M. Folkner et al., The Planetary and Lunar Ephemerides DE430 and DE431,
IPN Progress Report 42-196, February 15, 2014, Equation (27).
https://ipnpr.jpl.nasa.gov/progress_report/42-196/196C.pdf
"""

import math
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence, TYPE_CHECKING

from .config import config
from .vector import Vector3D

if TYPE_CHECKING:
    from .particle import Particle


class NewtonResult(NamedTuple):
    """Newtonian acceleration [m/s²] and potential energy [J] of one particle."""
    acceleration: Vector3D
    potential_energy: float


def _separation_square(a: "Particle", b: "Particle") -> float:
    distance_square = a.position.euclidean_distance_square(b.position)
    if distance_square == 0.0:
        raise ValueError(
            f"Particles '{a.name}' and '{b.name}' coincide at {a.position}; "
            f"gravitational acceleration is undefined"
        )
    return distance_square


# ========== NEWTON MECHANICS ==========
def newton_acceleration(particle: "Particle",
                        perturbers: Sequence["Particle"]) -> NewtonResult:
    """
    Newtonian acceleration of one particle due to all other perturbers.

    Gravitational force = (G*M*m)/r² = (mu*m)/r², so the acceleration is
    mu/r² directed towards the perturber. The potential energy returned is
    the plain sum of pair energies -mu_B * m_A / r_AB; across a system every
    pair is counted from both ends.

    Parameters
    ----------
    particle : Particle
        Particle to compute the acceleration for
    perturbers : sequence of Particle
        Particles exerting force; ``particle`` itself is skipped

    Returns
    -------
    NewtonResult
        Acceleration [m/s²] and unhalved potential energy [J]
    """
    acceleration = Vector3D()
    potential_energy = 0.0
    for p in perturbers:
        if p is particle:
            continue
        distance_square = _separation_square(particle, p)
        direction = particle.position.direction(p.position)
        acceleration.add_vector(direction.scalar_product(p.mu / distance_square))
        potential_energy -= p.mu * particle.mass / math.sqrt(distance_square)
    return NewtonResult(acceleration, potential_energy)


def newton_pass(particles: Sequence["Particle"],
                perturbers: Sequence["Particle"]) -> List[NewtonResult]:
    """
    Newtonian pass over a whole system.

    The potential energy of each result is halved, so that summing over
    all particles counts every pair once.
    """
    results = []
    for particle in particles:
        acceleration, potential_energy = newton_acceleration(particle, perturbers)
        results.append(NewtonResult(acceleration, 0.5 * potential_energy))
    return results


# ========== GENERAL RELATIVITY ==========
def potential_sum(particle: "Particle", perturbers: Sequence["Particle"]) -> float:
    """Sum of mu_C / r_XC over all perturbers C other than ``particle``."""
    total = 0.0
    for q in perturbers:
        if q is not particle:
            total += q.mu / math.sqrt(_separation_square(particle, q))
    return total


def relativistic_acceleration(
    particle: "Particle",
    perturbers: Sequence["Particle"],
    newton_accelerations: Mapping["Particle", Vector3D],
    potential_sums: Optional[Mapping["Particle", float]] = None,
) -> Vector3D:
    """
    PPN n-body acceleration of one particle (DE430 Equation 27).

    Notation: A = ``particle``, B = perturber, C = any third perturber.
    The acceleration of B appears in two terms divided by c², so using its
    Newtonian acceleration is accurate to O(c⁻²).

    Parameters
    ----------
    particle : Particle
        Particle A
    perturbers : sequence of Particle
        Perturbers B; ``particle`` itself is skipped
    newton_accelerations : mapping Particle -> Vector3D
        Newtonian acceleration of every perturber from the current step
    potential_sums : mapping Particle -> float, optional
        Precomputed ``potential_sum`` per particle. Computed on demand for
        particles missing from the mapping.

    Returns
    -------
    Vector3D
        Total acceleration [m/s²] (Newtonian part included)

    Raises
    ------
    RuntimeError
        If a perturber has no Newtonian acceleration in the mapping
    """
    beta = config.PPN_BETA
    gamma = config.PPN_GAMMA
    c2 = config.LIGHT_SPEED_SQUARE

    def sum_excluding(x):
        if potential_sums is not None and x in potential_sums:
            return potential_sums[x]
        return potential_sum(x, perturbers)

    r_a = particle.position
    v_a = particle.velocity
    # Sum over C != A does not depend on B
    sum_c_not_a = sum_excluding(particle)
    v_a_square = v_a.magnitude_square()

    first_term = Vector3D()
    second_term = Vector3D()
    third_term = Vector3D()
    for p in perturbers:
        if p is particle:
            continue
        try:
            a_b = newton_accelerations[p]
        except KeyError:
            raise RuntimeError(
                f"No Newtonian acceleration available for perturber '{p.name}'; "
                f"the Newtonian pass must complete before the relativistic pass"
            ) from None

        r_b = p.position
        v_b = p.velocity
        dist_ab = math.sqrt(_separation_square(particle, p))
        factor = p.mu / (dist_ab * dist_ab * dist_ab)
        diff_position_ab = r_a.minus(r_b)
        diff_position_ba = r_b.minus(r_a)

        # Curly braces of Equation (27); note the second sum excludes B, not A
        r_ab_dot_v_b = diff_position_ab.dot_product(v_b) / dist_ab
        factor_curly_braces = (
            1.0
            - 2.0 * (beta + gamma) * sum_c_not_a / c2
            - (2.0 * beta - 1.0) * sum_excluding(p) / c2
            + gamma * v_a_square / c2
            + (1.0 + gamma) * v_b.magnitude_square() / c2
            - 2.0 * (1.0 + gamma) * v_a.dot_product(v_b) / c2
            - 1.5 * r_ab_dot_v_b * r_ab_dot_v_b / c2
            + 0.5 * diff_position_ba.dot_product(a_b) / c2
        )
        first_term.add_vector(diff_position_ba.scalar_product(factor * factor_curly_braces))

        # [r_A - r_B] . [(2 + 2 gamma) v_A - (1 + 2 gamma) v_B]
        weighted_velocity = v_a.scalar_product(2.0 + 2.0 * gamma).minus(
            v_b.scalar_product(1.0 + 2.0 * gamma))
        dot_product = diff_position_ab.dot_product(weighted_velocity)
        second_term.add_vector(v_a.minus(v_b).scalar_product(factor * dot_product))

        third_term.add_vector(a_b.scalar_product(p.mu / dist_ab))

    acceleration = first_term
    acceleration.add_vector(second_term.scalar_product(1.0 / c2))
    acceleration.add_vector(third_term.scalar_product((3.0 + 4.0 * gamma) / (2.0 * c2)))
    return acceleration


def relativity_pass(particles: Sequence["Particle"],
                    perturbers: Sequence["Particle"],
                    newton_accelerations: Mapping["Particle", Vector3D]) -> List[Vector3D]:
    """
    Relativistic pass over a whole system.

    ``newton_accelerations`` must hold the Newtonian acceleration of every
    perturber computed for the current positions and velocities.
    """
    potential_sums: Dict["Particle", float] = {
        p: potential_sum(p, perturbers) for p in perturbers
    }
    return [
        relativistic_acceleration(particle, perturbers, newton_accelerations, potential_sums)
        for particle in particles
    ]
