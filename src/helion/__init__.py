"""
Helion: Solar System N-Body Simulation

A Python package for propagating gravitating particle systems with
fixed-step integrators (leapfrog, Runge-Kutta, Adams-Bashforth-Moulton),
optionally including the post-Newtonian correction of general relativity,
with a high-accuracy Taylor series reference propagator for comparison.
"""

# Configuration
from .config import config, temp_config

# Core classes
from .vector import Vector3D
from .particle import Particle
from .particle_system import ParticleSystem
from .integrators import Scheme
from .trajectory import Trajectory, Trajectory as Traj
from .ephemeris import EphemerisProvider, system_from_ephemeris
from .reference import ReferencePropagator
from .utils import Timer

# Body constants
from .bodies import (
    BodyParams, BODIES, PLANETS, get_body, ASTRONOMICAL_UNIT,
    SUN, MERCURY, VENUS, EARTH, MOON, MARS, JUPITER, SATURN, URANUS, NEPTUNE, PLUTO,
)

# Factories and experiments
from .defaults import circular_velocity, sun_earth, sun_mercury, circular_solar_system
from .experiments import (
    simulation_accuracy, energy_history, eccentricity_vector, perihelion_precession,
)

# Package metadata
__version__ = "0.1.0"

# Define what gets imported with "from helion import *"
__all__ = [
    # Configuration
    "config",
    "temp_config",
    # Classes
    "Vector3D",
    "Particle",
    "ParticleSystem",
    "Scheme",
    "Trajectory",
    "EphemerisProvider",
    "ReferencePropagator",
    "BodyParams",
    "Timer",
    # Abbreviations
    "Traj",
    # Functions
    "system_from_ephemeris",
    "get_body",
    "circular_velocity",
    "sun_earth",
    "sun_mercury",
    "circular_solar_system",
    "simulation_accuracy",
    "energy_history",
    "eccentricity_vector",
    "perihelion_precession",
    # Constants
    "BODIES",
    "PLANETS",
    "ASTRONOMICAL_UNIT",
    "SUN",
    "MERCURY",
    "VENUS",
    "EARTH",
    "MOON",
    "MARS",
    "JUPITER",
    "SATURN",
    "URANUS",
    "NEPTUNE",
    "PLUTO",
]
