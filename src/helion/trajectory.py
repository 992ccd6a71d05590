"""
Trajectory class definition.

A Trajectory is the sampled history of selected particles of a
ParticleSystem, recorded while the system is propagated.
"""

import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Sequence, TYPE_CHECKING
import plotly.graph_objects as go
from .bodies import ASTRONOMICAL_UNIT
from .config import config
if TYPE_CHECKING:
    from .integrators import Scheme
    from .particle_system import ParticleSystem


class Trajectory:
    """
    Recorded states of one or more particles at discrete times.

    Attributes:
        names: Names of the recorded particles
        scheme: Integration scheme used to produce the samples
        general_relativity: Whether the relativistic correction was applied

    Notes:
        Samples recorded during leapfrog integration hold the staggered
        velocity v(n-1/2), not the velocity at the sample time. Use
        ParticleSystem.synchronize_leapfrog() to get the current velocity.
    """
    # ========== CONSTRUCTION ==========
    def __init__(self, names: Sequence[str], scheme: Optional["Scheme"] = None,
                 general_relativity: bool = False):
        if len(names) == 0:
            raise ValueError("Trajectory needs at least one particle name")
        self._names = tuple(names)
        self._scheme = scheme
        self._general_relativity = general_relativity
        self._times: List[float] = []
        self._states: Dict[str, List[np.ndarray]] = {name: [] for name in self._names}

    def record(self, system: "ParticleSystem") -> None:
        """Append the current state of the recorded particles."""
        states = system.state_array(list(self._names))
        self._times.append(system.time)
        for name, row in zip(self._names, states):
            self._states[name].append(row)

    # ========== PROPERTY ACCESS ==========
    @property
    def names(self) -> tuple:
        return self._names

    @property
    def scheme(self) -> Optional["Scheme"]:
        return self._scheme

    @property
    def general_relativity(self) -> bool:
        return self._general_relativity

    @property
    def times(self) -> np.ndarray:
        """Sample times [s], shape (n,)"""
        return np.array(self._times, dtype=float)

    @property
    def t0(self) -> float:
        self._require_samples()
        return self._times[0]

    @property
    def tf(self) -> float:
        self._require_samples()
        return self._times[-1]

    @property
    def duration(self) -> float:
        """Trajectory duration."""
        return self.tf - self.t0

    # ========== UTILITY METHODS ==========
    def states(self, name: str) -> np.ndarray:
        """States of one particle, shape (n, 6) with columns [x, y, z, vx, vy, vz]."""
        self._validate_name(name)
        return np.array(self._states[name], dtype=float).reshape(-1, 6)

    def positions(self, name: str) -> np.ndarray:
        """Positions [m] of one particle, shape (n, 3)"""
        return self.states(name)[:, 0:3]

    def velocities(self, name: str) -> np.ndarray:
        """Velocities [m/s] of one particle, shape (n, 3)"""
        return self.states(name)[:, 3:6]

    def state_at_index(self, index: int, name: str) -> np.ndarray:
        """State [x, y, z, vx, vy, vz] of one particle at sample ``index``."""
        self._validate_name(name)
        return np.array(self._states[name][index], dtype=float)

    def relative_positions(self, name: str, origin: str) -> np.ndarray:
        """Positions of ``name`` relative to particle ``origin``, shape (n, 3)"""
        return self.positions(name) - self.positions(origin)

    def distances(self, name: str, origin: str) -> np.ndarray:
        """Distance [m] between two recorded particles at every sample."""
        return np.linalg.norm(self.relative_positions(name, origin), axis=1)

    def _validate_name(self, name: str):
        """Validate that a particle was recorded."""
        if name not in self._states:
            raise KeyError(
                f"Particle '{name}' not recorded. Recorded particles: {list(self._names)}"
            )

    def _require_samples(self):
        if not self._times:
            raise ValueError("Trajectory has no samples")

    def to_dataframe(self) -> pd.DataFrame:
        """
        Export trajectory to pandas DataFrame.

        Returns:
            Long-format DataFrame with one row per (particle, sample) and
            columns body, time, x, y, z, vx, vy, vz
        """
        times = self.times
        frames = []
        for name in self._names:
            states = self.states(name)
            frames.append(pd.DataFrame({
                'body': name,
                'time': times,
                'x': states[:, 0],
                'y': states[:, 1],
                'z': states[:, 2],
                'vx': states[:, 3],
                'vy': states[:, 4],
                'vz': states[:, 5],
            }))
        return pd.concat(frames, ignore_index=True)

    # ========== SPECIAL METHODS ==========
    def __len__(self) -> int:
        return len(self._times)

    def __repr__(self):
        if not self._times:
            return f"Trajectory(bodies={list(self._names)}, empty)"
        return (f"Trajectory(bodies={list(self._names)}, n_samples={len(self)}, "
                f"t0={self.t0}, tf={self.tf})")

    # ========== PLOTTING ==========
    def plot_3d(self, names: Optional[Sequence[str]] = None,
                origin: Optional[str] = None,
                traj_color: Optional[str] = None,
                body_color: Optional[str] = None,
                show_final: bool = True,
                units: str = 'AU') -> go.Figure:
        """
        Create 3D plot of recorded particle paths.

        Parameters:
            names: Particles to plot (default: all recorded)
            origin: Particle whose path is subtracted from all others (default: none)
            traj_color: Color of the first path line (default: config.DEFAULT_TRAJ_COLOR);
                        further paths use the plotly color sequence
            body_color: Color of the final-position markers (default: config.DEFAULT_BODY_COLOR)
            show_final: Whether to mark the final position of every particle (default: True)
            units: 'AU' or 'm' (default: 'AU')

        Returns:
            Plotly Figure object
        """
        if names is None:
            names = self._names
        body_color = body_color or config.DEFAULT_BODY_COLOR

        fig = go.Figure()
        for i, name in enumerate(names):
            color = (traj_color or config.DEFAULT_TRAJ_COLOR) if i == 0 else None
            self.add_to_plot(fig, name, origin=origin, color=color, units=units)
            if show_final:
                final = self._scaled_positions(name, origin, units)[-1]
                fig.add_trace(go.Scatter3d(
                    x=[final[0]], y=[final[1]], z=[final[2]],
                    mode='markers',
                    marker=dict(color=body_color, size=config.DEFAULT_MARKER_SIZE),
                    name=f'{name} (final)',
                    showlegend=False,
                    hoverinfo='name'
                ))

        frame = f' relative to {origin}' if origin else ''
        fig.update_layout(
            scene=dict(
                xaxis_title=f'X [{units}]',
                yaxis_title=f'Y [{units}]',
                zaxis_title=f'Z [{units}]',
                aspectmode='data'
            ),
            title=f'Particle Trajectories{frame}',
            showlegend=True
        )
        return fig

    def add_to_plot(self, fig: go.Figure, name: str,
                    origin: Optional[str] = None, color: Optional[str] = None,
                    units: str = 'AU', **kwargs) -> go.Figure:
        """
        Add the path of one particle to an existing Plotly figure.

        Parameters:
            fig: Existing Plotly Figure object
            name: Recorded particle to add
            origin: Particle whose path is subtracted (default: none)
            color: Color of the path line (default: plotly color sequence)
            units: 'AU' or 'm' (default: 'AU')
            **kwargs: Additional arguments passed to Scatter3d

        Returns:
            Updated Plotly Figure object (same object, modified in place)
        """
        positions = self._scaled_positions(name, origin, units)
        line = dict(width=3)
        if color is not None:
            line['color'] = color
        fig.add_trace(go.Scatter3d(
            x=positions[:, 0],
            y=positions[:, 1],
            z=positions[:, 2],
            mode='lines',
            line=line,
            name=name,
            hovertemplate='x: %{x:.6f}<br>y: %{y:.6f}<br>z: %{z:.6f}<extra></extra>',
            **kwargs
        ))
        return fig

    def _scaled_positions(self, name: str, origin: Optional[str], units: str) -> np.ndarray:
        if units not in ('AU', 'm'):
            raise ValueError(f"Unknown units '{units}'. Use: ['AU', 'm']")
        if origin is None:
            positions = self.positions(name)
        else:
            positions = self.relative_positions(name, origin)
        if units == 'AU':
            positions = positions / ASTRONOMICAL_UNIT
        return positions
