# Ray-cast sensors and observation encoding
# FORBIDDEN: torch, env.*, models.*, training.*

import math
from typing import Sequence

import numpy as np

from ..core.types import ObservationLayout, Surface, VehicleState


def cast_rays(
    track,
    x: float,
    y: float,
    angles: Sequence[float],
    max_distance: float,
    step: float = 2.0,
) -> np.ndarray:
    """Distance to the first wall or image edge along each ray.

    Samples every `step` pixels starting at distance 0; rays that hit
    nothing return `max_distance`.

    Args:
        track: Track surface oracle
        x, y: Ray origin
        angles: Absolute ray angles in radians
        max_distance: Maximum range
        step: Sampling interval in pixels

    Returns:
        Distances, shape (len(angles),)
    """
    angles = np.asarray(angles, dtype=np.float64)
    dists = np.arange(0.0, max_distance, step)

    xs = x + np.cos(angles)[:, None] * dists[None, :]
    ys = y + np.sin(angles)[:, None] * dists[None, :]

    # Truncate toward zero to match pixel lookups
    px = np.trunc(xs).astype(np.int64)
    py = np.trunc(ys).astype(np.int64)

    inside = (px >= 0) & (px < track.width) & (py >= 0) & (py < track.height)
    blocked = ~inside
    pxc = np.clip(px, 0, track.width - 1)
    pyc = np.clip(py, 0, track.height - 1)
    blocked |= inside & (track.surfaces[pyc, pxc] == Surface.WALL)

    hit_any = blocked.any(axis=1)
    first_hit = blocked.argmax(axis=1)

    return np.where(hit_any, dists[first_hit], max_distance)


def danger_scores(distances: np.ndarray, reference: float) -> np.ndarray:
    """Inverse-distance danger, saturating at 1.0 for nearby walls."""
    return np.minimum(1.0, 1.0 / (distances / reference + 0.1))


def clearance_scores(distances: np.ndarray, max_distance: float) -> np.ndarray:
    """Linear clearance fraction, 1.0 means far/clear."""
    return np.clip(distances / max_distance, 0.0, 1.0)


class SensorEncoder:
    """Build observation vectors from vehicle pose and track queries.

    Stateless: the same pose always produces the same observation.
    """

    def __init__(self, track, layout: ObservationLayout = None):
        self.track = track
        self.layout = layout if layout is not None else ObservationLayout()

    @property
    def dimension(self) -> int:
        return self.layout.dimension

    def encode(self, state: VehicleState) -> np.ndarray:
        """Convert vehicle state to an observation.

        Args:
            state: Current vehicle state

        Returns:
            Observation, shape (layout.dimension,), float32
        """
        layout = self.layout
        obs = np.empty(layout.dimension, dtype=np.float32)

        obs[0] = state.speed / layout.max_speed
        obs[1] = math.sin(state.heading)
        obs[2] = math.cos(state.heading)
        obs[3] = state.x / self.track.width
        obs[4] = state.y / self.track.height

        short = cast_rays(
            self.track,
            state.x,
            state.y,
            state.heading + np.asarray(layout.short_ray_offsets),
            layout.short_range,
            layout.ray_step,
        )
        obs[layout.short_slice] = danger_scores(short, layout.danger_reference)

        long = cast_rays(
            self.track,
            state.x,
            state.y,
            state.heading + np.asarray(layout.long_ray_offsets),
            layout.long_range,
            layout.ray_step,
        )
        obs[layout.long_slice] = clearance_scores(long, layout.long_range)

        return obs
