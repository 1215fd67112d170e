# Track surface oracle
# Maps image pixels to surface classes and friction multipliers

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from ..core.types import Checkpoint, Surface, VehicleState

logger = logging.getLogger(__name__)


# Friction multiplier per surface (wall is effectively infinite)
SURFACE_FRICTION = {
    Surface.OUT_OF_BOUNDS: 1.0,
    Surface.WALL: 999.0,
    Surface.TRACK: 1.0,
    Surface.GRASS: 3.0,
}

# RGB colour coding of track images
WALL_COLOR = (15, 15, 15)
TRACK_COLOR = (35, 35, 35)
GRASS_COLOR = (34, 177, 76)


@dataclass
class Track:
    """Surface grid plus the checkpoint layout and start pose.

    The grid is indexed [y, x]. Pixel lookups truncate float coordinates
    toward zero.
    """
    surfaces: np.ndarray
    checkpoint_segments: List[Tuple[Tuple[float, float], Tuple[float, float]]]
    start_x: float
    start_y: float
    start_heading: float = 0.0
    name: str = "track"

    def __post_init__(self):
        self.surfaces = np.asarray(self.surfaces, dtype=np.uint8)
        if self.surfaces.ndim != 2:
            raise ValueError(f"Surface grid must be 2D, got shape {self.surfaces.shape}")
        if len(self.checkpoint_segments) < 2:
            raise ValueError("Track needs a finish line and at least one checkpoint")
        if self.is_blocked(self.start_x, self.start_y):
            raise ValueError(
                f"Start position ({self.start_x}, {self.start_y}) is on a wall or out of bounds"
            )

    @property
    def width(self) -> int:
        return self.surfaces.shape[1]

    @property
    def height(self) -> int:
        return self.surfaces.shape[0]

    def in_bounds(self, x: float, y: float) -> bool:
        px, py = int(x), int(y)
        return 0 <= px < self.width and 0 <= py < self.height

    def surface_at(self, x: float, y: float) -> Surface:
        if not self.in_bounds(x, y):
            return Surface.OUT_OF_BOUNDS
        return Surface(int(self.surfaces[int(y), int(x)]))

    def friction_at(self, x: float, y: float) -> float:
        return SURFACE_FRICTION[self.surface_at(x, y)]

    def is_blocked(self, x: float, y: float) -> bool:
        """True for walls and positions outside the image."""
        return self.surface_at(x, y) in (Surface.WALL, Surface.OUT_OF_BOUNDS)

    def new_checkpoints(self) -> List[Checkpoint]:
        """Fresh checkpoint list with all flags cleared."""
        return [Checkpoint(start=tuple(s), end=tuple(e)) for s, e in self.checkpoint_segments]

    def start_state(self) -> VehicleState:
        return VehicleState(x=self.start_x, y=self.start_y, heading=self.start_heading, speed=0.0)

    @classmethod
    def from_image(
        cls,
        path: Path,
        checkpoint_segments: Sequence[Sequence[Sequence[float]]],
        start: Sequence[float],
        start_heading: float = 0.0,
    ) -> "Track":
        """Load a track from a colour-coded image.

        Wall, track and grass pixels use the fixed colour coding; any other
        colour drives like track.

        Args:
            path: Image file path
            checkpoint_segments: [[x1, y1], [x2, y2]] per checkpoint, finish line first
            start: Start position [x, y]
            start_heading: Start heading in radians

        Returns:
            Track instance

        Raises:
            FileNotFoundError: If the image does not exist
        """
        from PIL import Image

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Track image not found: {path}")

        with Image.open(path) as image:
            rgb = np.asarray(image.convert("RGB"))

        surfaces = np.full(rgb.shape[:2], Surface.TRACK, dtype=np.uint8)
        surfaces[np.all(rgb == WALL_COLOR, axis=-1)] = Surface.WALL
        surfaces[np.all(rgb == GRASS_COLOR, axis=-1)] = Surface.GRASS

        logger.info(f"Loaded track image {path} ({rgb.shape[1]}x{rgb.shape[0]})")

        return cls(
            surfaces=surfaces,
            checkpoint_segments=_to_segments(checkpoint_segments),
            start_x=float(start[0]),
            start_y=float(start[1]),
            start_heading=start_heading,
            name=path.stem,
        )


def _to_segments(raw: Sequence[Sequence[Sequence[float]]]):
    segments = []
    for entry in raw:
        (x1, y1), (x2, y2) = entry
        segments.append(((float(x1), float(y1)), (float(x2), float(y2))))
    return segments


def create_oval_track(
    size: int = 900,
    radius_x: float = 330.0,
    radius_y: float = 300.0,
    half_width: float = 45.0,
    grass_width: float = 20.0,
    num_checkpoints: int = 8,
    start_gap: float = 20.0,
) -> Track:
    """Create an elliptical ring track.

    Walls surround a grass verge on both sides of the tarmac. The car
    starts at the top of the ellipse heading +x, `start_gap` pixels before
    the finish line, and checkpoints are evenly spaced along the direction
    of travel.

    Args:
        size: Image width and height in pixels
        radius_x, radius_y: Centreline semi-axes
        half_width: Half tarmac width
        grass_width: Grass verge width on each side
        num_checkpoints: Total checkpoints including the finish line
        start_gap: Distance from start to finish line along the centreline

    Returns:
        Track instance
    """
    cx = cy = size / 2.0

    ys, xs = np.mgrid[0:size, 0:size].astype(np.float64)
    r = np.sqrt(((xs + 0.5 - cx) / radius_x) ** 2 + ((ys + 0.5 - cy) / radius_y) ** 2)
    # Approximate signed offset from the centreline
    offset = np.abs(r - 1.0) * 0.5 * (radius_x + radius_y)

    surfaces = np.full((size, size), Surface.WALL, dtype=np.uint8)
    surfaces[offset <= half_width + grass_width] = Surface.GRASS
    surfaces[offset <= half_width] = Surface.TRACK

    # Widest normal extent of the band, reached on the major axis
    span = (half_width + grass_width) * max(radius_x, radius_y) / (0.5 * (radius_x + radius_y))
    theta0 = -math.pi / 2 + start_gap / radius_x

    segments = []
    for i in range(num_checkpoints):
        theta = theta0 + 2.0 * math.pi * i / num_checkpoints
        px = cx + radius_x * math.cos(theta)
        py = cy + radius_y * math.sin(theta)
        nx = math.cos(theta) / radius_x
        ny = math.sin(theta) / radius_y
        norm = math.hypot(nx, ny)
        nx, ny = nx / norm, ny / norm
        segments.append(((px - nx * span, py - ny * span), (px + nx * span, py + ny * span)))

    return Track(
        surfaces=surfaces,
        checkpoint_segments=segments,
        start_x=cx,
        start_y=cy - radius_y,
        start_heading=0.0,
        name="oval",
    )


def make_track(config: Dict[str, Any]) -> Track:
    """Build the track described by the `track` config section.

    Args:
        config: Full configuration dictionary

    Returns:
        Track instance
    """
    track_config = config.get("track", {})
    source = track_config.get("source", "oval")

    if source == "oval":
        oval = track_config.get("oval", {})
        return create_oval_track(**oval)

    if source == "image":
        start = track_config.get("start", [430.0, 92.0])
        return Track.from_image(
            path=Path(track_config["path"]),
            checkpoint_segments=track_config["checkpoints"],
            start=start,
            start_heading=float(track_config.get("start_heading", 0.0)),
        )

    raise ValueError(f"Unknown track source: {source}. Available: ['oval', 'image']")
