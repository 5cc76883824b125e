"""
Landmark frame container and MediaPipe Face Mesh indices.

A LandmarkFrame is one detection cycle's set of facial keypoints, stored
as an (N, 2) array of pixel coordinates. Trackers hand keypoints over in
different shapes (numpy arrays, (x, y) tuples, ml5/JSON dicts, MediaPipe
landmark objects); from_points() accepts all of them.
"""

import numbers
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

import numpy as np


# MediaPipe Face Mesh landmark indices
# Reference: https://github.com/google/mediapipe/blob/master/mediapipe/modules/face_geometry/data/canonical_face_model_uv_visualization.png

# Eyebrow landmarks (outer, middle, inner)
LEFT_EYEBROW = {
    "outer": 70,
    "middle": 105,
    "inner": 107,
}

RIGHT_EYEBROW = {
    "outer": 300,
    "middle": 334,
    "inner": 336,
}

# Eyelid landmarks; "top" doubles as the brow's eye reference point
LEFT_EYE = {
    "top": 159,
    "bottom": 145,
}

RIGHT_EYE = {
    "top": 386,
    "bottom": 374,
}

# Mouth landmarks
MOUTH = {
    "top": 13,  # Upper lip center
    "bottom": 14,  # Lower lip center
}

REQUIRED_INDICES = frozenset(
    list(LEFT_EYEBROW.values())
    + list(RIGHT_EYEBROW.values())
    + list(LEFT_EYE.values())
    + list(RIGHT_EYE.values())
    + list(MOUTH.values())
)


def _point_xy(point: Any) -> Sequence[float]:
    """Pull (x, y) out of a dict, an object with x/y attributes, or a sequence.

    Raises:
        ValueError: If the keypoint has no numeric x and y
    """
    if isinstance(point, dict):
        xy = point.get("x"), point.get("y")
    elif hasattr(point, "x") and hasattr(point, "y"):
        xy = point.x, point.y
    else:
        try:
            xy = point[0], point[1]
        except (IndexError, TypeError, KeyError):
            raise ValueError(f"Keypoint needs x and y, got {point!r}")
    if not all(isinstance(v, numbers.Real) for v in xy):
        raise ValueError(f"Keypoint needs numeric x and y, got {point!r}")
    return xy


@dataclass
class LandmarkFrame:
    """一帧面部关键点 (one frame of facial keypoints)

    Attributes:
        points: Array of shape (N, 2) with (x, y) pixel coordinates,
                indexed by landmark number.
        timestamp_ms: Optional detection time in milliseconds.
    """

    points: np.ndarray
    timestamp_ms: Optional[float] = field(default=None)

    def __post_init__(self):
        points = np.asarray(self.points, dtype=np.float64)
        if points.size == 0:
            points = points.reshape(0, 2)
        if points.ndim != 2 or points.shape[1] < 2:
            raise ValueError(
                f"Expected points of shape (N, 2), got {points.shape}"
            )
        # Drop z (MediaPipe gives x, y, z)
        self.points = points[:, :2]

    @classmethod
    def from_points(
        cls, points: Iterable[Any], timestamp_ms: Optional[float] = None
    ) -> "LandmarkFrame":
        """
        Build a frame from any sequence of keypoints.

        Args:
            points: numpy array, or iterable of (x, y) tuples, {"x", "y"}
                    dicts, or objects exposing .x / .y
            timestamp_ms: Optional detection time in milliseconds

        Returns:
            LandmarkFrame with an (N, 2) float64 array
        """
        if isinstance(points, np.ndarray):
            return cls(points=points, timestamp_ms=timestamp_ms)
        xy = [_point_xy(p) for p in points]
        return cls(
            points=np.array(xy, dtype=np.float64).reshape(-1, 2),
            timestamp_ms=timestamp_ms,
        )

    def __len__(self) -> int:
        return int(self.points.shape[0])

    def has_indices(self, indices: Iterable[int]) -> bool:
        """Check that every index refers to an existing point."""
        n = len(self)
        return all(0 <= i < n for i in indices)

    def to_list(self) -> list:
        """Points as nested [x, y] lists for JSON serialization."""
        return self.points.tolist()
