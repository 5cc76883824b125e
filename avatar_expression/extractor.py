"""
FeatureExtractor for deriving facial measurements from landmark frames.

This module turns one LandmarkFrame into a FeatureVector: eyebrow offsets
relative to the eyes, eyebrow slope angles, inter-brow distance, and
mouth/eye openness. Extraction is a pure function of the frame.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .errors import InvalidMeasurement, NoFaceDetected
from .features import FeatureVector
from .landmarks import (
    LEFT_EYE,
    LEFT_EYEBROW,
    MOUTH,
    REQUIRED_INDICES,
    RIGHT_EYE,
    RIGHT_EYEBROW,
    LandmarkFrame,
)


def linear_map(
    value: float,
    in_min: float,
    in_max: float,
    out_min: float,
    out_max: float,
) -> float:
    """Linearly remap value from [in_min, in_max] onto [out_min, out_max] (no clamp)."""
    return out_min + (value - in_min) * (out_max - out_min) / (in_max - in_min)


@dataclass
class ExtractorConfig:
    """Input/output ranges for the linear remaps.

    Brow gaps are remapped from [brow_gap_min, brow_gap_max] onto
    [brow_out_at_max, brow_out_at_min] without clamping, so a wider gap
    (brow raised) gives a more negative offset. Openness distances are
    remapped to [0, 1] and clamped.
    """

    brow_gap_min: float = 20.0
    brow_gap_max: float = 50.0
    # Output runs high-to-low so a raised brow (wider gap) reads negative
    brow_out_at_min: float = 20.0
    brow_out_at_max: float = -40.0

    mouth_distance_min: float = 5.0
    mouth_distance_max: float = 30.0

    eye_distance_min: float = 3.0
    eye_distance_max: float = 15.0

    def __post_init__(self):
        for lo, hi, name in (
            (self.brow_gap_min, self.brow_gap_max, "brow_gap"),
            (self.mouth_distance_min, self.mouth_distance_max, "mouth_distance"),
            (self.eye_distance_min, self.eye_distance_max, "eye_distance"),
        ):
            if not lo < hi:
                raise ValueError(f"{name}_min must be < {name}_max, got [{lo}, {hi}]")


class FeatureExtractor:
    """从关键点提取眉毛/嘴巴/眼睛特征

    Extracts 8 measurements from a LandmarkFrame:
    - Brow offsets (2): eye-reference Y minus mean brow Y, remapped
    - Brow angles (2): inner-to-outer slope in degrees, mirrored per side
    - Inter-brow distance (1)
    - Mouth / eye openness (3): normalized to [0, 1]
    """

    def __init__(self, config: Optional[ExtractorConfig] = None):
        self.config = config or ExtractorConfig()

    def extract(self, frame: Optional[LandmarkFrame]) -> FeatureVector:
        """
        从关键点帧提取面部特征

        Args:
            frame: One detection cycle's landmarks, or None if no face

        Returns:
            FeatureVector with this frame's measurements

        Raises:
            NoFaceDetected: If the frame is absent, empty, or lacks a
                required landmark index
            InvalidMeasurement: If any measurement comes out NaN/inf
        """
        if frame is None or len(frame) == 0:
            raise NoFaceDetected("No landmark frame")

        if not frame.has_indices(REQUIRED_INDICES):
            raise NoFaceDetected(
                f"Frame has {len(frame)} points, needs index "
                f"{max(REQUIRED_INDICES)}"
            )

        points = frame.points

        left_y = self._brow_offset(points, LEFT_EYEBROW, LEFT_EYE["top"])
        right_y = self._brow_offset(points, RIGHT_EYEBROW, RIGHT_EYE["top"])
        left_angle, right_angle = self._brow_angles(points)

        inter_brow = float(np.linalg.norm(
            points[LEFT_EYEBROW["inner"]] - points[RIGHT_EYEBROW["inner"]]
        ))

        cfg = self.config
        mouth = self._openness(
            points, MOUTH, cfg.mouth_distance_min, cfg.mouth_distance_max
        )
        left_eye = self._openness(
            points, LEFT_EYE, cfg.eye_distance_min, cfg.eye_distance_max
        )
        right_eye = self._openness(
            points, RIGHT_EYE, cfg.eye_distance_min, cfg.eye_distance_max
        )

        features = FeatureVector(
            left_brow_y=left_y,
            right_brow_y=right_y,
            left_brow_angle=left_angle,
            right_brow_angle=right_angle,
            inter_brow_distance=inter_brow,
            mouth_openness=mouth,
            left_eye_openness=left_eye,
            right_eye_openness=right_eye,
            timestamp=frame.timestamp_ms or 0.0,
        )

        if not features.is_finite():
            raise InvalidMeasurement(f"Non-finite measurement: {features}")

        return features

    def _brow_offset(
        self, points: np.ndarray, brow: dict, eye_reference: int
    ) -> float:
        """Gap between eye reference and mean brow height, remapped."""
        brow_idx = [brow["outer"], brow["middle"], brow["inner"]]
        brow_y = np.mean(points[brow_idx][:, 1])
        gap = points[eye_reference, 1] - brow_y

        cfg = self.config
        return float(linear_map(
            gap,
            cfg.brow_gap_min,
            cfg.brow_gap_max,
            cfg.brow_out_at_min,
            cfg.brow_out_at_max,
        ))

    def _brow_angles(self, points: np.ndarray) -> Tuple[float, float]:
        """
        Compute slope angles of both brows in degrees.

        Image y grows downward, so rise = outer.y - inner.y is positive when
        the inner corner sits higher. The right brow's run is mirrored so
        both sides read positive for "inner corner raised".
        """
        l_inner = points[LEFT_EYEBROW["inner"]]
        l_outer = points[LEFT_EYEBROW["outer"]]
        r_inner = points[RIGHT_EYEBROW["inner"]]
        r_outer = points[RIGHT_EYEBROW["outer"]]

        left = np.degrees(np.arctan2(
            l_outer[1] - l_inner[1], l_inner[0] - l_outer[0]
        ))
        right = np.degrees(np.arctan2(
            r_outer[1] - r_inner[1], -(r_inner[0] - r_outer[0])
        ))

        return float(left), float(right)

    def _openness(
        self, points: np.ndarray, pair: dict, d_min: float, d_max: float
    ) -> float:
        """Distance between top and bottom points mapped to [0, 1]."""
        distance = np.linalg.norm(points[pair["top"]] - points[pair["bottom"]])
        return float(np.clip(linear_map(distance, d_min, d_max, 0.0, 1.0), 0.0, 1.0))
