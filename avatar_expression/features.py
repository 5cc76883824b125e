"""
FeatureVector dataclass for per-frame facial measurements.

This module defines the scalar measurements derived from one landmark
frame: eyebrow offsets and angles, inter-brow distance, and mouth/eye
openness. A FeatureVector is created fresh every frame and never persisted.
"""

from dataclasses import dataclass, field
from typing import Dict

import numpy as np


# The four channels that go through temporal smoothing, in this order
BROW_CHANNELS = (
    "left_brow_y",
    "right_brow_y",
    "left_brow_angle",
    "right_brow_angle",
)


@dataclass
class FeatureVector:
    """面部特征向量 (per-frame facial feature vector)

    Contains 8 measurements:
    - Eyebrow offsets (2): remapped brow-to-eye gap, more negative = raised
    - Eyebrow angles (2): degrees, positive = inner corner raised
    - Inter-brow distance (1): pixels between the inner brow points
    - Openness (3): mouth and eyes, each normalized to [0, 1]
    """

    # Eyebrow features
    left_brow_y: float                # 左眉高度 (remapped units)
    right_brow_y: float               # 右眉高度 (remapped units)
    left_brow_angle: float            # 左眉角度 (degrees)
    right_brow_angle: float           # 右眉角度 (degrees)
    inter_brow_distance: float        # 眉间距 (pixels)

    # Openness features
    mouth_openness: float             # 嘴巴张开度 [0, 1]
    left_eye_openness: float          # 左眼开合度 [0, 1]
    right_eye_openness: float         # 右眼开合度 [0, 1]

    # Timestamp (ms)
    timestamp: float = 0.0

    NUM_FEATURES: int = field(default=8, init=False, repr=False)

    def to_array(self) -> np.ndarray:
        """
        Convert the FeatureVector to a numpy array.

        Returns:
            np.ndarray: Shape (8,) in field order:
                [left_brow_y, right_brow_y, left_brow_angle, right_brow_angle,
                 inter_brow_distance, mouth_openness,
                 left_eye_openness, right_eye_openness]
        """
        return np.array([
            self.left_brow_y,
            self.right_brow_y,
            self.left_brow_angle,
            self.right_brow_angle,
            self.inter_brow_distance,
            self.mouth_openness,
            self.left_eye_openness,
            self.right_eye_openness,
        ], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray, timestamp: float = 0.0) -> "FeatureVector":
        """
        Create a FeatureVector from an array in to_array() order.

        Raises:
            ValueError: If array does not have exactly 8 elements
        """
        if len(arr) != 8:
            raise ValueError(f"Expected array of length 8, got {len(arr)}")

        return cls(
            left_brow_y=float(arr[0]),
            right_brow_y=float(arr[1]),
            left_brow_angle=float(arr[2]),
            right_brow_angle=float(arr[3]),
            inter_brow_distance=float(arr[4]),
            mouth_openness=float(arr[5]),
            left_eye_openness=float(arr[6]),
            right_eye_openness=float(arr[7]),
            timestamp=timestamp,
        )

    @classmethod
    def neutral(cls, timestamp: float = 0.0) -> "FeatureVector":
        """Resting face: brows level at the eye reference gap, mouth closed."""
        return cls(
            left_brow_y=0.0,
            right_brow_y=0.0,
            left_brow_angle=0.0,
            right_brow_angle=0.0,
            inter_brow_distance=0.0,
            mouth_openness=0.0,
            left_eye_openness=1.0,
            right_eye_openness=1.0,
            timestamp=timestamp,
        )

    def brow_channels(self) -> Dict[str, float]:
        """The smoothed channels as a name -> value mapping."""
        return {name: getattr(self, name) for name in BROW_CHANNELS}

    def is_finite(self) -> bool:
        """True if no measurement is NaN or infinite."""
        return bool(np.all(np.isfinite(self.to_array())))
