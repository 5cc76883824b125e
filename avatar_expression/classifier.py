"""
Rule-based expression classifier with temporal locking.

Maps smoothed eyebrow measurements to one of four discrete expressions.
Rules are evaluated in priority order; each yields a confidence in [0, 1].
A confident new label is locked for a minimum duration so the avatar does
not flicker between expressions.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class Expression(str, Enum):
    """Discrete expression labels produced by the classifier."""

    NEUTRAL = "NEUTRAL"
    ANGRY = "ANGRY"
    SAD = "SAD"
    SURPRISED = "SURPRISED"


def mapped_confidence(
    value: float,
    in_start: float,
    in_end: float,
    out_start: float = 0.8,
    out_end: float = 1.0,
) -> float:
    """Linearly map value onto [out_start, out_end], clamped to [0, 1]."""
    t = (value - in_start) / (in_end - in_start)
    confidence = out_start + t * (out_end - out_start)
    return float(np.clip(confidence, 0.0, 1.0))


@dataclass
class ClassifierConfig:
    """Thresholds for the brow rules and the lock.

    Attributes:
        surprised_y: avg brow Y below this -> SURPRISED
        surprised_y_full: avg brow Y at which SURPRISED confidence hits 1.0
        angry_angle: avg brow angle below this -> ANGRY
        angry_angle_full: |avg angle| at which ANGRY confidence hits 1.0
        sad_angle: avg brow angle above this -> SAD
        sad_angle_full: avg angle at which SAD confidence hits 1.0
        neutral_y / neutral_angle: |avg| bounds for a confident NEUTRAL
        neutral_confidence: confidence of a matched NEUTRAL
        min_lock_duration_ms: hold time after a new label locks
        confidence_threshold: confidence needed to lock a new label
    """

    surprised_y: float = -15.0
    surprised_y_full: float = -40.0
    angry_angle: float = -8.0
    angry_angle_full: float = 20.0
    sad_angle: float = 6.0
    sad_angle_full: float = 15.0
    neutral_y: float = 10.0
    neutral_angle: float = 5.0
    neutral_confidence: float = 0.9

    min_lock_duration_ms: float = 200.0
    confidence_threshold: float = 0.8

    def __post_init__(self):
        if self.min_lock_duration_ms < 0:
            raise ValueError(
                f"min_lock_duration_ms must be >= 0, got {self.min_lock_duration_ms}"
            )
        if not (0 <= self.confidence_threshold <= 1):
            raise ValueError(
                f"confidence_threshold must be in range [0, 1], got {self.confidence_threshold}"
            )


@dataclass
class LockState:
    """Currently locked expression and when the lock started."""

    locked_expression: Expression = Expression.NEUTRAL
    locked_confidence: float = 0.0
    lock_start_ms: Optional[float] = None


class ExpressionClassifier:
    """眉毛表情分类器 (eyebrow expression classifier)

    Rules (first match wins), on avg_y = mean brow Y and
    avg_angle = mean brow angle:

    1. avg_y < -15                      -> SURPRISED
    2. avg_angle < -8                   -> ANGRY
    3. avg_angle > 6                    -> SAD
    4. |avg_y| < 10 and |avg_angle| < 5 -> NEUTRAL (0.9)
    5. otherwise                        -> NEUTRAL (0.0)

    While a lock is younger than min_lock_duration_ms, classify() returns
    the locked label unchanged. Outside the hold window it returns what it
    detects, and locks that label if it is new and confident enough.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()
        self.lock_state = LockState()

    def detect(
        self,
        left_brow_y: float,
        right_brow_y: float,
        left_brow_angle: float,
        right_brow_angle: float,
    ) -> Tuple[Expression, float]:
        """
        Apply the rules without touching the lock.

        Returns:
            (expression, confidence) with confidence in [0, 1]
        """
        cfg = self.config
        avg_y = (left_brow_y + right_brow_y) / 2
        avg_angle = (left_brow_angle + right_brow_angle) / 2

        if avg_y < cfg.surprised_y:
            return Expression.SURPRISED, mapped_confidence(
                avg_y, cfg.surprised_y, cfg.surprised_y_full
            )

        if avg_angle < cfg.angry_angle:
            return Expression.ANGRY, mapped_confidence(
                abs(avg_angle), abs(cfg.angry_angle), cfg.angry_angle_full
            )

        if avg_angle > cfg.sad_angle:
            return Expression.SAD, mapped_confidence(
                avg_angle, cfg.sad_angle, cfg.sad_angle_full
            )

        if abs(avg_y) < cfg.neutral_y and abs(avg_angle) < cfg.neutral_angle:
            return Expression.NEUTRAL, float(cfg.neutral_confidence)

        return Expression.NEUTRAL, 0.0

    def classify(
        self,
        left_brow_y: float,
        right_brow_y: float,
        left_brow_angle: float,
        right_brow_angle: float,
        now_ms: float,
    ) -> Tuple[Expression, float]:
        """
        Classify smoothed brow metrics, honoring the expression lock.

        Args:
            left_brow_y, right_brow_y: Smoothed brow offsets
            left_brow_angle, right_brow_angle: Smoothed brow angles (degrees)
            now_ms: Monotonic timestamp in milliseconds

        Returns:
            (expression, confidence). Inside the hold window this is the
            locked label and the confidence it was locked with.
        """
        if self.is_locked(now_ms):
            return self.lock_state.locked_expression, self.lock_state.locked_confidence

        expression, confidence = self.detect(
            left_brow_y, right_brow_y, left_brow_angle, right_brow_angle
        )

        lock = self.lock_state
        if (
            confidence >= self.config.confidence_threshold
            and expression != lock.locked_expression
        ):
            logger.debug(
                f"Lock {lock.locked_expression.value} -> {expression.value} "
                f"(confidence={confidence:.2f}) at {now_ms:.0f}ms"
            )
            lock.locked_expression = expression
            lock.locked_confidence = confidence
            lock.lock_start_ms = now_ms

        return expression, confidence

    def is_locked(self, now_ms: float) -> bool:
        """True while the current lock's hold window is still open."""
        start = self.lock_state.lock_start_ms
        if start is None:
            return False
        return now_ms - start < self.config.min_lock_duration_ms

    def reset(self) -> None:
        """Drop the lock and return to NEUTRAL."""
        self.lock_state = LockState()
