"""
Per-frame expression pipeline.

This module wires the components together and owns all state that lives
across ticks:

    LandmarkFrame -> FeatureExtractor -> TemporalSmoother (x4 channels)
                  -> ExpressionClassifier -> ExpressionStyler -> CharacterState

Each detection callback is one tick. A tick without a usable face is
skipped: smoothing history, lock and character state stay as they were.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Optional, Sequence

import numpy as np

from .classifier import ClassifierConfig, Expression, ExpressionClassifier
from .errors import InvalidMeasurement, NoFaceDetected
from .extractor import ExtractorConfig, FeatureExtractor
from .features import BROW_CHANNELS, FeatureVector
from .landmarks import LandmarkFrame
from .smoother import SmootherConfig, TemporalSmoother
from .styler import CharacterState, EyebrowState, ExpressionStyler, StyleParams

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    """Default timestamp source in milliseconds."""
    return time.monotonic() * 1000.0


@dataclass
class PipelineConfig:
    """Configuration for the expression pipeline.

    Attributes:
        extractor: Remap ranges for feature extraction
        smoother: Dead zone / EMA / hysteresis constants
        classifier: Rule thresholds and lock timing
        log_performance: Whether to record per-tick latency statistics
    """
    extractor: ExtractorConfig = field(default_factory=ExtractorConfig)
    smoother: SmootherConfig = field(default_factory=SmootherConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    log_performance: bool = True


@dataclass
class PipelineResult:
    """Output of one processed tick."""
    features: FeatureVector
    smoothed: EyebrowState
    expression: Expression
    confidence: float
    style: StyleParams
    timestamp_ms: float


class ExpressionPipeline:
    """Frame-driven pipeline from landmarks to a styled expression.

    Single-threaded and non-blocking. The renderer reads `character` and
    `expression` whenever it likes; they always reflect the last processed
    tick.

    Usage:
        pipeline = ExpressionPipeline()
        tracker.on_results(pipeline.on_faces)
        ...
        draw(pipeline.character)
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Args:
            config: Pipeline configuration. Defaults to PipelineConfig().
            clock: Monotonic millisecond timestamp source used when a tick
                   carries no timestamp. Defaults to time.monotonic() in ms.
        """
        self.config = config or PipelineConfig()
        self._clock = clock or monotonic_ms

        self.extractor = FeatureExtractor(self.config.extractor)
        self.smoother = TemporalSmoother(self.config.smoother)
        self.classifier = ExpressionClassifier(self.config.classifier)
        self.styler = ExpressionStyler()

        self._character = CharacterState()
        self._character.style = self.styler.style(
            Expression.NEUTRAL, self._character.eyebrows
        )

        # Performance tracking
        self._latencies: Deque[float] = deque(maxlen=1000)  # Last 1000 ticks
        self._frame_count: int = 0
        self._face_count: int = 0
        self._skipped_no_face: int = 0
        self._skipped_invalid: int = 0

    def process(
        self,
        frame: Optional[LandmarkFrame],
        now_ms: Optional[float] = None,
    ) -> Optional[PipelineResult]:
        """
        Run one tick of the pipeline.

        Args:
            frame: This cycle's landmarks, or None when no face was found
            now_ms: Timestamp for lock timing. Falls back to the frame's
                    own timestamp, then to the clock.

        Returns:
            PipelineResult, or None if the tick was skipped
        """
        start_time = time.perf_counter()
        self._frame_count += 1

        if now_ms is None:
            if frame is not None and frame.timestamp_ms is not None:
                now_ms = frame.timestamp_ms
            else:
                now_ms = self._clock()

        try:
            features = self.extractor.extract(frame)
            channels = features.brow_channels()
            # Validate every channel before any of them touches smoother state
            bad = [name for name, value in channels.items() if not np.isfinite(value)]
            if bad:
                raise InvalidMeasurement(f"Non-finite channels: {bad}")
        except NoFaceDetected as e:
            self._skipped_no_face += 1
            logger.debug(f"Tick skipped at {now_ms:.0f}ms: {e}")
            return None
        except InvalidMeasurement as e:
            self._skipped_invalid += 1
            logger.debug(f"Tick skipped at {now_ms:.0f}ms: {e}")
            return None

        self._face_count += 1

        smoothed = {
            name: self.smoother.smooth(name, channels[name])
            for name in BROW_CHANNELS
        }
        eyebrows = EyebrowState(**smoothed)

        previous = self._character.expression
        expression, confidence = self.classifier.classify(
            eyebrows.left_brow_y,
            eyebrows.right_brow_y,
            eyebrows.left_brow_angle,
            eyebrows.right_brow_angle,
            now_ms,
        )
        if expression != previous:
            logger.info(
                f"Expression changed: {previous.value} -> {expression.value} "
                f"(confidence={confidence:.2f})"
            )

        style = self.styler.style(expression, eyebrows)
        self._update_character(features, eyebrows, expression, confidence, style, now_ms)

        if self.config.log_performance:
            self._latencies.append((time.perf_counter() - start_time) * 1000)

        return PipelineResult(
            features=features,
            smoothed=eyebrows,
            expression=expression,
            confidence=confidence,
            style=style,
            timestamp_ms=now_ms,
        )

    def on_faces(
        self,
        faces: Sequence[LandmarkFrame],
        now_ms: Optional[float] = None,
    ) -> Optional[PipelineResult]:
        """
        Detection callback: zero or one face per cycle.

        Only the first face is used. An empty result is a valid no-op tick.
        """
        if not faces:
            return self.process(None, now_ms)
        if len(faces) > 1:
            logger.debug(f"{len(faces)} faces detected, using the first")
        return self.process(faces[0], now_ms)

    def _update_character(
        self,
        features: FeatureVector,
        eyebrows: EyebrowState,
        expression: Expression,
        confidence: float,
        style: StyleParams,
        now_ms: float,
    ) -> None:
        c = self._character
        c.eyebrows = eyebrows
        c.expression = expression
        c.confidence = confidence
        c.style = style
        c.inter_brow_distance = features.inter_brow_distance
        c.mouth_openness = features.mouth_openness
        c.left_eye_openness = features.left_eye_openness
        c.right_eye_openness = features.right_eye_openness
        c.timestamp_ms = now_ms

    @property
    def character(self) -> CharacterState:
        """Snapshot of the current character state."""
        return self._character.copy()

    @property
    def expression(self) -> Expression:
        """Most recently reported expression."""
        return self._character.expression

    def reset(self) -> None:
        """Clear smoothing and lock state; the character returns to neutral."""
        self.smoother.reset()
        self.classifier.reset()
        self._character = CharacterState()
        self._character.style = self.styler.style(
            Expression.NEUTRAL, self._character.eyebrows
        )
        logger.debug("Pipeline state reset")

    def get_performance_stats(self) -> Dict[str, float]:
        """
        Get per-tick statistics.

        Returns:
            Dictionary with tick counts and latency statistics
        """
        stats = {
            'frame_count': self._frame_count,
            'face_count': self._face_count,
            'skipped_no_face': self._skipped_no_face,
            'skipped_invalid': self._skipped_invalid,
        }
        if not self._latencies:
            stats.update({'mean_ms': 0.0, 'p95_ms': 0.0, 'max_ms': 0.0})
            return stats

        latencies = np.array(self._latencies)
        stats.update({
            'mean_ms': float(np.mean(latencies)),
            'p95_ms': float(np.percentile(latencies, 95)),
            'max_ms': float(np.max(latencies)),
        })
        return stats
