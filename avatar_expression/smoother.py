"""Temporal smoothing module for eyebrow measurement channels.

Landmark trackers jitter by a pixel or two every frame. This module
suppresses that jitter while staying responsive to real motion by running
each scalar channel through four stages:

    dead zone -> buffered average -> velocity-adaptive EMA -> hysteresis gate

The hysteresis gate has the last word: an EMA result is only committed once
it has been confirmed on consecutive frames.
"""

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional

import numpy as np

from .errors import InvalidMeasurement

logger = logging.getLogger(__name__)


@dataclass
class SmootherConfig:
    """Tuning constants for TemporalSmoother.

    Attributes:
        dead_zone: Raw deltas below this are ignored entirely.
        buffer_size: Number of raw samples averaged.
        slow_velocity: Below this, alpha = alpha_still.
        medium_velocity: Below this, alpha = alpha_slow.
        fast_velocity: Above this, alpha = alpha_fast; between medium and
                       fast, alpha is interpolated linearly.
        alpha_still / alpha_slow / alpha_fast: Weight kept on the old
                       smoothed value (higher = smoother).
        hysteresis_threshold: EMA moves at or below this are not committed.
        target_tolerance: Max distance between consecutive EMA targets for
                       them to count as the same target.
        sustain_frames: Consecutive consistent frames needed to commit.
    """

    dead_zone: float = 1.5
    buffer_size: int = 3

    slow_velocity: float = 1.0
    medium_velocity: float = 3.0
    fast_velocity: float = 15.0
    alpha_still: float = 0.08
    alpha_slow: float = 0.15
    alpha_fast: float = 0.5

    hysteresis_threshold: float = 2.0
    target_tolerance: float = 0.5
    sustain_frames: int = 2

    def __post_init__(self):
        if self.dead_zone < 0:
            raise ValueError(f"dead_zone must be >= 0, got {self.dead_zone}")
        if self.buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1, got {self.buffer_size}")
        if not (self.slow_velocity <= self.medium_velocity < self.fast_velocity):
            raise ValueError(
                "velocity breakpoints must satisfy slow <= medium < fast, got "
                f"{self.slow_velocity}, {self.medium_velocity}, {self.fast_velocity}"
            )
        for name in ("alpha_still", "alpha_slow", "alpha_fast"):
            value = getattr(self, name)
            if not (0 <= value < 1):
                raise ValueError(f"{name} must be in range [0, 1), got {value}")
        if self.sustain_frames < 1:
            raise ValueError(
                f"sustain_frames must be >= 1, got {self.sustain_frames}"
            )


@dataclass
class HysteresisState:
    """Pending commit target and how many consecutive frames confirmed it."""

    pending_target: Optional[float] = None
    sustain_count: int = 0


@dataclass
class ChannelState:
    """Per-channel smoothing history."""

    previous_raw: float
    smoothed: float
    buffer: Deque[float]
    hysteresis: HysteresisState = field(default_factory=HysteresisState)

    @classmethod
    def seeded(cls, raw: float, buffer_size: int) -> "ChannelState":
        """Start a channel at its first sample, avoiding a startup transient."""
        return cls(
            previous_raw=raw,
            smoothed=raw,
            buffer=deque([raw], maxlen=buffer_size),
        )


class TemporalSmoother:
    """多级时序平滑器 (multi-stage temporal smoother)

    Keeps one ChannelState per named channel and exposes a single
    per-sample operation, smooth(channel, raw). The smoother owns the
    previous-raw bookkeeping: callers pass only the new raw value.

    Usage:
        smoother = TemporalSmoother()
        for name, raw in features.brow_channels().items():
            value = smoother.smooth(name, raw)
    """

    def __init__(self, config: Optional[SmootherConfig] = None):
        self.config = config or SmootherConfig()
        self._channels: Dict[str, ChannelState] = {}

    def smooth(self, channel: str, raw: float) -> float:
        """
        Feed one raw sample into a channel and return its smoothed value.

        Args:
            channel: Channel name (e.g. "left_brow_y")
            raw: This frame's raw measurement

        Returns:
            The channel's smoothed value after this sample.

        Raises:
            InvalidMeasurement: If raw is NaN or infinite. Channel state is
                                left untouched.
        """
        raw = float(raw)
        if not math.isfinite(raw):
            raise InvalidMeasurement(f"{channel}: raw value {raw}")

        state = self._channels.get(channel)
        if state is None:
            self._channels[channel] = ChannelState.seeded(raw, self.config.buffer_size)
            logger.debug(f"Channel {channel} seeded at {raw:.2f}")
            return raw

        cfg = self.config

        # 1. Dead zone
        delta_raw = abs(raw - state.previous_raw)
        state.previous_raw = raw
        if delta_raw < cfg.dead_zone:
            return state.smoothed

        # 2. Buffered average
        state.buffer.append(raw)
        buffered = float(np.mean(state.buffer))

        # 3. Velocity-adaptive EMA
        alpha = self.alpha_for_velocity(abs(buffered - state.smoothed))
        ema = state.smoothed * alpha + buffered * (1 - alpha)

        # 4. Hysteresis gate
        if self._gate(state.hysteresis, ema, state.smoothed):
            state.smoothed = ema

        return state.smoothed

    def alpha_for_velocity(self, velocity: float) -> float:
        """
        Pick the EMA weight for the old smoothed value.

        Slow drift gets heavy smoothing; fast motion gets a light touch so
        real expressions come through quickly.
        """
        cfg = self.config
        if velocity < cfg.slow_velocity:
            return cfg.alpha_still
        if velocity < cfg.medium_velocity:
            return cfg.alpha_slow
        if velocity > cfg.fast_velocity:
            return cfg.alpha_fast

        t = (velocity - cfg.medium_velocity) / (cfg.fast_velocity - cfg.medium_velocity)
        return cfg.alpha_slow + t * (cfg.alpha_fast - cfg.alpha_slow)

    def _gate(self, hysteresis: HysteresisState, ema: float, smoothed: float) -> bool:
        """Update hysteresis state; True if ema should be committed."""
        cfg = self.config

        if abs(ema - smoothed) <= cfg.hysteresis_threshold:
            hysteresis.sustain_count = 0
            return False

        if (
            hysteresis.pending_target is not None
            and hysteresis.sustain_count > 0
            and abs(ema - hysteresis.pending_target) <= cfg.target_tolerance
        ):
            hysteresis.sustain_count += 1
        else:
            hysteresis.pending_target = ema
            hysteresis.sustain_count = 1

        return hysteresis.sustain_count >= cfg.sustain_frames

    def reset(self, channel: Optional[str] = None) -> None:
        """Forget one channel's history, or all of them.

        Call this when the face is lost for good or a different person
        steps in, so the next sample re-seeds instead of easing in from
        stale values.
        """
        if channel is None:
            self._channels.clear()
        else:
            self._channels.pop(channel, None)

    def is_initialized(self, channel: str) -> bool:
        """Check whether a channel has seen its first sample."""
        return channel in self._channels

    def state(self, channel: str) -> Optional[ChannelState]:
        """The live ChannelState for a channel, or None if not seeded."""
        return self._channels.get(channel)

    def current_values(self) -> Dict[str, float]:
        """Smoothed value per seeded channel."""
        return {name: state.smoothed for name, state in self._channels.items()}
