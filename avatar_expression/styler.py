"""
Exaggerated visual styling per expression.

The styler is a second, independent amplification on top of the smoothed
brow geometry: it pushes angles and offsets further for legibility on a
small cartoon face, and picks brow thickness/color/curvature, background
color and face pose targets for the renderer.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple

from .classifier import Expression


@dataclass
class EyebrowState:
    """Brow geometry in the avatar's units (negative Y = raised)."""

    left_brow_y: float = 0.0
    right_brow_y: float = 0.0
    left_brow_angle: float = 0.0
    right_brow_angle: float = 0.0


@dataclass(frozen=True)
class ExpressionStyle:
    """Fixed style table entry for one expression."""

    eyebrow_thickness: float
    eyebrow_color: int
    eyebrow_curvature: float
    background_color: Tuple[int, int, int]
    eye_size: float
    mouth_y: float
    mouth_height: float
    mouth_curve: float
    angle_gain: float = 1.0
    y_shift: float = 0.0


EXPRESSION_STYLES: Dict[Expression, ExpressionStyle] = {
    Expression.NEUTRAL: ExpressionStyle(
        eyebrow_thickness=16, eyebrow_color=0, eyebrow_curvature=0,
        background_color=(255, 120, 120),
        eye_size=1.0, mouth_y=0, mouth_height=10, mouth_curve=5,
    ),
    Expression.ANGRY: ExpressionStyle(
        eyebrow_thickness=20, eyebrow_color=0, eyebrow_curvature=0,
        background_color=(255, 100, 100),
        eye_size=1.1, mouth_y=15, mouth_height=10, mouth_curve=0,
        angle_gain=2.0,
    ),
    Expression.SAD: ExpressionStyle(
        eyebrow_thickness=14, eyebrow_color=40, eyebrow_curvature=5,
        background_color=(100, 120, 180),
        eye_size=1.2, mouth_y=20, mouth_height=20, mouth_curve=-20,
        angle_gain=1.5, y_shift=-8,
    ),
    Expression.SURPRISED: ExpressionStyle(
        eyebrow_thickness=12, eyebrow_color=20, eyebrow_curvature=-3,
        background_color=(255, 150, 200),
        eye_size=1.5, mouth_y=20, mouth_height=50, mouth_curve=0,
        y_shift=-20,
    ),
}

# Angry brows are never drawn shallower than this
ANGRY_MIN_ANGLE = 25.0


@dataclass
class StyleParams:
    """Everything the renderer needs to draw the brows for one frame."""

    eyebrow_thickness: float
    eyebrow_color: int
    eyebrow_curvature: float
    left_brow_y: float
    right_brow_y: float
    left_brow_angle: float
    right_brow_angle: float
    background_color: Tuple[int, int, int] = (255, 120, 120)
    eye_size: float = 1.0
    mouth_y: float = 0.0
    mouth_height: float = 10.0
    mouth_curve: float = 5.0

    @property
    def eyebrows(self) -> EyebrowState:
        """Amplified brow geometry as an EyebrowState."""
        return EyebrowState(
            left_brow_y=self.left_brow_y,
            right_brow_y=self.right_brow_y,
            left_brow_angle=self.left_brow_angle,
            right_brow_angle=self.right_brow_angle,
        )


@dataclass
class CharacterState:
    """Shared render struct; the renderer reads whatever was written last."""

    eyebrows: EyebrowState = field(default_factory=EyebrowState)
    expression: Expression = Expression.NEUTRAL
    confidence: float = 0.0
    style: Optional[StyleParams] = None
    inter_brow_distance: float = 0.0
    mouth_openness: float = 0.0
    left_eye_openness: float = 1.0
    right_eye_openness: float = 1.0
    timestamp_ms: float = 0.0

    def copy(self) -> "CharacterState":
        """Shallow snapshot with its own EyebrowState."""
        return replace(self, eyebrows=replace(self.eyebrows))


def _floor_angry(angle: float) -> float:
    if abs(angle) >= ANGRY_MIN_ANGLE:
        return angle
    return ANGRY_MIN_ANGLE if angle > 0 else -ANGRY_MIN_ANGLE


class ExpressionStyler:
    """
    Maps a committed expression to deterministic style parameters.

    - ANGRY: angles x2, floored to a magnitude of 25 (sign kept, 0 -> -25)
    - SAD: angles x1.5, brows raised by 8
    - SURPRISED: brows raised by 20
    - NEUTRAL / unknown: geometry passed through
    """

    def __init__(self, styles: Optional[Dict[Expression, ExpressionStyle]] = None):
        self.styles = dict(styles or EXPRESSION_STYLES)

    def style(self, expression, eyebrows: EyebrowState) -> StyleParams:
        """
        Build StyleParams for expression from the smoothed brow geometry.

        Args:
            expression: An Expression (or its string value); anything
                        unrecognized is styled as NEUTRAL
            eyebrows: Smoothed brow geometry; not modified

        Returns:
            StyleParams with amplified geometry
        """
        try:
            expression = Expression(expression)
        except ValueError:
            expression = Expression.NEUTRAL
        entry = self.styles.get(expression, self.styles[Expression.NEUTRAL])

        left_angle = eyebrows.left_brow_angle * entry.angle_gain
        right_angle = eyebrows.right_brow_angle * entry.angle_gain
        if expression is Expression.ANGRY:
            left_angle = _floor_angry(left_angle)
            right_angle = _floor_angry(right_angle)

        return StyleParams(
            eyebrow_thickness=entry.eyebrow_thickness,
            eyebrow_color=entry.eyebrow_color,
            eyebrow_curvature=entry.eyebrow_curvature,
            left_brow_y=eyebrows.left_brow_y + entry.y_shift,
            right_brow_y=eyebrows.right_brow_y + entry.y_shift,
            left_brow_angle=left_angle,
            right_brow_angle=right_angle,
            background_color=entry.background_color,
            eye_size=entry.eye_size,
            mouth_y=entry.mouth_y,
            mouth_height=entry.mouth_height,
            mouth_curve=entry.mouth_curve,
        )
