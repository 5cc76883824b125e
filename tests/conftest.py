"""
Synthetic Face Mesh landmark frames shared by the tests.

Frames are built on a 478-point canvas. Brows are placed so that the mean
brow height sits exactly `gap` pixels above the eyelid top, and the inner
corner is raised by `angle` degrees relative to the outer corner.
"""

import math

import numpy as np

from avatar_expression.landmarks import (
    LEFT_EYE,
    LEFT_EYEBROW,
    MOUTH,
    RIGHT_EYE,
    RIGHT_EYEBROW,
    LandmarkFrame,
)

NUM_LANDMARKS = 478
BROW_HALF_WIDTH = 20.0
EYE_Y = 200.0


def build_landmarks(
    left_gap=30.0,
    right_gap=30.0,
    left_angle=0.0,
    right_angle=0.0,
    mouth_distance=5.0,
    eye_distance=15.0,
    timestamp_ms=None,
):
    points = np.zeros((NUM_LANDMARKS, 2), dtype=np.float64)

    def place_brow(brow, eye, eye_x, gap, angle, mirrored):
        mid_y = EYE_Y - gap
        rise = math.tan(math.radians(angle)) * 2 * BROW_HALF_WIDTH
        # Left brow: outer corner on the left. Right brow: mirrored.
        outer_x = eye_x + BROW_HALF_WIDTH if mirrored else eye_x - BROW_HALF_WIDTH
        inner_x = eye_x - BROW_HALF_WIDTH if mirrored else eye_x + BROW_HALF_WIDTH
        points[brow["outer"]] = (outer_x, mid_y + rise / 2)
        points[brow["middle"]] = (eye_x, mid_y)
        points[brow["inner"]] = (inner_x, mid_y - rise / 2)
        points[eye["top"]] = (eye_x, EYE_Y)
        points[eye["bottom"]] = (eye_x, EYE_Y + eye_distance)

    place_brow(LEFT_EYEBROW, LEFT_EYE, 150.0, left_gap, left_angle, mirrored=False)
    place_brow(RIGHT_EYEBROW, RIGHT_EYE, 250.0, right_gap, right_angle, mirrored=True)

    points[MOUTH["top"]] = (200.0, 300.0)
    points[MOUTH["bottom"]] = (200.0, 300.0 + mouth_distance)

    return LandmarkFrame(points=points, timestamp_ms=timestamp_ms)
