"""
Exceptions raised inside the expression pipeline.

Both are local and non-fatal: ExpressionPipeline catches them and skips
the tick, leaving smoothing and lock state untouched.
"""


class PipelineError(Exception):
    """Base class for per-frame pipeline errors."""


class NoFaceDetected(PipelineError):
    """The landmark frame is absent, empty, or missing required points."""


class InvalidMeasurement(PipelineError, ValueError):
    """A measurement is NaN/inf and must not reach the smoothing history."""
