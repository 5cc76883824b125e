"""
Avatar Expression Package

Turns per-frame facial landmarks into a stable expression signal and
styled eyebrow geometry for a cartoon avatar.
"""

__version__ = "0.1.0"

from avatar_expression.errors import InvalidMeasurement, NoFaceDetected, PipelineError
from avatar_expression.landmarks import LandmarkFrame
from avatar_expression.features import FeatureVector
from avatar_expression.extractor import ExtractorConfig, FeatureExtractor
from avatar_expression.smoother import SmootherConfig, TemporalSmoother
from avatar_expression.classifier import ClassifierConfig, Expression, ExpressionClassifier
from avatar_expression.styler import CharacterState, EyebrowState, ExpressionStyler, StyleParams
from avatar_expression.pipeline import ExpressionPipeline, PipelineConfig, PipelineResult
from avatar_expression.config import load_config, save_config

__all__ = [
    "PipelineError",
    "NoFaceDetected",
    "InvalidMeasurement",
    "LandmarkFrame",
    "FeatureVector",
    "ExtractorConfig",
    "FeatureExtractor",
    "SmootherConfig",
    "TemporalSmoother",
    "ClassifierConfig",
    "Expression",
    "ExpressionClassifier",
    "CharacterState",
    "EyebrowState",
    "ExpressionStyler",
    "StyleParams",
    "ExpressionPipeline",
    "PipelineConfig",
    "PipelineResult",
    "load_config",
    "save_config",
]
