"""Evaluation engine for SensorGuard.

Modules:
    - preprocessor: Impute → clip → standardize, per feature
    - model: Scoring model boundary (declared inputs, named outputs)
    - onnx_model: ONNX Runtime backend (imported on demand)
    - adapter: Reading → model inputs → interpreted probability
    - classifier: Probability → severity via two inclusive thresholds
    - explainability: Weighted rule matching → ranked reasons
"""

from sensorguard.engine.adapter import (
    ClassificationAdapter,
    OutputInterpretation,
    clamp01,
    interpret,
    sigmoid,
)
from sensorguard.engine.classifier import (
    RiskClassifier,
    Severity,
    classify,
)
from sensorguard.engine.explainability import (
    Explainer,
    Rule,
    parse_rules,
)
from sensorguard.engine.model import InputSpec, ScoringModel
from sensorguard.engine.preprocessor import (
    ClipBound,
    FeaturePreprocessor,
    PreprocessConfig,
    ScalingMethod,
)

__all__ = [
    "ClassificationAdapter",
    "OutputInterpretation",
    "clamp01",
    "interpret",
    "sigmoid",
    "RiskClassifier",
    "Severity",
    "classify",
    "Explainer",
    "Rule",
    "parse_rules",
    "InputSpec",
    "ScoringModel",
    "ClipBound",
    "FeaturePreprocessor",
    "PreprocessConfig",
    "ScalingMethod",
]
