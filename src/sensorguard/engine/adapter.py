"""Classification adapter: Reading → preprocessed inputs → model → probability.

Steps per reading:
    1. Build the named raw-feature map from the Reading
    2. For every input the model declares, preprocess the raw value
       (0.0 when the reading lacks it) and package it per the declared
       contract (plain scalar or fixed-shape tensor)
    3. Invoke the model once
    4. Extract one scalar from the declared output (number, or first
       element of a non-empty array)
    5. Interpret it as a probability (AUTO / NEVER_SIGMOID / ALWAYS_SIGMOID)
    6. Clamp into [0, 1]; NaN / ±inf → 0.0

Failure policy: any error while scoring is logged and reported as 0.0.
This is fail-open — a broken model makes every sensor look NORMAL.
Integrators who need fail-closed behaviour must watch the error log.
"""

import logging
import math
from enum import Enum
from typing import Any

import numpy as np

from sensorguard.engine.model import InputSpec, ScoringModel
from sensorguard.engine.preprocessor import FeaturePreprocessor
from sensorguard.stream.reading import Reading

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_NAME = "maliciousProbabilityRaw"
DEFAULT_TENSOR_DTYPE = "float16"

# Self-test: two outputs closer than this are considered identical
SELF_TEST_TOLERANCE = 1e-12


class OutputInterpretation(Enum):
    """How a raw model output becomes a probability."""

    AUTO = "auto"  # [0, 1] passes through, anything else gets a sigmoid
    NEVER_SIGMOID = "never_sigmoid"
    ALWAYS_SIGMOID = "always_sigmoid"


def sigmoid(x: float) -> float:
    """Numerically stable logistic function. NaN / ±inf → 0.0."""
    if not math.isfinite(x):
        return 0.0
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def clamp01(x: float) -> float:
    """Clamp into [0, 1]. NaN / ±inf → 0.0."""
    if not math.isfinite(x):
        return 0.0
    return min(max(x, 0.0), 1.0)


def interpret(raw: float, mode: OutputInterpretation = OutputInterpretation.AUTO) -> float:
    """Map a raw model output to a probability (before clamping)."""
    if mode is OutputInterpretation.NEVER_SIGMOID:
        return raw
    if mode is OutputInterpretation.ALWAYS_SIGMOID:
        return sigmoid(raw)
    if 0.0 <= raw <= 1.0:
        return raw
    return sigmoid(raw)


class ClassificationAdapter:
    """Wraps a scoring model with preprocessing and output interpretation.

    Args:
        model: Scoring model backend (declares its own inputs)
        preprocessor: Feature preprocessor (default: pass-through)
        output_name: Declared output feature holding the raw score
        interpretation: Raw output policy (default: AUTO)

    Example:
        >>> adapter = ClassificationAdapter(model, FeaturePreprocessor.from_file(path))
        >>> adapter.score(reading)
        0.1432
    """

    def __init__(
        self,
        model: ScoringModel,
        preprocessor: FeaturePreprocessor | None = None,
        output_name: str = DEFAULT_OUTPUT_NAME,
        interpretation: OutputInterpretation = OutputInterpretation.AUTO,
    ) -> None:
        self.model = model
        self.preprocessor = preprocessor or FeaturePreprocessor()
        self.output_name = output_name
        self.interpretation = interpretation

        self.input_specs: dict[str, InputSpec] = dict(model.input_specs())
        self.required_inputs: list[str] = sorted(self.input_specs)

        logger.info("Required model inputs: %s", self.required_inputs)
        for name in self.required_inputs:
            spec = self.input_specs[name]
            if spec.kind == "tensor":
                logger.debug("  - %s tensor shape=%s dtype=%s", name, spec.shape, spec.dtype)
            else:
                logger.debug("  - %s %s", name, spec.kind)

        outputs = model.output_names()
        if outputs and output_name not in outputs:
            logger.warning(
                "Model does not declare output '%s' (outputs=%s) — scores will be 0.0",
                output_name, outputs,
            )

    @staticmethod
    def _package(spec: InputSpec | None, value: float) -> Any:
        """Shape one preprocessed value per the declared input contract."""
        if spec is None or spec.kind == "double":
            return float(value)
        if spec.kind == "int64":
            return int(value)
        shape = spec.shape or (1,)
        arr = np.zeros(shape, dtype=spec.dtype or DEFAULT_TENSOR_DTYPE)
        if arr.size > 0:
            arr.flat[0] = value
        return arr

    def build_inputs(self, raw_features: dict[str, float]) -> dict[str, Any]:
        """Preprocess and package every declared model input.

        Args:
            raw_features: Canonical feature name → raw value

        Returns:
            Input set ready for ``model.run``
        """
        inputs = {}
        for name in self.required_inputs:
            value = self.preprocessor.transform(raw_features.get(name, 0.0), name)
            inputs[name] = self._package(self.input_specs.get(name), value)
        return inputs

    def extract_output(self, outputs: dict[str, Any]) -> float:
        """Read the raw scalar from the declared output feature."""
        value = outputs.get(self.output_name)
        if value is None or isinstance(value, bool):
            return 0.0
        if isinstance(value, (int, float, np.number)):
            return float(value)
        arr = np.asarray(value)
        if arr.size > 0 and np.issubdtype(arr.dtype, np.number):
            return float(arr.flat[0])
        return 0.0

    def predict_raw(self, reading: Reading) -> float:
        """Run the model on one reading and return the raw output.

        Raises:
            Exception: Whatever the model backend raises
        """
        inputs = self.build_inputs(reading.features())
        outputs = self.model.run(inputs)
        return self.extract_output(outputs)

    def score(self, reading: Reading) -> float:
        """Probability in [0, 1] that the reading is malicious.

        Never raises: a failed model call is logged and scored 0.0.
        """
        try:
            raw = self.predict_raw(reading)
            p = clamp01(interpret(raw, self.interpretation))
        except Exception:
            logger.exception("Prediction failed for sensor %s", reading.sensor_id)
            return 0.0

        logger.debug("Sensor %s raw=%.12f p=%.12f", reading.sensor_id, raw, p)
        return p

    def _run_random(self, seed: int) -> float:
        rng = np.random.default_rng(seed)
        raw = {name: float(rng.uniform(-1.0, 1.0)) for name in self.required_inputs}
        return self.extract_output(self.model.run(self.build_inputs(raw)))

    def self_test(self) -> bool:
        """Detect a constant or degenerate model export.

        Feeds two distinct pseudo-random feature vectors through the full
        pipeline. Never raises.

        Returns:
            True if the outputs differ; False if they are identical, both
            zero, or the model failed.
        """
        try:
            out1 = self._run_random(seed=1)
            out2 = self._run_random(seed=2)
        except Exception as e:
            logger.warning("Model self-test failed: %s", e)
            return False

        logger.debug("Self-test raw outputs: %.12f, %.12f", out1, out2)
        if out1 == 0.0 and out2 == 0.0:
            logger.warning(
                "Model self-test: output is 0 for different inputs — "
                "model may be constant, a bad export, or the wrong file"
            )
            return False
        if abs(out1 - out2) < SELF_TEST_TOLERANCE:
            logger.warning("Model self-test: output does not change with input — model may be constant")
            return False

        logger.info("Model self-test passed (output varies with input)")
        return True
