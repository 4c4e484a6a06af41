"""Inference worker — Reading → probability → severity → reasons.

Evaluation is blocking (a model call) and runs off the event loop via
``asyncio.to_thread``. The worker holds only read-only collaborators, so
any number of evaluations may run concurrently.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from sensorguard.engine.adapter import ClassificationAdapter
from sensorguard.engine.classifier import RiskClassifier, Severity
from sensorguard.engine.explainability import Explainer
from sensorguard.stream.reading import Reading

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Evaluation:
    """Result of evaluating one reading."""

    sensor_id: str
    probability: float
    severity: Severity
    reasons: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "sensor_id": self.sensor_id,
            "probability": self.probability,
            "severity": self.severity.value,
            "reasons": list(self.reasons),
        }


class InferenceWorker:
    """Scores, classifies and explains readings.

    Args:
        adapter: Classification adapter (model + preprocessing)
        classifier: Threshold classifier
        explainer: Rule explainer (default: no rules)
        top_k: Maximum reasons per non-normal reading
    """

    def __init__(
        self,
        adapter: ClassificationAdapter,
        classifier: RiskClassifier | None = None,
        explainer: Explainer | None = None,
        top_k: int = 3,
    ) -> None:
        self.adapter = adapter
        self.classifier = classifier or RiskClassifier()
        self.explainer = explainer or Explainer()
        self.top_k = top_k

    def evaluate(self, reading: Reading) -> Evaluation:
        """Evaluate one reading synchronously. Never raises for model errors."""
        p = self.adapter.score(reading)
        severity = self.classifier.classify(p)
        reasons = self.explainer.explain(reading, severity, top_k=self.top_k)
        return Evaluation(
            sensor_id=reading.sensor_id,
            probability=p,
            severity=severity,
            reasons=tuple(reasons),
        )

    async def evaluate_async(self, reading: Reading) -> Evaluation:
        """Evaluate one reading on a worker thread."""
        return await asyncio.to_thread(self.evaluate, reading)
