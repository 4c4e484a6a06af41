"""Rule-based explainability for non-normal sensors.

A declarative rule names a feature, a direction and a threshold:

    {"feature": "SNR", "direction": "low", "threshold": 5.0,
     "message": "Low SNR", "weight": 2.0}

A rule matches when ``direction == "high"`` and value ≥ threshold, or
``direction == "low"`` and value ≤ threshold (direction is
case-insensitive). Matched rules are ranked by descending weight; equal
weights keep rule-file order (Python's sort is stable, and that stability
is relied upon for reproducible output).

Design Principles:
    - Explanations only for WARNING / QUARANTINE; NORMAL returns no reasons
    - Incomplete rules and unknown feature names are skipped, never errors
    - Missing or invalid rule files yield an empty rule set
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from sensorguard.engine.classifier import Severity
from sensorguard.stream.reading import Reading

logger = logging.getLogger(__name__)

DEFAULT_RULE_WEIGHT = 1.0


class Rule(BaseModel):
    """One explainability rule. Every field is optional.

    Attributes:
        feature: Canonical feature name (e.g. "Packet_Duplication_Rate")
        direction: "high" or "low" (case-insensitive)
        threshold: Comparison threshold
        message: Human-readable reason (generated when absent)
        weight: Ranking weight (default 1.0)
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    feature: Optional[str] = None
    direction: Optional[str] = None
    threshold: Optional[float] = None
    message: Optional[str] = None
    weight: Optional[float] = None

    @property
    def is_complete(self) -> bool:
        """True when feature, direction and threshold are all present."""
        return self.feature is not None and self.direction is not None and self.threshold is not None

    def describe(self) -> str:
        """Explicit message, or "<feature> <direction> (thr=<threshold>)"."""
        if self.message is not None:
            return self.message
        direction = (self.direction or "").lower()
        return f"{self.feature} {direction} (thr={self.threshold})"

    def matches(self, value: float) -> bool:
        """Apply the directional threshold test to a feature value."""
        if not self.is_complete:
            return False
        direction = self.direction.lower()
        if direction == "high":
            return value >= self.threshold
        if direction == "low":
            return value <= self.threshold
        return False


_RULE_LIST = TypeAdapter(list[Rule])


def parse_rules(data: Any) -> list[Rule]:
    """Parse a rule document: a list of rules, or ``{"rules": [...]}``.

    Raises:
        ValidationError: If the document does not describe a rule list
    """
    if isinstance(data, dict) and "rules" in data:
        data = data["rules"]
    return _RULE_LIST.validate_python(data)


class Explainer:
    """Ranks the rules matched by a reading into human-readable reasons.

    Read-only after construction; safe to share across worker threads.

    Args:
        rules: Rule set in priority order (default: empty)

    Example:
        >>> explainer = Explainer.from_file("resources/explain_rules.json")
        >>> explainer.explain(reading, Severity.WARNING, top_k=3)
        ['High packet duplication', 'Low SNR']
    """

    def __init__(self, rules: list[Rule] | None = None) -> None:
        self.rules: tuple[Rule, ...] = tuple(rules or ())

    @classmethod
    def from_file(cls, path: str | Path) -> "Explainer":
        """Load rules from JSON; any failure yields an empty rule set."""
        path = Path(path)
        if not path.is_file():
            logger.warning("Explain rules not found at %s — explanations disabled", path)
            return cls()
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read explain rules %s: %s", path, e)
            return cls()
        if not text.strip():
            logger.warning("Explain rules file %s is empty", path)
            return cls()

        try:
            rules = parse_rules(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Invalid explain rules %s: %s", path, e)
            return cls()

        logger.info("Loaded %d explain rules from %s", len(rules), path.name)
        return cls(rules)

    def explain(self, reading: Reading, severity: Severity, top_k: int = 3) -> list[str]:
        """Top reasons for a reading's severity.

        Args:
            reading: The evaluated reading
            severity: Severity assigned to it
            top_k: Maximum reasons to return (≤ 0 → none)

        Returns:
            Reason strings, highest weight first. Empty for NORMAL.
        """
        if severity is Severity.NORMAL or not self.rules or top_k <= 0:
            return []

        hits: list[tuple[str, float]] = []
        for rule in self.rules:
            if not rule.is_complete:
                continue
            value = reading.value(rule.feature)
            if value is None:
                continue
            if rule.matches(value):
                weight = rule.weight if rule.weight is not None else DEFAULT_RULE_WEIGHT
                hits.append((rule.describe(), weight))

        # Stable: equal weights stay in rule order
        ranked = sorted(hits, key=lambda hit: hit[1], reverse=True)
        return [message for message, _ in ranked[:top_k]]
