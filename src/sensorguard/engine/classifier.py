"""Risk classification: probability → severity.

Two ordered, inclusive thresholds:
    p ≥ quarantine_threshold → QUARANTINE
    p ≥ warn_threshold       → WARNING
    otherwise                → NORMAL

Thresholds must satisfy quarantine_threshold > warn_threshold ≥ 0.
A violating pair is a configuration error and is rejected up front.
"""

from enum import Enum


class Severity(Enum):
    """Sensor severity states, least to most severe."""

    NORMAL = "NORMAL"
    WARNING = "WARNING"
    QUARANTINE = "QUARANTINE"

    @property
    def level(self) -> int:
        """Ordinal severity: NORMAL=0 < WARNING=1 < QUARANTINE=2."""
        return _LEVELS[self]

    @property
    def sort_rank(self) -> int:
        """Display priority: QUARANTINE=0, WARNING=1, NORMAL=2."""
        return 2 - _LEVELS[self]

    @property
    def is_alert(self) -> bool:
        """True for any non-normal state."""
        return self is not Severity.NORMAL

    def __lt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.level < other.level


_LEVELS = {
    Severity.NORMAL: 0,
    Severity.WARNING: 1,
    Severity.QUARANTINE: 2,
}

DEFAULT_WARN_THRESHOLD = 0.10
DEFAULT_QUARANTINE_THRESHOLD = 0.18


def validate_thresholds(warn_threshold: float, quarantine_threshold: float) -> None:
    """Raise ValueError unless quarantine_threshold > warn_threshold >= 0."""
    if warn_threshold < 0:
        raise ValueError(f"warn_threshold ({warn_threshold}) must be >= 0")
    if quarantine_threshold <= warn_threshold:
        raise ValueError(
            f"quarantine_threshold ({quarantine_threshold}) must be greater "
            f"than warn_threshold ({warn_threshold})"
        )


def classify(
    probability: float,
    warn_threshold: float = DEFAULT_WARN_THRESHOLD,
    quarantine_threshold: float = DEFAULT_QUARANTINE_THRESHOLD,
) -> Severity:
    """Map a probability to a severity (inclusive thresholds).

    Raises:
        ValueError: If the thresholds are misconfigured
    """
    validate_thresholds(warn_threshold, quarantine_threshold)
    if probability >= quarantine_threshold:
        return Severity.QUARANTINE
    if probability >= warn_threshold:
        return Severity.WARNING
    return Severity.NORMAL


class RiskClassifier:
    """Classifier with thresholds bound once at construction.

    Args:
        warn_threshold: WARNING threshold (default: 0.10)
        quarantine_threshold: QUARANTINE threshold (default: 0.18)

    Raises:
        ValueError: If quarantine_threshold <= warn_threshold or warn_threshold < 0
    """

    def __init__(
        self,
        warn_threshold: float = DEFAULT_WARN_THRESHOLD,
        quarantine_threshold: float = DEFAULT_QUARANTINE_THRESHOLD,
    ) -> None:
        validate_thresholds(warn_threshold, quarantine_threshold)
        self.warn_threshold = warn_threshold
        self.quarantine_threshold = quarantine_threshold

    def classify(self, probability: float) -> Severity:
        if probability >= self.quarantine_threshold:
            return Severity.QUARANTINE
        if probability >= self.warn_threshold:
            return Severity.WARNING
        return Severity.NORMAL
