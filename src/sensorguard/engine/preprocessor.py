"""Feature preprocessing — the same transform applied at training time.

Per raw value, in order:
    1. Impute: non-finite (NaN / ±inf) → per-feature median (default 0.0)
    2. Clip: clamp into [p01, p99] when both bounds exist for the feature
    3. Scale: (x - mean) / scale when standardization parameters were loaded

A near-zero scale (|scale| < 1e-12) is replaced by 1.0, so the centred value
is kept rather than zeroed.

Parameters come from a JSON file written by the training pipeline:

    {
      "feature_order": ["Packet_Rate", ...],
      "imputer_median": {"Packet_Rate": 12.0, ...},
      "scaler_mean": {"Packet_Rate": 11.7, ...},
      "scaler_scale": {"Packet_Rate": 3.2, ...},
      "clip_bounds": {"Packet_Rate": {"p01": 1.0, "p99": 40.0}, ...}
    }

A missing or malformed file degrades to pass-through preprocessing.
"""

import json
import logging
import math
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

# Denominators below this magnitude are treated as 1.0
MIN_SCALE = 1e-12


def _coerce_float(value: Any) -> float | None:
    """Best-effort conversion to a finite float; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


class ClipBound(BaseModel):
    """Percentile clip bounds for one feature."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    p01: float | None = None
    p99: float | None = None

    @field_validator("p01", "p99", mode="before")
    @classmethod
    def drop_non_numeric(cls, v: Any) -> float | None:
        """Treat a non-numeric bound as absent."""
        return _coerce_float(v)


class PreprocessConfig(BaseModel):
    """Training-time preprocessing parameters (read-only after load).

    Entries that are not numeric are dropped individually instead of
    rejecting the whole file.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    feature_order: list[str] = Field(default_factory=list)
    imputer_median: dict[str, float] = Field(default_factory=dict)
    scaler_mean: dict[str, float] = Field(default_factory=dict)
    scaler_scale: dict[str, float] = Field(default_factory=dict)
    clip_bounds: dict[str, ClipBound] = Field(default_factory=dict)

    @field_validator("imputer_median", "scaler_mean", "scaler_scale", mode="before")
    @classmethod
    def keep_numeric_entries(cls, v: Any) -> dict[str, float]:
        """Keep only entries whose value converts to float."""
        if not isinstance(v, dict):
            return {}
        out = {}
        for key, raw in v.items():
            number = _coerce_float(raw)
            if number is not None:
                out[str(key)] = number
        return out

    @field_validator("clip_bounds", mode="before")
    @classmethod
    def keep_object_entries(cls, v: Any) -> dict[str, Any]:
        """Ignore clip entries that are not {p01, p99} objects."""
        if not isinstance(v, dict):
            return {}
        return {str(k): per for k, per in v.items() if isinstance(per, dict)}

    @field_validator("feature_order", mode="before")
    @classmethod
    def keep_string_names(cls, v: Any) -> list[str]:
        """Ignore a feature_order that is not a list of strings."""
        if not isinstance(v, list):
            return []
        return [name for name in v if isinstance(name, str)]


class ScalingMethod(Enum):
    """Standardization applied after impute/clip."""

    NONE = "none"
    STANDARD = "standard"


class FeaturePreprocessor:
    """Applies impute → clip → scale to one raw feature value at a time.

    Stateless after construction; safe to share across worker threads.

    Args:
        config: Preprocessing parameters. None means pass-through.

    Example:
        >>> pre = FeaturePreprocessor.from_file("resources/preprocess_params.json")
        >>> pre.transform(float("nan"), "SNR")
        -0.41
    """

    def __init__(self, config: PreprocessConfig | None = None) -> None:
        self.config = config or PreprocessConfig()
        if self.config.scaler_mean and self.config.scaler_scale:
            self.method = ScalingMethod.STANDARD
        else:
            self.method = ScalingMethod.NONE

    @classmethod
    def from_dict(cls, data: Any) -> "FeaturePreprocessor":
        """Build from an already-parsed JSON object.

        Anything other than a JSON object yields a pass-through preprocessor.
        """
        if not isinstance(data, dict):
            logger.warning("Preprocess parameters are not a JSON object — method=none")
            return cls()
        try:
            config = PreprocessConfig.model_validate(data)
        except ValidationError as e:
            logger.warning("Invalid preprocess parameters (%s) — method=none", e)
            return cls()
        return cls(config)

    @classmethod
    def from_file(cls, path: str | Path) -> "FeaturePreprocessor":
        """Load parameters from JSON, degrading to pass-through on any failure."""
        path = Path(path)
        if not path.is_file():
            logger.warning("Preprocess parameters not found at %s — method=none", path)
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Failed to read preprocess parameters %s: %s — method=none", path, e)
            return cls()

        preprocessor = cls.from_dict(data)
        cfg = preprocessor.config
        logger.info(
            "Loaded preprocess parameters %s | method=%s mean=%d scale=%d imputer=%d clip=%d",
            path.name,
            preprocessor.method.value,
            len(cfg.scaler_mean),
            len(cfg.scaler_scale),
            len(cfg.imputer_median),
            len(cfg.clip_bounds),
        )
        return preprocessor

    def ordered_keys(self) -> list[str]:
        """Feature order recorded at training time."""
        return list(self.config.feature_order)

    def transform(self, raw_value: float, feature_name: str) -> float:
        """Normalize a single raw feature value.

        Args:
            raw_value: Raw value (may be NaN or infinite)
            feature_name: Canonical feature name (e.g. "SNR")

        Returns:
            Finite normalized value, assuming finite parameters
        """
        cfg = self.config
        x = float(raw_value)

        # 1. Impute
        if not math.isfinite(x):
            x = cfg.imputer_median.get(feature_name, 0.0)

        # 2. Clip
        bounds = cfg.clip_bounds.get(feature_name)
        if bounds is not None and bounds.p01 is not None and bounds.p99 is not None:
            if x < bounds.p01:
                x = bounds.p01
            if x > bounds.p99:
                x = bounds.p99

        # 3. Scale
        if self.method is ScalingMethod.NONE:
            return x
        mean = cfg.scaler_mean.get(feature_name, 0.0)
        scale = cfg.scaler_scale.get(feature_name, 1.0)
        denom = 1.0 if abs(scale) < MIN_SCALE else scale
        return (x - mean) / denom
