"""Configuration management for SensorGuard.

Loads runtime settings from environment variables (and an optional .env
file) using Pydantic. Every field has a default, so the system starts with
no configuration at all; thresholds are validated at construction.

Usage:
    from sensorguard.config import settings

    print(settings.warn_threshold)
    print(settings.log_level)
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """SensorGuard configuration from environment variables.

    Loads from .env file automatically. Validates on instantiation.

    Attributes:
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        model_path: Path to the ONNX scoring model
        model_output_name: Output feature read from the model
        output_interpretation: How raw model output becomes a probability
        preprocess_path: Preprocessing parameters JSON
        rules_path: Explainability rules JSON
        dataset_path: CSV dataset replayed by the streaming source
        tick_seconds: Streaming cadence (one row per tick)
        warn_threshold: Probability at or above which a sensor is WARNING
        quarantine_threshold: Probability at or above which a sensor is QUARANTINE
        top_k: Maximum number of reasons attached to a non-normal sensor
        dedup_window_seconds: Event log suppression window
        event_db_path: SQLite file for the persisted event store
        notify_webhook_url: Webhook for alerts (None = log-only notifier)
        notify_timeout: Webhook request timeout in seconds
        model_self_test: Run the constant-model self-test at startup
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars
        protected_namespaces=(),  # model_path et al. are plain settings
    )

    # System Settings
    log_level: str = Field(default="INFO", description="Logging level")

    # Model
    model_path: str = Field(
        default="models/sensor_guardian.onnx",
        description="ONNX scoring model file",
    )
    model_output_name: str = Field(
        default="maliciousProbabilityRaw",
        min_length=1,
        description="Declared output feature holding the raw score",
    )
    output_interpretation: str = Field(
        default="auto",
        description="Raw output policy: 'auto', 'never_sigmoid' or 'always_sigmoid'",
    )
    model_self_test: bool = Field(default=True, description="Run model self-test on load")

    # Resources (missing files degrade to safe defaults)
    preprocess_path: str = Field(
        default="resources/preprocess_params.json",
        description="Preprocessing parameters (imputer, scaler, clip bounds)",
    )
    rules_path: str = Field(
        default="resources/explain_rules.json",
        description="Explainability rule set",
    )
    dataset_path: str = Field(
        default="resources/SensorNetGuard_full.csv",
        description="Telemetry dataset replayed by the stream",
    )

    # Policy
    tick_seconds: float = Field(default=0.6, gt=0, description="Seconds between streamed rows")
    warn_threshold: float = Field(default=0.10, ge=0, description="WARNING threshold")
    quarantine_threshold: float = Field(default=0.18, ge=0, description="QUARANTINE threshold")
    top_k: int = Field(default=3, ge=0, description="Reasons kept per non-normal sensor")
    dedup_window_seconds: float = Field(
        default=6.0,
        ge=0,
        description="Identical events inside this window are suppressed",
    )

    # Collaborators
    event_db_path: str = Field(
        default=".sensorguard/events.db",
        description="SQLite file for persisted events",
    )
    notify_webhook_url: str | None = Field(
        default=None,
        description="Alert webhook URL (None = alerts go to the log only)",
    )
    notify_timeout: float = Field(default=5.0, gt=0, description="Webhook timeout (seconds)")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid:
            raise ValueError(f"log_level must be one of {valid}, got {v}")
        return v_upper

    @field_validator("output_interpretation")
    @classmethod
    def validate_output_interpretation(cls, v: str) -> str:
        """Ensure the output interpretation policy is known."""
        v_lower = v.lower()
        if v_lower not in {"auto", "never_sigmoid", "always_sigmoid"}:
            raise ValueError(
                "output_interpretation must be 'auto', 'never_sigmoid' or "
                f"'always_sigmoid', got '{v}'"
            )
        return v_lower

    @model_validator(mode="after")
    def validate_thresholds(self) -> "Settings":
        """Ensure quarantine_threshold > warn_threshold >= 0."""
        if self.quarantine_threshold <= self.warn_threshold:
            raise ValueError(
                f"quarantine_threshold ({self.quarantine_threshold}) must be greater "
                f"than warn_threshold ({self.warn_threshold})"
            )
        return self


# Global settings instance — loaded once at import
settings = Settings()
