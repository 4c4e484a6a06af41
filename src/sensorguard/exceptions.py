"""Exception hierarchy for SensorGuard."""


class SensorGuardError(Exception):
    """Base exception for SensorGuard errors."""


class ModelLoadError(SensorGuardError):
    """The scoring model could not be loaded.

    This is the only unrecoverable condition: without a model the
    system has nothing to evaluate.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class DatasetLoadError(SensorGuardError):
    """The telemetry dataset could not be loaded at all.

    Row-level problems never raise; they are counted in the load report.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path
