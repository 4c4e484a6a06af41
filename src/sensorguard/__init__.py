"""SensorGuard — streaming sensor evaluation with explainable severity states."""

__version__ = "0.1.0"
