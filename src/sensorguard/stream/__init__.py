"""Telemetry ingestion: reading model, CSV loader, fixed-cadence replay.

Components:
- Reading: immutable telemetry sample with a feature lookup table
- load_dataset: CSV → LoadReport (readings + malformed-row count)
- StreamingSource: wrap-around replay at a fixed tick interval
"""

from sensorguard.stream.loader import LoadReport, load_dataset, readings_from_frame
from sensorguard.stream.reading import FEATURE_FIELDS, FEATURE_NAMES, Reading
from sensorguard.stream.source import StreamingSource

__all__ = [
    "FEATURE_FIELDS",
    "FEATURE_NAMES",
    "LoadReport",
    "Reading",
    "StreamingSource",
    "load_dataset",
    "readings_from_frame",
]
