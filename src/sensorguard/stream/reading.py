"""Telemetry reading model.

One row of the SensorNetGuard dataset: a sensor identifier, thirteen
numeric features, and an optional ground-truth label. Readings are
immutable once parsed.

The model and the rule set refer to features by their canonical dataset
names (``Packet_Rate``, ``SNR``, ...). ``Reading.features()`` exposes that
naming as a lookup table so rule matching never branches on field names.
"""

from dataclasses import dataclass
from typing import Optional


# Canonical feature name → Reading attribute
FEATURE_FIELDS: dict[str, str] = {
    "Packet_Rate": "packet_rate",
    "Packet_Duplication_Rate": "packet_duplication_rate",
    "Signal_Strength": "signal_strength",
    "SNR": "snr",
    "Battery_Level": "battery_level",
    "Number_of_Neighbors": "number_of_neighbors",
    "Route_Request_Frequency": "route_request_frequency",
    "Route_Reply_Frequency": "route_reply_frequency",
    "Data_Transmission_Frequency": "data_transmission_frequency",
    "Data_Reception_Frequency": "data_reception_frequency",
    "CPU_Usage": "cpu_usage",
    "Memory_Usage": "memory_usage",
    "Bandwidth": "bandwidth",
}

FEATURE_NAMES: tuple[str, ...] = tuple(FEATURE_FIELDS)


@dataclass(frozen=True)
class Reading:
    """A single telemetry sample for one sensor.

    Attributes:
        sensor_id: Opaque sensor identifier (node id or IP address)
        packet_rate .. bandwidth: Raw feature values
        is_malicious: Ground-truth label (0/1) when the dataset carries one
    """

    sensor_id: str
    packet_rate: float = 0.0
    packet_duplication_rate: float = 0.0
    signal_strength: float = 0.0
    snr: float = 0.0
    battery_level: float = 0.0
    number_of_neighbors: float = 0.0
    route_request_frequency: float = 0.0
    route_reply_frequency: float = 0.0
    data_transmission_frequency: float = 0.0
    data_reception_frequency: float = 0.0
    cpu_usage: float = 0.0
    memory_usage: float = 0.0
    bandwidth: float = 0.0
    is_malicious: Optional[int] = None

    def features(self) -> dict[str, float]:
        """Return the canonical feature-name → value table."""
        return {name: getattr(self, attr) for name, attr in FEATURE_FIELDS.items()}

    def value(self, feature_name: str) -> float | None:
        """Look up a feature by canonical name. Unknown names return None."""
        attr = FEATURE_FIELDS.get(feature_name)
        if attr is None:
            return None
        return getattr(self, attr)
