"""Session pipeline — Source → Worker → Registry → Event Log / Notifier.

Components:
- InferenceWorker: scoring, classification and explanation off the event loop
- Monitor: session coordinator and operator actions
- factory: builds a Monitor from Settings (loads the ONNX model)
"""

from sensorguard.pipeline.monitor import Monitor, MonitorStats
from sensorguard.pipeline.worker import Evaluation, InferenceWorker

__all__ = ["Evaluation", "InferenceWorker", "Monitor", "MonitorStats"]
