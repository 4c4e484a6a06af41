"""Builds a ready-to-run Monitor from Settings.

Loads the ONNX model (fatal on failure), the preprocessing parameters and
the explainability rules (both degrade to no-op defaults when missing),
runs the model self-test, and attaches the event store and notifier.
"""

import logging

from sensorguard.config import Settings, settings as default_settings
from sensorguard.engine.adapter import ClassificationAdapter, OutputInterpretation
from sensorguard.engine.classifier import RiskClassifier
from sensorguard.engine.explainability import Explainer
from sensorguard.engine.onnx_model import OnnxScoringModel
from sensorguard.engine.preprocessor import FeaturePreprocessor
from sensorguard.notify.notifier import LogNotifier, Notifier, WebhookNotifier
from sensorguard.pipeline.monitor import Monitor
from sensorguard.pipeline.worker import InferenceWorker
from sensorguard.registry.event_log import EventLog
from sensorguard.registry.sensors import SensorRegistry
from sensorguard.store.event_store import EventStore

logger = logging.getLogger(__name__)


def build_adapter(config: Settings) -> ClassificationAdapter:
    """Load the model and preprocessing parameters.

    Raises:
        ModelLoadError: If the model cannot be loaded
    """
    model = OnnxScoringModel(config.model_path)
    adapter = ClassificationAdapter(
        model,
        FeaturePreprocessor.from_file(config.preprocess_path),
        output_name=config.model_output_name,
        interpretation=OutputInterpretation(config.output_interpretation),
    )
    if config.model_self_test:
        adapter.self_test()
    return adapter


def build_worker(config: Settings) -> InferenceWorker:
    """Adapter + classifier + explainer, configured from settings."""
    return InferenceWorker(
        build_adapter(config),
        RiskClassifier(config.warn_threshold, config.quarantine_threshold),
        Explainer.from_file(config.rules_path),
        top_k=config.top_k,
    )


def build_notifier(config: Settings) -> Notifier:
    """Webhook notifier when a URL is configured, log notifier otherwise."""
    if config.notify_webhook_url:
        return WebhookNotifier(config.notify_webhook_url, timeout=config.notify_timeout)
    return LogNotifier()


def build_monitor(config: Settings | None = None) -> Monitor:
    """Assemble a Monitor with every collaborator wired in.

    Raises:
        ModelLoadError: If the model cannot be loaded
    """
    config = config or default_settings
    worker = build_worker(config)
    event_log = EventLog(
        dedup_window=config.dedup_window_seconds,
        store=EventStore(config.event_db_path),
    )
    monitor = Monitor(
        worker,
        event_log=event_log,
        registry=SensorRegistry(event_log=event_log),
        notifier=build_notifier(config),
        tick_seconds=config.tick_seconds,
        dataset_path=config.dataset_path,
    )
    logger.info(
        "Monitor ready | warn=%.2f quarantine=%.2f top_k=%d",
        config.warn_threshold, config.quarantine_threshold, config.top_k,
    )
    return monitor
