"""Example 1: Streaming Session

This example runs a short monitoring session over the bundled sample
dataset, then quarantines the riskiest sensor by hand.

For demonstration purposes, a small linear model stands in for the ONNX
export. In production, use ``sensorguard.pipeline.factory.build_monitor``.
"""

import asyncio
import math

from sensorguard.engine import (
    ClassificationAdapter,
    Explainer,
    FeaturePreprocessor,
    InputSpec,
    RiskClassifier,
)
from sensorguard.pipeline import InferenceWorker, Monitor

RESOURCES = "resources"


class DemoModel:
    """Logistic score on a few standardized features."""

    WEIGHTS = {
        "Packet_Duplication_Rate": 1.6,
        "Route_Request_Frequency": 0.9,
        "SNR": -1.1,
        "CPU_Usage": 0.5,
    }
    BIAS = -3.0

    def input_specs(self):
        return {name: InputSpec(name) for name in self.WEIGHTS}

    def output_names(self):
        return ["maliciousProbabilityRaw"]

    def run(self, inputs):
        z = self.BIAS + sum(w * inputs[name] for name, w in self.WEIGHTS.items())
        return {"maliciousProbabilityRaw": 1.0 / (1.0 + math.exp(-z))}


async def run_session(seconds: float = 3.0) -> None:
    adapter = ClassificationAdapter(
        DemoModel(),
        FeaturePreprocessor.from_file(f"{RESOURCES}/preprocess_params.json"),
    )
    worker = InferenceWorker(
        adapter,
        RiskClassifier(),
        Explainer.from_file(f"{RESOURCES}/explain_rules.json"),
    )
    monitor = Monitor(worker, tick_seconds=0.2)

    if not await monitor.start(f"{RESOURCES}/SensorNetGuard_sample.csv"):
        print("Stream did not start")
        return

    await asyncio.sleep(seconds)
    monitor.stop()
    await monitor.drain()

    sensors = monitor.snapshot()
    if sensors:
        monitor.quarantine(sensors[-1].sensor_id)
        await monitor.drain()

    print(f"Rows processed: {monitor.rows_processed}")
    print()
    for s in monitor.snapshot():
        flag = " (user)" if s.user_quarantined else ""
        print(f"  {s.sensor_id:<15} {s.severity.value:<11} p={s.probability:.3f}{flag}  {' • '.join(s.reasons)}")
    print()
    print("Events:")
    for e in monitor.events():
        print(f"  {e.kind.value:<9} {e.sensor_id:<15} {e.message}")


def main():
    """Run streaming session example."""
    print("=" * 60)
    print("SensorGuard — Example 1: Streaming Session")
    print("=" * 60)
    print()
    asyncio.run(run_session())


if __name__ == "__main__":
    main()
