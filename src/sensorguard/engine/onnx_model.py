"""ONNX Runtime backend for the scoring model boundary.

Reads the input contract (names, shapes, element types) from the model
file itself. Rank-0 inputs are declared as plain scalars; everything else
as tensors. Dynamic dimensions are pinned to 1 (one reading per call).
"""

import logging
from pathlib import Path
from typing import Any

import numpy as np
import onnxruntime as ort

from sensorguard.engine.model import InputSpec
from sensorguard.exceptions import ModelLoadError

logger = logging.getLogger(__name__)

# ONNX element type → numpy dtype name
_ONNX_DTYPES = {
    "tensor(float16)": "float16",
    "tensor(float)": "float32",
    "tensor(double)": "float64",
    "tensor(int32)": "int32",
    "tensor(int64)": "int64",
}


def _spec_from_node(node: Any) -> InputSpec:
    dtype = _ONNX_DTYPES.get(node.type, "float32")
    dims = list(node.shape or [])
    if not dims:
        kind = "int64" if dtype.startswith("int") else "double"
        return InputSpec(name=node.name, kind=kind, dtype=dtype)
    shape = tuple(d if isinstance(d, int) and d > 0 else 1 for d in dims)
    return InputSpec(name=node.name, kind="tensor", shape=shape, dtype=dtype)


class OnnxScoringModel:
    """Scoring model backed by an ``onnxruntime.InferenceSession``.

    Args:
        path: ONNX model file
        providers: Execution providers (default: CPU only)

    Raises:
        ModelLoadError: If the file is missing or the session cannot be created
    """

    def __init__(self, path: str | Path, providers: list[str] | None = None) -> None:
        self.path = Path(path)
        if not self.path.is_file():
            raise ModelLoadError(f"Model file not found: {self.path}", path=str(self.path))

        try:
            self._session = ort.InferenceSession(
                str(self.path),
                providers=providers or ["CPUExecutionProvider"],
            )
        except Exception as e:
            raise ModelLoadError(f"Model load failed: {e}", path=str(self.path)) from e

        self._specs = {node.name: _spec_from_node(node) for node in self._session.get_inputs()}
        self._outputs = [node.name for node in self._session.get_outputs()]
        logger.info(
            "Model loaded: %s | inputs=%d outputs=%s",
            self.path.name, len(self._specs), self._outputs,
        )

    def input_specs(self) -> dict[str, InputSpec]:
        return dict(self._specs)

    def output_names(self) -> list[str]:
        return list(self._outputs)

    def run(self, inputs: dict[str, Any]) -> dict[str, Any]:
        feeds = {}
        for name, value in inputs.items():
            spec = self._specs.get(name)
            dtype = spec.dtype if spec is not None else "float32"
            feeds[name] = np.asarray(value, dtype=dtype)
        results = self._session.run(None, feeds)
        return dict(zip(self._outputs, results))
