"""Scoring model boundary.

The classification model is a black box: named inputs in, named outputs
out. Each backend declares its own input contract (names, scalar vs.
tensor, shape, element type). The adapter never hard-codes it;
different trained exports may change the input set.
"""

from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable


InputKind = Literal["double", "int64", "tensor"]


@dataclass(frozen=True)
class InputSpec:
    """Declared contract for one model input.

    Attributes:
        name: Input feature name (e.g. "Packet_Rate")
        kind: "double" / "int64" for plain scalars, "tensor" for arrays
        shape: Tensor shape; empty means a single-element vector
        dtype: numpy dtype name for tensors (None → float16)
    """

    name: str
    kind: InputKind = "double"
    shape: tuple[int, ...] = ()
    dtype: str | None = None


@runtime_checkable
class ScoringModel(Protocol):
    """Named-input / named-output scoring function."""

    def input_specs(self) -> dict[str, InputSpec]:
        """Return the declared inputs, keyed by name."""
        ...

    def output_names(self) -> list[str]:
        """Return the declared output names."""
        ...

    def run(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """Evaluate the model once on a complete input set."""
        ...
