"""Model schema files describing a model's input and output tensors."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

MODEL_SCHEMA_FILE = "_schema.json"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class Datatype(str, Enum):
    """Tensor element types; STRING is an extension to the standard set."""

    BYTES = "BYTES"
    BOOL = "BOOL"
    UINT8 = "UINT8"
    UINT16 = "UINT16"
    UINT32 = "UINT32"
    UINT64 = "UINT64"
    INT8 = "INT8"
    INT16 = "INT16"
    INT32 = "INT32"
    INT64 = "INT64"
    FP16 = "FP16"
    FP32 = "FP32"
    FP64 = "FP64"
    STRING = "STRING"


class ModelSchemaError(Exception):
    """Raised when a schema file cannot be read or parsed."""


@dataclass
class TensorMetadata:
    name: str = ""
    datatype: str = ""
    shape: list[int] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the tensor as a JSON-ready mapping."""
        return {
            "name": self.name,
            "datatype": self.datatype,
            "shape": None if self.shape is None else list(self.shape),
        }


@dataclass
class ModelSchema:
    inputs: list[TensorMetadata] | None = None
    outputs: list[TensorMetadata] | None = None


def _field(obj: dict[str, Any], name: str) -> Any:
    value = None
    for key, item in obj.items():
        if key.lower() == name:
            value = item
    return value


def _decode_str(value: Any, what: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ModelSchemaError(f"Unable to parse model schema JSON: {what} must be a string")
    return value


def _decode_shape(value: Any) -> list[int] | None:
    if value is None:
        return None
    if not isinstance(value, list):
        raise ModelSchemaError("Unable to parse model schema JSON: shape must be an array")
    shape = []
    for dim in value:
        if dim is None:
            shape.append(0)
            continue
        if isinstance(dim, bool) or not isinstance(dim, int) or not _INT64_MIN <= dim <= _INT64_MAX:
            raise ModelSchemaError(
                f"Unable to parse model schema JSON: shape entry {dim!r} is not an int64"
            )
        shape.append(dim)
    return shape


def _decode_tensor(value: Any) -> TensorMetadata:
    if value is None:
        return TensorMetadata()
    if not isinstance(value, dict):
        raise ModelSchemaError("Unable to parse model schema JSON: tensor must be an object")
    return TensorMetadata(
        name=_decode_str(_field(value, "name"), "name"),
        datatype=_decode_str(_field(value, "datatype"), "datatype"),
        shape=_decode_shape(_field(value, "shape")),
    )


def _decode_tensors(value: Any, what: str) -> list[TensorMetadata] | None:
    if value is None:
        return None
    if not isinstance(value, list):
        raise ModelSchemaError(f"Unable to parse model schema JSON: {what} must be an array")
    return [_decode_tensor(item) for item in value]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def load_model_schema(path: str | os.PathLike[str]) -> ModelSchema:
    """Read and parse a schema JSON file."""
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise ModelSchemaError(f"Unable to read model schema file {path}: {exc}") from exc
    try:
        data = json.loads(raw, parse_constant=_reject_constant)
    except ValueError as exc:
        raise ModelSchemaError(f"Unable to parse model schema JSON: {exc}") from exc

    if data is None:
        return ModelSchema()
    if not isinstance(data, dict):
        raise ModelSchemaError("Unable to parse model schema JSON: top level must be an object")
    return ModelSchema(
        inputs=_decode_tensors(_field(data, "inputs"), "inputs"),
        outputs=_decode_tensors(_field(data, "outputs"), "outputs"),
    )