"""Reading model details from the JSON model key of a load request."""

from __future__ import annotations

import json
import logging
from typing import Any

MODEL_TYPE_KEY = "model_type"
SCHEMA_PATH_KEY = "schema_path"
DISK_SIZE_BYTES_KEY = "disk_size_bytes"

log = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _parse_model_key(model_key: str) -> dict[str, Any]:
    data = json.loads(model_key, parse_constant=_reject_constant)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"model key must be a JSON object, not {type(data).__name__}")
    return data


def get_model_type(model_key: str, model_type: str) -> str:
    """Return the type named in the model key, else ``model_type``.

    The key may hold ``model_type`` as a string or as an object with a
    string ``name``.
    """
    try:
        key = _parse_model_key(model_key)
    except ValueError as exc:
        log.info(
            "Model type falls back to %r as model key %r is not valid JSON: %s",
            model_type, model_key, exc,
        )
        return model_type

    value = key.get(MODEL_TYPE_KEY)
    if value is None:
        log.info("Model type falls back to %r as model key has no %r", model_type, MODEL_TYPE_KEY)
        return model_type
    if isinstance(value, dict):
        name = value.get("name")
        if isinstance(name, str):
            return name
        log.info("Model type falls back to %r as %r is not a string: %r", model_type, MODEL_TYPE_KEY, value)
        return model_type
    if isinstance(value, str):
        return value
    log.info(
        "Model type falls back to %r as %r is neither a string nor an object: %r",
        model_type, MODEL_TYPE_KEY, value,
    )
    return model_type


def get_schema_path(model_key: str) -> str:
    """Return the schema path in the model key, or ``""`` if there is none."""
    try:
        key = _parse_model_key(model_key)
    except ValueError as exc:
        raise ValueError(
            f"Invalid modelKey in LoadModelRequest. ModelKey value '{model_key}' is not valid JSON: {exc}"
        ) from exc

    value = key.get(SCHEMA_PATH_KEY)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(
            f"Invalid schemaPath in LoadModelRequest, '{SCHEMA_PATH_KEY}' attribute must have a "
            f"string value. Found value {value!r}"
        )
    return value


def calc_mem_capacity(model_key: str, default_size: int, multiplier: float) -> int:
    """Estimate a model's memory size from its disk size in the model key.

    Falls back to ``default_size`` when the disk size is missing or unusable.
    """
    size = int(default_size)
    try:
        key = _parse_model_key(model_key)
    except ValueError as exc:
        log.info("Size defaults to %d as model key %r is not valid JSON: %s", size, model_key, exc)
        return size

    disk_size = key.get(DISK_SIZE_BYTES_KEY)
    if disk_size is None:
        log.info("Size defaults to %d as model key has no %r", size, DISK_SIZE_BYTES_KEY)
        return size
    if isinstance(disk_size, bool) or not isinstance(disk_size, (int, float)):
        log.info("Size defaults to %d as %r is not a number", size, DISK_SIZE_BYTES_KEY)
        return size

    size = max(0, int(float(disk_size) * multiplier))
    log.info("Size set to %d from disk size %s times %s", size, disk_size, multiplier)
    return size