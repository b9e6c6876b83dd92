"""The OVMS multi-model config file and the JSON replies of its config API."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

MODEL_CONFIG_LIST_KEY = "model_config_list"

_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


@dataclass
class ModelConfig:
    """One model entry of the multi-model config file."""

    name: str = ""
    base_path: str = ""
    target_device: str = ""


@dataclass
class ModelStatus:
    error_code: str = ""
    error_message: str = ""


@dataclass
class ModelVersionStatus:
    version: str = ""
    state: str = ""
    status: ModelStatus = field(default_factory=ModelStatus)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _load(text: str | bytes) -> Any:
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise ValueError(f"invalid JSON: {exc}") from exc


def _get(obj: dict[str, Any], name: str) -> Any:
    if name in obj:
        return obj[name]
    for key, value in obj.items():
        if key.lower() == name:
            return value
    return None


def _object(value: Any, what: str) -> dict[str, Any] | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a JSON object")
    return value


def _array(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{what} must be a JSON array")
    return value


def _string(value: Any, what: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{what} must be a string")
    return value


def parse_repository_config(text: str | bytes) -> list[ModelConfig]:
    """Parse a multi-model config file into its model entries."""
    data = _object(_load(text), "config file")
    if data is None:
        return []
    configs = []
    for entry in _array(_get(data, MODEL_CONFIG_LIST_KEY), MODEL_CONFIG_LIST_KEY):
        entry_obj = _object(entry, "config list entry") or {}
        config = _object(_get(entry_obj, "config"), "config") or {}
        configs.append(
            ModelConfig(
                name=_string(_get(config, "name"), "name"),
                base_path=_string(_get(config, "base_path"), "base_path"),
                target_device=_string(_get(config, "target_device"), "target_device"),
            )
        )
    return configs


def dump_repository_config(configs: Iterable[ModelConfig]) -> str:
    """Serialise model entries as a compact multi-model config file."""
    payload = {
        MODEL_CONFIG_LIST_KEY: [
            {
                "config": {
                    "name": config.name,
                    "base_path": config.base_path,
                    "target_device": config.target_device,
                }
            }
            for config in configs
        ]
    }
    text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    for char, escape in _ESCAPES:
        text = text.replace(char, escape)
    return text


def _parse_version_status(value: Any) -> ModelVersionStatus:
    obj = _object(value, "model version status") or {}
    status = _object(_get(obj, "status"), "status") or {}
    return ModelVersionStatus(
        version=_string(_get(obj, "version"), "version"),
        state=_string(_get(obj, "state"), "state"),
        status=ModelStatus(
            error_code=_string(_get(status, "error_code"), "error_code"),
            error_message=_string(_get(status, "error_message"), "error_message"),
        ),
    )


def parse_config_response(text: str | bytes) -> dict[str, list[ModelVersionStatus]]:
    """Parse a config API reply into version statuses keyed by model name."""
    data = _object(_load(text), "config response")
    if data is None:
        return {}
    result = {}
    for name, value in data.items():
        model = _object(value, f"status of model {name}") or {}
        result[name] = [
            _parse_version_status(item)
            for item in _array(_get(model, "model_version_status"), "model_version_status")
        ]
    return result


def parse_error_response(text: str | bytes) -> str:
    """Return the message of a config API error reply."""
    data = _object(_load(text), "error response")
    if data is None:
        return ""
    return _string(_get(data, "error"), "error")