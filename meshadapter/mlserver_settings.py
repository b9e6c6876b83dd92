"""Generation and rewriting of MLServer model settings files."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from meshadapter.modelschema import ModelSchema, ModelSchemaError, load_model_schema
from meshadapter.securejoin import secure_join

MLSERVER_SERVICE_NAME = "inference.GRPCInferenceService"
MLSERVER_SETTINGS_FILENAME = "model-settings.json"

MODEL_TYPE_IMPLEMENTATIONS = {
    "lightgbm": "mlserver_lightgbm.LightGBMModel",
    "sklearn": "mlserver_sklearn.SKLearnModel",
    "xgboost": "mlserver_xgboost.XGBoostModel",
    "mllib": "mlserver-mllib.MLlibModel",
}

log = logging.getLogger(__name__)

_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _normalize_numbers(value: Any) -> Any:
    """Write integral numbers without a fractional part."""
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    if isinstance(value, dict):
        return {key: _normalize_numbers(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_normalize_numbers(item) for item in value]
    return value


def _dump_indented(obj: dict[str, Any]) -> bytes:
    text = json.dumps(_normalize_numbers(obj), indent=2, sort_keys=True, ensure_ascii=False)
    for char, escape in _ESCAPES:
        text = text.replace(char, escape)
    return text.encode("utf-8")


def _apply_schema_file(config: dict[str, Any], schema_path: str) -> None:
    try:
        schema = load_model_schema(schema_path)
    except ModelSchemaError as exc:
        raise ModelSchemaError(f"Error parsing schema file: {exc}") from exc
    process_schema(config, schema)


def process_schema(config: dict[str, Any], schema: ModelSchema) -> None:
    """Write the schema's inputs and outputs, where present, into ``config``."""
    if schema.inputs is not None:
        config["inputs"] = [tensor.to_dict() for tensor in schema.inputs]
    if schema.outputs is not None:
        config["outputs"] = [tensor.to_dict() for tensor in schema.outputs]


def process_config_json(
    json_in: bytes | str,
    model_id: str,
    target_dir: str | os.PathLike[str],
    schema_path: str,
) -> bytes:
    """Rewrite an existing settings file for the given model.

    Sets ``name`` to the model id, makes ``parameters.uri`` an absolute path
    inside ``target_dir`` and injects schema information if ``schema_path``
    is set. Input that is not a JSON object is returned unchanged.
    """
    raw = json_in.encode("utf-8") if isinstance(json_in, str) else bytes(json_in)
    try:
        config = json.loads(
            raw, parse_int=float, parse_float=float, parse_constant=_reject_constant
        )
    except ValueError as exc:
        log.info("Unable to parse config file for model %s: %s", model_id, exc)
        return raw
    if not isinstance(config, dict):
        log.info("Config file for model %s is not a JSON object", model_id)
        return raw

    config["name"] = model_id

    parameters = config.get("parameters")
    if parameters is not None:
        if not isinstance(parameters, dict):
            raise TypeError("'parameters' in the settings file must be an object")
        uri = parameters.get("uri")
        if uri is not None:
            if not isinstance(uri, str):
                raise TypeError("'parameters.uri' in the settings file must be a string")
            try:
                new_uri = secure_join(target_dir, uri)
            except (OSError, ValueError) as exc:
                log.info("Error joining paths %s and %s: %s", target_dir, uri, exc)
                return raw
            parameters["uri"] = new_uri
            log.info("Rewrote model uri in settings file from %s to %s", uri, new_uri)

    if schema_path:
        _apply_schema_file(config, schema_path)
        log.info("Injected schema information from %s into settings file", schema_path)

    return _dump_indented(config)


def generate_model_config_json(
    model_id: str, model_type: str, uri: str, schema_path: str
) -> bytes:
    """Produce a settings file for a model that came without one.

    The implementation is chosen from the model type; unknown types leave
    it out.
    """
    config: dict[str, Any] = {"name": model_id}
    implementation = MODEL_TYPE_IMPLEMENTATIONS.get(model_type, "")
    if implementation:
        config["implementation"] = implementation
    config["parameters"] = {"uri": uri}

    if schema_path:
        _apply_schema_file(config, schema_path)

    log.info(
        "Generated model settings file with schema %r and implementation %r",
        schema_path, implementation,
    )
    return _dump_indented(config)