import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import pytest

from meshadapter.mlserver_layout import adapt_model_layout_for_runtime

SETTINGS = "model-settings.json"


@dataclass
class _Case:
    model_id: str
    model_type: str
    model_path: str
    input_files: list[str]
    expected_files: list[str]
    schema_path: str = ""
    input_config: dict[str, Any] | None = None
    input_schema: dict[str, Any] | None = None
    expected_config: Callable[[str], dict[str, Any]] | None = None
    extra: dict[str, Any] = field(default_factory=dict)


_INPUT_TENSOR = {"name": "INPUT", "datatype": "FP32", "shape": [1, 784]}
_OUTPUT_TENSOR = {"name": "OUTPUT", "datatype": "INT64", "shape": [1]}
_NEW_OUTPUT_TENSOR = {"name": "NEW_OUTPUT", "datatype": "FP32", "shape": [1, 1]}

CASES = [
    _Case("single-file", "custom", "some-file", ["some-file"], [SETTINGS, "some-file"]),
    _Case("dir-with-single-file", "custom", "somedir", ["somedir/somefile"], [SETTINGS, "somedir"]),
    _Case(
        "dir-with-complex-structure",
        "custom",
        "modelname",
        [
            "modelname/data",
            "modelname/metadata",
            "modelname/somedir/somefile1",
            "modelname/somedir/somefile2",
            "modelname/anotherdir/morefiles",
        ],
        [SETTINGS, "modelname"],
    ),
    _Case(
        "dir-mlserver-layout",
        "custom",
        "",
        [SETTINGS, "somefile", "somedir/data"],
        [SETTINGS, "somefile", "somedir"],
        input_config={},
    ),
    _Case("path-to-modelid-dir", "custom", "", ["somefile"], [SETTINGS, "path-to-modelid-dir"]),
    _Case(
        "sklearn-standard-native",
        "sklearn",
        "model",
        ["model/model-settings.json", "model/model.joblib"],
        [SETTINGS, "model.joblib"],
        input_config={"name": "my sklearn model", "implementation": "mlserver_sklearn.SKLearnModel"},
        expected_config=lambda target: {
            "name": "sklearn-standard-native",
            "implementation": "mlserver_sklearn.SKLearnModel",
        },
    ),
    _Case(
        "xgboost-standard-native",
        "xgboost",
        "data",
        ["data/model-settings.json", "data/model.bst"],
        [SETTINGS, "model.bst"],
        input_config={"implementation": "mlserver_xgboost.XGBoostModel"},
        expected_config=lambda target: {
            "name": "xgboost-standard-native",
            "implementation": "mlserver_xgboost.XGBoostModel",
        },
    ),
    _Case(
        "xgboost-example",
        "xgboost",
        "dir",
        ["dir/model-settings.json", "dir/mushroom-xgboost.json"],
        [SETTINGS, "mushroom-xgboost.json"],
        input_config={
            "name": "mushroom-xgboost",
            "implementation": "mlserver_xgboost.XGBoostModel",
            "parameters": {"uri": "./mushroom-xgboost.json", "version": "v0.1.0"},
        },
        expected_config=lambda target: {
            "name": "xgboost-example",
            "implementation": "mlserver_xgboost.XGBoostModel",
            "parameters": {
                "uri": os.path.join(target, "mushroom-xgboost.json"),
                "version": "v0.1.0",
            },
        },
    ),
    _Case(
        "mllib-standard",
        "mllib",
        "mllib",
        ["mllib/model-settings.json", "mllib/data/some-files", "mllib/metadata/some-files"],
        [SETTINGS, "data", "metadata"],
        input_config={},
        expected_config=lambda target: {"name": "mllib-standard"},
    ),
    _Case(
        "schema-simple",
        "xgboost",
        "model.json",
        ["model.json", "_schema.json"],
        [SETTINGS, "model.json"],
        schema_path="_schema.json",
        input_schema={"inputs": [_INPUT_TENSOR], "outputs": [_OUTPUT_TENSOR]},
        expected_config=lambda target: {
            "name": "schema-simple",
            "implementation": "mlserver_xgboost.XGBoostModel",
            "parameters": {"uri": os.path.join(target, "model.json")},
            "inputs": [_INPUT_TENSOR],
            "outputs": [_OUTPUT_TENSOR],
        },
    ),
    _Case(
        "schema-overwrite-outputs",
        "xgboost",
        "my-model",
        ["my-model/model-settings.json", "my-model/model.json", "_schema.json"],
        [SETTINGS, "model.json"],
        schema_path="_schema.json",
        input_config={"name": "some-name", "inputs": [_INPUT_TENSOR], "outputs": [_OUTPUT_TENSOR]},
        input_schema={"outputs": [_NEW_OUTPUT_TENSOR]},
        expected_config=lambda target: {
            "name": "schema-overwrite-outputs",
            "inputs": [_INPUT_TENSOR],
            "outputs": [_NEW_OUTPUT_TENSOR],
        },
    ),
    _Case(
        "model-filename-precedes-model-settings",
        "sklearn",
        "data",
        ["data/model-settings.json", "data/aaaaa.json"],
        [SETTINGS, "aaaaa.json"],
        input_config={
            "name": "model-name",
            "implementation": "mlserver_sklearn.SKLearnModel",
            "parameters": {"uri": "./aaaaa.json"},
        },
        expected_config=lambda target: {
            "name": "model-filename-precedes-model-settings",
            "implementation": "mlserver_sklearn.SKLearnModel",
            "parameters": {"uri": os.path.join(target, "aaaaa.json")},
        },
    ),
]


def _generate_source(tmp_path: Path, case: _Case) -> Path:
    source = tmp_path / "generated" / case.model_id
    source.mkdir(parents=True)
    for name in case.input_files:
        path = source / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("")
    if case.input_schema is not None:
        (source / case.schema_path).write_text(json.dumps(case.input_schema))
    if case.input_config is not None:
        (source / case.model_path / SETTINGS).write_text(json.dumps(case.input_config))
    return source


def _run(tmp_path: Path, case: _Case) -> str:
    source = _generate_source(tmp_path, case)
    root = str(tmp_path / "generated" / "_mlserver_models")
    model_path = str(source / case.model_path) if case.model_path else str(source)
    schema_path = str(source / case.schema_path) if case.schema_path else ""
    adapt_model_layout_for_runtime(root, case.model_id, case.model_type, model_path, schema_path)
    return os.path.join(root, case.model_id)


def _extract_uri(config: dict[str, Any]) -> str | None:
    params = config.get("parameters")
    if not isinstance(params, dict):
        return None
    uri = params.get("uri")
    return uri if isinstance(uri, str) else None


@pytest.mark.parametrize("case", CASES, ids=[case.model_id for case in CASES])
def test_adapt_model_layout_for_runtime(tmp_path, case):
    target = _run(tmp_path, case)
    generated = set(os.listdir(target))

    for name in case.expected_files:
        assert name in generated
        if name == SETTINGS:
            continue
        link = os.path.join(target, name)
        assert os.path.islink(link)
        resolved = os.path.realpath(link)
        assert os.path.exists(resolved)
        assert os.path.basename(resolved) == os.path.basename(link)

    with open(os.path.join(target, SETTINGS), encoding="utf-8") as handle:
        config = json.load(handle)
    assert config["name"] == case.model_id

    if case.expected_config is not None:
        assert config == case.expected_config(target)
    elif case.input_config is None:
        uri_target = case.model_id if case.model_path == "" else os.path.basename(case.model_path)
        assert _extract_uri(config) == os.path.join(target, uri_target)
    elif _extract_uri(case.input_config) is not None:
        assert _extract_uri(config).startswith(target)
    else:
        assert _extract_uri(config) is None


def test_missing_model_path_raises(tmp_path):
    root = tmp_path / "models"
    with pytest.raises(OSError, match="Error calling stat"):
        adapt_model_layout_for_runtime(str(root), "m", "sklearn", str(tmp_path / "nope"), "")


def test_missing_schema_file_raises(tmp_path):
    model = tmp_path / "model.bin"
    model.write_text("")
    with pytest.raises(OSError, match="Error adapting model directory"):
        adapt_model_layout_for_runtime(
            str(tmp_path / "models"), "m", "sklearn", str(model), str(tmp_path / "missing.json")
        )


def test_model_type_version_suffix_and_case_are_ignored(tmp_path):
    model = tmp_path / "model.bst"
    model.write_text("")
    root = tmp_path / "models"
    adapt_model_layout_for_runtime(str(root), "m", "XGBoost:1.0", str(model), "")
    config = json.loads((root / "m" / SETTINGS).read_text())
    assert config["implementation"] == "mlserver_xgboost.XGBoostModel"


def test_unknown_model_type_leaves_out_implementation(tmp_path):
    model = tmp_path / "model.bin"
    model.write_text("")
    root = tmp_path / "models"
    adapt_model_layout_for_runtime(str(root), "m", "custom", str(model), "")
    config = json.loads((root / "m" / SETTINGS).read_text())
    assert "implementation" not in config


def test_rerun_replaces_previous_contents(tmp_path):
    model = tmp_path / "model.bin"
    model.write_text("")
    root = tmp_path / "models"
    adapt_model_layout_for_runtime(str(root), "m", "custom", str(model), "")
    (root / "m" / "stale").write_text("old")
    adapt_model_layout_for_runtime(str(root), "m", "custom", str(model), "")
    assert sorted(os.listdir(root / "m")) == sorted([SETTINGS, "model.bin"])