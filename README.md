# meshadapter

Helpers for running model servers behind a model-mesh style runtime
interface. The package prepares model files on disk so that MLServer can
load them, reads adapter settings from the environment, and reads, writes
and reloads the multi-model configuration of an OpenVINO Model Server
(OVMS).

It has no dependencies outside the standard library.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## General helpers

- `meshadapter.envconfig`: typed environment lookups (`get_env_string`,
  `get_env_int`, `get_env_float`, `get_env_bool`, `get_env_duration`).
  An unset variable gives the default; a value that cannot be parsed raises
  `EnvConfigError`. `parse_bool` accepts `1`, `t`, `T`, `true`, `TRUE`,
  `True` and their false counterparts; `parse_duration` reads strings such
  as `300ms` or `2h45m` into a `datetime.timedelta`.
- `meshadapter.securejoin`: `secure_join(root, *paths)` joins paths so the
  result never escapes `root`; `..` and symbolic links are resolved as if
  `root` were the filesystem root. Fewer than two arguments raise
  `ValueError`.
- `meshadapter.connect`: `resolve_local_grpc_endpoint("port:8085")` returns
  `"localhost:8085"`; `unix:` endpoints pass through unchanged and anything
  else raises `ValueError`.
- `meshadapter.loadmodel`: reads a model key JSON document.
  `get_model_type(model_key, model_type)` returns the `model_type` it names
  (as a string or as an object with a `name`), falling back to `model_type`;
  `get_schema_path(model_key)` returns `schema_path` or `""`;
  `calc_mem_capacity(model_key, default_size, multiplier)` multiplies
  `disk_size_bytes` by `multiplier`, or returns `default_size`.
- `meshadapter.modelschema`: `load_model_schema(path)` reads a
  `_schema.json` file into a `ModelSchema` of `TensorMetadata` inputs and
  outputs, raising `ModelSchemaError` on failure. `Datatype` lists the
  tensor element types.
- `meshadapter.fileutil`: `file_exists(path)`,
  `clear_directory_contents(dir_path, condition)` and
  `remove_named_entry(filename, entries)`.

## MLServer

- `meshadapter.mlserver_config.load_mlserver_configuration()` builds an
  `MLServerAdapterConfiguration` from `ADAPTER_PORT`, `RUNTIME_PORT`,
  `CONTAINER_MEM_REQ_BYTES`, `MEM_BUFFER_BYTES`, `LOADING_CONCURRENCY`,
  `LOADTIME_TIMEOUT`, `DEFAULT_MODELSIZE`, `MODELSIZE_MULTIPLIER`,
  `RUNTIME_VERSION`, `LIMIT_PER_MODEL_CONCURRENCY`, `ROOT_MODEL_DIR` and
  `USE_EMBEDDED_PULLER`. `CONTAINER_MEM_REQ_BYTES` must be set to a
  non-negative integer and `MODELSIZE_MULTIPLIER` must be positive;
  otherwise `ValueError` is raised. The root model directory is
  `ROOT_MODEL_DIR/_mlserver_models`.
- `meshadapter.mlserver_settings` produces `model-settings.json`
  documents: `generate_model_config_json(model_id, model_type, uri,
  schema_path)` writes a new one, choosing the implementation for
  `lightgbm`, `sklearn`, `xgboost` and `mllib`;
  `process_config_json(json_in, model_id, target_dir, schema_path)`
  rewrites an existing one, setting `name` and making `parameters.uri`
  absolute inside `target_dir`; `process_schema(config, schema)` copies a
  schema's inputs and outputs into a settings dictionary.
- `meshadapter.mlserver_layout.adapt_model_layout_for_runtime(root_model_dir,
  model_id, model_type, model_path, schema_path)` recreates
  `root_model_dir/model_id` as symlinks to the model files plus a settings
  file. A directory that already holds `model-settings.json` keeps its own
  settings (rewritten for the model id); anything else gets a generated one.

```python
from meshadapter.mlserver_layout import adapt_model_layout_for_runtime

adapt_model_layout_for_runtime(
    "/models/_mlserver_models", "my-model", "sklearn", "/models/my-model/model.joblib", ""
)
```

## OpenVINO Model Server

- `meshadapter.ovms_modelconfig` holds the `ModelConfig`, `ModelStatus` and
  `ModelVersionStatus` records, with `parse_repository_config` and
  `dump_repository_config` for the multi-model config file and
  `parse_config_response` and `parse_error_response` for the replies of the
  `/v1/config` API.
- `meshadapter.ovms_client.OvmsClient(address)` talks to the server's REST
  config API: `get_config(timeout)` returns the model statuses keyed by
  model name, and `reload_config(timeout)` asks for a reload, fetching the
  statuses with `get_config` when the reload reports an error. Failures
  raise `OvmsClientError`, whose `http_status` holds the reply's status.
- `meshadapter.ovms_client.write_repository_config(path, configs,
  permissions)` writes the multi-model config file.

```python
from meshadapter.ovms_client import OvmsClient, write_repository_config
from meshadapter.ovms_modelconfig import ModelConfig

write_repository_config(
    "/models/model_config_list.json",
    [ModelConfig(name="my-model", base_path="/models/_ovms_models/my-model",
                 target_device="CPU")],
)
statuses = OvmsClient("http://localhost:8001").reload_config(timeout=30)
print(statuses["my-model"][0].state)
```

## What the package does not do

- It has no command and runs no gRPC server; it offers the building blocks
  an adapter process would call.
- It does not talk to MLServer over the network; it only prepares the
  model directory and settings files.
- For OVMS it has no environment configuration loader, does not build the
  versioned `<model-id>/<version>/` model layout, and does not batch or
  queue load and unload requests; the caller keeps the list of models,
  writes the config file and asks for the reload itself.