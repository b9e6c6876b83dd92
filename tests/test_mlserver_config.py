import pytest

from meshadapter.envconfig import EnvConfigError
from meshadapter.mlserver_config import (
    ADAPTER_PORT,
    CONTAINER_MEM_REQ_BYTES,
    DEFAULT_LIMIT_PER_MODEL_CONCURRENCY,
    DEFAULT_LOADING_CONCURRENCY,
    DEFAULT_MEM_BUFFER_BYTES,
    DEFAULT_MODEL_SIZE_IN_BYTES,
    DEFAULT_MODEL_SIZE_MULTIPLIER,
    DEFAULT_RUNTIME_VERSION,
    LIMIT_PER_MODEL_CONCURRENCY,
    LOADING_CONCURRENCY,
    LOADTIME_TIMEOUT,
    MEM_BUFFER_BYTES,
    MLSERVER_MODEL_SUBDIR,
    MODELSIZE_MULTIPLIER,
    ROOT_MODEL_DIR,
    RUNTIME_PORT,
    RUNTIME_VERSION,
    USE_EMBEDDED_PULLER,
    DEFAULT_MODELSIZE,
    load_mlserver_configuration,
)

ALL_KEYS = [
    ADAPTER_PORT,
    RUNTIME_PORT,
    CONTAINER_MEM_REQ_BYTES,
    MEM_BUFFER_BYTES,
    LOADING_CONCURRENCY,
    LOADTIME_TIMEOUT,
    DEFAULT_MODELSIZE,
    MODELSIZE_MULTIPLIER,
    RUNTIME_VERSION,
    LIMIT_PER_MODEL_CONCURRENCY,
    ROOT_MODEL_DIR,
    USE_EMBEDDED_PULLER,
]

MEM_REQ = 6 * 1024 * 1024 * 1024


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ALL_KEYS:
        monkeypatch.delenv(key, raising=False)
    yield monkeypatch


def test_defaults(clean_env):
    clean_env.setenv(CONTAINER_MEM_REQ_BYTES, str(MEM_REQ))
    config = load_mlserver_configuration()
    assert config.port == 8085
    assert config.mlserver_port == 8001
    assert config.container_mem_req_bytes == MEM_REQ
    assert config.mem_buffer_bytes == DEFAULT_MEM_BUFFER_BYTES
    assert config.capacity_in_bytes == MEM_REQ - DEFAULT_MEM_BUFFER_BYTES
    assert config.max_loading_concurrency == DEFAULT_LOADING_CONCURRENCY
    assert config.model_loading_timeout_ms == 30000
    assert config.default_model_size_in_bytes == DEFAULT_MODEL_SIZE_IN_BYTES
    assert config.model_size_multiplier == DEFAULT_MODEL_SIZE_MULTIPLIER
    assert config.runtime_version == DEFAULT_RUNTIME_VERSION
    assert config.limit_model_concurrency == DEFAULT_LIMIT_PER_MODEL_CONCURRENCY
    assert config.use_embedded_puller is False
    assert config.root_model_dir == "/models/" + MLSERVER_MODEL_SUBDIR


def test_values_from_environment(clean_env, tmp_path):
    clean_env.setenv(CONTAINER_MEM_REQ_BYTES, str(MEM_REQ))
    clean_env.setenv(MEM_BUFFER_BYTES, "1024")
    clean_env.setenv(ADAPTER_PORT, "9000")
    clean_env.setenv(MODELSIZE_MULTIPLIER, "1.35")
    clean_env.setenv(RUNTIME_VERSION, "custom")
    clean_env.setenv(USE_EMBEDDED_PULLER, "true")
    clean_env.setenv(ROOT_MODEL_DIR, str(tmp_path))
    config = load_mlserver_configuration()
    assert config.port == 9000
    assert config.capacity_in_bytes == MEM_REQ - 1024
    assert config.model_size_multiplier == 1.35
    assert config.runtime_version == "custom"
    assert config.use_embedded_puller is True
    assert config.root_model_dir == str(tmp_path / MLSERVER_MODEL_SUBDIR)


def test_missing_memory_request_is_an_error(clean_env):
    with pytest.raises(ValueError, match=CONTAINER_MEM_REQ_BYTES):
        load_mlserver_configuration()


@pytest.mark.parametrize("value", ["0", "-1.5"])
def test_non_positive_multiplier_is_an_error(clean_env, value):
    clean_env.setenv(CONTAINER_MEM_REQ_BYTES, str(MEM_REQ))
    clean_env.setenv(MODELSIZE_MULTIPLIER, value)
    with pytest.raises(ValueError, match=MODELSIZE_MULTIPLIER):
        load_mlserver_configuration()


def test_malformed_int_is_an_env_error(clean_env):
    clean_env.setenv(CONTAINER_MEM_REQ_BYTES, str(MEM_REQ))
    clean_env.setenv(ADAPTER_PORT, "not-a-port")
    with pytest.raises(EnvConfigError):
        load_mlserver_configuration()


def test_malformed_bool_is_an_env_error(clean_env):
    clean_env.setenv(CONTAINER_MEM_REQ_BYTES, str(MEM_REQ))
    clean_env.setenv(USE_EMBEDDED_PULLER, "")
    with pytest.raises(EnvConfigError):
        load_mlserver_configuration()