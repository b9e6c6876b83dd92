"""Arranging downloaded model files into a layout MLServer can load."""

from __future__ import annotations

import logging
import os
import shutil
import stat

from meshadapter.mlserver_settings import (
    MLSERVER_SETTINGS_FILENAME,
    generate_model_config_json,
    process_config_json,
)
from meshadapter.modelschema import ModelSchemaError
from meshadapter.securejoin import secure_join

log = logging.getLogger(__name__)

_GENERATED_SETTINGS_MODE = 0o664
_ADAPT_ERRORS = (OSError, ValueError, TypeError, ModelSchemaError)


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return os.path.basename(stripped)


def _remove_all(path: str) -> None:
    try:
        info = os.lstat(path)
    except FileNotFoundError:
        return
    if stat.S_ISDIR(info.st_mode):
        shutil.rmtree(path)
    else:
        os.unlink(path)


def _write_file(path: str, data: bytes, mode: int) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as handle:
        handle.write(data)


def _adapt_native_layout(
    entries: list[os.DirEntry[str]],
    model_id: str,
    model_path: str,
    schema_path: str,
    target_dir: str,
) -> None:
    """Pass a repository that has its own settings file through to MLServer.

    The settings file is rewritten with the model id; every other entry is
    symlinked.
    """
    for entry in entries:
        source = secure_join(model_path, entry.name)
        if entry.name == MLSERVER_SETTINGS_FILENAME:
            try:
                with open(source, "rb") as handle:
                    config_json = handle.read()
            except OSError as exc:
                raise OSError(f"Could not read model config file {source}: {exc}") from exc
            processed = process_config_json(config_json, model_id, target_dir, schema_path)
            target = secure_join(target_dir, MLSERVER_SETTINGS_FILENAME)
            mode = stat.S_IMODE(entry.stat(follow_symlinks=False).st_mode) & 0o777
            try:
                _write_file(target, processed, mode)
            except OSError as exc:
                raise OSError(f"Error writing config file {source}: {exc}") from exc
            continue

        link = secure_join(target_dir, entry.name)
        try:
            os.symlink(source, link)
        except OSError as exc:
            raise OSError(f"Error creating symlink to {source}: {exc}") from exc

    log.info(
        "Adapted model directory %s with existing settings file (%d entries, schema %r) into %s",
        model_path, len(entries), schema_path, target_dir,
    )


def _adapt_generated_layout(
    model_id: str,
    model_type: str,
    model_path: str,
    schema_path: str,
    target_dir: str,
    is_dir: bool,
) -> None:
    """Link a bare model file or directory and generate its settings file."""
    link_path = secure_join(target_dir, _base(model_path))
    try:
        os.symlink(model_path, link_path)
    except OSError as exc:
        raise OSError(f"Error creating symlink: {exc}") from exc

    config_json = generate_model_config_json(model_id, model_type, link_path, schema_path)

    target = secure_join(target_dir, MLSERVER_SETTINGS_FILENAME)
    try:
        _write_file(target, config_json, _GENERATED_SETTINGS_MODE)
    except OSError as exc:
        raise OSError(f"Error writing generated config file for {model_id}: {exc}") from exc

    log.info(
        "Adapted model %s (directory: %s) linked at %s with generated settings %s",
        model_path, is_dir, link_path, target,
    )


def adapt_model_layout_for_runtime(
    root_model_dir: str | os.PathLike[str],
    model_id: str,
    model_type: str,
    model_path: str | os.PathLike[str],
    schema_path: str,
) -> None:
    """Build ``root_model_dir/model_id`` so that MLServer can load the model.

    A directory holding ``model-settings.json`` is treated as a native
    repository; anything else gets a generated settings file.
    """
    model_type = model_type.split(":")[0].lower()
    model_path = os.fspath(model_path)

    model_dir = secure_join(root_model_dir, model_id)
    try:
        _remove_all(model_dir)
    except OSError as exc:
        log.info("Ignoring error trying to remove dir %s: %s", model_dir, exc)
    try:
        os.makedirs(model_dir, 0o755, exist_ok=True)
    except OSError as exc:
        raise OSError(f"Error creating directories for path {model_dir}: {exc}") from exc

    try:
        info = os.stat(model_path)
    except OSError as exc:
        raise OSError(f"Error calling stat on {model_path}: {exc}") from exc

    try:
        if not stat.S_ISDIR(info.st_mode):
            _adapt_generated_layout(model_id, model_type, model_path, schema_path, model_dir, False)
            return

        try:
            with os.scandir(model_path) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError as exc:
            raise OSError(f"Could not read files in dir {model_path}: {exc}") from exc

        settings = [entry for entry in entries if entry.name == MLSERVER_SETTINGS_FILENAME]
        if settings:
            # the settings file goes first so that its uri is joined before
            # any symlink of the same name exists in the target directory
            ordered = settings + [e for e in entries if e.name != MLSERVER_SETTINGS_FILENAME]
            _adapt_native_layout(ordered, model_id, model_path, schema_path, model_dir)
        else:
            _adapt_generated_layout(model_id, model_type, model_path, schema_path, model_dir, True)
    except _ADAPT_ERRORS as exc:
        raise OSError(f"Error adapting model directory {model_path}: {exc}") from exc