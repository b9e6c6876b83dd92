"""Small filesystem helpers."""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")


def remove_named_entry(filename: str, entries: Iterable[T]) -> tuple[bool, list[T]]:
    """Drop the last entry whose ``name`` equals ``filename``.

    The final entry takes the removed one's place, so order is not kept.
    Returns whether an entry was removed and the resulting list.
    """
    items = list(entries)
    matches = [index for index, entry in enumerate(items) if getattr(entry, "name") == filename]
    if not matches:
        return False, items
    items[matches[-1]] = items[-1]
    items.pop()
    return True, items


def file_exists(path: str | os.PathLike[str]) -> bool:
    """Return whether ``path`` exists; errors other than absence are raised."""
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    return True


def _remove_all(entry: os.DirEntry[Any]) -> None:
    if entry.is_dir(follow_symlinks=False):
        shutil.rmtree(entry.path)
    else:
        os.unlink(entry.path)


def clear_directory_contents(
    dir_path: str | os.PathLike[str],
    condition: Callable[[os.DirEntry[Any]], bool] | None = None,
) -> None:
    """Remove the entries of ``dir_path``, if it exists.

    When ``condition`` is given, only entries for which it returns true go.
    """
    try:
        with os.scandir(dir_path) as iterator:
            entries = sorted(iterator, key=lambda entry: entry.name)
    except FileNotFoundError:
        return
    except OSError as exc:
        raise OSError(f"Error listing files to clean up in model dir {dir_path}: {exc}") from exc

    for entry in entries:
        if condition is not None and not condition(entry):
            continue
        try:
            _remove_all(entry)
        except FileNotFoundError:
            continue
        except OSError as exc:
            raise OSError(
                f"Error removing preexisting entry from model store dir: {entry.path}: {exc}"
            ) from exc