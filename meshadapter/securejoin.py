"""Joining paths so that the result never escapes the root directory."""

from __future__ import annotations

import errno
import os
import posixpath
import stat

_MAX_SYMLINKS = 255


def _clean(path: str) -> str:
    if not path:
        return "."
    result = posixpath.normpath(path)
    if result.startswith("//"):
        result = "/" + result.lstrip("/")
    return result


def _join(*parts: str) -> str:
    present = [part for part in parts if part]
    if not present:
        return ""
    return _clean("/".join(present))


def _scoped_join(root: str, unsafe: str) -> str:
    path = ""
    links = 0
    while unsafe:
        if links > _MAX_SYMLINKS:
            raise OSError(errno.ELOOP, os.strerror(errno.ELOOP), root + "/" + unsafe)
        component, _, unsafe = unsafe.partition("/")

        scoped = _clean("/" + path + component)
        if scoped == "/":
            path = ""
            continue
        full = _clean(root + scoped)

        try:
            info = os.lstat(full)
        except (FileNotFoundError, NotADirectoryError):
            info = None
        if info is None or not stat.S_ISLNK(info.st_mode):
            path += component + "/"
            continue

        links += 1
        destination = os.readlink(full)
        if destination.startswith("/"):
            path = ""
        unsafe = destination + "/" + unsafe

    return _clean(root + _clean("/" + path))


def secure_join(*args: str | os.PathLike[str]) -> str:
    """Join the second and later paths onto the first, scoped to it.

    ``..`` components and symbolic links are resolved as if the first path
    were the filesystem root, so the result always lies inside it.
    """
    if len(args) < 2:
        raise ValueError("Expected at least 2 parameters")
    parts = [os.fspath(arg) for arg in args]
    root = parts[0]
    unsafe = parts[1] if len(parts) == 2 else _join(*parts[1:])
    return _scoped_join(root, unsafe)