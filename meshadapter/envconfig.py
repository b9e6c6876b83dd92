"""Typed access to configuration held in environment variables."""

from __future__ import annotations

import math
import os
import re
from datetime import timedelta
from decimal import Decimal

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_NANOS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_COMPONENT = re.compile(
    r"([0-9]*(?:\.[0-9]*)?)(ns|us|\u00b5s|\u03bcs|ms|s|m|h)"
)
_INT_TEXT = re.compile(r"[+-]?[0-9]+")


class EnvConfigError(ValueError):
    """Raised when an environment variable holds a value of the wrong kind."""


def parse_bool(text: str) -> bool:
    """Parse the boolean spellings 1/t/true/0/f/false (in their usual cases)."""
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ValueError(f"invalid boolean: {text!r}")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``300ms``, ``-1.5h`` or ``2h45m``.

    Precision below one microsecond is truncated.
    """
    body = text
    negative = False
    if body[:1] in ("+", "-") and body:
        negative = body[0] == "-"
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise ValueError(f"invalid duration: {text!r}")

    total = Decimal(0)
    pos = 0
    while pos < len(body):
        match = _DURATION_COMPONENT.match(body, pos)
        if match is None or not any(ch.isdigit() for ch in match.group(1)):
            raise ValueError(f"invalid duration: {text!r}")
        total += Decimal(match.group(1)) * _NANOS_PER_UNIT[match.group(2)]
        pos = match.end()

    nanos = int(total)
    if nanos > _INT64_MAX:
        raise ValueError(f"invalid duration: {text!r}")
    result = timedelta(microseconds=nanos // 1000)
    return -result if negative else result


def _parse_int(text: str) -> int:
    if not _INT_TEXT.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


def _parse_float(text: str) -> float:
    if text != text.strip() or "_" in text:
        raise ValueError(f"invalid number: {text!r}")
    value = float(text)
    if math.isinf(value) and "inf" not in text.lower():
        raise ValueError(f"number out of range: {text!r}")
    return value


def get_env_string(key: str, default: str) -> str:
    """Return the variable's value, or ``default`` when it is unset.

    A variable set to the empty string yields the empty string.
    """
    return os.environ.get(key, default)


def get_env_int(key: str, default: int) -> int:
    """Return the variable as an int, or ``default`` when it is unset."""
    text = os.environ.get(key)
    if text is None:
        return default
    try:
        return _parse_int(text)
    except ValueError as exc:
        raise EnvConfigError(
            f"Environment variable {key} must be an int, found value {text!r}"
        ) from exc


def get_env_float(key: str, default: float) -> float:
    """Return the variable as a float, or ``default`` when it is unset."""
    text = os.environ.get(key)
    if text is None:
        return default
    try:
        return _parse_float(text)
    except ValueError as exc:
        raise EnvConfigError(
            f"Environment variable {key} must be a number, found value {text!r}"
        ) from exc


def get_env_bool(key: str, default: bool) -> bool:
    """Return the variable as a bool, or ``default`` when it is unset."""
    text = os.environ.get(key)
    if text is None:
        return default
    try:
        return parse_bool(text)
    except ValueError as exc:
        raise EnvConfigError(
            f"Environment variable {key} must be boolean, found value {text!r}"
        ) from exc


def get_env_duration(key: str, default: timedelta) -> timedelta:
    """Return the variable as a duration, or ``default`` when it is unset."""
    text = os.environ.get(key)
    if text is None:
        return default
    try:
        return parse_duration(text)
    except ValueError as exc:
        raise EnvConfigError(
            f"Environment variable {key} must be a duration, found value {text!r}"
        ) from exc