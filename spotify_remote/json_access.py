"""Path accessors over decoded JSON trees.

Object keys are given as ``str`` and array indices as ``int``. Missing
steps surface as :class:`MalformedResponseException` (``require``) or a
default value (``optional``), never as a ``KeyError``/``TypeError``.
"""

import json
import math
from typing import Any

from spotify_remote.exceptions import MalformedResponseException

_MISSING = object()


def _format_path(path: tuple[str | int, ...]) -> str:
    parts = []
    for step in path:
        if isinstance(step, int):
            parts.append(f"[{step}]")
        else:
            parts.append(f".{step}" if parts else step)
    return "".join(parts) or "<root>"


def _walk(root: Any, path: tuple[str | int, ...]) -> Any:
    current = root
    for step in path:
        if isinstance(step, int) and not isinstance(step, bool):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return _MISSING
            current = current[step]
        elif isinstance(step, str):
            if not isinstance(current, dict) or step not in current:
                return _MISSING
            current = current[step]
        else:
            raise TypeError(f"JSON path steps must be str or int, got {type(step).__name__}")
    return current


def parse_json(body: bytes | str) -> Any:
    """Decode a response body into a JSON tree.

    Raises:
        MalformedResponseException: If the body is empty, not UTF-8, or not
            JSON. ``NaN`` and ``Infinity`` literals are rejected as well.
    """
    if not body:
        raise MalformedResponseException("Empty response body")
    try:
        return json.loads(body, parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedResponseException(
            "Response body is not valid JSON",
            details={"error": str(e)},
        ) from e


def require(root: Any, *path: str | int, expected: type | tuple[type, ...] | None = None) -> Any:
    """Return the value at ``path``, raising if it is missing or null.

    Args:
        root: Decoded JSON tree
        *path: Object keys and array indices
        expected: Optional type(s) the value must have

    Raises:
        MalformedResponseException: If a step is missing, the value is null,
            it has the wrong type, or it is a non-finite number.
    """
    value = _walk(root, path)
    if value is _MISSING or value is None:
        raise MalformedResponseException(
            f"Missing required field: {_format_path(path)}",
            details={"path": _format_path(path)},
        )
    # bool is an int subclass; numeric fields must not accept it
    if expected is not None and (
        not isinstance(value, expected) or (isinstance(value, bool) and bool not in _as_tuple(expected))
    ):
        raise MalformedResponseException(
            f"Field {_format_path(path)} has unexpected type {type(value).__name__}",
            details={"path": _format_path(path), "type": type(value).__name__},
        )
    # Out-of-range literals such as 1e400 decode to inf
    if isinstance(value, float) and not math.isfinite(value):
        raise MalformedResponseException(
            f"Field {_format_path(path)} is not a finite number",
            details={"path": _format_path(path)},
        )
    return value


def optional(root: Any, *path: str | int, default: Any = None) -> Any:
    """Return the value at ``path``, or ``default`` if it is missing or null."""
    value = _walk(root, path)
    if value is _MISSING or value is None:
        return default
    return value


def _as_tuple(expected: type | tuple[type, ...]) -> tuple[type, ...]:
    return expected if isinstance(expected, tuple) else (expected,)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name}")
