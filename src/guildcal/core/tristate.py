"""Three-state optional fields for partial request payloads.

A payload field is either left out (``Unset``), sent as ``null`` to clear the
remote value (``Clear``), or sent with a value (``Set``). Payload builders
store one of these per wire key and :func:`to_wire` renders the final dict.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Unset:
    """Field is omitted from the payload; the remote value is left unchanged."""

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Clear:
    """Field is sent as ``null``; the remote value is cleared."""


@dataclass(frozen=True, slots=True)
class Set(Generic[T]):
    """Field is sent with ``value``."""

    value: T


UNSET = Unset()
CLEAR = Clear()

TriState = Unset | Clear | Set[Any]


def from_options(options: Mapping[str, Any], key: str) -> TriState:
    """Read *key* from *options*: missing -> Unset, ``None`` -> Clear, else Set."""
    if key not in options:
        return UNSET
    value = options[key]
    if value is None:
        return CLEAR
    return Set(value)


def map_set(field: TriState, func: Callable[[Any], U]) -> Unset | Clear | Set[U]:
    """Apply *func* to the value of a ``Set`` field; other states pass through."""
    if isinstance(field, Set):
        return Set(func(field.value))
    return field


def to_wire(fields: Mapping[str, TriState]) -> dict[str, Any]:
    """Render a payload: drop Unset keys, ``None`` for Clear, the value for Set."""
    body: dict[str, Any] = {}
    for key, field in fields.items():
        if isinstance(field, Unset):
            continue
        if isinstance(field, Clear):
            body[key] = None
        elif isinstance(field, Set):
            body[key] = field.value
        else:
            raise TypeError(f"Payload field {key!r} is not a tri-state value: {field!r}")
    return body
