"""
Declarative field parsing for stream payload objects.

Stream payloads are untrusted JSON: fields may be missing, ``null``, or of
an unexpected type. Each decoder declares a
[FieldSpec][feedbrotr.stream.parsing.FieldSpec] naming the fields it reads
and their expected types;
[parse_fields][feedbrotr.stream.parsing.parse_fields] then keeps only the
values that match, so a wrong-typed field behaves like an absent one.

Supported field types: identifiers (``int`` or decimal ``str``), ``bool``,
``str``, ``list[str]`` and JSON objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Callable


_SKIP: Any = object()


def _parse_id(value: Any) -> Any:
    # Stream ids are 64-bit and also delivered as ``id_str``.
    if isinstance(value, int) and not isinstance(value, bool):
        return value if value >= 0 else _SKIP
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    return _SKIP


def _parse_bool(value: Any) -> Any:
    return value if isinstance(value, bool) else _SKIP


def _parse_str(value: Any) -> Any:
    return value.replace("\x00", "") if isinstance(value, str) else _SKIP


def _parse_str_list(value: Any) -> Any:
    if isinstance(value, list):
        return [s.replace("\x00", "") for s in value if isinstance(s, str)]
    return _SKIP


def _parse_object(value: Any) -> Any:
    return value if isinstance(value, dict) else _SKIP


_FIELD_PARSERS: tuple[tuple[str, Callable[[Any], Any]], ...] = (
    ("id_fields", _parse_id),
    ("bool_fields", _parse_bool),
    ("str_fields", _parse_str),
    ("str_list_fields", _parse_str_list),
    ("object_fields", _parse_object),
)


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Expected field types of one payload object.

    Attributes:
        id_fields: Non-negative identifiers, as ``int`` or decimal string.
        bool_fields: Fields expected as ``bool``.
        str_fields: Fields expected as ``str`` (null bytes stripped).
        str_list_fields: Fields expected as ``list[str]`` (other elements dropped).
        object_fields: Fields expected as JSON objects (``dict``).
    """

    id_fields: frozenset[str] = field(default_factory=frozenset)
    bool_fields: frozenset[str] = field(default_factory=frozenset)
    str_fields: frozenset[str] = field(default_factory=frozenset)
    str_list_fields: frozenset[str] = field(default_factory=frozenset)
    object_fields: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for attr_name, _ in _FIELD_PARSERS:
            names = getattr(self, attr_name)
            overlap = seen & names
            if overlap:
                raise ValueError(f"fields declared twice: {sorted(overlap)}")
            seen |= names


def parse_fields(data: dict[str, Any], spec: FieldSpec) -> dict[str, Any]:
    """Return the fields of *data* declared in *spec* whose values have the right type.

    Keys not declared in *spec* and values of the wrong type are dropped.
    ``null`` values are always dropped.

    Examples:
        ```python
        spec = FieldSpec(id_fields=frozenset({"id"}), bool_fields=frozenset({"protected"}))
        parse_fields({"id": "42", "protected": "yes"}, spec)  # {"id": 42}
        ```
    """
    dispatch: dict[str, Callable[[Any], Any]] = {}
    for attr_name, parser in _FIELD_PARSERS:
        for name in getattr(spec, attr_name):
            dispatch[name] = parser

    result: dict[str, Any] = {}
    for key, value in data.items():
        handler = dispatch.get(key)
        if handler is None or value is None:
            continue
        parsed = handler(value)
        if parsed is not _SKIP:
            result[key] = parsed
    return result


__all__ = ["FieldSpec", "parse_fields"]
