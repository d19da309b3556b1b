# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Payload shapes.

A ``Shape`` wraps a Python type (a pydantic model, dataclass, TypedDict or a
plain annotation) in a pydantic ``TypeAdapter`` and exposes what the rest of
topokit needs from a schema system:

- encode/decode to JSON;
- a flattened map of field paths to coarse ``FieldKind`` values, used by
  codecs to decide whether a resource can represent the shape;
- an assignability check between two shapes.

Field paths: ``$`` is the root, struct fields are dotted (``meta.source``),
list elements end in ``[]`` and map values in ``{}``.
"""

import dataclasses
import datetime as dt
import decimal
import enum
import types
import typing
import uuid
from collections.abc import Mapping, Sequence
from functools import cached_property
from typing import Annotated, Any, Literal, Union, get_args, get_origin

from pydantic import BaseModel, TypeAdapter

ROOT = "$"


class FieldKind(str, enum.Enum):
    """Coarse kind of a field, the unit of codec compatibility checks."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    TIME = "time"
    BINARY = "binary"
    LIST = "list"
    MAP = "map"
    STRUCT = "struct"
    ANY = "any"


# Widening conversions accepted by ``Shape.mismatches``.
_WIDENS: dict[FieldKind, frozenset[FieldKind]] = {
    FieldKind.FLOAT: frozenset({FieldKind.INTEGER}),
}

_LIST_ORIGINS = (list, set, frozenset, tuple, Sequence)
_MAP_ORIGINS = (dict, Mapping)


def _join(path: str, name: str) -> str:
    return name if path == ROOT else f"{path}.{name}"


class _Classifier:
    def __init__(self) -> None:
        self.kinds: dict[str, FieldKind] = {}
        self.optional: set[str] = set()
        self.nullable: set[str] = set()

    def visit(self, tp: Any, path: str) -> None:
        origin = get_origin(tp)
        if tp is Any or tp is object:
            self.kinds[path] = FieldKind.ANY
            return
        if origin is Annotated:
            self.visit(get_args(tp)[0], path)
            return
        if origin is Union or origin is types.UnionType:
            args = [a for a in get_args(tp) if a is not type(None)]
            if len(args) != len(get_args(tp)):
                self.optional.add(path)
                self.nullable.add(path)
            if len(args) == 1:
                self.visit(args[0], path)
            else:
                self.kinds[path] = FieldKind.ANY
            return
        if origin is Literal:
            self.kinds[path] = _literal_kind(get_args(tp))
            return
        if origin is not None:
            self._visit_generic(origin, get_args(tp), path)
            return
        if isinstance(tp, type):
            self._visit_class(tp, path)
            return
        self.kinds[path] = FieldKind.ANY

    def _visit_generic(self, origin: Any, args: tuple[Any, ...], path: str) -> None:
        if isinstance(origin, type) and issubclass(origin, _MAP_ORIGINS):
            self.kinds[path] = FieldKind.MAP
            self.visit(args[1] if len(args) == 2 else Any, path + "{}")
        elif isinstance(origin, type) and issubclass(origin, _LIST_ORIGINS):
            self.kinds[path] = FieldKind.LIST
            elems = [a for a in args if a is not Ellipsis]
            if not elems:
                self.visit(Any, path + "[]")
            elif len(set(elems)) == 1:
                self.visit(elems[0], path + "[]")
            else:
                self.visit(Any, path + "[]")
        else:
            self.kinds[path] = FieldKind.ANY

    def _visit_class(self, tp: type, path: str) -> None:
        if issubclass(tp, BaseModel):
            self.kinds[path] = FieldKind.STRUCT
            for name, info in tp.model_fields.items():
                child = _join(path, info.alias or name)
                if not info.is_required():
                    self.optional.add(child)
                self.visit(info.annotation, child)
            return
        if dataclasses.is_dataclass(tp) or typing.is_typeddict(tp):
            self.kinds[path] = FieldKind.STRUCT
            hints = typing.get_type_hints(tp, include_extras=True)
            for name, hint in hints.items():
                self.visit(hint, _join(path, name))
            return
        self.kinds[path] = _scalar_kind(tp)


def _scalar_kind(tp: type) -> FieldKind:
    if issubclass(tp, enum.Enum):
        return FieldKind.INTEGER if issubclass(tp, int) else FieldKind.STRING
    if issubclass(tp, bool):
        return FieldKind.BOOLEAN
    if issubclass(tp, int):
        return FieldKind.INTEGER
    if issubclass(tp, (float, decimal.Decimal)):
        return FieldKind.FLOAT
    if issubclass(tp, (str, uuid.UUID)):
        return FieldKind.STRING
    if issubclass(tp, dt.time):
        return FieldKind.TIME
    if issubclass(tp, (dt.datetime, dt.date)):
        return FieldKind.TIMESTAMP
    if issubclass(tp, (bytes, bytearray)):
        return FieldKind.BINARY
    if issubclass(tp, (list, tuple, set, frozenset)):
        return FieldKind.LIST
    if issubclass(tp, dict):
        return FieldKind.MAP
    return FieldKind.ANY


def _literal_kind(values: tuple[Any, ...]) -> FieldKind:
    kinds = {_scalar_kind(type(v)) for v in values}
    return kinds.pop() if len(kinds) == 1 else FieldKind.ANY


class Shape:
    """Typed view over a payload type, backed by a pydantic ``TypeAdapter``."""

    def __init__(self, tp: Any) -> None:
        self.type = tp
        self._adapter: TypeAdapter[Any] = TypeAdapter(tp)

    @classmethod
    def of(cls, tp: Any) -> Shape:
        return tp if isinstance(tp, Shape) else cls(tp)

    @property
    def name(self) -> str:
        return getattr(self.type, "__name__", None) or repr(self.type)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Shape) and other.type == self.type

    def __hash__(self) -> int:
        return hash(self.type)

    def __repr__(self) -> str:
        return f"Shape({self.name})"

    # ---- values -------------------------------------------------------------

    def validate(self, value: Any) -> Any:
        """Coerce ``value`` into this shape (models of another type are re-validated from their fields)."""
        if isinstance(value, BaseModel) and not (isinstance(self.type, type) and isinstance(value, self.type)):
            value = value.model_dump()
        return self._adapter.validate_python(value)

    def encode(self, value: Any) -> bytes:
        return self._adapter.dump_json(self.validate(value))

    def decode(self, data: bytes | str) -> Any:
        return self._adapter.validate_json(data)

    def to_jsonable(self, value: Any) -> Any:
        return self._adapter.dump_python(self.validate(value), mode="json")

    def json_schema(self) -> dict[str, Any]:
        return self._adapter.json_schema()

    # ---- structure ----------------------------------------------------------

    @cached_property
    def _classified(self) -> _Classifier:
        c = _Classifier()
        c.visit(self.type, ROOT)
        return c

    def field_kinds(self) -> dict[str, FieldKind]:
        """Flattened ``path -> FieldKind`` map, root included."""
        return dict(self._classified.kinds)

    def is_optional(self, path: str) -> bool:
        """True if ``path`` (or one of its parents) may be absent."""
        for opt in self._classified.optional:
            if path == opt or path.startswith((opt + ".", opt + "[", opt + "{")):
                return True
        return False

    def is_nullable(self, path: str) -> bool:
        return path in self._classified.nullable

    def mismatches(self, source: Shape) -> list[str]:
        """
        Paths of this shape that values of ``source`` cannot fill.

        Empty when ``source`` is assignable to this shape. ``ANY`` target paths
        accept anything; an ``ANY`` source path only fills an ``ANY`` target. A
        path the source may leave as ``None`` only fills a nullable target path.
        """
        if source.type == self.type:
            return []
        have = source.field_kinds()
        bad: list[str] = []
        for path, want in self.field_kinds().items():
            if want is FieldKind.ANY:
                continue
            got = have.get(path)
            if got is None:
                if not self.is_optional(path):
                    bad.append(path)
                continue
            if got is not want and got not in _WIDENS.get(want, frozenset()):
                bad.append(path)
            elif source.is_nullable(path) and not self.is_nullable(path):
                bad.append(path)
        return bad
