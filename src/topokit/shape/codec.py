from __future__ import annotations

from typing import Any, ClassVar, Iterable, Protocol

from pydantic import TypeAdapter

from ..api.errors import SchemaMismatchError
from .shape import FieldKind, Shape

__all__ = [
    "Codec",
    "CodecsRegistry",
    "ColumnarCodec",
    "JsonCodec",
    "JsonLinesCodec",
    "check_encodable",
    "get_default_codecs",
]

_ALL_KINDS = frozenset(FieldKind)


class Codec(Protocol):
    """Payload codec used by a resource for its wire representation.

    Codecs are pure and thread-safe. ``supports`` lists the field kinds the
    encoding can carry; ``check_encodable`` rejects shapes outside of it.
    """

    name: str
    supports: frozenset[FieldKind]

    def encode(self, shape: Shape, value: Any) -> bytes: ...
    def decode(self, shape: Shape, blob: bytes | str) -> Any: ...
    def encode_many(self, shape: Shape, values: Iterable[Any]) -> bytes: ...
    def decode_many(self, shape: Shape, blob: bytes | str) -> list[Any]: ...


class JsonCodec:
    """One JSON document per message. Raw bytes have no JSON representation."""

    name: ClassVar[str] = "json"
    supports: ClassVar[frozenset[FieldKind]] = _ALL_KINDS - {FieldKind.BINARY}

    def encode(self, shape: Shape, value: Any) -> bytes:
        return shape.encode(value)

    def decode(self, shape: Shape, blob: bytes | str) -> Any:
        return shape.decode(blob)

    def encode_many(self, shape: Shape, values: Iterable[Any]) -> bytes:
        return b"[" + b",".join(shape.encode(v) for v in values) + b"]"

    def decode_many(self, shape: Shape, blob: bytes | str) -> list[Any]:
        return TypeAdapter(list[shape.type]).validate_json(blob)  # type: ignore[name-defined]


class JsonLinesCodec:
    """Newline-delimited JSON, used for object-store batches."""

    name: ClassVar[str] = "jsonl"
    supports: ClassVar[frozenset[FieldKind]] = _ALL_KINDS - {FieldKind.BINARY}

    def encode(self, shape: Shape, value: Any) -> bytes:
        return shape.encode(value) + b"\n"

    def decode(self, shape: Shape, blob: bytes | str) -> Any:
        items = self.decode_many(shape, blob)
        if len(items) != 1:
            raise ValueError(f"jsonl.decode: expected exactly one line, got {len(items)}")
        return items[0]

    def encode_many(self, shape: Shape, values: Iterable[Any]) -> bytes:
        return b"".join(shape.encode(v) + b"\n" for v in values)

    def decode_many(self, shape: Shape, blob: bytes | str) -> list[Any]:
        text = blob.decode("utf-8") if isinstance(blob, (bytes, bytearray)) else blob
        return [shape.decode(line) for line in text.splitlines() if line.strip()]


class ColumnarCodec(JsonLinesCodec):
    """JSON lines backed by a typed catalog: every column needs a concrete kind."""

    name: ClassVar[str] = "columnar"
    supports: ClassVar[frozenset[FieldKind]] = _ALL_KINDS - {FieldKind.BINARY, FieldKind.ANY}


def check_encodable(codec: Codec, shape: Shape) -> None:
    """Raise ``SchemaMismatchError`` if ``codec`` cannot carry every field of ``shape``."""
    bad = sorted(path for path, kind in shape.field_kinds().items() if kind not in codec.supports)
    if bad:
        kinds = shape.field_kinds()
        detail = ", ".join(f"{p} ({kinds[p].value})" for p in bad)
        raise SchemaMismatchError(f"codec '{codec.name}' cannot encode {shape.name}: {detail}", fields=bad)


class CodecsRegistry:
    """Codecs by name. Registering an existing name replaces it (last wins)."""

    def __init__(self) -> None:
        self._codecs: dict[str, Codec] = {}

    def register(self, codec: Codec) -> None:
        self._codecs[codec.name] = codec

    def get(self, name: str) -> Codec:
        try:
            return self._codecs[name]
        except KeyError as e:
            raise LookupError(f"no codec named '{name}'") from e

    def names(self) -> list[str]:
        return sorted(self._codecs)


_default_registry: CodecsRegistry | None = None


def get_default_codecs() -> CodecsRegistry:
    global _default_registry
    if _default_registry is None:
        reg = CodecsRegistry()
        reg.register(JsonCodec())
        reg.register(JsonLinesCodec())
        reg.register(ColumnarCodec())
        _default_registry = reg
    return _default_registry
