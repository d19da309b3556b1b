# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Partitioned, catalogued table.

Rows are stored as JSON-lines objects, one object per partition per write, and
described by a typed catalog entry, so every column needs a concrete kind
(``columnar`` codec). Partitions come either from a timestamp column bucketed
by a ``Period`` or from plain scalar columns.
"""

import datetime as dt
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..api.errors import SchemaMismatchError
from ..core.config import RuntimeConfig
from ..shape.period import Period
from ..shape.shape import FieldKind, Shape
from .base import Client, Resource

if TYPE_CHECKING:
    from ..graph.topology import Topology

__all__ = ["Partition", "Table", "TableClient"]

_PARTITION_KINDS = frozenset({FieldKind.STRING, FieldKind.INTEGER, FieldKind.BOOLEAN})


def _field(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        return value[name]
    return getattr(value, name)


@dataclass(frozen=True)
class Partition:
    """How rows map to partitions."""

    columns: tuple[str, ...]
    timestamp_field: str | None = None
    period: Period | None = None

    @classmethod
    def by_period(cls, timestamp_field: str, period: Period) -> Partition:
        return cls(columns=period.columns, timestamp_field=timestamp_field, period=period)

    @classmethod
    def by_columns(cls, *names: str) -> Partition:
        if not names:
            raise ValueError("at least one partition column is required")
        return cls(columns=tuple(names))

    def validate(self, shape: Shape) -> None:
        kinds = shape.field_kinds()
        if self.period is not None:
            got = kinds.get(self.timestamp_field or "")
            if got is not FieldKind.TIMESTAMP:
                raise SchemaMismatchError(
                    f"partition field '{self.timestamp_field}' of {shape.name} must be a timestamp, got {got}",
                    fields=[self.timestamp_field or ""],
                )
            return
        bad = [c for c in self.columns if kinds.get(c) not in _PARTITION_KINDS]
        if bad:
            raise SchemaMismatchError(
                f"partition columns of {shape.name} must be string/integer/boolean fields: {', '.join(bad)}",
                fields=bad,
            )

    def values(self, row: Any) -> dict[str, Any]:
        if self.period is not None:
            ts = _field(row, self.timestamp_field or "")
            if not isinstance(ts, dt.datetime):
                ts = dt.datetime.combine(ts, dt.time())
            return self.period.partition_values(ts)
        return {c: _field(row, c) for c in self.columns}

    def describe(self) -> dict[str, Any]:
        return {
            "columns": list(self.columns),
            "timestamp_field": self.timestamp_field,
            "period": self.period.iso if self.period else None,
        }


def partition_path(values: Mapping[str, Any]) -> str:
    return "/".join(f"{k}={v}" for k, v in values.items())


class TableClient(Client):
    service = "table"

    def __init__(self, *args: Any, partition: Partition | None = None, database: str = "default") -> None:
        super().__init__(*args)
        self.partition = partition
        self.database = database

    def sink(self, rows: list[Any]) -> list[Any]:
        """Write ``rows``: one object per partition, partitions in first-seen order."""
        groups: dict[str, tuple[dict[str, Any], list[Any]]] = {}
        for row in rows:
            row = self.shape.validate(row)
            values = self.partition.values(row) if self.partition else {}
            groups.setdefault(partition_path(values), (values, []))[1].append(row)
        return [
            self._call(
                "put_object",
                database=self.database,
                table=self.name,
                partition=values,
                body=self.codec.encode_many(self.shape, group),
            )
            for values, group in groups.values()
        ]


class Table(Resource):
    kind = "table"
    codec_name = "columnar"
    read_actions = ("catalog:GetTable", "catalog:GetPartitions", "bucket:GetObject")
    write_actions = ("catalog:GetTable", "catalog:BatchCreatePartition", "bucket:PutObject")

    def __init__(
        self,
        topology: Topology,
        resource_id: str,
        *,
        shape: Any,
        partition: Partition | None = None,
        database: str = "default",
    ) -> None:
        if not database:
            raise ValueError("database must be a non-empty string")
        self.partition = partition
        self.database = database
        super().__init__(topology, resource_id, shape=shape)

    @classmethod
    def validate(cls, shape: Shape, **props: Any) -> None:
        super().validate(shape, **props)
        if shape.field_kinds().get("$") is not FieldKind.STRUCT:
            raise SchemaMismatchError(f"table rows must be structs, got {shape.name}", fields=["$"])
        partition = props.get("partition")
        if partition is not None:
            partition.validate(shape)

    def props(self) -> dict[str, Any]:
        return {"partition": self.partition, "database": self.database}

    def _client(self, config: RuntimeConfig, name: str) -> Client:
        return TableClient(
            config.transport, name, self.shape, self.codec, partition=self.partition, database=self.database
        )
