# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import base64
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..compute.capability import Resolved
from ..core.config import RuntimeConfig
from ..core.utils import chunked, stable_hash
from ..shape.codec import Codec
from ..shape.shape import Shape
from .base import Client, SourceResource, Transport, records_of

if TYPE_CHECKING:
    from ..graph.topology import Topology

__all__ = ["Stream", "StreamClient"]

PUT_RECORDS_LIMIT = 500

PartitionKey = Callable[[Any], str]


class StreamClient(Client):
    service = "stream"

    def __init__(self, transport: Transport, name: str, shape: Shape, codec: Codec, partition_key: PartitionKey) -> None:
        super().__init__(transport, name, shape, codec)
        self.partition_key = partition_key

    def _record(self, value: Any) -> dict[str, Any]:
        return {"partition_key": self.partition_key(value), "data": self.codec.encode(self.shape, value)}

    def put_record(self, value: Any) -> Any:
        return self._call("put_record", stream=self.name, **self._record(value))

    def put_records(self, values: list[Any]) -> list[Any]:
        return [
            self._call("put_records", stream=self.name, records=[self._record(v) for v in chunk])
            for chunk in chunked(values, PUT_RECORDS_LIMIT)
        ]


class Stream(SourceResource):
    """
    Sharded, ordered-per-partition-key data stream.

    Records are placed by ``partition_key(value)``; by default a stable hash of
    the JSON value, so equal values land on the same shard.
    """

    kind = "stream"
    client_class = StreamClient
    read_actions = ("stream:GetRecords", "stream:GetShardIterator", "stream:DescribeStream")
    write_actions = ("stream:PutRecord", "stream:PutRecords")

    def __init__(
        self,
        topology: Topology,
        resource_id: str,
        *,
        shape: Any,
        shards: int = 1,
        partition_key: PartitionKey | None = None,
    ) -> None:
        if shards <= 0:
            raise ValueError("shards must be > 0")
        self.shards = shards
        self.partition_key = partition_key
        super().__init__(topology, resource_id, shape=shape)

    def props(self) -> dict[str, Any]:
        return {"shards": self.shards}

    def _default_key(self, value: Any) -> str:
        return stable_hash(self.shape.to_jsonable(value), digest_size=8)

    def _client(self, config: RuntimeConfig, name: str) -> Client:
        return StreamClient(config.transport, name, self.shape, self.codec, self.partition_key or self._default_key)

    def parse_delivery(self, event: Any, clients: Resolved) -> list[Any]:
        """``{"Records": [{"kinesis": {"data": "<base64 json>"}}, ...]}``"""
        return self.decode_all(base64.b64decode(r["kinesis"]["data"]) for r in records_of(event))
