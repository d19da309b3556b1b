# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Delivery stream into an object-store bucket.

Writers push records; the service buffers them and lands JSON-lines objects in
the stream's own ``Bucket``. Downstream consumers are notified per object, so
reading a delivery needs read access to the bucket: that requirement is the
stream's source capability and is carried by every unit consuming it.
"""

import gzip
from typing import TYPE_CHECKING, Any, Literal

from ..compute.capability import CapabilityList, Resolved
from ..core.utils import chunked
from ..shape.shape import Shape
from .base import Client, Resource, SourceResource, records_of

if TYPE_CHECKING:
    from ..graph.topology import Topology

__all__ = ["Bucket", "BucketClient", "DeliveryStream", "DeliveryStreamClient"]

PUT_RECORD_BATCH_LIMIT = 500

Compression = Literal["NONE", "GZIP"]


class BucketClient(Client):
    service = "bucket"

    def get_object(self, key: str) -> bytes:
        return self._call("get_object", bucket=self.name, key=key)

    def put_object(self, key: str, body: bytes) -> Any:
        return self._call("put_object", bucket=self.name, key=key, body=body)


class Bucket(Resource):
    kind = "bucket"
    codec_name = "jsonl"
    client_class = BucketClient
    read_actions = ("bucket:GetObject", "bucket:ListBucket")
    write_actions = ("bucket:PutObject",)


class DeliveryStreamClient(Client):
    service = "delivery_stream"

    def put_record(self, value: Any) -> Any:
        return self._call("put_record", stream=self.name, data=self.codec.encode(self.shape, value))

    def put_record_batch(self, values: list[Any]) -> list[Any]:
        return [
            self._call("put_record_batch", stream=self.name, records=[self.codec.encode(self.shape, v) for v in chunk])
            for chunk in chunked(values, PUT_RECORD_BATCH_LIMIT)
        ]


class DeliveryStream(SourceResource):
    kind = "delivery_stream"
    codec_name = "jsonl"
    client_class = DeliveryStreamClient
    write_actions = ("delivery_stream:PutRecord", "delivery_stream:PutRecordBatch")

    def __init__(
        self,
        topology: Topology,
        resource_id: str,
        *,
        shape: Any,
        prefix: str = "",
        buffer_interval_sec: int = 60,
        compression: Compression = "NONE",
    ) -> None:
        if not 60 <= buffer_interval_sec <= 900:
            raise ValueError("buffer_interval_sec must be within [60, 900]")
        if compression not in ("NONE", "GZIP"):
            raise ValueError(f"unsupported compression: {compression}")
        self.prefix = prefix
        self.buffer_interval_sec = buffer_interval_sec
        self.compression = compression
        self.validate(Shape.of(shape))
        topology.ensure_free(*self.reserved_ids(resource_id))
        self.bucket = Bucket(topology, self.bucket_id(resource_id), shape=shape)
        super().__init__(topology, resource_id, shape=shape)

    @staticmethod
    def bucket_id(resource_id: str) -> str:
        return f"{resource_id}/Bucket"

    @classmethod
    def reserved_ids(cls, resource_id: str) -> tuple[str, ...]:
        return (resource_id, cls.bucket_id(resource_id))

    def props(self) -> dict[str, Any]:
        return {
            "prefix": self.prefix,
            "buffer_interval_sec": self.buffer_interval_sec,
            "compression": self.compression,
        }

    def read_access(self):  # type: ignore[override]
        """Reading a delivery stream means reading the objects it lands."""
        return self.bucket.read_access()

    def source_capabilities(self) -> CapabilityList:
        return CapabilityList.of(self.bucket.read_access())

    def parse_delivery(self, event: Any, clients: Resolved) -> list[Any]:
        """Object notifications ``{"Records": [{"s3": {"object": {"key": ...}}}]}``, fetched via the bucket client."""
        (bucket,) = clients
        values: list[Any] = []
        for record in records_of(event):
            blob = bucket.get_object(record["s3"]["object"]["key"])
            if self.compression == "GZIP":
                blob = gzip.decompress(blob)
            values.extend(self.codec.decode_many(self.shape, blob))
        return values
