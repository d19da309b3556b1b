# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..compute.capability import Resolved
from ..core.utils import chunked
from .base import Client, SourceResource, records_of

if TYPE_CHECKING:
    from ..graph.topology import Topology

__all__ = ["Queue", "QueueClient"]

# Per-request entry limit of the batch send API.
SEND_BATCH_LIMIT = 10


class QueueClient(Client):
    service = "queue"

    def send(self, value: Any) -> Any:
        body = self.codec.encode(self.shape, value).decode("utf-8")
        return self._call("send_message", queue=self.name, body=body)

    def send_batch(self, values: list[Any]) -> list[Any]:
        """Send ``values`` in order, at most ``SEND_BATCH_LIMIT`` per request."""
        responses = []
        for chunk in chunked(values, SEND_BATCH_LIMIT):
            entries = [
                {"id": str(i), "body": self.codec.encode(self.shape, v).decode("utf-8")} for i, v in enumerate(chunk)
            ]
            responses.append(self._call("send_message_batch", queue=self.name, entries=entries))
        return responses


class Queue(SourceResource):
    """Message queue with JSON bodies. Delivery order is not guaranteed."""

    kind = "queue"
    client_class = QueueClient
    read_actions = ("queue:ReceiveMessage", "queue:DeleteMessage", "queue:GetQueueAttributes")
    write_actions = ("queue:SendMessage",)

    def __init__(self, topology: Topology, resource_id: str, *, shape: Any, visibility_timeout_sec: int = 30) -> None:
        if visibility_timeout_sec <= 0:
            raise ValueError("visibility_timeout_sec must be > 0")
        self.visibility_timeout_sec = visibility_timeout_sec
        super().__init__(topology, resource_id, shape=shape)

    def props(self) -> dict[str, Any]:
        return {"visibility_timeout_sec": self.visibility_timeout_sec}

    def parse_delivery(self, event: Any, clients: Resolved) -> list[Any]:
        """``{"Records": [{"body": "<json>"}, ...]}``"""
        return self.decode_all(r["body"] for r in records_of(event))
