# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from typing import Any

from ..compute.capability import Resolved
from .base import Client, SourceResource, records_of

__all__ = ["Topic", "TopicClient"]


class TopicClient(Client):
    service = "topic"

    def publish(self, value: Any) -> Any:
        message = self.codec.encode(self.shape, value).decode("utf-8")
        return self._call("publish", topic=self.name, message=message)


class Topic(SourceResource):
    """Pub/sub topic. Each subscriber receives one notification per published message."""

    kind = "topic"
    client_class = TopicClient
    read_actions = ("topic:Subscribe",)
    write_actions = ("topic:Publish",)

    def parse_delivery(self, event: Any, clients: Resolved) -> list[Any]:
        """``{"Records": [{"Sns": {"Message": "<json>"}}]}``"""
        return self.decode_all(r["Sns"]["Message"] for r in records_of(event))
