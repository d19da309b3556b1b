# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Collector strategies.

A collector terminates a pipeline into a new resource. Every variant shares the
same ``materialize`` steps:

  1) check the target can represent the pipeline's output shape, that every id
     it will claim is free and that the source can deliver in the collector's
     mode; nothing is created if any check fails,
  2) create the resource,
  3) take its write capability,
  4) create ``<id>/Sender`` with ``pipeline.capabilities ⊕ write`` and attach it
     to the pipeline's source.

Variants only choose the resource class, the invocation mode and how a batch
(or a single item) is written.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

from ..api.errors import SchemaMismatchError
from ..compute.capability import CapabilityList
from ..compute.unit import ComputeUnitProps, InvocationMode
from ..core.log import get_logger
from ..resources.base import Resource
from ..resources.delivery_stream import DeliveryStream, DeliveryStreamClient
from ..resources.queue import Queue, QueueClient
from ..resources.stream import Stream, StreamClient
from ..resources.table import Table, TableClient
from ..resources.topic import Topic, TopicClient
from ..shape.shape import Shape
from .chain import Arity, Op, StageKind
from .pipeline import CollectedResource

if TYPE_CHECKING:
    from .pipeline import Pipeline

__all__ = [
    "CollectedResource",
    "Collector",
    "DeliveryStreamCollector",
    "QueueCollector",
    "StreamCollector",
    "TableCollector",
    "TopicCollector",
    "sender_id",
    "to_delivery_stream",
    "to_queue",
    "to_stream",
    "to_table",
    "to_topic",
]

log = get_logger("collector")


def sender_id(resource_id: str) -> str:
    return f"{resource_id}/Sender"


class Collector(ABC):
    """
    Strategy materializing a pipeline into a new ``resource_class`` resource.

    ``props`` are passed to the resource constructor; ``shape=`` overrides the
    pipeline's output shape and must be assignable from it.
    """

    kind: ClassVar[str]
    resource_class: ClassVar[type[Resource]]
    mode: ClassVar[InvocationMode] = InvocationMode.BATCH

    def __init__(self, *, unit_props: ComputeUnitProps | None = None, **props: Any) -> None:
        shape = props.pop("shape", None)
        self.shape = Shape.of(shape) if shape is not None else None
        self.unit_props = unit_props
        self.props = props

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.props!r})"

    def target_shape(self, pipeline: Pipeline) -> Shape:
        if self.shape is None:
            return pipeline.shape
        bad = self.shape.mismatches(pipeline.shape)
        if bad:
            raise SchemaMismatchError(
                f"{self.kind}: pipeline output {pipeline.shape.name} does not fit {self.shape.name} at {', '.join(bad)}",
                fields=bad,
            )
        return self.shape

    def materialize(self, resource_id: str, pipeline: Pipeline) -> CollectedResource:
        topology = pipeline.topology
        shape = self.target_shape(pipeline)
        self.resource_class.validate(shape, **self.props)
        unit_id = sender_id(resource_id)
        topology.ensure_free(*self.resource_class.reserved_ids(resource_id), unit_id)
        pipeline.source.check_mode(self.mode)

        resource = self.resource_class(topology, resource_id, shape=shape, **self.props)
        sink = Op(StageKind.TERMINAL, self.forward, CapabilityList.of(resource.write_access()), Arity.ONE)
        sender = pipeline._terminal(unit_id, self.mode, sink, Any, self.unit_props)
        log.info(
            "resource collected",
            event="collector.materialized",
            kind=self.kind,
            resource_id=resource_id,
            unit_id=unit_id,
            capabilities=len(sender.capabilities),
        )
        return CollectedResource(resource=resource, sender=sender)

    @abstractmethod
    def forward(self, payload: Any, client: Any) -> Any:
        """Write one batch (or one item, in single mode) through the resource's client."""


class QueueCollector(Collector):
    kind = "queue"
    resource_class = Queue

    def forward(self, payload: list[Any], client: QueueClient) -> Any:
        return client.send_batch(payload)


class StreamCollector(Collector):
    kind = "stream"
    resource_class = Stream

    def forward(self, payload: list[Any], client: StreamClient) -> Any:
        return client.put_records(payload)


class TopicCollector(Collector):
    kind = "topic"
    resource_class = Topic
    mode = InvocationMode.SINGLE

    def forward(self, payload: Any, client: TopicClient) -> Any:
        return client.publish(payload)


class TableCollector(Collector):
    kind = "table"
    resource_class = Table

    def forward(self, payload: list[Any], client: TableClient) -> Any:
        return client.sink(payload)


class DeliveryStreamCollector(Collector):
    kind = "delivery_stream"
    resource_class = DeliveryStream

    def forward(self, payload: list[Any], client: DeliveryStreamClient) -> Any:
        return client.put_record_batch(payload)


def to_queue(**props: Any) -> QueueCollector:
    return QueueCollector(**props)


def to_stream(**props: Any) -> StreamCollector:
    return StreamCollector(**props)


def to_topic(**props: Any) -> TopicCollector:
    return TopicCollector(**props)


def to_table(**props: Any) -> TableCollector:
    return TableCollector(**props)


def to_delivery_stream(**props: Any) -> DeliveryStreamCollector:
    return DeliveryStreamCollector(**props)
