# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Lazy pipelines, fused operators and collector strategies.
"""

from .chain import Arity, FusedChain, Op, StageKind
from .collectors import (
    Collector,
    DeliveryStreamCollector,
    QueueCollector,
    StreamCollector,
    TableCollector,
    TopicCollector,
    sender_id,
    to_delivery_stream,
    to_queue,
    to_stream,
    to_table,
    to_topic,
)
from .pipeline import CollectedResource, Pipeline
from .registry import CollectorRegistry, default_registry

__all__ = [
    "Arity",
    "CollectedResource",
    "Collector",
    "CollectorRegistry",
    "DeliveryStreamCollector",
    "FusedChain",
    "Op",
    "Pipeline",
    "QueueCollector",
    "StageKind",
    "StreamCollector",
    "TableCollector",
    "TopicCollector",
    "default_registry",
    "sender_id",
    "to_delivery_stream",
    "to_queue",
    "to_stream",
    "to_table",
    "to_topic",
]
