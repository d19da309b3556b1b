# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Resource constructors: queues, streams, topics, partitioned tables and
delivery streams (with their buckets).
"""

from .base import Client, EventSource, Resource, SourceResource, Transport, records_of
from .delivery_stream import Bucket, BucketClient, DeliveryStream, DeliveryStreamClient
from .queue import Queue, QueueClient
from .stream import Stream, StreamClient
from .table import Partition, Table, TableClient
from .topic import Topic, TopicClient

__all__ = [
    "Bucket",
    "BucketClient",
    "Client",
    "DeliveryStream",
    "DeliveryStreamClient",
    "EventSource",
    "Partition",
    "Queue",
    "QueueClient",
    "Resource",
    "SourceResource",
    "Stream",
    "StreamClient",
    "Table",
    "TableClient",
    "Topic",
    "TopicClient",
    "Transport",
    "records_of",
]
