"""
Operator fusion.

map/flat_map/filter never provision anything; the terminal call creates one
unit whose handler runs the whole chain in-process.
"""

from __future__ import annotations

import json
from typing import Any

import pytest

from topokit.api.errors import TopologyError
from topokit.compute.unit import InvocationMode
from topokit.graph import Topology
from topokit.pipeline import StageKind
from topokit.resources import Queue, Topic
from tests.helpers import Event, StampedEvent, Word, add_timestamp, explode, is_even, queue_event, runtime_for

pytestmark = [pytest.mark.pipeline]


def _events(*counts: int) -> list[Event]:
    return [Event(key=f"k{i}", count=c) for i, c in enumerate(counts)]


def test_operators_create_nothing(topology):
    src = Queue(topology, "incoming", shape=Event)
    p = src.pipeline().map(add_timestamp).filter(lambda e: e.count > 0).flat_map(lambda e: [e, e])

    assert topology.units == []
    assert [r.id for r in topology.resources] == ["incoming"]
    assert topology.subscriptions == []
    assert p.stage is StageKind.FLAT_MAPPED
    assert len(p.ops) == 3


def test_output_shape_follows_operators(topology):
    src = Queue(topology, "incoming", shape=Event)
    base = src.pipeline()
    assert base.stage is StageKind.SOURCE
    assert base.shape.type is Event
    assert base.map(add_timestamp).shape.type is StampedEvent
    assert base.flat_map(explode).shape.type is Word
    assert base.filter(is_even).shape.type is Event
    # unannotated callables fall back to Any, explicit returns wins
    assert base.map(lambda e: e).shape.type is Any
    assert base.map(lambda e: e, returns=Event).shape.type is Event


def test_capabilities_grow_monotonically(topology):
    src = Queue(topology, "incoming", shape=Event)
    alerts = Topic(topology, "alerts", shape=Event)
    audit = Queue(topology, "audit", shape=Event)

    p0 = src.pipeline()
    p1 = p0.map(lambda e, topic: e, depends=alerts.write_access(), returns=Event)
    p2 = p1.filter(lambda e, clients: True, depends=[audit.write_access(), alerts.write_access()])

    assert len(p0.capabilities) == 0
    assert [c.resource_id for c in p1.capabilities] == ["alerts"]
    assert [c.resource_id for c in p2.capabilities] == ["alerts", "audit", "alerts"]


def test_operators_reject_resources_of_another_topology(topology):
    src = Queue(topology, "incoming", shape=Event)
    foreign = Topic(Topology("elsewhere"), "alerts", shape=Event)

    with pytest.raises(TopologyError, match="not part of topology 'orders'"):
        src.pipeline().map(lambda e, topic: e, depends=foreign.write_access())


def test_terminal_rejects_resources_of_another_topology(topology):
    src = Queue(topology, "incoming", shape=Event)
    foreign = Queue(Topology("elsewhere"), "audit", shape=Event)
    # same id, different topology: the physical name tells them apart
    Queue(topology, "audit", shape=Event)

    with pytest.raises(TopologyError):
        src.pipeline().for_batch("audit-writer", lambda items, q: None, depends=foreign.write_access())
    assert topology.units == []
    assert topology.subscriptions == []


@pytest.mark.asyncio
async def test_for_batch_runs_the_fused_chain(topology, transport):
    src = Queue(topology, "incoming", shape=Event)
    batches: list[list[Any]] = []

    def handler(items: list[StampedEvent]) -> int:
        batches.append(items)
        return len(items)

    unit = src.pipeline().filter(is_even).map(add_timestamp).for_batch("stamp", handler)

    assert topology.units == [unit]
    (sub,) = topology.subscriptions
    assert (sub.source_id, sub.unit_id, sub.mode) == ("incoming", "stamp", InvocationMode.BATCH)
    assert sub.batch_size == unit.props.batch_size

    out = await unit.instance(runtime_for(unit, transport)).invoke(queue_event(*_events(1, 2, 4)))
    assert out == 2
    assert [e.key for e in batches[0]] == ["k1", "k2"]
    assert all(isinstance(e, StampedEvent) for e in batches[0])
    assert unit.output_shape.type is int


@pytest.mark.asyncio
async def test_rejected_batch_still_invokes_batch_handler(topology, transport):
    src = Queue(topology, "incoming", shape=Event)
    batches = []
    unit = src.pipeline().filter(lambda e: False).for_batch("sink", batches.append)

    await unit.instance(runtime_for(unit, transport)).invoke(queue_event(*_events(1, 2)))
    assert batches == [[]]


@pytest.mark.asyncio
async def test_for_each_calls_handler_per_item(topology, transport):
    src = Queue(topology, "incoming", shape=Event)

    def handler(e: Event) -> str:
        return e.key.upper()

    unit = src.pipeline().flat_map(explode).map(lambda w: Event(key=w.word, count=0), returns=Event).for_each(
        "shout", handler
    )
    assert topology.subscriptions[0].mode is InvocationMode.SINGLE
    assert unit.output_shape.type == list[str]

    out = await unit.instance(runtime_for(unit, transport)).invoke(queue_event(*_events(2, 0, 1)))
    assert out == ["K0-0", "K0-1", "K2-0"]


@pytest.mark.asyncio
async def test_filter_is_idempotent(topology, transport):
    src = Queue(topology, "incoming", shape=Event)
    once = src.pipeline().filter(is_even).for_batch("once", lambda items: [e.key for e in items])
    twice = src.pipeline().filter(is_even).filter(is_even).for_batch("twice", lambda items: [e.key for e in items])

    event = queue_event(*_events(0, 1, 2, 3, 5, 8))
    a = await once.instance(runtime_for(once, transport)).invoke(event)
    b = await twice.instance(runtime_for(twice, transport)).invoke(event)
    assert a == b == ["k0", "k2", "k5"]


@pytest.mark.asyncio
async def test_flat_map_writes_sum_of_outputs(topology, transport):
    """N inputs producing k_i outputs each give exactly sum(k_i) writes."""
    src = Queue(topology, "incoming", shape=Event)
    out = src.pipeline().flat_map(explode).to_queue("words")
    counts = (4, 0, 7, 1)

    await out.sender.instance(runtime_for(out.sender, transport)).invoke(queue_event(*_events(*counts)))

    sent = [json.loads(e["body"]) for c in transport.of("queue", "send_message_batch") for e in c.params["entries"]]
    assert len(sent) == sum(counts)
    # each input's own outputs keep their order
    assert [w["word"] for w in sent if w["key"] == "k2"] == [f"k2-{i}" for i in range(7)]
    # batch writes are chunked at 10 entries
    assert [len(c.params["entries"]) for c in transport.of("queue", "send_message_batch")] == [10, 2]


@pytest.mark.asyncio
async def test_operator_clients_come_from_their_own_slice(topology, transport):
    src = Queue(topology, "incoming", shape=Event)
    alerts = Topic(topology, "alerts", shape=Event)

    def alert_big(e: Event, topic) -> Event:
        if e.count > 10:
            topic.publish(e)
        return e

    out = src.pipeline().map(alert_big, depends=alerts.write_access()).to_queue("all")
    assert [c.resource_id for c in out.sender.capabilities] == ["alerts", "all"]

    await out.sender.instance(runtime_for(out.sender, transport)).invoke(queue_event(*_events(3, 30)))
    (published,) = transport.of("topic", "publish")
    assert published.params["topic"] == alerts.physical_name
    assert json.loads(published.params["message"]) == {"key": "k1", "count": 30}
    assert transport.of("queue", "send_message_batch")[0].params["queue"] == out.physical_name
