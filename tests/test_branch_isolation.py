"""
Branching: two collectors materialized from the same intermediate pipeline get
independent units, and neither changes the shared pipeline.
"""

from __future__ import annotations

import pytest

from topokit.resources import Queue, Topic
from tests.helpers import Event, add_timestamp, is_even

pytestmark = [pytest.mark.pipeline]


def test_two_collectors_share_nothing(topology):
    src = Queue(topology, "incoming", shape=Event)
    alerts = Topic(topology, "alerts", shape=Event)
    base = src.pipeline().filter(is_even).map(lambda e, t: add_timestamp(e), depends=alerts.write_access())
    ops_before, caps_before, shape_before = base.ops, base.capabilities, base.shape

    a = base.to_queue("branch_a")
    b = base.to_stream("branch_b")

    assert a.sender is not b.sender
    assert {u.id for u in topology.units} == {"branch_a/Sender", "branch_b/Sender"}
    assert [c.resource_id for c in a.sender.capabilities] == ["alerts", "branch_a"]
    assert [c.resource_id for c in b.sender.capabilities] == ["alerts", "branch_b"]

    assert base.ops is ops_before
    assert base.capabilities == caps_before
    assert base.shape is shape_before


def test_extending_a_branch_leaves_the_parent_alone(topology):
    src = Queue(topology, "incoming", shape=Event)
    parent = src.pipeline().filter(is_even)
    child = parent.map(add_timestamp)
    other = parent.filter(lambda e: e.count > 10)

    assert len(parent.ops) == 1
    assert len(child.ops) == 2
    assert len(other.ops) == 2
    assert child.ops[0] is other.ops[0]
    assert parent.shape.type is Event


@pytest.mark.asyncio
async def test_branches_run_independently(topology, transport):
    from tests.helpers import queue_event, runtime_for

    src = Queue(topology, "incoming", shape=Event)
    base = src.pipeline().map(add_timestamp)
    evens = base.filter(is_even).for_batch("evens", lambda xs: [x.key for x in xs])
    odds = base.filter(lambda e: not is_even(e)).for_batch("odds", lambda xs: [x.key for x in xs])

    event = queue_event(Event(key="a", count=1), Event(key="b", count=2))
    assert await evens.instance(runtime_for(evens, transport)).invoke(event) == ["b"]
    assert await odds.instance(runtime_for(odds, transport)).invoke(event) == ["a"]
