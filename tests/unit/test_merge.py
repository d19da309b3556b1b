from __future__ import annotations

import pytest

from topokit.compute.capability import CapabilityList, Resolved
from topokit.compute.merge import merge, merge_units
from topokit.compute.unit import ComputeUnit
from tests.helpers import cap, runtime_for

pytestmark = [pytest.mark.unit]


def test_merge_concatenates_and_records_sizes():
    a = CapabilityList.of(cap("a1"), cap("a2"))
    b = CapabilityList.empty()
    c = CapabilityList.of(cap("c1"))
    layout = merge(a, b, c)

    assert [x.resource_id for x in layout.capabilities] == ["a1", "a2", "c1"]
    assert layout.sizes == (2, 0, 1)


def test_split_hands_back_each_slice():
    layout = merge(CapabilityList.of(cap("a1"), cap("a2")), CapabilityList.empty(), CapabilityList.of(cap("c1")))
    parts = layout.split(Resolved(["A1", "A2", "C1"]))
    assert parts == (("A1", "A2"), (), ("C1",))
    assert all(isinstance(p, Resolved) for p in parts)


def test_split_rejects_wrong_arity():
    layout = merge(CapabilityList.of(cap("a")))
    with pytest.raises(ValueError):
        layout.split(Resolved(["A", "B"]))


@pytest.mark.asyncio
async def test_merged_unit_chains_handlers_with_private_clients(topology):
    seen = {}

    def first(event, clients):
        seen["first"] = [c[0] for c in clients]
        return event + 1

    async def second(value, clients):
        seen["second"] = [c[0] for c in clients]
        return value * 10

    u1 = ComputeUnit(topology, "first", handler=first, depends=CapabilityList.of(cap("x"), cap("y")))
    u2 = ComputeUnit(topology, "second", handler=second, depends=cap("z"))
    merged = merge_units(topology, "both", u1, u2)

    assert [c.resource_id for c in merged.capabilities] == ["x", "y", "z"]
    assert await merged.instance(runtime_for(merged, object())).invoke(1) == 20
    assert seen == {"first": ["x", "y"], "second": ["z"]}
