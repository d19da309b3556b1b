from __future__ import annotations

import pytest

from topokit.compute.capability import CapabilityList, Resolved
from topokit.pipeline.chain import Arity, FusedChain, Op, StageKind
from tests.helpers import cap

pytestmark = [pytest.mark.unit]


def _run(*ops: Op) -> FusedChain:
    return FusedChain(ops, [Resolved([f"client-{i}"] * len(op.depends)) for i, op in enumerate(ops)])


@pytest.mark.asyncio
async def test_map_filter_flat_map_in_order():
    chain = _run(
        Op.bind(StageKind.MAPPED, lambda x: x + 1),
        Op.bind(StageKind.FLAT_MAPPED, lambda x: range(x)),
        Op.bind(StageKind.FILTERED, lambda x: x % 2 == 0),
    )
    assert await chain.apply(3) == [0, 2]
    assert await chain.apply_all([0, 3]) == [0, 0, 2]


@pytest.mark.asyncio
async def test_flat_map_accepts_none_and_async_iterables():
    async def agen(x):
        for i in range(x):
            yield i * 10

    assert await _run(Op.bind(StageKind.FLAT_MAPPED, lambda x: None)).apply(5) == []
    assert await _run(Op.bind(StageKind.FLAT_MAPPED, agen)).apply(3) == [0, 10, 20]


@pytest.mark.asyncio
async def test_flat_map_rejects_scalars_and_strings():
    with pytest.raises(TypeError):
        await _run(Op.bind(StageKind.FLAT_MAPPED, lambda x: x)).apply(1)
    with pytest.raises(TypeError):
        await _run(Op.bind(StageKind.FLAT_MAPPED, lambda x: "abc")).apply(1)


@pytest.mark.asyncio
async def test_async_operators_are_awaited():
    async def double(x):
        return x * 2

    async def positive(x):
        return x > 0

    chain = _run(Op.bind(StageKind.MAPPED, double), Op.bind(StageKind.FILTERED, positive))
    assert await chain.apply_all([-1, 2]) == [4]


@pytest.mark.asyncio
async def test_operator_arity_follows_depends():
    one = Op.bind(StageKind.MAPPED, lambda x, client: (x, client), cap("a"))
    many = Op.bind(StageKind.MAPPED, lambda x, clients: (x, tuple(clients)), CapabilityList.of(cap("b"), cap("c")))
    assert one.arity is Arity.ONE
    assert many.arity is Arity.MANY
    chain = FusedChain([one, many], [Resolved(["A"]), Resolved(["B", "C"])])
    assert await chain.apply(1) == [((1, "A"), ("B", "C"))]


@pytest.mark.asyncio
async def test_rejected_values_short_circuit_later_operators():
    calls = []
    chain = _run(Op.bind(StageKind.FILTERED, lambda x: False), Op.bind(StageKind.MAPPED, calls.append))
    assert await chain.apply(1) == []
    assert calls == []


def test_mismatched_slices_and_bad_operators():
    with pytest.raises(ValueError):
        FusedChain([Op.bind(StageKind.MAPPED, str)], [])
    with pytest.raises(TypeError):
        Op.bind(StageKind.MAPPED, "not callable")  # type: ignore[arg-type]
