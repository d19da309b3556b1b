r"""
End-to-end: declare a multi-hop topology, compile it and push one delivery
through every hop with a recording transport.

  orders(queue) -> stamp+filter -> enriched(stream) -> explode -> archive(delivery stream)
                                                                   \-> reader(for_batch) -> totals(table)

Checks:
  - only terminals and collectors create units
  - each hop's writes decode as the next hop's delivery
  - the compiled plan references every declared id
"""

from __future__ import annotations

import base64
from typing import Any

import pytest

from topokit.core.log import log_context
from topokit.graph import compile_topology
from topokit.resources import Partition, Queue, Table
from tests.helpers import Event, StampedEvent, Word, add_timestamp, bucket_event, queue_event, runtime_for

pytestmark = [pytest.mark.e2e]


def explode_words(e: StampedEvent) -> list[Word]:
    return [Word(key=e.key, word=f"{e.key}:{i}") for i in range(e.count)]


def _stream_delivery(call) -> dict[str, Any]:
    return {"Records": [{"kinesis": {"data": base64.b64encode(r["data"]).decode()}} for r in call.params["records"]]}


@pytest.mark.asyncio
async def test_multi_hop_topology(topology, transport, tlog):
    orders = Queue(topology, "orders", shape=Event)
    totals = Table(topology, "totals", shape=Word, partition=Partition.by_columns("key"))

    enriched = orders.pipeline().map(add_timestamp).filter(lambda e: e.count > 0).to_stream("enriched")
    archive = enriched.pipeline().flat_map(explode_words).to_delivery_stream("archive")
    reader = archive.pipeline().for_batch(
        "reader", lambda words, table: table.sink(words), depends=totals.write_access()
    )

    assert {u.id for u in topology.units} == {"enriched/Sender", "archive/Sender", "reader"}
    assert [c.resource_id for c in reader.capabilities] == ["archive/Bucket", "totals"]

    plan = compile_topology(topology)
    assert {r.id for r in plan.resources} == {"orders", "totals", "enriched", "archive", "archive/Bucket"}
    assert len(plan.subscriptions) == 3

    with log_context(test_flow="e2e"):
        tlog.info("hop 1", event="tests.e2e.hop")
        await enriched.sender.instance(runtime_for(enriched.sender, transport)).invoke(
            queue_event(Event(key="a", count=2), Event(key="b", count=0), Event(key="c", count=1))
        )
        (put,) = transport.of("stream", "put_records")
        assert len(put.params["records"]) == 2

        tlog.info("hop 2", event="tests.e2e.hop")
        await archive.sender.instance(runtime_for(archive.sender, transport)).invoke(_stream_delivery(put))
        (batch,) = transport.of("delivery_stream", "put_record_batch")
        assert len(batch.params["records"]) == 3

        tlog.info("hop 3", event="tests.e2e.hop")
        transport.objects["archive/part-0"] = b"".join(batch.params["records"])
        await reader.instance(runtime_for(reader, transport)).invoke(bucket_event("archive/part-0"))

    writes = transport.of("table", "put_object")
    assert [w.params["partition"] for w in writes] == [{"key": "a"}, {"key": "c"}]
    assert writes[0].params["table"] == totals.physical_name
