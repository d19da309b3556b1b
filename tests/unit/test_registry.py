from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from topokit.api.errors import RegistryError
from topokit.pipeline import registry as registry_mod
from topokit.pipeline.collectors import Collector, QueueCollector
from topokit.pipeline.registry import CollectorRegistry, default_registry
from topokit.resources.queue import Queue
from tests.helpers import Event

pytestmark = [pytest.mark.unit]


class AuditQueueCollector(Collector):
    kind = "audit_queue"
    resource_class = Queue

    def forward(self, payload: list[Any], client: Any) -> Any:
        return [client.send(v) for v in payload]


def test_builtins_are_registered():
    assert default_registry().names() == ["delivery_stream", "queue", "stream", "table", "topic"]
    assert default_registry().collector("queue") is QueueCollector


def test_register_checks_names_and_duplicates():
    reg = CollectorRegistry(builtins=False)
    reg.register("audit", AuditQueueCollector)
    assert "audit" in reg
    with pytest.raises(RegistryError):
        reg.register("audit", AuditQueueCollector)
    with pytest.raises(RegistryError):
        reg.register("", AuditQueueCollector)
    with pytest.raises(RegistryError):
        reg.register("_private", AuditQueueCollector)
    with pytest.raises(RegistryError):
        reg.register("plain", dict)  # type: ignore[arg-type]
    with pytest.raises(RegistryError):
        reg.collector("queue")


def test_pipeline_dispatches_through_registry(topology):
    reg = CollectorRegistry()
    reg.register("audit", AuditQueueCollector)
    src = Queue(topology, "incoming", shape=Event)

    out = src.pipeline().to("audit", "audited", registry=reg)
    assert out.resource.kind == "queue"
    assert out.sender.id == "audited/Sender"
    with pytest.raises(RegistryError):
        src.pipeline().to("audit", "again")


def test_entry_points_are_loaded(monkeypatch):
    def fake_entry_points(group):
        assert group == "topokit.collectors"
        return [SimpleNamespace(name="audit", load=lambda: AuditQueueCollector)]

    monkeypatch.setattr(registry_mod, "entry_points", fake_entry_points)
    reg = CollectorRegistry(builtins=False)
    assert reg.load_entry_points() == ["audit"]
    assert reg.collector("audit") is AuditQueueCollector


def test_broken_entry_point_is_reported(monkeypatch):
    def broken():
        raise ImportError("missing module")

    monkeypatch.setattr(registry_mod, "entry_points", lambda group: [SimpleNamespace(name="bad", load=broken)])
    with pytest.raises(RegistryError) as ei:
        CollectorRegistry(builtins=False).load_entry_points()
    assert isinstance(ei.value.__cause__, ImportError)
