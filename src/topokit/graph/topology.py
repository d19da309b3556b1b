# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
The resource graph.

A ``Topology`` collects every resource and compute unit declared against it,
plus the subscriptions wiring units to their event sources. Ids are unique
across resources and units. Building the graph is synchronous and happens once,
at definition time; ``compile_topology`` turns the result into the plan the
provisioning engine consumes.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..api.errors import TopologyError
from ..compute.unit import ComputeUnit, InvocationMode
from ..core.config import TopologyConfig
from ..core.log import get_logger
from ..core.utils import slugify, stable_hash

if TYPE_CHECKING:
    from ..compute.capability import Capability
    from ..resources.base import Resource

__all__ = ["Subscription", "Topology"]

log = get_logger("topology")

_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9-]*$")


@dataclass(frozen=True)
class Subscription:
    """``unit_id`` consumes events of ``source_id``, one per call or in batches."""

    source_id: str
    unit_id: str
    mode: InvocationMode
    batch_size: int | None = None


class Topology:
    def __init__(self, name: str, *, config: TopologyConfig | None = None) -> None:
        if not name or not _NAME_RE.match(name):
            raise TopologyError(f"invalid topology name: {name!r}")
        self.name = name
        self.config = config or TopologyConfig()
        self._resources: dict[str, Resource] = {}
        self._units: dict[str, ComputeUnit] = {}
        self._subscriptions: list[Subscription] = []

    def __repr__(self) -> str:
        return f"Topology({self.name!r}, resources={len(self._resources)}, units={len(self._units)})"

    # ---- naming ------------------------------------------------------------

    def physical_name(self, local_id: str) -> str:
        """Deterministic deployed name: ``[prefix-]<topology>-<id>-<hash>``."""
        parts = [self.config.name_prefix, slugify(self.name), slugify(local_id)]
        base = "-".join(p for p in parts if p)
        return f"{base}-{stable_hash([self.name, local_id])}"

    def ensure_free(self, *ids: str) -> None:
        for i in ids:
            if not i:
                raise TopologyError("empty id")
            if i in self._resources or i in self._units:
                raise TopologyError(f"id already used in topology '{self.name}': {i}")

    def check_capabilities(self, capabilities: Iterable[Capability], *, owner: str) -> None:
        """Raise ``TopologyError`` unless every requirement targets a member of this topology."""
        for cap in capabilities:
            member = self._resources.get(cap.resource_id) or self._units.get(cap.resource_id)
            if member is None or member.physical_name != cap.physical_name:
                raise TopologyError(
                    f"{owner}: {cap.resource_kind} '{cap.resource_id}' is not part of topology '{self.name}'"
                )

    # ---- registration ------------------------------------------------------

    def add_resource(self, resource: Resource) -> None:
        self.ensure_free(resource.id)
        self._resources[resource.id] = resource
        log.debug("resource added", event="topology.resource.added", topology=self.name, resource_id=resource.id)

    def add_unit(self, unit: ComputeUnit) -> None:
        self.ensure_free(unit.id)
        self._units[unit.id] = unit
        log.debug("unit added", event="topology.unit.added", topology=self.name, unit_id=unit.id)

    def subscribe(self, source: Any, unit: ComputeUnit, mode: InvocationMode, batch_size: int | None = None) -> None:
        if self._resources.get(source.id) is not source and self._units.get(source.id) is not source:
            raise TopologyError(f"source '{source.id}' is not part of topology '{self.name}'")
        if self._units.get(unit.id) is not unit:
            raise TopologyError(f"unit '{unit.id}' is not part of topology '{self.name}'")
        sub = Subscription(source_id=source.id, unit_id=unit.id, mode=InvocationMode(mode), batch_size=batch_size)
        self._subscriptions.append(sub)
        log.debug(
            "consumer attached",
            event="topology.subscription.added",
            topology=self.name,
            resource_id=source.id,
            unit_id=unit.id,
            mode=sub.mode.value,
        )

    # ---- views -------------------------------------------------------------

    @property
    def resources(self) -> list[Resource]:
        return list(self._resources.values())

    @property
    def units(self) -> list[ComputeUnit]:
        return list(self._units.values())

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions)

    def resource(self, resource_id: str) -> Resource:
        try:
            return self._resources[resource_id]
        except KeyError as e:
            raise TopologyError(f"unknown resource: {resource_id}") from e

    def unit(self, unit_id: str) -> ComputeUnit:
        try:
            return self._units[unit_id]
        except KeyError as e:
            raise TopologyError(f"unknown unit: {unit_id}") from e

    def consumers_of(self, source_id: str) -> list[ComputeUnit]:
        return [self._units[s.unit_id] for s in self._subscriptions if s.source_id == source_id]
