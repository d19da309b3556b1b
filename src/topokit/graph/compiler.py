# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Compiler: Topology -> TopologyPlan.

This pass performs:
- reference checks (every subscription points at a declared source and unit)
- resource normalization (kind, physical name, codec, JSON schema, props)
- unit normalization (capabilities with their actions, binding environment, sizing)

The provisioning engine consumes the plan; nothing here talks to a provider.
"""

from typing import Any

from pydantic import BaseModel, Field

from ..api.errors import TopologyError
from ..core.log import get_logger
from .topology import Topology

__all__ = ["ResourcePlan", "SubscriptionPlan", "TopologyPlan", "UnitPlan", "compile_topology"]

log = get_logger("compiler")

# -------------------------------
# Plan models
# -------------------------------


class ResourcePlan(BaseModel):
    id: str
    kind: str
    physical_name: str
    codec: str
    schema_: dict[str, Any] = Field(default_factory=dict, alias="schema")
    props: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


class UnitPlan(BaseModel):
    id: str
    physical_name: str
    capabilities: list[dict[str, Any]] = Field(default_factory=list)
    environment: dict[str, str] = Field(default_factory=dict)
    props: dict[str, Any] = Field(default_factory=dict)


class SubscriptionPlan(BaseModel):
    source_id: str
    unit_id: str
    mode: str  # "single" | "batch"
    batch_size: int | None = None


class TopologyPlan(BaseModel):
    """Everything the provisioning engine needs to deploy a topology."""

    name: str
    resources: list[ResourcePlan] = Field(default_factory=list)
    units: list[UnitPlan] = Field(default_factory=list)
    subscriptions: list[SubscriptionPlan] = Field(default_factory=list)

    def resource(self, resource_id: str) -> ResourcePlan:
        for r in self.resources:
            if r.id == resource_id:
                return r
        raise KeyError(resource_id)

    def unit(self, unit_id: str) -> UnitPlan:
        for u in self.units:
            if u.id == unit_id:
                return u
        raise KeyError(unit_id)


# -------------------------------
# Compilation
# -------------------------------


def _jsonable(value: Any) -> Any:
    if hasattr(value, "describe"):
        return value.describe()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def compile_topology(topology: Topology) -> TopologyPlan:
    resource_ids = {r.id for r in topology.resources}
    unit_ids = {u.id for u in topology.units}

    for sub in topology.subscriptions:
        if sub.source_id not in resource_ids and sub.source_id not in unit_ids:
            raise TopologyError(f"subscription of '{sub.unit_id}' references unknown source '{sub.source_id}'")
        if sub.unit_id not in unit_ids:
            raise TopologyError(f"subscription on '{sub.source_id}' references unknown unit '{sub.unit_id}'")

    resources = [
        ResourcePlan(
            id=r.id,
            kind=r.kind,
            physical_name=r.physical_name,
            codec=r.codec.name,
            schema=r.shape.json_schema(),
            props=_jsonable(r.props()),
        )
        for r in topology.resources
    ]

    units = []
    for u in topology.units:
        for cap in u.capabilities:
            if cap.resource_id not in resource_ids and cap.resource_id not in unit_ids:
                raise TopologyError(f"unit '{u.id}' needs unknown resource '{cap.resource_id}'")
        units.append(
            UnitPlan(
                id=u.id,
                physical_name=u.physical_name,
                capabilities=[c.describe() for c in u.capabilities],
                environment=u.environment,
                props=u.props.model_dump(exclude={"environment"}),
            )
        )

    subscriptions = [
        SubscriptionPlan(source_id=s.source_id, unit_id=s.unit_id, mode=s.mode.value, batch_size=s.batch_size)
        for s in topology.subscriptions
    ]

    plan = TopologyPlan(name=topology.name, resources=resources, units=units, subscriptions=subscriptions)
    log.info(
        "topology compiled",
        event="compiler.plan.ok",
        topology=topology.name,
        resources=len(resources),
        units=len(units),
        subscriptions=len(subscriptions),
    )
    return plan
