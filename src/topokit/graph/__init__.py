# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Public exports for the graph package.

Definitions declare resources and units against a ``Topology``; deploy tooling
calls ``compile_topology`` to get the ``TopologyPlan``.
"""

from .compiler import ResourcePlan, SubscriptionPlan, TopologyPlan, UnitPlan, compile_topology
from .topology import Subscription, Topology

__all__ = [
    "ResourcePlan",
    "Subscription",
    "SubscriptionPlan",
    "Topology",
    "TopologyPlan",
    "UnitPlan",
    "compile_topology",
]
