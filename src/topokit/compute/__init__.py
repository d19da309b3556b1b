# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Capabilities, compute units and the capability merge engine.
"""

from .capability import AccessMode, Capability, CapabilityList, Resolved, concat, cons, empty
from .merge import Layout, merge, merge_units
from .unit import ComputeUnit, ComputeUnitProps, InvocationMode, UnitClient, UnitInstance

__all__ = [
    "AccessMode",
    "Capability",
    "CapabilityList",
    "ComputeUnit",
    "ComputeUnitProps",
    "InvocationMode",
    "Layout",
    "Resolved",
    "UnitClient",
    "UnitInstance",
    "concat",
    "cons",
    "empty",
    "merge",
    "merge_units",
]
