# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Capability merge engine.

Independently authored pieces (an upstream source, each pipeline operator, a
collector's write access) declare their own capability lists without knowing
about each other. ``merge`` concatenates them into the single list a compute
unit declares and records a ``Layout`` so that, at runtime, each contributor
gets back exactly its own positional slice of the resolved tuple.
"""

from dataclasses import dataclass
from functools import reduce
from typing import TYPE_CHECKING, Any

from ..core.utils import maybe_await
from .capability import CapabilityList, Resolved
from .unit import ComputeUnit, ComputeUnitProps

if TYPE_CHECKING:
    from ..graph.topology import Topology

__all__ = ["Layout", "merge", "merge_units"]


@dataclass(frozen=True)
class Layout:
    """Concatenated capabilities plus the size of every contributor's slice."""

    capabilities: CapabilityList
    sizes: tuple[int, ...]

    def split(self, resolved: Resolved) -> tuple[Resolved, ...]:
        if len(resolved) != len(self.capabilities):
            raise ValueError(f"expected {len(self.capabilities)} resolved clients, got {len(resolved)}")
        parts: list[Resolved] = []
        pos = 0
        for n in self.sizes:
            parts.append(Resolved(resolved[pos : pos + n]))
            pos += n
        return tuple(parts)


def merge(*lists: CapabilityList) -> Layout:
    """Order-preserving concatenation of ``lists`` with a positional layout."""
    caps = reduce(CapabilityList.concat, lists, CapabilityList.empty())
    return Layout(capabilities=caps, sizes=tuple(len(x) for x in lists))


def merge_units(
    topology: Topology,
    unit_id: str,
    first: ComputeUnit,
    second: ComputeUnit,
    *,
    props: ComputeUnitProps | None = None,
) -> ComputeUnit:
    """
    One unit running ``first`` then ``second`` on its output.

    Its capability list is ``first.capabilities + second.capabilities``; each
    handler only sees its own clients.
    """
    layout = merge(first.capabilities, second.capabilities)

    async def handler(event: Any, clients: Resolved) -> Any:
        mine, theirs = layout.split(clients)
        mid = await maybe_await(first.handler(event, mine))
        return await maybe_await(second.handler(mid, theirs))

    return ComputeUnit(
        topology,
        unit_id,
        handler=handler,
        depends=layout.capabilities,
        input_shape=first.input_shape,
        output_shape=second.output_shape,
        props=props or first.props,
    )
