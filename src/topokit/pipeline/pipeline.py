# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Lazy transformation pipeline.

A ``Pipeline`` is an immutable description: an event source plus a tuple of
operators. ``map``/``flat_map``/``filter`` return a new pipeline and create
nothing. Only a terminal call (``for_each``, ``for_batch``, ``collect`` and the
``to_*`` shortcuts) creates a compute unit, whose handler:

  1) unpacks the delivery with the source's own clients,
  2) runs every fused operator with its own slice of the resolved tuple,
  3) hands the survivors to the terminal sink, as one batch or item by item.

The unit's capability list is ``source ⊕ op_1 ⊕ ... ⊕ op_n ⊕ sink``.
"""

import typing
from collections.abc import (
    AsyncGenerator,
    AsyncIterable,
    AsyncIterator,
    Callable,
    Generator,
    Iterable,
    Iterator,
    Sequence,
)
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..api.errors import TopologyError
from ..compute.capability import CapabilityList, Resolved
from ..compute.merge import merge
from ..compute.unit import ComputeUnit, ComputeUnitProps, InvocationMode
from ..core.log import get_logger
from ..core.utils import maybe_await
from ..shape.shape import Shape
from .chain import FusedChain, Op, StageKind

if TYPE_CHECKING:
    from ..graph.topology import Topology
    from ..resources.base import EventSource, Resource
    from .collectors import Collector
    from .registry import CollectorRegistry

__all__ = ["CollectedResource", "Pipeline"]

log = get_logger("pipeline")

_ELEMENT_ORIGINS = (
    Iterable,
    Iterator,
    Generator,
    AsyncIterable,
    AsyncIterator,
    AsyncGenerator,
    Sequence,
    list,
    tuple,
    set,
    frozenset,
)


def _returns(fn: Callable[..., Any], explicit: Any, *, element: bool = False) -> Any:
    """Output type of ``fn``: ``explicit``, else its return annotation, else ``Any``."""
    if explicit is not None:
        return explicit
    if isinstance(fn, type):
        return Any if element else fn
    try:
        hints = typing.get_type_hints(fn)
    except (TypeError, NameError):
        return Any
    ret = hints.get("return", Any)
    if not element:
        return ret
    if typing.get_origin(ret) in _ELEMENT_ORIGINS:
        args = [a for a in typing.get_args(ret) if a is not Ellipsis]
        return args[0] if args else Any
    return Any


@dataclass(frozen=True)
class CollectedResource:
    """A resource created by a collector plus the unit forwarding into it."""

    resource: Resource
    sender: ComputeUnit

    stage = StageKind.COLLECTED

    @property
    def id(self) -> str:
        return self.resource.id

    @property
    def shape(self) -> Shape:
        return self.resource.shape

    @property
    def physical_name(self) -> str:
        return self.resource.physical_name

    def write_access(self):
        return self.resource.write_access()

    def read_access(self):
        return self.resource.read_access()

    def pipeline(self) -> Pipeline:
        """Continue from the new resource."""
        return Pipeline.from_source(self.resource)


class Pipeline:
    """Immutable chain of fused operators over an event source."""

    __slots__ = ("source", "ops", "shape")

    def __init__(self, source: EventSource, ops: tuple[Op, ...], shape: Shape) -> None:
        self.source = source
        self.ops = ops
        self.shape = shape

    @classmethod
    def from_source(cls, source: EventSource | CollectedResource) -> Pipeline:
        if isinstance(source, CollectedResource):
            source = source.resource
        for attr in ("topology", "parse_delivery", "attach_consumer", "check_mode", "source_capabilities"):
            if not hasattr(source, attr):
                raise TopologyError(f"{source!r} cannot be used as an event source")
        return cls(source, (), source.shape)

    def __repr__(self) -> str:
        chain = " -> ".join(op.kind.value for op in self.ops) or "source"
        return f"Pipeline({self.source.id!r}: {chain}, shape={self.shape.name})"

    @property
    def topology(self) -> Topology:
        return self.source.topology

    @property
    def stage(self) -> StageKind:
        return self.ops[-1].kind if self.ops else StageKind.SOURCE

    @property
    def capabilities(self) -> CapabilityList:
        """Source capabilities followed by every operator's requirements, in chain order."""
        return merge(self.source.source_capabilities(), *(op.depends for op in self.ops)).capabilities

    def _then(self, op: Op, shape: Any) -> Pipeline:
        self.topology.check_capabilities(op.depends, owner=f"{op.kind.value} after '{self.source.id}'")
        return Pipeline(self.source, (*self.ops, op), Shape.of(shape))

    # ---- fused operators ---------------------------------------------------

    def map(self, fn: Callable[..., Any], *, depends: Any = None, returns: Any = None) -> Pipeline:
        """One output per input; the output type is ``returns`` or ``fn``'s return annotation."""
        return self._then(Op.bind(StageKind.MAPPED, fn, depends), _returns(fn, returns))

    def flat_map(self, fn: Callable[..., Any], *, depends: Any = None, returns: Any = None) -> Pipeline:
        """
        Zero or more outputs per input.

        ``fn`` returns an iterable (or async iterable, or ``None`` for nothing);
        each element becomes an independent downstream event. ``returns`` is
        the element type; without it, ``Iterable[X]`` annotations yield ``X``.
        """
        return self._then(Op.bind(StageKind.FLAT_MAPPED, fn, depends), _returns(fn, returns, element=True))

    def filter(self, predicate: Callable[..., Any], *, depends: Any = None) -> Pipeline:
        return self._then(Op.bind(StageKind.FILTERED, predicate, depends), self.shape)

    # ---- terminals ---------------------------------------------------------

    def for_each(
        self,
        unit_id: str,
        handler: Callable[..., Any],
        *,
        depends: Any = None,
        returns: Any = None,
        props: ComputeUnitProps | None = None,
    ) -> ComputeUnit:
        """
        Unit calling ``handler`` once per item that survives the fused operators.

        The unit returns the list of handler results and can itself be used as
        a source (``unit.pipeline()``).
        """
        sink = Op.bind(StageKind.TERMINAL, handler, depends)
        out = list[_returns(handler, returns)]  # type: ignore[misc]
        return self._terminal(unit_id, InvocationMode.SINGLE, sink, out, props)

    def for_batch(
        self,
        unit_id: str,
        handler: Callable[..., Any],
        *,
        depends: Any = None,
        returns: Any = None,
        props: ComputeUnitProps | None = None,
    ) -> ComputeUnit:
        """Unit calling ``handler`` once per delivery with the list of surviving items (possibly empty)."""
        sink = Op.bind(StageKind.TERMINAL, handler, depends)
        return self._terminal(unit_id, InvocationMode.BATCH, sink, _returns(handler, returns), props)

    def collect(self, resource_id: str, collector: Collector) -> CollectedResource:
        return collector.materialize(resource_id, self)

    def to(
        self,
        kind: str,
        resource_id: str,
        *,
        registry: CollectorRegistry | None = None,
        unit_props: ComputeUnitProps | None = None,
        **props: Any,
    ) -> CollectedResource:
        """Collect into a new resource of a registered collector ``kind``."""
        if registry is None:
            from .registry import default_registry

            registry = default_registry()
        collector_cls = registry.collector(kind)
        return self.collect(resource_id, collector_cls(unit_props=unit_props, **props))

    def to_queue(self, resource_id: str, **props: Any) -> CollectedResource:
        return self.to("queue", resource_id, **props)

    def to_stream(self, resource_id: str, **props: Any) -> CollectedResource:
        return self.to("stream", resource_id, **props)

    def to_topic(self, resource_id: str, **props: Any) -> CollectedResource:
        return self.to("topic", resource_id, **props)

    def to_table(self, resource_id: str, **props: Any) -> CollectedResource:
        return self.to("table", resource_id, **props)

    def to_delivery_stream(self, resource_id: str, **props: Any) -> CollectedResource:
        return self.to("delivery_stream", resource_id, **props)

    def _terminal(
        self,
        unit_id: str,
        mode: InvocationMode,
        sink: Op,
        output_shape: Any,
        props: ComputeUnitProps | None,
    ) -> ComputeUnit:
        source = self.source
        ops = self.ops
        layout = merge(source.source_capabilities(), *(op.depends for op in ops), sink.depends)

        async def handler(event: Any, clients: Resolved) -> Any:
            parts = layout.split(clients)
            values = await maybe_await(source.parse_delivery(event, parts[0]))
            items = await FusedChain(ops, parts[1:-1]).apply_all(values)
            if mode is InvocationMode.BATCH:
                return await maybe_await(sink.call(items, parts[-1]))
            return [await maybe_await(sink.call(v, parts[-1])) for v in items]

        self.topology.check_capabilities(sink.depends, owner=f"unit '{unit_id}'")
        self.source.check_mode(mode)
        unit = ComputeUnit(
            self.topology,
            unit_id,
            handler=handler,
            depends=layout.capabilities,
            output_shape=output_shape,
            props=props,
        )
        source.attach_consumer(unit, mode, unit.props.batch_size)
        log.debug(
            "pipeline materialized",
            event="pipeline.terminal.created",
            unit_id=unit_id,
            resource_id=source.id,
            ops=len(ops),
            mode=mode.value,
        )
        return unit
