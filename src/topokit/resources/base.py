# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Resource constructor contracts.

Resources are thin: they own a shape, a codec and a physical name, hand out
capability requirements (``write_access``/``read_access``) and, when they emit
events, know how to subscribe a compute unit and how to unpack one delivery
into decoded values. Talking to the managed service goes through a
``Transport`` supplied at runtime.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, runtime_checkable

from ..api.errors import TopologyError
from ..compute.capability import AccessMode, Capability, CapabilityList, Resolved
from ..compute.unit import ComputeUnit, InvocationMode
from ..core.config import RuntimeConfig
from ..shape.codec import Codec, check_encodable, get_default_codecs
from ..shape.shape import Shape

if TYPE_CHECKING:
    from ..graph.topology import Topology
    from ..pipeline.pipeline import Pipeline

__all__ = [
    "Client",
    "EventSource",
    "Resource",
    "SourceResource",
    "Transport",
    "records_of",
]


@runtime_checkable
class Transport(Protocol):
    """Runtime access to managed services (an SDK session, a local emulator, a test double)."""

    def call(self, service: str, operation: str, **params: Any) -> Any: ...


@runtime_checkable
class EventSource(Protocol):
    """Anything a pipeline can start from: resources that emit events and compute units."""

    id: str
    topology: Topology

    @property
    def shape(self) -> Shape: ...
    def source_capabilities(self) -> CapabilityList: ...
    def check_mode(self, mode: InvocationMode) -> None: ...
    def attach_consumer(self, unit: ComputeUnit, mode: InvocationMode, batch_size: int | None = None) -> None: ...
    def parse_delivery(self, event: Any, clients: Resolved) -> list[Any]: ...


class Client:
    """Runtime client bound to one physical resource."""

    service: ClassVar[str] = ""

    def __init__(self, transport: Transport, name: str, shape: Shape, codec: Codec) -> None:
        self.transport = transport
        self.name = name
        self.shape = shape
        self.codec = codec

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    def _call(self, operation: str, **params: Any) -> Any:
        return self.transport.call(self.service, operation, **params)


def records_of(event: Any) -> list[Mapping[str, Any]]:
    """The ``Records`` list of a delivery envelope."""
    if not isinstance(event, Mapping) or not isinstance(event.get("Records"), list):
        raise ValueError("delivery must be a mapping with a 'Records' list")
    return event["Records"]


class Resource(ABC):
    """A managed resource declared in a topology."""

    kind: ClassVar[str]
    codec_name: ClassVar[str] = "json"
    client_class: ClassVar[type[Client]] = Client
    read_actions: ClassVar[tuple[str, ...]] = ()
    write_actions: ClassVar[tuple[str, ...]] = ()

    def __init__(self, topology: Topology, resource_id: str, *, shape: Any) -> None:
        self.topology = topology
        self.id = resource_id
        self.shape = Shape.of(shape)
        self.codec = get_default_codecs().get(self.codec_name)
        self.validate(self.shape, **self.props())
        self.physical_name = topology.physical_name(resource_id)
        topology.add_resource(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r}, shape={self.shape.name})"

    # ---- declaration-time checks -------------------------------------------

    @classmethod
    def validate(cls, shape: Shape, **props: Any) -> None:
        """Raise ``SchemaMismatchError`` if this kind cannot hold ``shape`` with ``props``."""
        check_encodable(get_default_codecs().get(cls.codec_name), shape)

    @classmethod
    def reserved_ids(cls, resource_id: str) -> tuple[str, ...]:
        """Every topology id the constructor will claim."""
        return (resource_id,)

    def props(self) -> dict[str, Any]:
        """Kind-specific properties, as passed to the constructor."""
        return {}

    # ---- capabilities ------------------------------------------------------

    def _client(self, config: RuntimeConfig, name: str) -> Client:
        return self.client_class(config.transport, name, self.shape, self.codec)

    def access(self, mode: AccessMode) -> Capability:
        actions: tuple[str, ...]
        if mode is AccessMode.READ:
            actions = self.read_actions
        elif mode is AccessMode.WRITE:
            actions = self.write_actions
        elif mode is AccessMode.READ_WRITE:
            actions = self.read_actions + self.write_actions
        else:
            raise TopologyError(f"{self.kind} '{self.id}' does not support {mode.value} access")
        return Capability(
            resource_id=self.id,
            resource_kind=self.kind,
            physical_name=self.physical_name,
            mode=mode,
            factory=self._client,
            actions=actions,
        )

    def read_access(self) -> Capability:
        return self.access(AccessMode.READ)

    def write_access(self) -> Capability:
        return self.access(AccessMode.WRITE)

    def read_write_access(self) -> Capability:
        return self.access(AccessMode.READ_WRITE)


class SourceResource(Resource):
    """A resource whose events can drive compute units."""

    modes: ClassVar[frozenset[InvocationMode]] = frozenset(InvocationMode)

    def source_capabilities(self) -> CapabilityList:
        """Capabilities a consumer needs to read this resource's deliveries."""
        return CapabilityList.empty()

    def check_mode(self, mode: InvocationMode) -> None:
        if InvocationMode(mode) not in self.modes:
            raise TopologyError(f"{self.kind} '{self.id}' cannot deliver in {InvocationMode(mode).value} mode")

    def attach_consumer(self, unit: ComputeUnit, mode: InvocationMode, batch_size: int | None = None) -> None:
        self.check_mode(mode)
        self.topology.subscribe(self, unit, mode, batch_size)

    @abstractmethod
    def parse_delivery(self, event: Any, clients: Resolved) -> list[Any]: ...

    def decode_all(self, blobs: Iterable[bytes | str]) -> list[Any]:
        return [self.codec.decode(self.shape, b) for b in blobs]

    def pipeline(self) -> Pipeline:
        from ..pipeline.pipeline import Pipeline  # local import: pipeline depends on resources

        return Pipeline.from_source(self)
