# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Compute unit binding.

A ``ComputeUnit`` ties a handler ``(event, resolved) -> output`` to a
``CapabilityList``. The invocation runtime creates one ``UnitInstance`` per
running (cold-started) instance; the instance resolves the capability list on
its first invocation and reuses the clients for every later one. Handler
exceptions are re-raised as ``HandlerError``; retry policy belongs to the
runtime.
"""

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, model_validator

from ..api.errors import HandlerError, TopologyError
from ..core.config import RuntimeConfig, TopologyConfig
from ..core.log import get_logger, log_context
from ..core.utils import maybe_await
from ..shape.shape import Shape
from .capability import AccessMode, Capability, CapabilityList, Resolved

if TYPE_CHECKING:
    from ..graph.topology import Topology
    from ..pipeline.pipeline import Pipeline

__all__ = [
    "ComputeUnit",
    "ComputeUnitProps",
    "Handler",
    "InvocationMode",
    "UnitClient",
    "UnitInstance",
]

log = get_logger("unit")

Handler = Callable[[Any, Resolved], Any]


class InvocationMode(str, Enum):
    """How a consumer receives events from its source: one per call or a batch per call."""

    SINGLE = "single"
    BATCH = "batch"


class ComputeUnitProps(BaseModel):
    """Runtime sizing of a compute unit. Unset values take the topology defaults."""

    memory_mb: int | None = None
    timeout_sec: int | None = None
    reserved_concurrency: int | None = None
    batch_size: int | None = None
    environment: dict[str, str] = Field(default_factory=dict)
    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def _sanity(self) -> ComputeUnitProps:
        if self.memory_mb is not None and self.memory_mb < 128:
            raise ValueError("memory_mb must be >= 128")
        if self.timeout_sec is not None and self.timeout_sec <= 0:
            raise ValueError("timeout_sec must be > 0")
        if self.reserved_concurrency is not None and self.reserved_concurrency < 0:
            raise ValueError("reserved_concurrency must be >= 0")
        if self.batch_size is not None and self.batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        return self

    def with_defaults(self, config: TopologyConfig) -> ComputeUnitProps:
        return self.model_copy(
            update={
                "memory_mb": self.memory_mb or config.default_memory_mb,
                "timeout_sec": self.timeout_sec or config.default_timeout_sec,
                "batch_size": self.batch_size or config.default_batch_size,
            }
        )


class UnitClient:
    """Runtime client granting invoke rights on a compute unit."""

    def __init__(self, transport: Any, function_name: str, shape: Shape) -> None:
        self.transport = transport
        self.function_name = function_name
        self.shape = shape

    def invoke(self, payload: Any) -> Any:
        return self.transport.call("unit", "invoke", function=self.function_name, payload=self.shape.to_jsonable(payload))


class ComputeUnit:
    """A deployable handler bound to its capability requirements."""

    kind = "unit"

    def __init__(
        self,
        topology: Topology,
        unit_id: str,
        *,
        handler: Handler,
        depends: Capability | CapabilityList | None = None,
        input_shape: Any = Any,
        output_shape: Any = Any,
        props: ComputeUnitProps | None = None,
    ) -> None:
        if not callable(handler):
            raise TopologyError(f"unit '{unit_id}': handler must be callable")
        self.topology = topology
        self.id = unit_id
        self.handler = handler
        self.capabilities = CapabilityList.coerce(depends)
        self.input_shape = Shape.of(input_shape)
        self.output_shape = Shape.of(output_shape)
        self.props = (props or ComputeUnitProps()).with_defaults(topology.config)
        self.physical_name = topology.physical_name(unit_id)
        topology.add_unit(self)

    def __repr__(self) -> str:
        return f"ComputeUnit({self.id!r}, capabilities={len(self.capabilities)})"

    @property
    def environment(self) -> dict[str, str]:
        """Bindings the provisioning engine installs into the running unit."""
        return {**self.props.environment, **self.capabilities.environment()}

    def instance(self, config: RuntimeConfig | None = None) -> UnitInstance:
        """A fresh cold instance; resolution happens on its first invocation."""
        return UnitInstance(self, config if config is not None else RuntimeConfig.load())

    def invoke_access(self) -> Capability:
        """Requirement to invoke this unit from another unit."""
        return Capability(
            resource_id=self.id,
            resource_kind=self.kind,
            physical_name=self.physical_name,
            mode=AccessMode.INVOKE,
            factory=lambda config, name: UnitClient(config.transport, name, self.input_shape),
            actions=("function:Invoke",),
        )

    # ---- event source (results of successful invocations) ---------------------

    @property
    def shape(self) -> Shape:
        return self.output_shape

    def source_capabilities(self) -> CapabilityList:
        return CapabilityList.empty()

    def check_mode(self, mode: InvocationMode) -> None:
        InvocationMode(mode)

    def attach_consumer(self, unit: ComputeUnit, mode: InvocationMode, batch_size: int | None = None) -> None:
        self.topology.subscribe(self, unit, mode, batch_size)

    def parse_delivery(self, event: Any, clients: Resolved) -> list[Any]:
        """Invocation-result records: ``{"Records": [{"responsePayload": ...}]}``."""
        return [self.output_shape.validate(r["responsePayload"]) for r in event.get("Records", [])]

    def pipeline(self) -> Pipeline:
        from ..pipeline.pipeline import Pipeline  # local import: pipeline builds units

        return Pipeline.from_source(self)


class UnitInstance:
    """One running instance of a unit, with its own resolved-capability cache."""

    def __init__(self, unit: ComputeUnit, config: RuntimeConfig) -> None:
        self.unit = unit
        self.config = config
        self.invocations = 0
        self._resolved: Resolved | None = None

    @property
    def cold(self) -> bool:
        return self._resolved is None

    def resolve(self) -> Resolved:
        if self._resolved is None:
            with log_context(unit_id=self.unit.id):
                self._resolved = self.unit.capabilities.resolve(self.config)
                log.info("unit instance started", event="unit.instance.cold_start", n=len(self._resolved))
        return self._resolved

    async def invoke(self, event: Any) -> Any:
        clients = self.resolve()
        self.invocations += 1
        try:
            return await maybe_await(self.unit.handler(event, clients))
        except Exception as e:
            log.warning(
                "handler failed",
                event="unit.invoke.error",
                unit_id=self.unit.id,
                error_type=type(e).__name__,
            )
            raise HandlerError(f"unit '{self.unit.id}' handler failed: {e}", unit_id=self.unit.id) from e
