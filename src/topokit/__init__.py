from __future__ import annotations

# Runtime package version, from the installed distribution metadata.
try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("topokit")
except Exception:  # pragma: no cover
    # fallback for source checkouts without an install
    __version__ = "0.0.0"

from .api.errors import (
    CapabilityResolutionError,
    HandlerError,
    RegistryError,
    SchemaMismatchError,
    TopokitError,
    TopologyError,
)
from .compute import AccessMode, Capability, CapabilityList, ComputeUnit, ComputeUnitProps, merge, merge_units
from .core.config import RuntimeConfig, TopologyConfig
from .graph import Topology, TopologyPlan, compile_topology
from .pipeline import CollectedResource, Pipeline
from .resources import Bucket, DeliveryStream, Partition, Queue, Stream, Table, Topic
from .shape import Period, Shape

__all__ = [
    "AccessMode",
    "Bucket",
    "Capability",
    "CapabilityList",
    "CapabilityResolutionError",
    "CollectedResource",
    "ComputeUnit",
    "ComputeUnitProps",
    "DeliveryStream",
    "HandlerError",
    "Partition",
    "Period",
    "Pipeline",
    "Queue",
    "RegistryError",
    "RuntimeConfig",
    "SchemaMismatchError",
    "Shape",
    "Stream",
    "Table",
    "Topic",
    "TopokitError",
    "TopologyConfig",
    "TopologyError",
    "__version__",
    "compile_topology",
    "merge",
    "merge_units",
]
