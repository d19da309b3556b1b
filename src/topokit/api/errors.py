# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Error taxonomy for topokit.

Declaration-time errors (schema mismatches, duplicate ids, bad capability
merges) are raised synchronously by the call that caused them. Runtime errors
(capability resolution, handler failures) are surfaced to the invocation
runtime, which owns retry/backoff/dead-letter policy.
"""


class TopokitError(Exception):
    """Base class for all topokit errors."""

    ...


class TopologyError(TopokitError):
    """The resource graph is inconsistent (duplicate id, unknown reference, invalid merge)."""

    ...


class SchemaMismatchError(TopokitError):
    """
    A target resource cannot represent a pipeline's output shape.

    Raised before the resource is created, so no partial resource is left in
    the topology.
    """

    def __init__(self, message: str, *, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = list(fields or [])


class CapabilityResolutionError(TopokitError):
    """
    A capability requirement could not be turned into a live client
    (missing binding, missing transport, client construction failure).
    """

    def __init__(self, message: str, *, resource_id: str | None = None) -> None:
        super().__init__(message)
        self.resource_id = resource_id


class HandlerError(TopokitError):
    """
    A user handler raised while a compute unit was being invoked.

    The original exception is chained as ``__cause__``; the runtime decides
    whether to retry.
    """

    def __init__(self, message: str, *, unit_id: str) -> None:
        super().__init__(message)
        self.unit_id = unit_id


class RegistryError(TopokitError):
    """Raised when collector registration/lookup fails (duplicate/unknown/invalid name)."""

    ...
