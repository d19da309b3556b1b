# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Capability requirements and ordered capability lists.

A ``Capability`` is a declared need for access to one resource ("write to
queue orders", "read bucket raw"). A ``CapabilityList`` is an immutable,
ordered sequence of them. At runtime the list is resolved into a ``Resolved``
tuple of live clients; position *i* of the tuple is the client for requirement
*i* of the list, which is the contract handlers destructure against.

Lists are only ever extended by copy (``cons``, ``append``, ``concat``); no
operation reorders an existing list.
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, overload

from ..api.errors import CapabilityResolutionError, TopologyError
from ..core.config import RuntimeConfig
from ..core.log import get_logger
from ..core.utils import env_key

__all__ = [
    "AccessMode",
    "Capability",
    "CapabilityList",
    "ClientFactory",
    "Resolved",
    "concat",
    "cons",
    "empty",
]

log = get_logger("capability")

ClientFactory = Callable[[RuntimeConfig, str], Any]


class AccessMode(str, Enum):
    READ = "read"
    WRITE = "write"
    READ_WRITE = "read_write"
    INVOKE = "invoke"


@dataclass(frozen=True)
class Capability:
    """
    A requirement for access to one resource.

    Attributes:
        resource_id: Logical id of the resource inside its topology.
        resource_kind: Resource kind (``queue``, ``stream``, ...).
        physical_name: Deployed name, installed into the unit's environment.
        mode: Requested access mode.
        actions: Provider actions the access needs (consumed by policy synthesis).
        factory: Builds the runtime client from the resolution context and the
            bound physical name.
    """

    resource_id: str
    resource_kind: str
    physical_name: str
    mode: AccessMode
    factory: ClientFactory = field(compare=False, repr=False)
    actions: tuple[str, ...] = ()

    @property
    def binding_key(self) -> str:
        """Environment variable the provisioning engine sets to ``physical_name``."""
        return env_key(self.resource_kind, self.resource_id)

    def install(self) -> dict[str, str]:
        return {self.binding_key: self.physical_name}

    def resolve(self, config: RuntimeConfig) -> Any:
        """Build the client for this requirement or raise ``CapabilityResolutionError``."""
        name = config.binding(self.binding_key)
        if name is None:
            raise CapabilityResolutionError(
                f"{self.resource_kind} '{self.resource_id}': binding {self.binding_key} is not set",
                resource_id=self.resource_id,
            )
        if config.transport is None:
            raise CapabilityResolutionError(
                f"{self.resource_kind} '{self.resource_id}': no transport configured",
                resource_id=self.resource_id,
            )
        try:
            return self.factory(config, name)
        except Exception as e:
            raise CapabilityResolutionError(
                f"{self.resource_kind} '{self.resource_id}': client construction failed: {e}",
                resource_id=self.resource_id,
            ) from e

    def describe(self) -> dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "resource_kind": self.resource_kind,
            "mode": self.mode.value,
            "actions": list(self.actions),
        }


class Resolved(tuple):
    """Positional tuple of live clients, one per requirement, in list order."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Resolved({', '.join(type(c).__name__ for c in self)})"


def _checked(items: Iterable[Any]) -> tuple[Capability, ...]:
    out = tuple(items)
    for c in out:
        if not isinstance(c, Capability):
            raise TopologyError(f"not a capability: {c!r}")
    return out


class CapabilityList:
    """Immutable ordered list of ``Capability``."""

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[Capability] = ()) -> None:
        self._items = _checked(items)

    @classmethod
    def empty(cls) -> CapabilityList:
        return _EMPTY

    @classmethod
    def of(cls, *items: Capability) -> CapabilityList:
        return cls(items)

    @classmethod
    def coerce(cls, value: Capability | CapabilityList | Iterable[Capability] | None) -> CapabilityList:
        """Normalize ``depends=`` arguments into a list."""
        if value is None:
            return _EMPTY
        if isinstance(value, CapabilityList):
            return value
        if isinstance(value, Capability):
            return cls((value,))
        if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
            raise TopologyError(f"cannot use {value!r} as a capability requirement")
        return cls(value)

    # ---- construction ------------------------------------------------------

    def cons(self, item: Capability) -> CapabilityList:
        """New list with ``item`` first."""
        return CapabilityList((item, *self._items))

    def append(self, item: Capability) -> CapabilityList:
        """New list with ``item`` last."""
        return CapabilityList((*self._items, item))

    def concat(self, other: CapabilityList) -> CapabilityList:
        """New list: every element of ``self`` followed by every element of ``other``."""
        if not isinstance(other, CapabilityList):
            raise TopologyError(f"cannot merge capability list with {other!r}")
        if not other._items:
            return self
        if not self._items:
            return other
        return CapabilityList((*self._items, *other._items))

    def __add__(self, other: CapabilityList) -> CapabilityList:
        if not isinstance(other, CapabilityList):
            return NotImplemented
        return self.concat(other)

    # ---- sequence protocol -------------------------------------------------

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Capability]:
        return iter(self._items)

    @overload
    def __getitem__(self, index: int) -> Capability: ...
    @overload
    def __getitem__(self, index: slice) -> CapabilityList: ...
    def __getitem__(self, index):
        if isinstance(index, slice):
            return CapabilityList(self._items[index])
        return self._items[index]

    def __eq__(self, other: object) -> bool:
        return isinstance(other, CapabilityList) and other._items == self._items

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        inner = ", ".join(f"{c.resource_kind}:{c.resource_id}:{c.mode.value}" for c in self._items)
        return f"CapabilityList([{inner}])"

    # ---- runtime -----------------------------------------------------------

    def environment(self) -> dict[str, str]:
        env: dict[str, str] = {}
        for c in self._items:
            env.update(c.install())
        return env

    def resolve(self, config: RuntimeConfig) -> Resolved:
        """
        Resolve every requirement, in order, into a ``Resolved`` tuple.

        Stops at the first failure: all clients are needed before a handler
        can run, so the rest are not attempted.
        """
        clients: list[Any] = []
        for idx, cap in enumerate(self._items):
            try:
                clients.append(cap.resolve(config))
            except CapabilityResolutionError as e:
                log.warning(
                    "capability resolution failed",
                    event="capability.resolve.failed",
                    resource_id=cap.resource_id,
                    position=idx,
                    error=str(e),
                )
                raise
        log.debug("capabilities resolved", event="capability.resolve.ok", n=len(clients))
        return Resolved(clients)


_EMPTY = CapabilityList(())


def empty() -> CapabilityList:
    return _EMPTY


def cons(item: Capability, lst: CapabilityList) -> CapabilityList:
    return lst.cons(item)


def concat(a: CapabilityList, b: CapabilityList) -> CapabilityList:
    return a.concat(b)
