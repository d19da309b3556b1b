# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Collector registry.

Maps collector names (``queue``, ``table``, ...) to strategy classes, so
``Pipeline.to(kind, ...)`` can dispatch without knowing the variants. Third
parties add kinds by registering them or by declaring a ``topokit.collectors``
entry point.
"""

from importlib.metadata import entry_points

from ..api.errors import RegistryError
from ..core.log import get_logger
from .collectors import (
    Collector,
    DeliveryStreamCollector,
    QueueCollector,
    StreamCollector,
    TableCollector,
    TopicCollector,
)

__all__ = ["CollectorRegistry", "default_registry"]

log = get_logger("registry")

ENTRY_POINT_GROUP = "topokit.collectors"

_BUILTINS: tuple[type[Collector], ...] = (
    QueueCollector,
    StreamCollector,
    TopicCollector,
    TableCollector,
    DeliveryStreamCollector,
)


class CollectorRegistry:
    """
    Name -> ``Collector`` class table.

    - Duplicate names and reserved/blank names are rejected.
    - Lookups of unknown names raise ``RegistryError``.
    """

    def __init__(self, *, builtins: bool = True) -> None:
        self._collectors: dict[str, type[Collector]] = {}
        if builtins:
            for cls in _BUILTINS:
                self.register(cls.kind, cls)

    def _check_name(self, name: str) -> None:
        if not name or name.strip() != name:
            raise RegistryError("empty/invalid name")
        if name.startswith("_"):
            raise RegistryError("names starting with '_' are reserved")

    def register(self, name: str, cls: type[Collector]) -> None:
        self._check_name(name)
        if not (isinstance(cls, type) and issubclass(cls, Collector)):
            raise RegistryError(f"not a collector class: {cls!r}")
        if name in self._collectors:
            raise RegistryError(f"collector already registered: {name}")
        self._collectors[name] = cls

    def collector(self, name: str) -> type[Collector]:
        try:
            return self._collectors[name]
        except KeyError as e:
            raise RegistryError(f"unknown collector: {name}") from e

    def names(self) -> list[str]:
        return sorted(self._collectors)

    def __contains__(self, name: object) -> bool:
        return name in self._collectors

    def load_entry_points(self, group: str = ENTRY_POINT_GROUP) -> list[str]:
        """Register every collector class declared under ``group``; returns the new names."""
        added: list[str] = []
        for ep in entry_points(group=group):
            try:
                cls = ep.load()
            except Exception as e:
                raise RegistryError(f"cannot load collector entry point {ep.name}: {e}") from e
            self.register(ep.name, cls)
            added.append(ep.name)
            log.debug("collector loaded", event="registry.entry_point.loaded", name=ep.name)
        return added


_default: CollectorRegistry | None = None


def default_registry() -> CollectorRegistry:
    """Process-wide registry with the built-in collectors."""
    global _default
    if _default is None:
        _default = CollectorRegistry()
    return _default
