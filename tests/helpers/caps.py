from __future__ import annotations

from typing import Any

from topokit.compute.capability import AccessMode, Capability


class FactoryLog:
    """Records which capability factories ran, in order."""

    def __init__(self) -> None:
        self.built: list[str] = []

    def factory(self, resource_id: str):
        def build(config: Any, name: str) -> tuple[str, str]:
            self.built.append(resource_id)
            return (resource_id, name)

        return build


def cap(resource_id: str, *, kind: str = "queue", mode: AccessMode = AccessMode.WRITE, factory=None) -> Capability:
    return Capability(
        resource_id=resource_id,
        resource_kind=kind,
        physical_name=f"phys-{resource_id}",
        mode=mode,
        factory=factory or (lambda config, name: (resource_id, name)),
        actions=(f"{kind}:Access",),
    )
