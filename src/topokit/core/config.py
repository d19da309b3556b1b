from __future__ import annotations

"""
topokit.core.config
===================

Two configuration objects, one per phase:

- ``TopologyConfig``: declaration-time defaults (physical name prefix, default
  compute-unit sizing) used while a topology is being built.
- ``RuntimeConfig``: the resolution context handed to capability factories
  inside a running compute unit (region, endpoint, binding environment,
  transport).

Both load from an optional JSON file, then environment variables, then
explicit overrides.
"""

import json
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_PREFIX_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")


def _load_json(path: Path | None) -> dict[str, Any]:
    if not path:
        return {}
    if not path.exists():
        raise FileNotFoundError(f"config file not found: {path}")
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"config file must contain a JSON object: {path}")
    return data


def _env_int(name: str) -> int | None:
    val = os.getenv(name)
    if val is None or not val.strip():
        return None
    try:
        return int(val)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {val!r}") from e


# ---------------------------------------------------------------------------


@dataclass
class TopologyConfig:
    """Declaration-time defaults for a topology."""

    name_prefix: str = ""

    # Compute unit defaults
    default_memory_mb: int = 256
    default_timeout_sec: int = 30
    default_batch_size: int = 100

    def __post_init__(self) -> None:
        if self.name_prefix and not _PREFIX_RE.match(self.name_prefix):
            raise ValueError("name_prefix must be lowercase alphanumerics and dashes")
        if self.default_memory_mb < 128:
            raise ValueError("default_memory_mb must be >= 128")
        if self.default_timeout_sec <= 0:
            raise ValueError("default_timeout_sec must be > 0")
        if self.default_batch_size <= 0:
            raise ValueError("default_batch_size must be > 0")

    @classmethod
    def load(cls, path: Path | str | None = None, *, overrides: dict[str, Any] | None = None) -> TopologyConfig:
        """
        Load from JSON file (if given), then env, then overrides.

        Env overrides:
          - TOPOKIT_NAME_PREFIX
          - TOPOKIT_DEFAULT_MEMORY_MB
          - TOPOKIT_DEFAULT_BATCH_SIZE
        """
        data: dict[str, Any] = {}
        data.update(_load_json(Path(path) if path else None))

        if os.getenv("TOPOKIT_NAME_PREFIX"):
            data["name_prefix"] = os.environ["TOPOKIT_NAME_PREFIX"]
        memory = _env_int("TOPOKIT_DEFAULT_MEMORY_MB")
        if memory is not None:
            data["default_memory_mb"] = memory
        batch = _env_int("TOPOKIT_DEFAULT_BATCH_SIZE")
        if batch is not None:
            data["default_batch_size"] = batch

        if overrides:
            data.update(overrides)
        return cls(**data)


# ---------------------------------------------------------------------------


@dataclass
class RuntimeConfig:
    """
    Resolution context for capability factories.

    ``env`` holds the bindings installed by the provisioning engine
    (``TOPOKIT_<KIND>_<ID>`` -> physical name). ``transport`` is the object
    resource clients use to reach the managed services.
    """

    region: str = "us-east-1"
    endpoint_url: str | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    transport: Any = None

    def __post_init__(self) -> None:
        if not self.region:
            raise ValueError("region must be a non-empty string")
        if self.endpoint_url is not None and not self.endpoint_url.startswith(("http://", "https://")):
            raise ValueError("endpoint_url must be an http(s) URL")

    def binding(self, key: str) -> str | None:
        """Return the physical name bound to ``key`` or None."""
        val = self.env.get(key)
        return val or None

    @classmethod
    def load(
        cls,
        path: Path | str | None = None,
        *,
        env: Mapping[str, str] | None = None,
        transport: Any = None,
        overrides: dict[str, Any] | None = None,
    ) -> RuntimeConfig:
        """
        Load from JSON file (if given), then env, then overrides.

        ``env`` defaults to a snapshot of ``os.environ``.

        Env overrides:
          - TOPOKIT_REGION
          - TOPOKIT_ENDPOINT_URL
        """
        source = dict(os.environ if env is None else env)
        data: dict[str, Any] = {}
        data.update(_load_json(Path(path) if path else None))

        if source.get("TOPOKIT_REGION"):
            data["region"] = source["TOPOKIT_REGION"]
        if source.get("TOPOKIT_ENDPOINT_URL"):
            data["endpoint_url"] = source["TOPOKIT_ENDPOINT_URL"]

        if overrides:
            data.update(overrides)
        data.setdefault("env", source)
        data.setdefault("transport", transport)
        return cls(**data)
