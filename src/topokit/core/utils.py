from __future__ import annotations

"""
topokit.core.utils
==================

Small helpers with no third-party dependencies:
- stable hashing for deriving physical names;
- id slugs;
- awaiting values that may or may not be awaitable;
- chunking for batched client writes.
"""

import inspect
import json
import re
from collections.abc import Iterable, Iterator, Sequence
from hashlib import blake2b
from typing import Any, TypeVar

T = TypeVar("T")

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def stable_hash(payload: Any, *, digest_size: int = 4) -> str:
    """
    Stable hex digest of a JSON-like payload (sorted keys, compact separators).

    Not a signature; used to keep physical names unique and deterministic.
    """
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return blake2b(data, digest_size=digest_size).hexdigest()


def slugify(value: str) -> str:
    """Lowercase, dash-separated slug (``"Orders/Sender"`` -> ``"orders-sender"``)."""
    return _SLUG_RE.sub("-", value.lower()).strip("-")


def env_key(kind: str, resource_id: str) -> str:
    """
    Binding variable name for a resource: ``TOPOKIT_QUEUE_ORDERS_SENDER_<HASH>``.

    The slug alone is lossy (``a/b`` and ``a-b`` share one), so the hash of the
    raw kind and id keeps distinct resources on distinct variables.
    """
    slug = "_".join(slugify(f"{kind} {resource_id}").upper().split("-"))
    return f"TOPOKIT_{slug}_{stable_hash([kind, resource_id]).upper()}"


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable; return it unchanged otherwise."""
    if inspect.isawaitable(value):
        return await value
    return value


def chunked(items: Sequence[T] | Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield lists of at most ``size`` items, preserving order."""
    if size <= 0:
        raise ValueError("size must be positive")
    buf: list[T] = []
    for item in items:
        buf.append(item)
        if len(buf) == size:
            yield buf
            buf = []
    if buf:
        yield buf
