# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Operators and the fused chain that runs them.

``map``/``flat_map``/``filter`` never get a compute unit of their own: they are
fused into the handler of the unit that terminates the pipeline and applied
in-process, one value at a time:

  - MAPPED      one output per input
  - FLAT_MAPPED zero or more outputs per input (iterable, async iterable or None)
  - FILTERED    the input if the predicate is truthy, nothing otherwise
"""

from collections.abc import AsyncIterable, Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..compute.capability import Capability, CapabilityList, Resolved
from ..core.utils import maybe_await

__all__ = ["Arity", "FusedChain", "Op", "StageKind"]


class StageKind(str, Enum):
    SOURCE = "source"
    MAPPED = "mapped"
    FLAT_MAPPED = "flat_mapped"
    FILTERED = "filtered"
    TERMINAL = "terminal"
    COLLECTED = "collected"


class Arity(str, Enum):
    """How an operator receives its resolved clients."""

    NONE = "none"  # fn(value)
    ONE = "one"  # fn(value, client)
    MANY = "many"  # fn(value, clients)


@dataclass(frozen=True)
class Op:
    kind: StageKind
    fn: Callable[..., Any]
    depends: CapabilityList
    arity: Arity

    @classmethod
    def bind(cls, kind: StageKind, fn: Callable[..., Any], depends: Any = None) -> Op:
        if not callable(fn):
            raise TypeError(f"{kind.value} operator needs a callable, got {fn!r}")
        if depends is None:
            return cls(kind, fn, CapabilityList.empty(), Arity.NONE)
        if isinstance(depends, Capability):
            return cls(kind, fn, CapabilityList.of(depends), Arity.ONE)
        return cls(kind, fn, CapabilityList.coerce(depends), Arity.MANY)

    def call(self, value: Any, clients: Resolved) -> Any:
        if self.arity is Arity.NONE:
            return self.fn(value)
        if self.arity is Arity.ONE:
            return self.fn(value, clients[0])
        return self.fn(value, clients)


async def _flatten(result: Any) -> list[Any]:
    if result is None:
        return []
    if isinstance(result, AsyncIterable):
        return [x async for x in result]
    if isinstance(result, (str, bytes)) or not isinstance(result, Iterable):
        raise TypeError(f"flat_map must return an iterable, got {type(result).__name__}")
    return list(result)


class FusedChain:
    """Runs a sequence of operators over values, each with its own clients."""

    def __init__(self, ops: Sequence[Op], clients: Sequence[Resolved]) -> None:
        if len(ops) != len(clients):
            raise ValueError("one resolved slice per operator is required")
        self._steps = list(zip(ops, clients))

    async def apply(self, value: Any) -> list[Any]:
        """Every output produced by ``value``, in order. Short-circuits once nothing is left."""
        current = [value]
        for op, clients in self._steps:
            if not current:
                return current
            nxt: list[Any] = []
            for v in current:
                res = await maybe_await(op.call(v, clients))
                if op.kind is StageKind.MAPPED:
                    nxt.append(res)
                elif op.kind is StageKind.FLAT_MAPPED:
                    nxt.extend(await _flatten(res))
                elif op.kind is StageKind.FILTERED:
                    if res:
                        nxt.append(v)
                else:
                    raise TypeError(f"operator kind {op.kind.value} cannot be fused")
            current = nxt
        return current

    async def apply_all(self, values: Iterable[Any]) -> list[Any]:
        """Concatenated outputs of every value; per-value order is kept."""
        out: list[Any] = []
        for v in values:
            out.extend(await self.apply(v))
        return out
