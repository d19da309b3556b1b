# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
topokit public API: the error taxonomy shared by every layer.
"""

from .errors import (
    CapabilityResolutionError,
    HandlerError,
    RegistryError,
    SchemaMismatchError,
    TopokitError,
    TopologyError,
)

__all__ = [
    "CapabilityResolutionError",
    "HandlerError",
    "RegistryError",
    "SchemaMismatchError",
    "TopokitError",
    "TopologyError",
]
