# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Payload shapes, codecs and time periods.
"""

from .codec import (
    Codec,
    CodecsRegistry,
    ColumnarCodec,
    JsonCodec,
    JsonLinesCodec,
    check_encodable,
    get_default_codecs,
)
from .period import Period
from .shape import FieldKind, Shape

__all__ = [
    "Codec",
    "CodecsRegistry",
    "ColumnarCodec",
    "FieldKind",
    "JsonCodec",
    "JsonLinesCodec",
    "Period",
    "Shape",
    "check_encodable",
    "get_default_codecs",
]
