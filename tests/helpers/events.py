from __future__ import annotations

import base64
import json
from typing import Any

from pydantic import BaseModel


def _json(value: Any) -> str:
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value)


def queue_event(*values: Any) -> dict[str, Any]:
    return {"Records": [{"body": _json(v)} for v in values]}


def stream_event(*values: Any) -> dict[str, Any]:
    return {"Records": [{"kinesis": {"data": base64.b64encode(_json(v).encode()).decode()}} for v in values]}


def topic_event(*values: Any) -> dict[str, Any]:
    return {"Records": [{"Sns": {"Message": _json(v)}} for v in values]}


def bucket_event(*keys: str) -> dict[str, Any]:
    return {"Records": [{"s3": {"object": {"key": k}}} for k in keys]}


def invocation_event(*payloads: Any) -> dict[str, Any]:
    return {"Records": [{"responsePayload": p} for p in payloads]}


def jsonl(*values: Any) -> bytes:
    return "".join(_json(v) + "\n" for v in values).encode()
