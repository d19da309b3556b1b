from .events import bucket_event, invocation_event, jsonl, queue_event, stream_event, topic_event
from .models import FIXED_TS, Blob, Clock, Draft, Event, Loose, StampedEvent, Tagged, Word, add_timestamp, explode, is_even
from .caps import FactoryLog, cap
from .transport import Call, RecordingTransport, runtime_for

__all__ = [
    "FIXED_TS",
    "Blob",
    "Call",
    "Clock",
    "Draft",
    "FactoryLog",
    "Event",
    "Loose",
    "RecordingTransport",
    "StampedEvent",
    "Tagged",
    "Word",
    "add_timestamp",
    "cap",
    "bucket_event",
    "explode",
    "invocation_event",
    "is_even",
    "jsonl",
    "queue_event",
    "runtime_for",
    "stream_event",
    "topic_event",
]
