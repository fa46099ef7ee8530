"""Short-lived handoff of stream payloads between the prepare and stream steps.

The in-memory store is per process. A stream prepared on one server instance
and opened on another will not find its payload here; callers ship the encoded
fallback payload with the stream request for that case. A shared store (Redis
or similar) can be swapped in behind the same ``get``/``set``/``delete`` methods.
"""
import logging
import time
from typing import Callable, Dict, Optional, Protocol

from pdf_stream_annotator.core.config import PAYLOAD_TTL_MS
from pdf_stream_annotator.core.types import StreamPayload

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000.0


class PayloadStore(Protocol):
    def set(self, stream_id: str, payload: StreamPayload) -> StreamPayload: ...

    def get(self, stream_id: str) -> Optional[StreamPayload]: ...

    def delete(self, stream_id: str) -> bool: ...


class EphemeralPayloadStore:
    """TTL-keyed dict. Expired entries are swept on every ``set`` and ``get``; no background timer."""

    def __init__(self, ttl_ms: int = PAYLOAD_TTL_MS, clock: Optional[Callable[[], float]] = None):
        self.ttl_ms = ttl_ms
        self._clock = clock or _now_ms
        self._entries: Dict[str, StreamPayload] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _sweep(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now - entry["createdAt"] > self.ttl_ms]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired stream payload(s)")

    def set(self, stream_id: str, payload: StreamPayload) -> StreamPayload:
        self._sweep()
        entry = StreamPayload(**payload)
        entry["createdAt"] = self._clock()
        # last write wins; each stream id is expected to be written once
        self._entries[stream_id] = entry
        return entry

    def get(self, stream_id: str) -> Optional[StreamPayload]:
        self._sweep()
        return self._entries.get(stream_id)

    def delete(self, stream_id: str) -> bool:
        return self._entries.pop(stream_id, None) is not None


_default_store = EphemeralPayloadStore()


def default_store() -> EphemeralPayloadStore:
    return _default_store


def configure_default_store(ttl_ms: int) -> EphemeralPayloadStore:
    _default_store.ttl_ms = ttl_ms
    return _default_store


def set_stream_payload(stream_id: str, payload: StreamPayload) -> StreamPayload:
    return _default_store.set(stream_id, payload)


def get_stream_payload(stream_id: str) -> Optional[StreamPayload]:
    return _default_store.get(stream_id)


def delete_stream_payload(stream_id: str) -> bool:
    return _default_store.delete(stream_id)
