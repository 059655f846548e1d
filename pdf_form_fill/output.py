"""Serialization and the lifecycle of published outputs.

Exactly one OutputHandle is current per publisher. Publishing creates the new
resource, revokes the previous handle, and only then makes the new one
current, so a display never holds two live refs and none leaks.
"""
from __future__ import annotations
import io
import logging
import threading
from typing import Optional

from .config import ERROR_MESSAGES
from .errors import SerializationError
from .loader import PdfDocument
from .storage import MemoryOutputStore, OutputStore

logger = logging.getLogger(__name__)


def serialize(doc: PdfDocument) -> bytes:
    buf = io.BytesIO()
    try:
        doc.writer.write(buf)
    except Exception as e:
        raise SerializationError(f"{ERROR_MESSAGES['serialization_failed']}: {doc.source_name}: {e}") from e
    data = buf.getvalue()
    if not data:
        raise SerializationError(f"{ERROR_MESSAGES['serialization_failed']}: empty output")
    return data


class OutputHandle:
    """Rendered bytes plus a revocable reference to their displayable copy."""

    def __init__(self, data: bytes, resource_ref: str, store: OutputStore):
        self.data = data
        self.resource_ref = resource_ref
        self._store = store
        self.revoked = False

    def revoke(self) -> bool:
        """Release the resource; returns False when it was already released."""
        if self.revoked:
            return False
        self.revoked = True
        self._store.revoke(self.resource_ref)
        return True

    def __repr__(self) -> str:
        state = "revoked" if self.revoked else "live"
        return f"OutputHandle({self.resource_ref!r}, {len(self.data)} bytes, {state})"


class OutputPublisher:
    def __init__(self, store: Optional[OutputStore] = None):
        self.store = store if store is not None else MemoryOutputStore()
        self._lock = threading.Lock()
        self._current: Optional[OutputHandle] = None
        self.published = 0

    @property
    def current(self) -> Optional[OutputHandle]:
        return self._current

    def publish(self, data: bytes) -> OutputHandle:
        handle = OutputHandle(data, self.store.create(data), self.store)
        with self._lock:
            previous = self._current
            if previous is not None:
                previous.revoke()
            self._current = handle
            self.published += 1
        logger.debug("Published %s", handle.resource_ref)
        return handle

    def revoke_current(self) -> None:
        with self._lock:
            if self._current is not None:
                self._current.revoke()
                self._current = None
