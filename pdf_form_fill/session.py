"""
Form sessions: one loaded document, its ordered fields, and the fill cycles
that turn value edits into published outputs.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from . import loader
from .config import FILL_DELAY, FIRST_FILL_DELAY
from .extract import introspect, order_fields
from .fill import FillSummary, fill
from .image import embed
from .labels import nearby_labels
from .logging_utils import LOG_FILE, log_fill_cycle
from .output import OutputHandle, OutputPublisher, serialize
from .scheduler import UpdateScheduler
from .schema import FieldDescriptor, ImageAsset, ValueMap
from .sources import LoadedSource, Origin, load_first
from .storage import OutputStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FillRequest:
    """Snapshot of everything one cycle renders."""
    values: Dict[str, Any] = field(default_factory=dict)
    image: Optional[ImageAsset] = None


class FormSession:
    """Represents an open form with its value state and current output."""

    def __init__(
        self,
        source: LoadedSource,
        store: Optional[OutputStore] = None,
        first_delay: float = FIRST_FILL_DELAY,
        delay: float = FILL_DELAY,
        image_page: int = 0,
        session_id: Optional[str] = None,
        cycle_log: Optional[str] = LOG_FILE,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.source = source
        self.image_page = image_page
        self.cycle_log = cycle_log
        # field set does not change with value edits; computed once
        self.fields: List[FieldDescriptor] = order_fields(introspect(source.document))
        self._known = {d.name for d in self.fields}
        self._labels: Optional[Dict[str, str]] = None

        self.values: Dict[str, Any] = {}
        self.image: Optional[ImageAsset] = None
        self.last_summary: Optional[FillSummary] = None
        self.last_error: Optional[BaseException] = None

        self.publisher = OutputPublisher(store)
        self.scheduler = UpdateScheduler(
            self._run_cycle, first_delay=first_delay, delay=delay, on_error=self._on_cycle_error
        )

    @classmethod
    def open(cls, origins: Iterable[Origin], **kwargs) -> "FormSession":
        """Load the first valid origin; raises NoValidSource when none is usable."""
        session = cls(load_first(origins), **kwargs)
        logger.info("Opened session %s on %s with %d fields",
                    session.session_id, session.source.origin_name, len(session.fields))
        return session

    def field_names(self) -> List[str]:
        return [d.name for d in self.fields]

    def field_labels(self) -> Dict[str, str]:
        """Display label per field: nearby page text, else tooltip, else the field name."""
        if self._labels is None:
            found = nearby_labels(self.source.data, self.fields)
            self._labels = {d.name: found.get(d.name) or d.tooltip or d.name for d in self.fields}
        return dict(self._labels)

    def _render(self, values: ValueMap, image: Optional[ImageAsset] = None) -> Tuple[bytes, FillSummary]:
        # fresh parse of the cached bytes so edits never accumulate
        doc = loader.load(self.source.data, self.source.origin_name)
        summary = fill(doc, values)
        if image is not None:
            embed(doc, image, self.image_page)
        return serialize(doc), summary

    def render(self, values: ValueMap, image: Optional[ImageAsset] = None) -> bytes:
        """Run one load, fill, embed, serialize cycle synchronously."""
        data, summary = self._render(values, image)
        self.last_summary = summary
        return data

    def fill(self, values: ValueMap, image: Optional[ImageAsset] = None) -> None:
        """Replace the value state and schedule a cycle. Must run inside the event loop."""
        self.values = dict(values)
        if image is not None:
            self.image = image
        self.scheduler.request(FillRequest(dict(self.values), self.image))

    def set_value(self, name: str, value: Any) -> bool:
        if name not in self._known:
            logger.debug("Ignoring edit for unknown field %s", name)
            return False
        self.values[name] = value
        self.scheduler.request(FillRequest(dict(self.values), self.image))
        return True

    @property
    def current(self) -> Optional[OutputHandle]:
        return self.publisher.current

    async def _run_cycle(self, request: FillRequest) -> OutputHandle:
        started = time.time()
        try:
            data, summary = await asyncio.to_thread(self._render, request.values, request.image)
        except Exception as e:
            code = getattr(e, "error_code", type(e).__name__)
            self._audit(request, None, None, started, error=f"{code}: {e}")
            raise
        handle = self.publisher.publish(data)
        self.last_summary = summary
        self.last_error = None
        self._audit(request, summary, handle.resource_ref, started)
        return handle

    def _audit(self, request: FillRequest, summary: Optional[FillSummary], resource_ref: Optional[str],
               started: float, error: Optional[str] = None) -> None:
        if self.cycle_log is None:
            return
        log_fill_cycle(self.session_id, request.values, summary.to_dict() if summary else None,
                       resource_ref, started, error=error, log_file=self.cycle_log)

    def _on_cycle_error(self, error: BaseException) -> None:
        self.last_error = error
        if self.current is not None:
            logger.info("Keeping previous output %s after failed cycle", self.current.resource_ref)

    async def wait_idle(self) -> None:
        await self.scheduler.wait_idle()

    async def flush(self) -> None:
        await self.scheduler.flush()

    async def close(self) -> None:
        await self.scheduler.close()
        self.publisher.revoke_current()
        logger.info("Closed session %s", self.session_id)
