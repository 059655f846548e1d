"""Document loading.

load(data) validates the raw bytes and returns a fresh, mutable PdfDocument.
The input buffer is never modified; every call parses it again so each fill
cycle starts from a clean base.
"""
from __future__ import annotations
import io
import logging
from typing import Optional

from pypdf import PdfReader, PdfWriter
from pypdf.generic import DictionaryObject

from .config import ERROR_MESSAGES, PDF_MAGIC
from .errors import EmptySource, InvalidFormat

logger = logging.getLogger(__name__)


class PdfDocument:
    """Mutable in-memory PDF owned by a single fill cycle."""

    def __init__(self, writer: PdfWriter, source_name: str = "<bytes>"):
        self.writer = writer
        self.source_name = source_name

    @property
    def root(self) -> DictionaryObject:
        return self.writer._root_object  # type: ignore[attr-defined]

    @property
    def pages(self):
        return self.writer.pages

    def acroform(self) -> Optional[DictionaryObject]:
        acro = self.root.get("/AcroForm")
        return acro.get_object() if acro is not None else None

    def __repr__(self) -> str:
        return f"PdfDocument(source={self.source_name!r}, pages={len(self.pages)})"


def load(data: bytes, source_name: str = "<bytes>") -> PdfDocument:
    if not data:
        raise EmptySource(f"{ERROR_MESSAGES['empty_source']}: {source_name}")
    if not bytes(data[: len(PDF_MAGIC)]) == PDF_MAGIC:
        raise InvalidFormat(f"{ERROR_MESSAGES['invalid_format']}: {source_name}")

    try:
        reader = PdfReader(io.BytesIO(bytes(data)))
        if reader.is_encrypted:
            raise InvalidFormat(f"{ERROR_MESSAGES['encrypted_pdf']}: {source_name}")
        # Touch the catalog and page tree so structural damage surfaces here
        if reader.trailer.get("/Root") is None:
            raise InvalidFormat(f"PDF structure unreadable (no /Root): {source_name}")
        page_count = len(reader.pages)
        writer = PdfWriter(clone_from=reader)
    except InvalidFormat:
        raise
    except Exception as e:
        raise InvalidFormat(f"{ERROR_MESSAGES['parse_failed']}: {source_name}: {e}") from e

    logger.debug("Loaded %s (%d bytes, %d pages)", source_name, len(data), page_count)
    return PdfDocument(writer, source_name)
