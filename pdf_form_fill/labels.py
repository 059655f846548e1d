"""Human-readable label hints for fields, taken from the static page text.

PyMuPDF reports words with a top-left origin, while descriptor geometry is
in PDF user space (bottom-left origin), so widget rects are flipped against
the page height before searching.
"""
from __future__ import annotations
import logging
from typing import Dict, List, Sequence, Tuple

import fitz  # PyMuPDF

from .config import LABEL_LINE_TOLERANCE, LABEL_MAX_LENGTH, LABEL_SEARCH_RADIUS
from .schema import FieldDescriptor

logger = logging.getLogger(__name__)

Word = Tuple[float, float, float, float, str]


def _center_in(word: Word, rect: fitz.Rect) -> bool:
    x0, y0, x1, y1, _ = word
    return rect.contains(fitz.Point((x0 + x1) / 2, (y0 + y1) / 2))


def _join(words: List[Word]) -> str:
    text = " ".join(w[4] for w in sorted(words, key=lambda w: w[0])).strip()
    return text.rstrip(":").strip()[:LABEL_MAX_LENGTH]


def _label_for(words: Sequence[Word], widget: fitz.Rect, radius: float) -> str:
    # same line, to the left
    left_zone = fitz.Rect(widget.x0 - radius * 4, widget.y0 - LABEL_LINE_TOLERANCE,
                          widget.x0, widget.y1 + LABEL_LINE_TOLERANCE)
    left = [w for w in words if _center_in(w, left_zone)]
    if left:
        return _join(left)

    above_zone = fitz.Rect(widget.x0 - LABEL_LINE_TOLERANCE, widget.y0 - radius,
                           widget.x1 + LABEL_LINE_TOLERANCE, widget.y0)
    above = [w for w in words if _center_in(w, above_zone)]
    if not above:
        return ""
    nearest = max(w[3] for w in above)
    return _join([w for w in above if abs(w[3] - nearest) <= LABEL_LINE_TOLERANCE])


def nearby_labels(pdf_bytes: bytes, descriptors: Sequence[FieldDescriptor],
                  radius: float = LABEL_SEARCH_RADIUS) -> Dict[str, str]:
    """Map field name to the text printed next to it; fields without a hint are omitted."""
    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as e:
        logger.warning("Label lookup skipped, document unreadable: %s", e)
        return {}

    labels: Dict[str, str] = {}
    words_by_page: Dict[int, List[Word]] = {}
    with doc:
        for d in descriptors:
            g = d.geometry
            if not g.is_known:
                continue
            page_idx = g.page or 0
            if not 0 <= page_idx < doc.page_count:
                continue
            page = doc[page_idx]
            if page_idx not in words_by_page:
                try:
                    words_by_page[page_idx] = [tuple(w[:5]) for w in page.get_text("words")]
                except Exception as e:
                    logger.debug("No text on page %d: %s", page_idx, e)
                    words_by_page[page_idx] = []
            height = page.rect.height
            widget = fitz.Rect(g.x, height - (g.y + g.height), g.x + g.width, height - g.y)
            label = _label_for(words_by_page[page_idx], widget, radius)
            if label:
                labels[d.name] = label
    return labels
