"""Raster image overlay: scale-to-fit, centered near the top of a page."""
from __future__ import annotations
import io
import logging
from typing import Tuple

from pypdf import PdfReader
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .config import IMAGE_MAX_HEIGHT, IMAGE_MAX_WIDTH, IMAGE_TOP_OFFSET
from .loader import PdfDocument
from .schema import ImageAsset

logger = logging.getLogger(__name__)


def fit_size(width: float, height: float, max_width: float = IMAGE_MAX_WIDTH,
             max_height: float = IMAGE_MAX_HEIGHT) -> Tuple[float, float]:
    """Uniform scale that fits both bounds; images already inside them keep their size."""
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid image size {width}x{height}")
    scale = min(1.0, max_width / width, max_height / height)
    return width * scale, height * scale


def placement(page_width: float, page_height: float, width: float, height: float,
              top_offset: float = IMAGE_TOP_OFFSET) -> Tuple[float, float]:
    # lower-left corner; PDF y grows upward
    return (page_width - width) / 2, page_height - top_offset - height


def _overlay(page_size: Tuple[float, float], image: ImageReader, x: float, y: float,
             width: float, height: float) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=page_size)
    c.drawImage(image, x, y, width=width, height=height, mask='auto')
    c.showPage()
    c.save()
    return buf.getvalue()


def embed(doc: PdfDocument, asset: ImageAsset, page_index: int = 0,
          max_width: float = IMAGE_MAX_WIDTH, max_height: float = IMAGE_MAX_HEIGHT,
          top_offset: float = IMAGE_TOP_OFFSET) -> Tuple[float, float]:
    """Draw ``asset`` onto page ``page_index`` and return the drawn (width, height)."""
    if not 0 <= page_index < len(doc.pages):
        raise ValueError(f"page index {page_index} out of range (document has {len(doc.pages)} pages)")

    image = ImageReader(io.BytesIO(asset.data))
    native_w, native_h = image.getSize()
    width, height = fit_size(native_w, native_h, max_width, max_height)

    page = doc.pages[page_index]
    box = page.mediabox
    left, bottom = float(box.left), float(box.bottom)
    x, y = placement(float(box.width), float(box.height), width, height, top_offset)
    x, y = x + left, y + bottom

    overlay = PdfReader(io.BytesIO(_overlay((float(box.right), float(box.top)), image, x, y, width, height)))
    page.merge_page(overlay.pages[0])
    logger.debug("Embedded %s image %dx%d as %.1fx%.1f on page %d",
                 asset.format, native_w, native_h, width, height, page_index)
    return width, height
