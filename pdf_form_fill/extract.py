"""AcroForm introspection.

Walks /AcroForm /Fields, classifies each terminal field by its declared
capability and records the geometry of its first widget. The same walk backs
the filler, so descriptor names and live field objects always line up.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pypdf.generic import ArrayObject, DictionaryObject, NameObject, StreamObject

from .loader import PdfDocument
from .schema import FieldDescriptor, FieldKind, Geometry

logger = logging.getLogger(__name__)

# /Ff bits (PDF 32000-1, tables 226 and 230)
RADIO_FLAG = 1 << 15
PUSHBUTTON_FLAG = 1 << 16

MAX_FIELD_DEPTH = 32
OFF_STATE = "/Off"


def _resolve(obj: Any) -> Any:
    return obj.get_object() if obj is not None and hasattr(obj, "get_object") else obj


def _text(obj: Any) -> str:
    obj = _resolve(obj)
    if isinstance(obj, bytes):
        return obj.decode("latin-1")
    return str(obj)


def _inherited(node: DictionaryObject, key: str) -> Any:
    depth = 0
    while isinstance(node, DictionaryObject) and depth < MAX_FIELD_DEPTH:
        if key in node:
            return _resolve(node[key])
        node = _resolve(node.get("/Parent"))
        depth += 1
    return None


def _classify(node: DictionaryObject) -> FieldKind:
    ft = _inherited(node, "/FT")
    flags = int(_inherited(node, "/Ff") or 0)
    if ft == "/Btn":
        if flags & PUSHBUTTON_FLAG:
            return FieldKind.TEXT
        if flags & RADIO_FLAG:
            return FieldKind.RADIO
        return FieldKind.CHECKBOX
    if ft == "/Ch":
        return FieldKind.DROPDOWN
    return FieldKind.TEXT


def on_state(widget: DictionaryObject) -> Optional[NameObject]:
    """First non-/Off normal appearance state of a button widget."""
    ap = _resolve(widget.get("/AP"))
    if not isinstance(ap, DictionaryObject):
        return None
    normal = _resolve(ap.get("/N"))
    if not isinstance(normal, DictionaryObject) or isinstance(normal, StreamObject):
        return None
    for key in normal.keys():
        if key != OFF_STATE:
            return NameObject(key)
    return None


def declared_options(node: DictionaryObject) -> List[str]:
    """Export values from /Opt in declared order; [export, display] pairs yield the export."""
    opt = _resolve(node.get("/Opt"))
    values: List[str] = []
    for item in opt or []:
        item = _resolve(item)
        if isinstance(item, ArrayObject):
            if not item:
                continue
            item = item[0]
        values.append(_text(item))
    return values


@dataclass
class LiveField:
    """A terminal field in a loaded document, with its widget annotations."""
    name: str
    kind: FieldKind
    node: DictionaryObject
    widgets: List[DictionaryObject] = field(default_factory=list)
    geometry: Geometry = field(default_factory=Geometry.unknown)
    tooltip: Optional[str] = None
    qualified_name: str = ""
    partial_name: str = ""

    def radio_choices(self) -> List[Tuple[DictionaryObject, NameObject, str]]:
        """(widget, on-state, export value) for each selectable widget, in widget order."""
        opt = declared_options(self.node)
        choices = []
        for index, widget in enumerate(self.widgets):
            state = on_state(widget)
            if state is None:
                continue
            export = opt[index] if index < len(opt) else str(state)[1:]
            choices.append((widget, state, export))
        return choices

    @property
    def options(self) -> Optional[Tuple[str, ...]]:
        if self.kind is FieldKind.DROPDOWN:
            return tuple(declared_options(self.node))
        if self.kind is FieldKind.RADIO:
            seen: List[str] = []
            for _, _, export in self.radio_choices():
                if export not in seen:
                    seen.append(export)
            return tuple(seen)
        return None

    def descriptor(self) -> FieldDescriptor:
        return FieldDescriptor(
            name=self.name,
            kind=self.kind,
            geometry=self.geometry,
            options=self.options,
            tooltip=self.tooltip,
        )

    def current_value(self) -> Any:
        value = _resolve(self.node.get("/V"))
        if self.kind is FieldKind.TEXT:
            return "" if value is None else _text(value)
        if self.kind is FieldKind.CHECKBOX:
            if value is None and self.widgets:
                value = _resolve(self.widgets[0].get("/AS"))
            return value is not None and str(value) not in (OFF_STATE, "")
        if self.kind is FieldKind.RADIO:
            if value is None or str(value) == OFF_STATE:
                return None
            for _, state, export in self.radio_choices():
                if state == value:
                    return export
            return str(value).lstrip("/")
        # dropdown
        if isinstance(value, ArrayObject):
            value = value[0] if value else None
        if value is None:
            return None
        return _text(value) or None


def _widget_pages(doc: PdfDocument) -> Dict[int, int]:
    pages: Dict[int, int] = {}
    for index, page in enumerate(doc.pages):
        for ref in _resolve(page.get("/Annots")) or []:
            idnum = getattr(ref, "idnum", None)
            if idnum is not None:
                pages.setdefault(idnum, index)
    return pages


def _geometry(widget: DictionaryObject, page: Optional[int]) -> Geometry:
    rect = _resolve(widget.get("/Rect"))
    try:
        x0, y0, x1, y1 = (float(v) for v in rect)
    except (TypeError, ValueError):
        return Geometry.unknown()
    return Geometry(
        x=min(x0, x1),
        y=min(y0, y1),
        width=abs(x1 - x0),
        height=abs(y1 - y0),
        page=page,
    )


def _dedupe_names(fields: List[LiveField]) -> None:
    # Malformed documents can repeat a qualified name; keep each one addressable
    # without colliding with a name the document really declares
    declared = {live.name for live in fields}
    taken = set()
    for live in fields:
        if live.name in taken:
            n = 2
            while f"{live.qualified_name}_{n}" in declared or f"{live.qualified_name}_{n}" in taken:
                n += 1
            live.name = f"{live.qualified_name}_{n}"
        taken.add(live.name)


def iter_live_fields(doc: PdfDocument) -> List[LiveField]:
    """Terminal fields of the document in /Fields declaration order."""
    acro = doc.acroform()
    if acro is None:
        return []
    roots = _resolve(acro.get("/Fields"))
    if not roots:
        return []

    page_of = _widget_pages(doc)
    collected: List[LiveField] = []
    visited = set()

    def walk(ref: Any, prefix: str, depth: int) -> None:
        node = _resolve(ref)
        if not isinstance(node, DictionaryObject) or depth > MAX_FIELD_DEPTH:
            return
        marker = getattr(ref, "idnum", None) or id(node)
        if marker in visited:
            return
        visited.add(marker)

        partial = node.get("/T")
        if partial is None:
            logger.debug("Skipping unnamed field entry at depth %d", depth)
            return
        name = f"{prefix}.{_text(partial)}" if prefix else _text(partial)

        child_fields = []
        widget_refs = []
        for kid_ref in _resolve(node.get("/Kids")) or []:
            kid = _resolve(kid_ref)
            if not isinstance(kid, DictionaryObject):
                continue
            if "/T" in kid:
                child_fields.append(kid_ref)
            else:
                widget_refs.append(kid_ref)
        for child in child_fields:
            walk(child, name, depth + 1)
        if child_fields and not widget_refs:
            return

        if not widget_refs and "/Rect" in node:
            widget_refs = [ref]
        widgets = [_resolve(w) for w in widget_refs]

        geometry = Geometry.unknown()
        if widgets:
            first = widget_refs[0]
            geometry = _geometry(widgets[0], page_of.get(getattr(first, "idnum", None)))
        tooltip = node.get("/TU")
        collected.append(LiveField(
            name=name,
            kind=_classify(node),
            node=node,
            widgets=widgets,
            geometry=geometry,
            tooltip=_text(tooltip) if tooltip is not None else None,
            qualified_name=name,
            partial_name=_text(partial),
        ))

    for ref in roots:
        walk(ref, "", 0)
    _dedupe_names(collected)
    return collected


def introspect(doc: PdfDocument) -> List[FieldDescriptor]:
    """One descriptor per terminal field, in introspection (document) order.

    A document without an /AcroForm has no fields; that is not an error.
    """
    descriptors = [live.descriptor() for live in iter_live_fields(doc)]
    logger.debug("Introspected %d fields from %s", len(descriptors), doc.source_name)
    return descriptors


def order_fields(descriptors: List[FieldDescriptor]) -> List[FieldDescriptor]:
    """Reading order: top of page first (PDF y grows upward), then left to right.

    The sort is stable, so stacked fields keep their introspection order and
    fields with unknown geometry trail behind everything else. Multi-column,
    rotated and multi-page layouts are ordered by raw coordinates only.
    """
    return sorted(descriptors, key=lambda d: (-d.geometry.y, d.geometry.x))


def read_values(doc: PdfDocument) -> Dict[str, Any]:
    """Current value of every field, typed by kind (str / bool / export value or None)."""
    return {live.name: live.current_value() for live in iter_live_fields(doc)}
