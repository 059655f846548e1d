from __future__ import annotations
from dataclasses import dataclass, field
from collections import Counter
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from pypdf.generic import DictionaryObject, NameObject, TextStringObject

from .errors import FieldAssignmentWarning
from .extract import LiveField, iter_live_fields, on_state, _resolve, _text
from .loader import PdfDocument
from .schema import FieldKind, ValueMap

logger = logging.getLogger(__name__)

SNAPSHOT_KEYS = ("/V", "/AS", "/I")
DEFAULT_ON_STATE = NameObject("/Yes")
OFF = NameObject("/Off")


@dataclass
class FillSummary:
    applied: List[str] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)
    unknown: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applied": list(self.applied),
            "skipped": dict(self.skipped),
            "unknown_fields": list(self.unknown),
        }


def _assign_text(live: LiveField, value: Any) -> bool:
    live.node[NameObject("/V")] = TextStringObject(str(value))
    return True


def _assign_checkbox(live: LiveField, value: Any) -> bool:
    if not isinstance(value, bool):
        raise FieldAssignmentWarning(live.name, f"expected bool, got {type(value).__name__}")
    field_on = next((s for s in (on_state(w) for w in live.widgets) if s is not None), DEFAULT_ON_STATE)
    live.node[NameObject("/V")] = field_on if value else OFF
    for widget in live.widgets:
        widget[NameObject("/AS")] = (on_state(widget) or field_on) if value else OFF
    return True


def _check_selection(live: LiveField, value: Any) -> bool:
    if not isinstance(value, str):
        raise FieldAssignmentWarning(live.name, f"expected str, got {type(value).__name__}")
    if value == "":
        return False
    options = live.options or ()
    if value not in options:
        raise FieldAssignmentWarning(live.name, f"{value!r} is not one of {list(options)}")
    return True


def _assign_radio(live: LiveField, value: Any) -> bool:
    if not _check_selection(live, value):
        return False
    choices = live.radio_choices()
    selected: Optional[NameObject] = None
    for _, state, export in choices:
        if export == value:
            selected = state
            break
    if selected is None:
        raise FieldAssignmentWarning(live.name, f"no widget exports {value!r}")
    for widget, state, export in choices:
        widget[NameObject("/AS")] = state if (export == value and state == selected) else OFF
    live.node[NameObject("/V")] = selected
    return True


def _assign_dropdown(live: LiveField, value: Any) -> bool:
    if not _check_selection(live, value):
        return False
    live.node[NameObject("/V")] = TextStringObject(value)
    # /I indexes into /Opt and would contradict the new /V
    if "/I" in live.node:
        del live.node["/I"]
    return True


_ASSIGNERS: Dict[FieldKind, Callable[[LiveField, Any], bool]] = {
    FieldKind.TEXT: _assign_text,
    FieldKind.CHECKBOX: _assign_checkbox,
    FieldKind.RADIO: _assign_radio,
    FieldKind.DROPDOWN: _assign_dropdown,
}


def _snapshot(live: LiveField) -> List[Tuple[DictionaryObject, Dict[str, Any]]]:
    objects = [live.node] + [w for w in live.widgets if w is not live.node]
    return [(obj, {key: obj.get(key) for key in SNAPSHOT_KEYS}) for obj in objects]


def _restore(snapshot: List[Tuple[DictionaryObject, Dict[str, Any]]]) -> None:
    for obj, saved in snapshot:
        for key, value in saved.items():
            if value is None:
                if key in obj:
                    del obj[key]
            else:
                obj[NameObject(key)] = value


def _refresh_appearances(doc: PdfDocument, fields: List[LiveField], page_of: Dict[int, int],
                         claims: Counter) -> None:
    """Regenerate text/choice appearance streams; viewers fall back to /NeedAppearances."""
    for live in fields:
        if claims[live.qualified_name] > 1:
            # pypdf matches widgets by partial or qualified name and would write
            # this value into every other field answering to it
            continue
        value = _resolve(live.node.get("/V"))
        if value is None:
            continue
        pages = sorted({page_of[id(w)] for w in live.widgets if id(w) in page_of})
        for index in pages:
            try:
                doc.writer.update_page_form_field_values(doc.pages[index], {live.qualified_name: _text(value)})
            except Exception as e:  # appearance only; the value is already set
                logger.debug("Appearance refresh failed for %s on page %d: %s", live.name, index, e)


def _name_claims(fields: List[LiveField]) -> Counter:
    """How many fields answer to each name under pypdf's lookup.

    pypdf compares its key with the qualified name and with the partial /T of
    the widget's field, or of its parent when the widget carries no /FT, so
    ancestor names count as claims too.
    """
    claims: Counter = Counter()
    for live in fields:
        names = {live.qualified_name, live.partial_name}
        names.update(live.qualified_name.split("."))
        claims.update(names)
    return claims


def _pages_by_widget(doc: PdfDocument) -> Dict[int, int]:
    pages: Dict[int, int] = {}
    for index, page in enumerate(doc.pages):
        for ref in _resolve(page.get("/Annots")) or []:
            pages.setdefault(id(_resolve(ref)), index)
    return pages


def fill(doc: PdfDocument, values: ValueMap) -> FillSummary:
    """Apply ``values`` to the document's fields in place.

    Every assignment is independent: a value of the wrong type, an unknown
    option or a structurally broken field is logged and skipped, and that
    field keeps its previous state. Unknown names are ignored.
    """
    live_fields = iter_live_fields(doc)
    live_by_name = {live.name: live for live in live_fields}
    summary = FillSummary()

    for name, value in values.items():
        live = live_by_name.get(name)
        if live is None:
            logger.debug("Ignoring value for unknown field %s", name)
            summary.unknown.append(name)
            continue
        if value is None:
            continue
        snapshot = _snapshot(live)
        try:
            changed = _ASSIGNERS[live.kind](live, value)
        except FieldAssignmentWarning as w:
            _restore(snapshot)
            logger.warning("Skipping field %s: %s", name, w.reason)
            summary.skipped[name] = w.reason
            continue
        except Exception as e:  # broken field tree; keep the rest of the form usable
            _restore(snapshot)
            logger.warning("Skipping field %s after internal error: %s", name, e)
            summary.skipped[name] = f"internal error: {e}"
            continue
        if changed:
            summary.applied.append(name)

    if summary.applied:
        refresh = [
            live_by_name[n] for n in summary.applied
            if live_by_name[n].kind in (FieldKind.TEXT, FieldKind.DROPDOWN)
        ]
        _refresh_appearances(doc, refresh, _pages_by_widget(doc), _name_claims(live_fields))
        # the refresh above resets the flag, so it is set last
        doc.writer.set_need_appearances_writer(True)

    logger.debug(
        "Filled %s: applied=%d skipped=%d unknown=%d",
        doc.source_name, len(summary.applied), len(summary.skipped), len(summary.unknown),
    )
    return summary
