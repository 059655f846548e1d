"""PDF AcroForm field extraction and fill engine.

Loads a fillable PDF, lists its fields in reading order, applies typed values,
optionally overlays an image, and publishes each rendered result through a
revocable output handle. Value edits are debounced into single-flight cycles.
"""
from .schema import FieldDescriptor, FieldKind, Geometry, ImageAsset
from .errors import (
    FormEngineError,
    EmptySource,
    InvalidFormat,
    NoValidSource,
    UnsupportedImageFormat,
    SerializationError,
    FieldAssignmentWarning,
)
from .loader import PdfDocument, load
from .sources import BytesOrigin, FileOrigin, load_first
from .extract import introspect, order_fields, read_values
from .fill import FillSummary, fill
from .image import embed
from .output import OutputHandle, OutputPublisher, serialize
from .storage import FileOutputStore, MemoryOutputStore
from .scheduler import SchedulerState, UpdateScheduler
from .session import FillRequest, FormSession

__all__ = [
    "FieldDescriptor",
    "FieldKind",
    "Geometry",
    "ImageAsset",
    "FormEngineError",
    "EmptySource",
    "InvalidFormat",
    "NoValidSource",
    "UnsupportedImageFormat",
    "SerializationError",
    "FieldAssignmentWarning",
    "PdfDocument",
    "load",
    "BytesOrigin",
    "FileOrigin",
    "load_first",
    "introspect",
    "order_fields",
    "read_values",
    "FillSummary",
    "fill",
    "embed",
    "OutputHandle",
    "OutputPublisher",
    "serialize",
    "FileOutputStore",
    "MemoryOutputStore",
    "SchedulerState",
    "UpdateScheduler",
    "FillRequest",
    "FormSession",
]
