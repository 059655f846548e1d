from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import UnsupportedImageFormat

ValueMap = Mapping[str, Any]

UNKNOWN_X = float("inf")
UNKNOWN_Y = float("-inf")

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xff\xd8\xff"


class FieldKind(str, Enum):
    """Closed set of field capabilities the engine knows how to fill."""

    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"

    @property
    def has_options(self) -> bool:
        return self in (FieldKind.RADIO, FieldKind.DROPDOWN)


@dataclass(frozen=True)
class Geometry:
    """Lower-left corner of a field's first widget, in PDF user space (y grows upward)."""
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    page: Optional[int] = None

    @classmethod
    def unknown(cls) -> "Geometry":
        return cls(x=UNKNOWN_X, y=UNKNOWN_Y)

    @property
    def is_known(self) -> bool:
        return self.y != UNKNOWN_Y

    def to_public(self) -> Optional[Dict[str, Any]]:
        if not self.is_known:
            return None
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height, "page": self.page}


@dataclass(frozen=True)
class FieldDescriptor:
    """Represents a single fillable field with its normalized kind.

    Raw AcroForm /FT and /Ff values are mapped to FieldKind during introspection;
    ``options`` carries export values for radio groups and dropdowns only.
    """
    name: str
    kind: FieldKind
    geometry: Geometry
    options: Optional[Tuple[str, ...]] = None
    tooltip: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("field name must be non-empty")
        if self.kind.has_options:
            if self.options is None:
                object.__setattr__(self, "options", ())
        elif self.options is not None:
            raise ValueError(f"{self.kind.value} field {self.name!r} cannot declare options")

    def to_public(self) -> Dict[str, Any]:  # stable outward shape
        return {
            "name": self.name,
            "kind": self.kind.value,
            "geometry": self.geometry.to_public(),
            **({"options": list(self.options)} if self.options is not None else {}),
            **({"tooltip": self.tooltip} if self.tooltip else {}),
        }


@dataclass(frozen=True)
class ImageAsset:
    """Raster image supplied by the caller for one fill cycle.

    Validation happens here, at the input boundary, so that an unsupported
    format is rejected before any document is touched.
    """
    data: bytes
    format: str

    def __post_init__(self):
        fmt = (self.format or "").lower().lstrip(".")
        if fmt == "jpg":
            fmt = "jpeg"
        if fmt not in ("png", "jpeg"):
            raise UnsupportedImageFormat(f"Unsupported image format: {self.format!r}")
        if not self.data:
            raise UnsupportedImageFormat("Image data is empty")
        sniffed = self.sniff(self.data)
        if sniffed != fmt:
            raise UnsupportedImageFormat(f"Image data does not look like {fmt.upper()}")
        object.__setattr__(self, "format", fmt)

    @staticmethod
    def sniff(data: bytes) -> Optional[str]:
        if data.startswith(PNG_MAGIC):
            return "png"
        if data.startswith(JPEG_MAGIC):
            return "jpeg"
        return None

    @classmethod
    def from_bytes(cls, data: bytes) -> "ImageAsset":
        fmt = cls.sniff(data or b"")
        if fmt is None:
            raise UnsupportedImageFormat()
        return cls(data=data, format=fmt)
