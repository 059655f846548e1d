"""Document sources: ordered origins probed until one yields a valid PDF."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Protocol, Tuple, Union

from . import loader
from .errors import EmptySource, InvalidFormat, NoValidSource
from .loader import PdfDocument

logger = logging.getLogger(__name__)


class Origin(Protocol):
    name: str

    def read(self) -> bytes:
        ...


@dataclass(frozen=True)
class BytesOrigin:
    name: str
    data: bytes

    def read(self) -> bytes:
        return self.data


class FileOrigin:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @property
    def name(self) -> str:
        return str(self.path)

    def read(self) -> bytes:
        return self.path.read_bytes()


@dataclass
class LoadedSource:
    """The first origin that produced a valid document, with its cached bytes."""
    origin_name: str
    data: bytes
    document: PdfDocument


def load_first(origins: Iterable[Origin]) -> LoadedSource:
    attempts: List[Tuple[str, str]] = []
    for origin in origins:
        name = getattr(origin, "name", repr(origin))
        logger.info("Trying document source %s", name)
        try:
            data = origin.read()
        except OSError as e:
            logger.warning("Source %s unreadable: %s", name, e)
            attempts.append((name, f"unreadable: {e}"))
            continue
        try:
            document = loader.load(data, source_name=name)
        except (EmptySource, InvalidFormat) as e:
            logger.warning("Source %s rejected: %s", name, e)
            attempts.append((name, e.error_code))
            continue
        logger.info("Loaded document from %s (%d bytes)", name, len(data))
        return LoadedSource(origin_name=name, data=bytes(data), document=document)
    raise NoValidSource(attempts)
