from __future__ import annotations
import os, uuid, threading
from typing import Dict, Optional, Protocol

from .config import OUTPUT_DIR


class OutputStore(Protocol):
    """Where rendered documents live while a display collaborator shows them."""

    def create(self, data: bytes) -> str:
        ...

    def revoke(self, resource_ref: str) -> None:
        ...


class MemoryOutputStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._outputs: Dict[str, bytes] = {}
        self.created = 0
        self.revocations = 0

    def create(self, data: bytes) -> str:
        ref = f"mem://{uuid.uuid4().hex}"
        with self._lock:
            self._outputs[ref] = bytes(data)
            self.created += 1
        return ref

    def get(self, resource_ref: str) -> Optional[bytes]:
        with self._lock:
            return self._outputs.get(resource_ref)

    def revoke(self, resource_ref: str) -> None:
        with self._lock:
            if self._outputs.pop(resource_ref, None) is not None:
                self.revocations += 1

    @property
    def live(self):
        with self._lock:
            return list(self._outputs)


class FileOutputStore:
    """One file per rendered output; the file path is the resource reference."""

    def __init__(self, base_dir: str = OUTPUT_DIR):
        self.base_dir = base_dir
        os.makedirs(self.base_dir, exist_ok=True)
        self._lock = threading.Lock()
        self._paths: Dict[str, float] = {}
        self.revocations = 0

    def _output_path(self, output_id: str) -> str:
        return os.path.join(self.base_dir, f"{output_id}.pdf")

    def create(self, data: bytes) -> str:
        path = self._output_path(uuid.uuid4().hex)
        with open(path, "wb") as f:
            f.write(data)
        with self._lock:
            self._paths[path] = os.path.getmtime(path)
        return path

    def get(self, resource_ref: str) -> Optional[bytes]:
        if not os.path.exists(resource_ref):
            return None
        with open(resource_ref, "rb") as f:
            return f.read()

    def revoke(self, resource_ref: str) -> None:
        with self._lock:
            known = self._paths.pop(resource_ref, None) is not None
        if not known:
            return
        try:
            os.remove(resource_ref)
        except FileNotFoundError:
            pass
        with self._lock:
            self.revocations += 1

    @property
    def live(self):
        with self._lock:
            return list(self._paths)
