import os

import pytest

from pdf_form_fill.errors import SerializationError
from pdf_form_fill.loader import load
from pdf_form_fill.output import OutputPublisher, serialize
from pdf_form_fill.storage import FileOutputStore, MemoryOutputStore


def test_serialize_produces_pdf(form_pdf):
    data = serialize(load(form_pdf))
    assert data.startswith(b"%PDF")


def test_serialize_wraps_writer_errors(form_pdf, monkeypatch):
    doc = load(form_pdf)

    def boom(stream):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(doc.writer, "write", boom)
    with pytest.raises(SerializationError) as exc:
        serialize(doc)
    assert "disk on fire" in str(exc.value)


def test_one_live_output_after_many_publishes():
    store = MemoryOutputStore()
    publisher = OutputPublisher(store)
    handles = [publisher.publish(f"pdf-{i}".encode()) for i in range(5)]

    assert store.live == [handles[-1].resource_ref]
    assert store.revocations == 4
    assert [h.revoked for h in handles] == [True] * 4 + [False]
    assert publisher.current is handles[-1]
    assert store.get(handles[-1].resource_ref) == b"pdf-4"
    assert store.get(handles[0].resource_ref) is None


def test_revoke_is_idempotent():
    store = MemoryOutputStore()
    handle = OutputPublisher(store).publish(b"x")
    assert handle.revoke() is True
    assert handle.revoke() is False
    assert store.revocations == 1


def test_new_resource_exists_before_old_is_revoked():
    events = []

    class RecordingStore(MemoryOutputStore):
        def create(self, data):
            ref = super().create(data)
            events.append(("create", ref))
            return ref

        def revoke(self, ref):
            events.append(("revoke", ref, publisher.current.resource_ref))
            super().revoke(ref)

    publisher = OutputPublisher(RecordingStore())
    first = publisher.publish(b"a")
    second = publisher.publish(b"b")
    # the old handle is still current while it is being revoked
    assert events == [
        ("create", first.resource_ref),
        ("create", second.resource_ref),
        ("revoke", first.resource_ref, first.resource_ref),
    ]
    assert publisher.current is second


def test_revoke_current_on_shutdown():
    store = MemoryOutputStore()
    publisher = OutputPublisher(store)
    publisher.publish(b"a")
    publisher.revoke_current()
    publisher.revoke_current()
    assert publisher.current is None
    assert store.live == []
    assert store.revocations == 1


def test_file_store_deletes_revoked_outputs(tmp_path):
    store = FileOutputStore(str(tmp_path / "outputs"))
    publisher = OutputPublisher(store)
    first = publisher.publish(b"%PDF-first")
    assert os.path.exists(first.resource_ref)

    second = publisher.publish(b"%PDF-second")
    assert not os.path.exists(first.resource_ref)
    assert store.get(second.resource_ref) == b"%PDF-second"
    assert store.live == [second.resource_ref]

    publisher.revoke_current()
    assert not os.path.exists(second.resource_ref)
    assert store.revocations == 2


def test_file_store_ignores_unknown_refs(tmp_path):
    store = FileOutputStore(str(tmp_path))
    store.revoke(str(tmp_path / "elsewhere.pdf"))
    assert store.revocations == 0
