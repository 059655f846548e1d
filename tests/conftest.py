import io

import pytest
from PIL import Image
from pypdf import PdfReader, PdfWriter
from pypdf.generic import ArrayObject, DictionaryObject, FloatObject, NameObject, NumberObject, TextStringObject
from reportlab.pdfgen import canvas

PAGE_SIZE = (612, 792)


def build_form_pdf() -> bytes:
    """Letter page with one field of every kind, declared out of reading order."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=PAGE_SIZE)
    c.setFont("Helvetica", 11)
    c.drawString(40, 706, "Full name:")
    c.drawString(340, 706, "Email:")
    c.drawString(40, 644, "I accept")
    c.drawString(40, 584, "Plan")
    c.drawString(150, 546, "Country of residence")

    form = c.acroForm
    form.choice(name="country", tooltip="Country", value="US", options=["US", "UK", "FR"],
                x=150, y=520, width=120, height=20)
    form.textfield(name="email", tooltip="Email address", x=400, y=700, width=180, height=20)
    form.textfield(name="full_name", tooltip="Your full name", x=150, y=700, width=180, height=20)
    form.checkbox(name="accept", tooltip="Accept terms", x=150, y=640, size=15)
    form.radio(name="plan", tooltip="Plan", value="basic", x=150, y=580, size=15)
    form.radio(name="plan", tooltip="Plan", value="premium", x=250, y=580, size=15)
    c.showPage()
    c.save()
    return buf.getvalue()


def build_plain_pdf(pages: int = 1) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=PAGE_SIZE)
    for i in range(pages):
        c.drawString(72, 720, f"Page {i + 1}")
        c.showPage()
    c.save()
    return buf.getvalue()


def _widget(writer: PdfWriter, page, rect, **entries):
    widget = DictionaryObject({
        NameObject("/Type"): NameObject("/Annot"),
        NameObject("/Subtype"): NameObject("/Widget"),
        NameObject("/Rect"): ArrayObject([FloatObject(v) for v in rect]),
    })
    for key, value in entries.items():
        widget[NameObject(f"/{key}")] = value
    ref = writer._add_object(widget)
    if "/Annots" not in page:
        page[NameObject("/Annots")] = ArrayObject()
    page["/Annots"].append(ref)
    return widget, ref


def build_structured_pdf() -> bytes:
    """Hierarchical names, repeated and colliding names and a field with no widgets, built with pypdf."""
    writer = PdfWriter(clone_from=PdfReader(io.BytesIO(build_plain_pdf())))
    page = writer.pages[0]
    fields = ArrayObject()

    parent = DictionaryObject({NameObject("/T"): TextStringObject("person"), NameObject("/Kids"): ArrayObject()})
    parent_ref = writer._add_object(parent)
    for partial, x in (("first", 100), ("last", 300)):
        child, child_ref = _widget(writer, page, [x, 600, x + 150, 620],
                                   T=TextStringObject(partial), FT=NameObject("/Tx"), Parent=parent_ref)
        parent["/Kids"].append(child_ref)
    fields.append(parent_ref)

    for x in (100, 300):
        _, dup_ref = _widget(writer, page, [x, 500, x + 100, 520],
                             T=TextStringObject("notes"), FT=NameObject("/Tx"))
        fields.append(dup_ref)

    # a real "notes_2" and a top-level "first" sharing its partial name with person.first
    for name, y in (("notes_2", 450), ("first", 400)):
        _, ref = _widget(writer, page, [100, y, 250, y + 20], T=TextStringObject(name), FT=NameObject("/Tx"))
        fields.append(ref)

    orphan = DictionaryObject({
        NameObject("/T"): TextStringObject("hidden"),
        NameObject("/FT"): NameObject("/Tx"),
        NameObject("/Ff"): NumberObject(0),
    })
    fields.append(writer._add_object(orphan))

    writer._root_object[NameObject("/AcroForm")] = DictionaryObject({NameObject("/Fields"): fields})
    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()


def _image_bytes(fmt: str, size=(300, 100)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture(scope="session")
def form_pdf() -> bytes:
    return build_form_pdf()


@pytest.fixture(scope="session")
def plain_pdf() -> bytes:
    return build_plain_pdf()


@pytest.fixture(scope="session")
def structured_pdf() -> bytes:
    return build_structured_pdf()


@pytest.fixture(scope="session")
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture(scope="session")
def jpeg_bytes() -> bytes:
    return _image_bytes("JPEG")


@pytest.fixture
def form_file(tmp_path, form_pdf):
    path = tmp_path / "form.pdf"
    path.write_bytes(form_pdf)
    return path
