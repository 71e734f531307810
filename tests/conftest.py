import io
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import pymupdf
import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from submission_docs.documents.models import EntityRecord


@pytest.fixture()
def read_pdf_lines() -> Callable[[bytes], list[str]]:
    """Return a reader giving the non-blank text lines of every page, in order."""

    def _read(pdf_bytes: bytes) -> list[str]:
        with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:
            text = "\n".join(page.get_text() for page in doc)
        return [line.strip() for line in text.splitlines() if line.strip()]

    return _read


@pytest.fixture()
def template_pdf_bytes() -> bytes:
    """Two-page master template; page one carries a heading only."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 750, "MASTER TEMPLATE")
    c.showPage()
    c.drawString(72, 720, "Terms and conditions")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def template_path(tmp_path: Path, template_pdf_bytes: bytes) -> Path:
    path = tmp_path / "template.pdf"
    path.write_bytes(template_pdf_bytes)
    return path


@pytest.fixture()
def full_record() -> EntityRecord:
    return EntityRecord(
        id="64f0c1a2b3",
        display_name="Asha Rao",
        organization_name="Rao Traders",
        tax_id="29ABCDE1234F1Z5",
        reference_number="9000000001",
        contact_number="9800000002",
        checklist={"cheque": True, "letterhead": False},
        submitted_at=datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc),
        verified=True,
    )


@pytest.fixture()
def record_without_tax_id() -> EntityRecord:
    return EntityRecord(
        id="64f0c1a2b4",
        display_name="Vikram Shah",
        organization_name="Shah & Sons",
        tax_id=None,
        reference_number="9000000003",
        contact_number="9800000004",
        checklist={"cheque": True, "letterhead": True},
        submitted_at=datetime(2024, 3, 4, 9, 0, 0, tzinfo=timezone.utc),
        verified=False,
    )


@pytest.fixture()
def record_without_contact() -> EntityRecord:
    return EntityRecord(
        id="64f0c1a2b5",
        display_name=None,
        organization_name="Nameless Co",
        tax_id="27ZZZZZ9999Z1Z9",
        reference_number=None,
        contact_number="",
        checklist={},
        submitted_at=None,
        verified=False,
    )
