"""Single-page submission document built from scratch with reportlab.

Every record produces the same nine lines in the same order:
title, name, firm, tax id, sales rep number, contact number, verification,
checklist and submission time. Absent values print ``-`` so that two
documents can always be compared line by line.
"""

import io
from datetime import datetime, timezone, tzinfo
from typing import ClassVar

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from submission_docs.documents.exceptions import RenderError
from submission_docs.documents.models import CHECKLIST_ITEMS, ComposedDocument, EntityRecord

PLACEHOLDER = "-"
TITLE = "User Submission"


def field_or_placeholder(value: str | None, placeholder: str = PLACEHOLDER) -> str:
    """Return ``value`` unless it is missing or empty."""
    return value if value else placeholder


def yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def format_timestamp(value: datetime | None, tz: tzinfo | None = None) -> str:
    """Render ``value`` like ``10/18/2026, 9:05:03 AM`` in ``tz``.

    Naive timestamps are taken as UTC. ``tz=None`` means the host's local zone.
    """
    if value is None:
        return PLACEHOLDER
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    local = value.astimezone(tz)
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return (
        f"{local.month}/{local.day}/{local.year}, "
        f"{hour}:{local.minute:02d}:{local.second:02d} {meridiem}"
    )


def render_lines(record: EntityRecord, tz: tzinfo | None = None) -> list[str]:
    """Build the document body, one string per printed line."""
    checklist = ", ".join(
        f"{label} - {yes_no(record.has_item(key))}" for key, label in CHECKLIST_ITEMS
    )
    return [
        TITLE,
        f"Name: {field_or_placeholder(record.display_name)}",
        f"Firm Name: {field_or_placeholder(record.organization_name)}",
        f"GST Number: {field_or_placeholder(record.tax_id)}",
        f"Sales Rep Number: {field_or_placeholder(record.reference_number)}",
        f"Contact Number: {field_or_placeholder(record.contact_number)}",
        f"Verified: {yes_no(record.verified)}",
        f"Checklist: {checklist}",
        f"Submitted At: {format_timestamp(record.submitted_at, tz)}",
    ]


def archive_entry_name(record: EntityRecord) -> str:
    """``<display name or 'user'>-<id>.pdf``; the id keeps names unique per batch."""
    base = record.display_name or "user"
    base = base.replace("/", "_").replace("\\", "_")
    return f"{base}-{record.id}.pdf"


class ReportLabComposer:
    """Renders one EntityRecord into a fresh single-page PDF."""

    PAGE_SIZE: ClassVar[tuple[float, float]] = letter
    MARGIN: ClassVar[float] = 72.0
    TITLE_FONT: ClassVar[tuple[str, int]] = ("Helvetica", 16)
    BODY_FONT: ClassVar[tuple[str, int]] = ("Helvetica", 12)
    LINE_HEIGHT: ClassVar[float] = 18.0

    def __init__(self, tz: tzinfo | None = None) -> None:
        self._tz = tz

    def compose(self, record: EntityRecord) -> ComposedDocument:
        """Render ``record``.

        Raises:
            RenderError: if reportlab fails to produce the document.
        """
        try:
            data = self._draw(render_lines(record, self._tz))
        except RenderError:
            raise
        except Exception as exc:
            raise RenderError(f"Failed to render record {record.id}: {exc}") from exc
        return ComposedDocument(data=data, filename=archive_entry_name(record))

    def _draw(self, lines: list[str]) -> bytes:
        buf = io.BytesIO()
        # invariant=1 drops creation dates and random ids from the output
        c = canvas.Canvas(buf, pagesize=self.PAGE_SIZE, invariant=1)
        _, page_height = self.PAGE_SIZE
        x = self.MARGIN
        y = page_height - self.MARGIN

        title, *body = lines
        font, size = self.TITLE_FONT
        c.setFont(font, size)
        c.drawString(x, y, title)
        c.line(x, y - 2, x + c.stringWidth(title, font, size), y - 2)
        y -= self.LINE_HEIGHT * 2

        font, size = self.BODY_FONT
        c.setFont(font, size)
        for line in body:
            c.drawString(x, y, line)
            y -= self.LINE_HEIGHT

        c.showPage()
        c.save()
        return buf.getvalue()
