import threading
from pathlib import Path
from typing import ClassVar

import pymupdf

from submission_docs.documents.exceptions import TemplateError
from submission_docs.documents.models import ComposedDocument, EntityRecord
from submission_docs.logging.logger import Log
from submission_docs.pdf.composer import field_or_placeholder
from submission_docs.storage.keys import document_key

# PyMuPDF shares one MuPDF context per process and is not thread-safe.
MUPDF_LOCK = threading.Lock()

OVERLAY_PLACEHOLDER = "N/A"


class TemplateOverlay:
    """Stamps firm name and GST number onto page 1 of a cached master template.

    The template bytes are read once and kept immutable; every stamp works on a
    private document opened from those bytes.
    """

    # (label, x, y) in PDF user space, origin bottom-left.
    FIELDS: ClassVar[tuple[tuple[str, float, float], ...]] = (
        ("Firm Name", 100.0, 700.0),
        ("GST Number", 100.0, 680.0),
    )
    FONT_NAME: ClassVar[str] = "helv"

    def __init__(self, template_path: Path, font_size: float = 12.0) -> None:
        self._template_path = template_path
        self._font_size = font_size
        self._template: bytes | None = None
        self._load_error: TemplateError | None = None
        self._load_lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._template is not None

    def load(self) -> bytes:
        """Read and validate the master template, once, and return its bytes.

        A failure is remembered; later calls to :meth:`stamp` raise the same
        TemplateError without touching the filesystem again.

        Raises:
            TemplateError: if the file cannot be read or is not a usable PDF.
        """
        with self._load_lock:
            if self._template is not None:
                return self._template
            if self._load_error is not None:
                raise self._load_error
            try:
                template = self._read_template()
            except TemplateError as exc:
                self._load_error = exc
                Log.error(f"Template overlay unavailable: {exc}")
                raise
            self._template = template
        Log.info(f"Loaded master template {self._template_path}")
        return template

    def stamp(self, record: EntityRecord) -> ComposedDocument:
        """Return a copy of the template with ``record``'s fields drawn on page 1.

        Raises:
            TemplateError: if the template is unusable or stamping fails.
        """
        template = self.load()
        values = (record.organization_name, record.tax_id)
        try:
            with MUPDF_LOCK, pymupdf.open(stream=template, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                page = doc[0]
                for (label, x, y), value in zip(self.FIELDS, values):
                    point = pymupdf.Point(x, y) * page.transformation_matrix
                    page.insert_text(
                        point,
                        f"{label}: {field_or_placeholder(value, OVERLAY_PLACEHOLDER)}",
                        fontsize=self._font_size,
                        fontname=self.FONT_NAME,
                    )
                data = doc.tobytes()
        except TemplateError:
            raise
        except Exception as exc:
            raise TemplateError(f"Failed to stamp template for record {record.id}: {exc}") from exc
        return ComposedDocument(data=data, filename=f"{document_key(record)}.pdf")

    def _read_template(self) -> bytes:
        try:
            raw = self._template_path.read_bytes()
        except OSError as exc:
            raise TemplateError(f"Failed to read template {self._template_path}: {exc}") from exc
        try:
            with MUPDF_LOCK, pymupdf.open(stream=raw, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                page_count = doc.page_count
        except Exception as exc:
            raise TemplateError(f"Template {self._template_path} is not a valid PDF: {exc}") from exc
        if page_count == 0:
            raise TemplateError(f"Template {self._template_path} has no pages")
        return raw
