from submission_docs.documents.exceptions import (
    DocumentError,
    RecordMissingError,
    RenderError,
    TemplateError,
)
from submission_docs.documents.models import CHECKLIST_ITEMS, ComposedDocument, EntityRecord

__all__ = [
    "CHECKLIST_ITEMS",
    "ComposedDocument",
    "DocumentError",
    "EntityRecord",
    "RecordMissingError",
    "RenderError",
    "TemplateError",
]
