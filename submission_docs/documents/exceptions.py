class DocumentError(Exception):
    """Base exception for all document generation errors."""


class RenderError(DocumentError):
    """Raised when a single record cannot be rendered into a document."""


class TemplateError(DocumentError):
    """Raised when the master template cannot be loaded, parsed or stamped."""


class RecordMissingError(DocumentError):
    """Raised when a requested entity record does not exist."""
