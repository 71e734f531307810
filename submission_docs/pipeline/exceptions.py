class PipelineError(Exception):
    """Base exception for batch pipeline errors."""


class EmptyBatchError(PipelineError):
    """Raised when a bulk export is requested for zero records."""
