from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime

# (checklist key, printed label), in the order they appear on a document.
CHECKLIST_ITEMS: tuple[tuple[str, str], ...] = (
    ("cheque", "Cheque"),
    ("letterhead", "Letterhead"),
)


@dataclass(frozen=True)
class EntityRecord:
    """Read-only snapshot of one submission as held by the entity store."""

    id: str
    display_name: str | None = None
    organization_name: str | None = None
    tax_id: str | None = None
    reference_number: str | None = None
    contact_number: str | None = None
    checklist: Mapping[str, bool] = field(default_factory=dict)
    submitted_at: datetime | None = None
    verified: bool = False

    def has_item(self, key: str) -> bool:
        return bool(self.checklist.get(key, False))


@dataclass(frozen=True)
class ComposedDocument:
    """Generated PDF bytes plus the file name they should be delivered under."""

    data: bytes
    filename: str

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        """Yield successive slices of ``data`` no larger than ``chunk_size``."""
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        view = memoryview(self.data)
        for start in range(0, len(view), chunk_size):
            yield bytes(view[start : start + chunk_size])

    def __len__(self) -> int:
        return len(self.data)
