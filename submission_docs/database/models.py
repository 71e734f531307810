from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class SortSpec:
    """Ordering for listing submissions; ``id`` breaks ties in the same direction."""

    ALLOWED_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"created_at", "full_name", "firm_name"}
    )

    field: str = "created_at"
    descending: bool = True

    def __post_init__(self) -> None:
        if self.field not in self.ALLOWED_FIELDS:
            raise ValueError(
                f"Cannot sort submissions by '{self.field}'. "
                f"Choose from: {sorted(self.ALLOWED_FIELDS)}"
            )


NEWEST_FIRST = SortSpec(field="created_at", descending=True)
