from dataclasses import dataclass, field


@dataclass(frozen=True)
class SkippedRecord:
    """A record left out of the archive and why."""

    entity_id: str
    reason: str


@dataclass
class BatchSummary:
    """Accumulates per-record outcomes of one bulk export."""

    succeeded: int = 0
    skipped: list[SkippedRecord] = field(default_factory=list)
    entry_names: list[str] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def total(self) -> int:
        return self.succeeded + self.skipped_count

    @property
    def skipped_ids(self) -> list[str]:
        return [s.entity_id for s in self.skipped]

    def record_success(self, entry_name: str) -> None:
        self.succeeded += 1
        self.entry_names.append(entry_name)

    def record_skip(self, entity_id: str, reason: str) -> None:
        self.skipped.append(SkippedRecord(entity_id=entity_id, reason=reason))
