"""
Staged change ledger.

The ledger is a plain value object held by the operator's session. Its
operations return a new ledger and never touch persisted schedule rows;
only publishing does that.
"""
from typing import List, Tuple

from pydantic import BaseModel, Field

from daypart_scheduler.schemas.staged_change import ChangeSummary, ChangeType, StagedChange


class StagedChangeLedger(BaseModel):
    """Ordered list of pending edits."""
    changes: List[StagedChange] = Field(default_factory=list)

    def add(self, change: StagedChange) -> "StagedChangeLedger":
        """
        Stage a change.

        A second update to the same (target_table, target_id) replaces the
        first one in place, keeping its position. Creates and deletes are
        always appended.
        """
        changes = list(self.changes)
        if change.change_type == ChangeType.UPDATE:
            for index, staged in enumerate(changes):
                if staged.change_type == ChangeType.UPDATE and staged.target_key == change.target_key:
                    changes[index] = change
                    return StagedChangeLedger(changes=changes)
        changes.append(change)
        return StagedChangeLedger(changes=changes)

    def remove(self, index: int) -> "StagedChangeLedger":
        """Drop the change at ``index`` (0-based)."""
        if not 0 <= index < len(self.changes):
            raise IndexError(f"No staged change at position {index} (ledger has {len(self.changes)})")
        return StagedChangeLedger(changes=self.changes[:index] + self.changes[index + 1:])

    def clear(self) -> "StagedChangeLedger":
        return StagedChangeLedger()

    def summary(self) -> ChangeSummary:
        """Counts computed from the live list on every call."""
        return ChangeSummary(
            create=sum(1 for c in self.changes if c.change_type == ChangeType.CREATE),
            update=sum(1 for c in self.changes if c.change_type == ChangeType.UPDATE),
            delete=sum(1 for c in self.changes if c.change_type == ChangeType.DELETE),
            total=len(self.changes),
        )

    def snapshot(self) -> Tuple[StagedChange, ...]:
        """Immutable copy of the changes, in ledger order, for publishing."""
        return tuple(self.changes)

    def __len__(self) -> int:
        return len(self.changes)
