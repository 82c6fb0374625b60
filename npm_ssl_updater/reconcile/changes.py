"""Change sets — which policy flags differ between two projections."""

from __future__ import annotations

from dataclasses import dataclass

from npm_ssl_updater.models.host import POLICY_FIELDS, PolicyFlags


@dataclass(frozen=True)
class FieldChange:
    field: str
    old: bool
    new: bool


@dataclass(frozen=True)
class ChangeSet:
    """Ordered changed fields, always in canonical field order."""

    changes: tuple[FieldChange, ...] = ()

    @property
    def has_changes(self) -> bool:
        return len(self.changes) > 0

    @property
    def fields(self) -> list[str]:
        return [c.field for c in self.changes]

    def __len__(self) -> int:
        return len(self.changes)

    def __iter__(self):
        return iter(self.changes)


def compute_changes(current: PolicyFlags, desired: PolicyFlags) -> ChangeSet:
    """Compare *current* against *desired* field by field."""
    changes = []
    for name in POLICY_FIELDS:
        old = getattr(current, name)
        new = getattr(desired, name)
        if old != new:
            changes.append(FieldChange(field=name, old=old, new=new))
    return ChangeSet(changes=tuple(changes))
