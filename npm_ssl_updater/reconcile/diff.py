"""Before/after report of the policy flags for operator review.

Every canonical field is listed, changed or not, so the operator sees
the full resulting state of the host.
"""

from __future__ import annotations

from dataclasses import dataclass

from npm_ssl_updater.models.host import POLICY_FIELDS, PolicyFlags

CHANGED_MARK = "~"
FIELD_WIDTH = 24


def symbol(value: bool) -> str:
    return "on" if value else "off"


@dataclass(frozen=True)
class DiffLine:
    field: str
    old: bool
    new: bool
    changed: bool

    def format(self) -> str:
        marker = CHANGED_MARK if self.changed else " "
        return f"{marker} {self.field.ljust(FIELD_WIDTH)}: {symbol(self.old)} -> {symbol(self.new)}"


def render_diff(current: PolicyFlags, desired: PolicyFlags) -> tuple[DiffLine, ...]:
    """One line per canonical field, in canonical order."""
    lines = []
    for name in POLICY_FIELDS:
        old = getattr(current, name)
        new = getattr(desired, name)
        lines.append(DiffLine(field=name, old=old, new=new, changed=old != new))
    return tuple(lines)


def format_diff(lines: tuple[DiffLine, ...]) -> str:
    return "\n".join(line.format() for line in lines)
