"""Batch approval — per-host confirmation with an "apply to all" escalation.

The controller starts in per-item mode and asks the operator about every
host that has changes. Answering "all" switches it to approve-all mode for
the rest of the run; there is no way back to per-item mode.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable

from npm_ssl_updater.models.host import HostRecord
from npm_ssl_updater.reconcile.changes import ChangeSet


class ApprovalMode(Enum):
    PER_ITEM = "per_item"
    APPROVE_ALL = "approve_all"


class Decision(Enum):
    APPLY = "apply"
    SKIP = "skip"


class Answer(Enum):
    """Valid operator replies."""

    APPLY_ONE = "y"
    SKIP = "n"
    APPLY_ALL = "a"


VALID_TOKENS: tuple[str, ...] = tuple(a.value for a in Answer)

# (message, accepted tokens) -> raw reply
Responder = Callable[[str, tuple[str, ...]], str]


def parse_answer(reply: str | None) -> Answer | None:
    """Map a raw reply onto an ``Answer``; None when it is not a valid token."""
    token = (reply or "").strip().lower()
    for answer in Answer:
        if answer.value == token:
            return answer
    return None


class BatchApprovalController:
    """Decides apply/skip for each host during one reconciliation run."""

    def __init__(
        self,
        responder: Responder,
        on_invalid: Callable[[str], None] | None = None,
    ) -> None:
        self.responder = responder
        self.on_invalid = on_invalid
        self.mode = ApprovalMode.PER_ITEM
        self.prompt_count = 0

    def decide(self, host: HostRecord, changes: ChangeSet) -> Decision:
        if self.mode is ApprovalMode.APPROVE_ALL:
            return Decision.APPLY

        answer = self._ask(host, changes)

        if answer is Answer.APPLY_ALL:
            self.mode = ApprovalMode.APPROVE_ALL
            return Decision.APPLY
        if answer is Answer.SKIP:
            return Decision.SKIP
        return Decision.APPLY

    def _ask(self, host: HostRecord, changes: ChangeSet) -> Answer:
        noun = "change" if len(changes) == 1 else "changes"
        message = f"Apply {len(changes)} {noun} to {host.label}? [y]es / [n]o / [a]ll"
        while True:
            self.prompt_count += 1
            reply = self.responder(message, VALID_TOKENS)
            answer = parse_answer(reply)
            if answer is not None:
                return answer
            if self.on_invalid is not None:
                self.on_invalid(reply)
