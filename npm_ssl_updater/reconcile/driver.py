"""Reconciliation driver — walks the proxy hosts and applies approved changes.

Hosts are processed one at a time, in the order the API listed them. Each
host produces exactly one ``HostOutcome``. A failed update is recorded on
that host's outcome and the walk continues with the next host.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Iterator

from npm_ssl_updater.errors import ApiError
from npm_ssl_updater.models.host import HostRecord, PolicyFlags
from npm_ssl_updater.reconcile.approval import BatchApprovalController, Decision, Responder
from npm_ssl_updater.reconcile.changes import ChangeSet, compute_changes
from npm_ssl_updater.reconcile.diff import DiffLine, render_diff
from npm_ssl_updater.reconcile.policy import PolicyOptions, evaluate


class RunMode(Enum):
    """What a run does with each host. Chosen once, before the walk."""

    APPLY = "apply"
    LIST_ONLY = "list"
    VIEW_ADVANCED_CONFIG = "view_advanced"
    DRY_RUN = "dry_run"


class OutcomeStatus(Enum):
    LISTED = "listed"
    VIEWED = "viewed"
    COMPLIANT = "compliant"
    WOULD_APPLY = "would_apply"
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


# (host id, full replacement payload) -> anything; raises ApiError on failure
Updater = Callable[[int, dict[str, Any]], Any]


@dataclass
class UpdateIntent:
    """A full replacement record for one host, built after approval."""

    host_id: int
    payload: dict[str, Any]

    @classmethod
    def build(cls, host: HostRecord, flags: PolicyFlags) -> UpdateIntent:
        return cls(host_id=host.id, payload=host.to_update_payload(flags))


@dataclass
class HostOutcome:
    """What happened to a single host during a run."""

    host: HostRecord
    status: OutcomeStatus
    desired: PolicyFlags | None = None
    changes: ChangeSet = field(default_factory=ChangeSet)
    diff: tuple[DiffLine, ...] = ()
    intent: UpdateIntent | None = None
    error: str = ""


@dataclass
class RunSummary:
    counts: dict[OutcomeStatus, int] = field(default_factory=dict)

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[HostOutcome]) -> RunSummary:
        return cls(counts=dict(Counter(o.status for o in outcomes)))

    def count(self, status: OutcomeStatus) -> int:
        return self.counts.get(status, 0)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


class ReconciliationDriver:
    """Threads every host through evaluate -> changes -> diff -> approval -> update.

    Parameters
    ----------
    options : PolicyOptions
        Which optional flags to force on, and the exemption list.
    mode : RunMode
        Selected once per run.
    responder : Responder | None
        Operator prompt used to build a fresh approval controller per run.
        Required in ``RunMode.APPLY`` unless *approval* is given.
    approval : BatchApprovalController | None
        Explicit controller to use instead of building one per run.
    updater : Updater | None
        Sends an update intent to the API. Required in ``RunMode.APPLY``.
    on_pending : Callable[[HostOutcome], None] | None
        Called with the diffed outcome of a host that has changes, before
        the approval prompt (and in dry-run mode).
    """

    def __init__(
        self,
        options: PolicyOptions,
        mode: RunMode = RunMode.APPLY,
        *,
        responder: Responder | None = None,
        on_invalid: Callable[[str], None] | None = None,
        approval: BatchApprovalController | None = None,
        updater: Updater | None = None,
        on_pending: Callable[[HostOutcome], None] | None = None,
    ) -> None:
        if mode is RunMode.APPLY:
            if updater is None:
                raise ValueError("An updater is required in apply mode")
            if approval is None and responder is None:
                raise ValueError("A responder or approval controller is required in apply mode")
        self.options = options
        self.mode = mode
        self.responder = responder
        self.on_invalid = on_invalid
        self.approval = approval
        self.updater = updater
        self.on_pending = on_pending

    def run(self, hosts: Iterable[HostRecord]) -> Iterator[HostOutcome]:
        """Yield one outcome per host, in input order.

        Outcomes are yielded before the next host is evaluated, so a
        failure on one host is reported before the next prompt.
        """
        approval = self.approval
        if approval is None and self.mode is RunMode.APPLY:
            approval = BatchApprovalController(self.responder, on_invalid=self.on_invalid)

        for host in hosts:
            yield self._process(host, approval)

    def _process(
        self, host: HostRecord, approval: BatchApprovalController | None
    ) -> HostOutcome:
        if self.mode is RunMode.LIST_ONLY:
            return HostOutcome(host=host, status=OutcomeStatus.LISTED)
        if self.mode is RunMode.VIEW_ADVANCED_CONFIG:
            return HostOutcome(host=host, status=OutcomeStatus.VIEWED)

        desired = evaluate(host, self.options)
        changes = compute_changes(host.flags, desired)
        if not changes.has_changes:
            return HostOutcome(host=host, status=OutcomeStatus.COMPLIANT, desired=desired)

        outcome = HostOutcome(
            host=host,
            status=OutcomeStatus.WOULD_APPLY,
            desired=desired,
            changes=changes,
            diff=render_diff(host.flags, desired),
        )
        if self.on_pending is not None:
            self.on_pending(outcome)
        if self.mode is RunMode.DRY_RUN:
            return outcome

        if approval.decide(host, changes) is Decision.SKIP:
            outcome.status = OutcomeStatus.SKIPPED
            return outcome

        outcome.intent = UpdateIntent.build(host, desired)
        try:
            self.updater(outcome.intent.host_id, outcome.intent.payload)
        except ApiError as e:
            outcome.status = OutcomeStatus.FAILED
            outcome.error = str(e)
        else:
            outcome.status = OutcomeStatus.APPLIED
        return outcome
