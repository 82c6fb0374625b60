"""Tests for the reconciliation driver."""

import pytest

from npm_ssl_updater.errors import UpdateError
from npm_ssl_updater.models.host import POLICY_FIELDS, HostRecord, PolicyFlags
from npm_ssl_updater.reconcile.approval import BatchApprovalController
from npm_ssl_updater.reconcile.driver import (
    OutcomeStatus,
    ReconciliationDriver,
    RunMode,
    RunSummary,
)
from npm_ssl_updater.reconcile.policy import PolicyOptions

COMPLIANT = {name: True for name in POLICY_FIELDS if name != "hsts_subdomains"}


def _host(host_id: int, domain: str = "", **flags) -> HostRecord:
    return HostRecord(
        id=host_id,
        domain_names=(domain or f"host{host_id}.example.com",),
        flags=PolicyFlags(**flags),
    )


class ScriptedResponder:
    def __init__(self, *replies: str) -> None:
        self.replies = list(replies)
        self.calls = 0

    def __call__(self, message, tokens):
        self.calls += 1
        return self.replies.pop(0)


class RecordingUpdater:
    def __init__(self, fail_ids=()) -> None:
        self.fail_ids = set(fail_ids)
        self.calls: list[tuple[int, dict]] = []

    def __call__(self, host_id, payload):
        self.calls.append((host_id, payload))
        if host_id in self.fail_ids:
            raise UpdateError("boom", 500)
        return payload


def test_apply_mode_requires_collaborators():
    with pytest.raises(ValueError):
        ReconciliationDriver(PolicyOptions(), RunMode.APPLY, responder=ScriptedResponder())
    with pytest.raises(ValueError):
        ReconciliationDriver(PolicyOptions(), RunMode.APPLY, updater=RecordingUpdater())


def test_compliant_host_is_not_prompted():
    responder = ScriptedResponder()
    updater = RecordingUpdater()
    pending = []
    driver = ReconciliationDriver(
        PolicyOptions(),
        responder=responder,
        updater=updater,
        on_pending=pending.append,
    )

    outcomes = list(driver.run([_host(1, **COMPLIANT)]))

    assert [o.status for o in outcomes] == [OutcomeStatus.COMPLIANT]
    assert outcomes[0].diff == ()
    assert responder.calls == 0
    assert updater.calls == []
    assert pending == []


def test_block_exploits_already_on_stays_compliant():
    host = _host(1, **COMPLIANT)
    driver = ReconciliationDriver(PolicyOptions(block_exploits=False), RunMode.DRY_RUN)
    outcome = next(driver.run([host]))
    assert outcome.status is OutcomeStatus.COMPLIANT
    assert outcome.desired.block_exploits


def test_apply_builds_full_update_intent():
    updater = RecordingUpdater()
    driver = ReconciliationDriver(
        PolicyOptions(block_exploits=True),
        responder=ScriptedResponder("y"),
        updater=updater,
    )

    outcome = next(driver.run([_host(1)]))

    assert outcome.status is OutcomeStatus.APPLIED
    assert outcome.changes.fields == ["ssl_forced", "http2_support", "hsts_enabled", "block_exploits"]
    host_id, payload = updater.calls[0]
    assert host_id == 1
    assert payload == outcome.intent.payload
    assert payload["domain_names"] == ["host1.example.com"]
    assert payload["block_exploits"] is True
    assert payload["caching_enabled"] is False


def test_skip_sends_nothing():
    updater = RecordingUpdater()
    driver = ReconciliationDriver(
        PolicyOptions(), responder=ScriptedResponder("n"), updater=updater
    )
    outcome = next(driver.run([_host(1)]))
    assert outcome.status is OutcomeStatus.SKIPPED
    assert outcome.intent is None
    assert updater.calls == []


def test_dry_run_never_prompts_or_updates():
    responder = ScriptedResponder()
    updater = RecordingUpdater()
    pending = []
    driver = ReconciliationDriver(
        PolicyOptions(),
        RunMode.DRY_RUN,
        responder=responder,
        updater=updater,
        on_pending=pending.append,
    )

    outcomes = list(driver.run([_host(1, ssl_forced=True, hsts_enabled=False)]))

    assert [o.status for o in outcomes] == [OutcomeStatus.WOULD_APPLY]
    assert len(outcomes[0].changes) == 2
    assert len(pending) == 1
    assert len(pending[0].diff) == len(POLICY_FIELDS)
    assert responder.calls == 0
    assert updater.calls == []


def test_dry_run_three_changes():
    driver = ReconciliationDriver(PolicyOptions(), RunMode.DRY_RUN)
    outcomes = list(driver.run([_host(1)]))
    assert len(outcomes) == 1
    assert len(outcomes[0].changes) == 3
    assert outcomes[0].intent is None


@pytest.mark.parametrize(
    "mode,status",
    [(RunMode.LIST_ONLY, OutcomeStatus.LISTED), (RunMode.VIEW_ADVANCED_CONFIG, OutcomeStatus.VIEWED)],
)
def test_view_modes_skip_policy_logic(mode, status):
    driver = ReconciliationDriver(PolicyOptions(block_exploits=True), mode)
    outcomes = list(driver.run([_host(1), _host(2, **COMPLIANT)]))
    assert [o.status for o in outcomes] == [status, status]
    assert all(o.desired is None and not o.changes.has_changes for o in outcomes)


def test_apply_all_stops_prompting():
    responder = ScriptedResponder("a")
    updater = RecordingUpdater()
    driver = ReconciliationDriver(PolicyOptions(), responder=responder, updater=updater)

    outcomes = list(driver.run([_host(1), _host(2), _host(3)]))

    assert [o.status for o in outcomes] == [OutcomeStatus.APPLIED] * 3
    assert responder.calls == 1
    assert [c[0] for c in updater.calls] == [1, 2, 3]


def test_update_failure_does_not_stop_the_run():
    updater = RecordingUpdater(fail_ids={2})
    driver = ReconciliationDriver(
        PolicyOptions(), responder=ScriptedResponder("a"), updater=updater
    )

    outcomes = list(driver.run([_host(1), _host(2), _host(3)]))

    assert [o.status for o in outcomes] == [
        OutcomeStatus.APPLIED,
        OutcomeStatus.FAILED,
        OutcomeStatus.APPLIED,
    ]
    assert outcomes[1].error == "boom (HTTP 500)"
    assert len(updater.calls) == 3


def test_hosts_processed_in_input_order():
    driver = ReconciliationDriver(PolicyOptions(), RunMode.DRY_RUN)
    hosts = [_host(5), _host(1, **COMPLIANT), _host(3)]
    assert [o.host.id for o in driver.run(hosts)] == [5, 1, 3]


def test_each_run_gets_fresh_approval_state():
    responder = ScriptedResponder("a", "n")
    driver = ReconciliationDriver(
        PolicyOptions(), responder=responder, updater=RecordingUpdater()
    )

    first = list(driver.run([_host(1), _host(2)]))
    second = list(driver.run([_host(3)]))

    assert [o.status for o in first] == [OutcomeStatus.APPLIED, OutcomeStatus.APPLIED]
    assert [o.status for o in second] == [OutcomeStatus.SKIPPED]
    assert responder.calls == 2


def test_explicit_approval_controller_is_used():
    controller = BatchApprovalController(ScriptedResponder("n"))
    driver = ReconciliationDriver(
        PolicyOptions(), approval=controller, updater=RecordingUpdater()
    )
    assert next(driver.run([_host(1)])).status is OutcomeStatus.SKIPPED
    assert controller.prompt_count == 1


def test_empty_listing_yields_nothing():
    driver = ReconciliationDriver(
        PolicyOptions(), responder=ScriptedResponder(), updater=RecordingUpdater()
    )
    assert list(driver.run([])) == []


def test_run_summary():
    driver = ReconciliationDriver(PolicyOptions(), RunMode.DRY_RUN)
    summary = RunSummary.from_outcomes(driver.run([_host(1), _host(2, **COMPLIANT), _host(3)]))
    assert summary.total == 3
    assert summary.count(OutcomeStatus.WOULD_APPLY) == 2
    assert summary.count(OutcomeStatus.COMPLIANT) == 1
    assert summary.count(OutcomeStatus.FAILED) == 0
