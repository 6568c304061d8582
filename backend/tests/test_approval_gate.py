"""
Tests for routing decisions through the approval gate and the pending action lifecycle.
"""

import uuid
import pytest
from ads_optimizer.errors import NotFoundError, PlatformAPIError
from ads_optimizer.services.action_executor import ActionExecutor
from ads_optimizer.services.approval_gate import ApprovalGate
from ads_optimizer.services.audit_logger import AuditLogger
from ads_optimizer.services.rule_engine import Decision
from tests.helpers import FakeRepository, make_config, meta_campaign


def _gate(repo, registry) -> ApprovalGate:
    return ApprovalGate(repo, ActionExecutor(repo, registry), AuditLogger(repo))


def _decision(action, campaign_id="c1", platform="meta"):
    return Decision(
        campaign_id=campaign_id,
        campaign_name=f"Campaign {campaign_id}",
        platform=platform,
        action=action,
        reason=f"{action} reason",
        metrics={"spend": 300, "conversions": 5, "cpa": 60, "ctr": 1.0},
    )


@pytest.mark.anyio
async def test_keep_and_skip_are_only_logged(registry, meta_platform):
    repo = FakeRepository()
    gate = _gate(repo, registry)

    assert (await gate.route(_decision("keep"), make_config())).counted_as == "keep"
    assert (await gate.route(_decision("skip"), make_config())).counted_as == "skip"

    assert [a.action_type for a in repo.actions] == ["optimizer_keep", "optimizer_skip"]
    assert meta_platform.calls == []
    assert repo.pending == []


@pytest.mark.anyio
async def test_disabled_auto_action_counts_but_does_nothing(registry, meta_platform):
    repo = FakeRepository(campaigns=[meta_campaign("c1")])
    gate = _gate(repo, registry)
    config = make_config(auto_pause_enabled=False)

    outcome = await gate.route(_decision("pause"), config)

    assert outcome.counted_as == "pause"
    assert outcome.pending is False
    assert repo.actions[0].details["auto_action_disabled"] is True
    assert meta_platform.calls == []
    assert repo.pending == []


@pytest.mark.anyio
async def test_approval_mode_queues_pause(registry, meta_platform):
    repo = FakeRepository(campaigns=[meta_campaign("c1")])
    gate = _gate(repo, registry)

    outcome = await gate.route(_decision("pause"), make_config(approval_mode_enabled=True))

    assert outcome.pending is True
    assert outcome.counted_as == "pause"
    assert meta_platform.calls == []
    [pending] = repo.pending
    assert pending.proposed_changes == {"status": "PAUSED"}
    assert pending.ai_reasoning == "pause reason"
    assert pending.current_metrics["cpa"] == 60
    assert repo.actions[0].details["pending_approval"] is True


@pytest.mark.anyio
async def test_duplicate_open_pending_is_not_inserted(registry):
    repo = FakeRepository(campaigns=[meta_campaign("c1")])
    gate = _gate(repo, registry)
    config = make_config(approval_mode_enabled=True)

    await gate.route(_decision("pause"), config)
    second = await gate.route(_decision("pause"), config)

    assert len(repo.pending) == 1
    assert second.pending is False
    assert repo.actions[-1].details["already_pending"] is True
    assert repo.actions[-1].details["pending_action_id"] == str(repo.pending[0].id)


@pytest.mark.anyio
async def test_boost_queues_old_and_new_budget(registry):
    repo = FakeRepository(campaigns=[meta_campaign("c1", daily_budget=100)])
    gate = _gate(repo, registry)

    await gate.route(_decision("boost"), make_config(approval_mode_enabled=True, max_daily_budget=110))

    assert repo.pending[0].proposed_changes == {"old_budget": 100, "new_budget": 110}


@pytest.mark.anyio
async def test_boost_executes_clamped_budget(registry, meta_platform):
    repo = FakeRepository(campaigns=[meta_campaign("c1", daily_budget=100)])
    gate = _gate(repo, registry)

    outcome = await gate.route(_decision("boost"), make_config(max_daily_budget=110))

    assert outcome.counted_as == "boost"
    assert meta_platform.calls == [("budget", "c1", 110)]
    assert repo.campaigns["meta"]["c1"].daily_budget == 110


@pytest.mark.anyio
async def test_boost_at_max_budget_is_downgraded_to_keep(registry, meta_platform):
    repo = FakeRepository(campaigns=[meta_campaign("c1", daily_budget=200)])
    gate = _gate(repo, registry)

    outcome = await gate.route(_decision("boost"), make_config(max_daily_budget=200))

    assert outcome.counted_as == "keep"
    assert meta_platform.calls == []
    assert repo.actions[0].action_type == "optimizer_keep"
    assert "budget already at maximum: R$200.00" in repo.actions[0].details["reason"]


@pytest.mark.anyio
async def test_boost_with_unknown_budget_is_downgraded_to_keep(registry, meta_platform):
    repo = FakeRepository(campaigns=[meta_campaign("c1", daily_budget=None)])
    gate = _gate(repo, registry)

    outcome = await gate.route(_decision("boost"), make_config(approval_mode_enabled=True))

    assert outcome.counted_as == "keep"
    assert repo.pending == []
    assert "current budget unknown" in repo.actions[0].details["reason"]


@pytest.mark.anyio
async def test_platform_failure_is_reported_not_raised(registry, meta_platform):
    meta_platform.failing.add("c1")
    repo = FakeRepository(campaigns=[meta_campaign("c1")])
    gate = _gate(repo, registry)

    outcome = await gate.route(_decision("pause"), make_config())

    assert outcome.counted_as is None
    assert "Meta API pause failed for c1" in outcome.error
    assert repo.actions[0].status == "error"
    assert repo.campaigns["meta"]["c1"].status == "ACTIVE"


# ── Approve / Reject ──────────────────────────────────────────────────

async def _queued(repo, registry, action="pause"):
    gate = _gate(repo, registry)
    await gate.route(_decision(action), make_config(approval_mode_enabled=True))
    return gate, repo.pending[0]


@pytest.mark.anyio
async def test_approve_executes_and_resolves(registry, meta_platform):
    repo = FakeRepository(campaigns=[meta_campaign("c1")])
    gate, pending = await _queued(repo, registry)

    approved = await gate.approve(pending.id, make_config())

    assert approved.status == "approved"
    assert approved.resolved_at is not None
    assert meta_platform.calls == [("pause", "c1")]
    entry = repo.actions_of("approve_pause")[0]
    assert entry.source == "human_approval"
    assert entry.details["pending_action_id"] == str(pending.id)
    assert entry.details["ai_reasoning"] == "pause reason"


@pytest.mark.anyio
async def test_approve_twice_fails_with_not_found(registry):
    repo = FakeRepository(campaigns=[meta_campaign("c1")])
    gate, pending = await _queued(repo, registry)
    await gate.approve(pending.id, make_config())

    with pytest.raises(NotFoundError, match="Pending action not found or already resolved"):
        await gate.approve(pending.id, make_config())
    with pytest.raises(NotFoundError):
        await gate.reject(pending.id)


@pytest.mark.anyio
async def test_reject_makes_no_platform_call(registry, meta_platform):
    repo = FakeRepository(campaigns=[meta_campaign("c1")])
    gate, pending = await _queued(repo, registry)

    rejected = await gate.reject(pending.id)

    assert rejected.status == "rejected"
    assert meta_platform.calls == []
    assert repo.actions_of("reject_pause")[0].details["proposed_changes"] == {"status": "PAUSED"}


@pytest.mark.anyio
async def test_approve_platform_failure_keeps_row_pending(registry, meta_platform):
    meta_platform.failing.add("c1")
    repo = FakeRepository(campaigns=[meta_campaign("c1")])
    gate, pending = await _queued(repo, registry)

    with pytest.raises(PlatformAPIError, match="Failed to execute action on Meta"):
        await gate.approve(pending.id, make_config())

    assert pending.status == "pending"
    assert repo.actions_of("approve_pause")[0].status == "error"


@pytest.mark.anyio
async def test_unknown_id_is_not_found(registry):
    gate = _gate(FakeRepository(), registry)
    with pytest.raises(NotFoundError):
        await gate.approve(uuid.uuid4(), make_config())


@pytest.mark.anyio
async def test_reject_twice_fails_with_not_found(registry):
    repo = FakeRepository(campaigns=[meta_campaign("c1")])
    gate, pending = await _queued(repo, registry)
    await gate.reject(pending.id)

    with pytest.raises(NotFoundError, match="Pending action not found or already resolved"):
        await gate.reject(pending.id)
    with pytest.raises(NotFoundError):
        await gate.approve(pending.id, make_config())
    assert len(repo.actions_of("reject_pause")) == 1


@pytest.mark.anyio
async def test_approved_boost_after_max_budget_lowered_is_kept(registry, meta_platform):
    repo = FakeRepository(campaigns=[meta_campaign("c1", daily_budget=100)])
    gate, pending = await _queued(repo, registry, action="boost")
    assert pending.proposed_changes == {"old_budget": 100.0, "new_budget": 120.0}

    approved = await gate.approve(pending.id, make_config(max_daily_budget=90))

    assert approved.status == "approved"
    assert meta_platform.calls == []
    assert repo.campaigns["meta"]["c1"].daily_budget == 100
    entry = repo.actions_of("approve_boost")[0]
    assert entry.status == "success"
    assert entry.details["applied"]["outcome"] == "keep"


@pytest.mark.anyio
async def test_non_platform_error_is_reported_not_raised(registry, meta_platform):
    meta_platform.invalid.add("c1")
    repo = FakeRepository(campaigns=[meta_campaign("c1")])

    outcome = await _gate(repo, registry).route(_decision("pause"), make_config())

    assert outcome.counted_as is None
    assert outcome.error.startswith("Meta API pause failed for c1")
    assert repo.actions_of("optimizer_pause")[0].status == "error"
