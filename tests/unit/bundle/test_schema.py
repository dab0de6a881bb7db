# tests/unit/bundle/test_schema.py
# Target: recanon/bundle/schema.py

import dataclasses

import pytest

from recanon.bundle.schema import (
    Baseline,
    CHECK_RESULT_SEALED,
    CHECK_RESULT_VERIFIED,
    ClaimSource,
    ExecutionSettings,
    MODE_LOOP,
    MODE_STATIC,
    PnlClaimDetails,
    Snapshot,
    SportsClaimDetails,
    build_claim,
    calculate_pnl_metrics,
    clamp_var,
    create_empty_claim_bundle,
    make_execution,
    submission_problems,
)
from recanon.version import CLAIM_BUNDLE_VERSION


class TestSnapshot:
    def test_default_execution_is_static(self):
        snap = Snapshot(code="x", seed=1, vars=(0,) * 10)
        assert snap.execution == ExecutionSettings(frames=1, loop=False)
        assert snap.mode == MODE_STATIC

    def test_loop_execution_is_loop(self):
        assert Snapshot(code="x", seed=1, vars=(0,) * 10, execution=make_execution(True)).mode == MODE_LOOP

    def test_make_execution_loop_uses_sixty_frames(self):
        assert make_execution(True) == ExecutionSettings(frames=60, loop=True)
        assert make_execution(False) == ExecutionSettings(frames=1, loop=False)

    def test_sound_snapshot_has_no_violations(self, static_snapshot, loop_snapshot):
        assert static_snapshot.invariant_violations() == []
        assert loop_snapshot.invariant_violations() == []

    def test_wrong_var_count_reported(self):
        problems = Snapshot(code="x", seed=1, vars=(1, 2, 3)).invariant_violations()
        assert problems == ["vars must contain exactly 10 values; got 3"]

    def test_loop_with_one_frame_reported(self):
        snap = Snapshot(code="x", seed=1, vars=(0,) * 10, execution=ExecutionSettings(frames=1, loop=True))
        assert any("frames >= 2" in p for p in snap.invariant_violations())

    def test_static_with_many_frames_reported(self):
        snap = Snapshot(code="x", seed=1, vars=(0,) * 10, execution=ExecutionSettings(frames=5, loop=False))
        assert any("frames == 1" in p for p in snap.invariant_violations())

    def test_to_request_shape(self, loop_snapshot):
        body = loop_snapshot.to_request()
        assert body["seed"] == 12345
        assert body["vars"] == [50] * 10
        assert body["execution"] == {"frames": 60, "loop": True}


class TestBaseline:
    def test_static_needs_poster_only(self):
        assert Baseline(poster_hash="a" * 64).is_complete(MODE_STATIC) is True

    def test_loop_needs_both(self):
        assert Baseline(poster_hash="a" * 64).is_complete(MODE_LOOP) is False
        assert Baseline(poster_hash="a" * 64, animation_hash="b" * 64).is_complete(MODE_LOOP) is True

    def test_empty_is_incomplete(self):
        assert Baseline().is_complete(MODE_STATIC) is False


class TestEmptyBundle:
    def test_defaults(self):
        bundle = create_empty_claim_bundle()
        assert bundle.bundle_version == CLAIM_BUNDLE_VERSION
        assert bundle.created_at == ""
        assert bundle.snapshot.seed == 12345
        assert bundle.snapshot.vars == (50,) * 10
        assert bundle.is_sealed is False
        assert bundle.check.result == ""

    def test_details_follow_type(self):
        assert isinstance(create_empty_claim_bundle("sports").claim.details, SportsClaimDetails)

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            create_empty_claim_bundle("weather")


class TestSealing:
    def test_with_baseline_seals(self, draft_bundle, static_baseline):
        sealed = draft_bundle.with_baseline(static_baseline, "2026-01-20T12:00:00+00:00")
        assert sealed.is_sealed is True
        assert sealed.created_at == "2026-01-20T12:00:00+00:00"
        assert sealed.check.result == CHECK_RESULT_SEALED
        assert sealed.mode == MODE_STATIC
        assert draft_bundle.is_sealed is False

    def test_sealed_bundle_cannot_be_resealed(self, sealed_static_bundle, static_baseline):
        with pytest.raises(ValueError):
            sealed_static_bundle.with_baseline(static_baseline, "later")

    def test_loop_requires_animation_hash(self, draft_bundle, loop_snapshot):
        draft = dataclasses.replace(draft_bundle, snapshot=loop_snapshot)
        with pytest.raises(ValueError):
            draft.with_baseline(Baseline(poster_hash="a" * 64), "now")

    def test_static_seal_drops_animation_hash(self, draft_bundle):
        sealed = draft_bundle.with_baseline(Baseline("a" * 64, "b" * 64), "now")
        assert sealed.baseline.animation_hash is None

    def test_with_check_result_only_touches_check(self, sealed_static_bundle):
        checked = sealed_static_bundle.with_check_result(CHECK_RESULT_VERIFIED, "t2")
        assert checked.check.result == CHECK_RESULT_VERIFIED
        assert checked.check.last_checked_at == "t2"
        assert checked.baseline == sealed_static_bundle.baseline
        assert checked.snapshot == sealed_static_bundle.snapshot

    def test_mode_drift(self, sealed_static_bundle):
        assert sealed_static_bundle.mode_drift() is None
        drifted = dataclasses.replace(sealed_static_bundle, mode=MODE_LOOP)
        assert "resolves to 'static'" in drifted.mode_drift()


class TestDerivedClaims:
    def test_sports_claim(self):
        details = SportsClaimDetails(
            competition="Premier League", match_event="Matchday 3",
            home_team="Arsenal", away_team="Chelsea",
            home_score=2, away_score=1, event_date="2025-08-30",
        )
        claim = build_claim("sports", details)
        assert claim.title == "Arsenal vs Chelsea -- Premier League"
        assert claim.statement == "Arsenal 2-1 Chelsea"
        assert claim.subject == "Premier League / Matchday 3"
        assert claim.event_date == "2025-08-30"

    def test_pnl_metrics(self):
        details = PnlClaimDetails(asset_name="BTC", start_balance=1000, end_balance=1500, fees=50)
        profit, return_pct, net = calculate_pnl_metrics(details)
        assert profit == 450
        assert return_pct == pytest.approx(45.0)
        assert net == 1450

    def test_pnl_zero_start_balance(self):
        _, return_pct, _ = calculate_pnl_metrics(PnlClaimDetails(end_balance=10))
        assert return_pct == 0

    def test_pnl_claim_text(self):
        details = PnlClaimDetails(
            asset_name="BTC", start_balance=1000, end_balance=900,
            period_start="2025-01-01", period_end="2025-03-31",
        )
        claim = build_claim("pnl", details)
        assert claim.title == "BTC -- P&L Statement"
        assert claim.statement == "BTC: -$100.00 loss over period"
        assert claim.event_date == "2025-03-31"

    def test_pnl_gain_text(self):
        details = PnlClaimDetails(asset_name="ETH", start_balance=1000, end_balance=1450)
        assert build_claim("pnl", details).statement == "ETH: +$450.00 profit over period"

    def test_clamp_var(self):
        assert clamp_var(-5) == 0
        assert clamp_var(150) == 100
        assert clamp_var(42.5) == 42.5


class TestSubmissionProblems:
    def test_complete_draft_has_none(self, draft_bundle):
        assert submission_problems(draft_bundle) == []

    def test_empty_draft_lists_everything(self):
        problems = submission_problems(create_empty_claim_bundle())
        assert "claim.details.title" in problems
        assert "claim.details.statement" in problems
        assert "snapshot.code" in problems

    def test_incomplete_source(self, draft_bundle):
        bundle = dataclasses.replace(draft_bundle, sources=(ClaimSource(label="x"),))
        assert submission_problems(bundle) == ["sources[0].url"]

    def test_non_positive_seed(self, draft_bundle):
        bundle = dataclasses.replace(
            draft_bundle, snapshot=dataclasses.replace(draft_bundle.snapshot, seed=0)
        )
        assert "snapshot.seed must be a positive integer" in submission_problems(bundle)

    def test_details_type_mismatch(self, draft_bundle):
        claim = dataclasses.replace(draft_bundle.claim, type="sports")
        bundle = dataclasses.replace(draft_bundle, claim=claim)
        assert submission_problems(bundle) == ["claim.details does not match claim.type 'sports'"]
