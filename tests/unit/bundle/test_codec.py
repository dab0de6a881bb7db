# tests/unit/bundle/test_codec.py
# Target: recanon/bundle/codec.py

import dataclasses
import json

import pytest

from recanon.bundle.codec import bundle_to_dict, parse_bundle, serialize_bundle, snapshot_from_dict
from recanon.bundle.schema import (
    PnlClaimDetails,
    SportsClaimDetails,
    build_claim,
    create_empty_claim_bundle,
)
from recanon.verification.errors import (
    MalformedBundleError,
    MissingFieldError,
    UnsupportedBundleFormatError,
)

_VARS = [10, 20, 30, 40, 50, 60, 70, 80, 90, 100]


class TestSerialize:
    def test_top_level_key_order(self, sealed_static_bundle):
        keys = list(json.loads(serialize_bundle(sealed_static_bundle)).keys())
        assert keys == [
            "bundleVersion", "createdAt", "mode", "claim", "sources",
            "canonical", "snapshot", "baseline", "check",
        ]

    def test_camel_case_fields(self, sealed_static_bundle):
        data = bundle_to_dict(sealed_static_bundle)
        assert data["claim"]["eventDate"] == "2025-10-12"
        assert data["canonical"]["protocolVersion"] == "1.2.0"
        assert data["check"]["lastCheckedAt"] == "2026-01-20T12:00:00+00:00"
        assert data["baseline"]["animationHash"] is None

    def test_two_space_indent(self, sealed_static_bundle):
        assert serialize_bundle(sealed_static_bundle).startswith('{\n  "bundleVersion"')

    def test_non_ascii_kept(self, sealed_static_bundle):
        claim = dataclasses.replace(sealed_static_bundle.claim, title="Zürich")
        text = serialize_bundle(dataclasses.replace(sealed_static_bundle, claim=claim))
        assert "Zürich" in text


class TestParse:
    def test_sealed_bundle_round_trip(self, sealed_static_bundle, sealed_loop_bundle):
        assert parse_bundle(serialize_bundle(sealed_static_bundle)) == sealed_static_bundle
        assert parse_bundle(serialize_bundle(sealed_loop_bundle)) == sealed_loop_bundle

    def test_draft_round_trip(self):
        draft = create_empty_claim_bundle("pnl")
        assert parse_bundle(serialize_bundle(draft)) == draft

    def test_sports_and_pnl_details(self, sealed_static_bundle):
        sports = SportsClaimDetails(competition="Cup", home_team="A", away_team="B", home_score=3)
        bundle = dataclasses.replace(sealed_static_bundle, claim=build_claim("sports", sports))
        assert parse_bundle(serialize_bundle(bundle)).claim.details == sports

        pnl = PnlClaimDetails(asset_name="ETH", start_balance=10.5, calculation_method="cagr")
        bundle = dataclasses.replace(sealed_static_bundle, claim=build_claim("pnl", pnl))
        assert parse_bundle(serialize_bundle(bundle)).claim.details == pnl

    def test_invalid_json(self):
        with pytest.raises(MalformedBundleError):
            parse_bundle("{not json")

    def test_non_object(self):
        with pytest.raises(MalformedBundleError):
            parse_bundle("[1, 2, 3]")

    def test_unknown_claim_type(self, sealed_static_bundle):
        data = bundle_to_dict(sealed_static_bundle)
        data["claim"]["type"] = "weather"
        with pytest.raises(MissingFieldError) as info:
            parse_bundle(json.dumps(data))
        assert info.value.field_name == "claim.type"

    def test_artifact_bundle_rejected(self):
        with pytest.raises(UnsupportedBundleFormatError):
            parse_bundle(json.dumps({"artifactVersion": "1", "snapshot": {}}))

    def test_missing_mode_is_resolved(self, sealed_loop_bundle):
        data = bundle_to_dict(sealed_loop_bundle)
        del data["mode"]
        assert parse_bundle(json.dumps(data)).mode == "loop"

    def test_missing_canonical_gets_defaults(self, sealed_static_bundle):
        data = bundle_to_dict(sealed_static_bundle)
        del data["canonical"]
        assert parse_bundle(json.dumps(data)).canonical == sealed_static_bundle.canonical

    def test_legacy_bundle_is_upgraded(self):
        legacy = {
            "snapshot": {"code": "draw()", "seed": 7, "vars": _VARS},
            "expectedImageHash": "c" * 64,
        }
        bundle = parse_bundle(json.dumps(legacy))
        assert bundle.baseline.poster_hash == "c" * 64
        assert bundle.snapshot.seed == 7
        assert bundle.mode == "static"


class TestSnapshotFromDict:
    def test_missing_execution_is_static(self):
        snap = snapshot_from_dict({"code": "x", "seed": 1, "vars": _VARS})
        assert snap.execution.frames == 1
        assert snap.execution.loop is False

    def test_whole_float_frames_kept(self):
        snap = snapshot_from_dict(
            {"code": "x", "seed": 1, "vars": _VARS, "execution": {"frames": 60.0, "loop": True}}
        )
        assert snap.execution.frames == 60
        assert isinstance(snap.execution.frames, int)

    def test_fractional_frames_fall_back_to_one(self):
        snap = snapshot_from_dict(
            {"code": "x", "seed": 1, "vars": _VARS, "execution": {"frames": 2.5}}
        )
        assert snap.execution.frames == 1
        assert snap.mode == "static"

    def test_not_a_dict(self):
        with pytest.raises(MissingFieldError) as info:
            snapshot_from_dict(None)
        assert info.value.field_name == "snapshot"

    def test_boolean_seed_rejected(self):
        with pytest.raises(MissingFieldError) as info:
            snapshot_from_dict({"code": "x", "seed": True, "vars": _VARS})
        assert info.value.field_name == "snapshot.seed"

    def test_short_vars_rejected(self):
        with pytest.raises(MissingFieldError) as info:
            snapshot_from_dict({"code": "x", "seed": 1, "vars": [1, 2]})
        assert info.value.field_name == "snapshot.vars"

    def test_non_numeric_var_rejected(self):
        with pytest.raises(MissingFieldError):
            snapshot_from_dict({"code": "x", "seed": 1, "vars": _VARS[:9] + ["50"]})

    def test_missing_code_rejected(self):
        with pytest.raises(MissingFieldError) as info:
            snapshot_from_dict({"seed": 1, "vars": _VARS})
        assert info.value.field_name == "snapshot.code"
