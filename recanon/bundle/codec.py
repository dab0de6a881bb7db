# recanon/bundle/codec.py
# JSON codec for claim bundles.
#
# serialize_bundle() writes the canonical recanon.event.v1 layout: camelCase
# keys, schema field order, 2-space indentation. parse_bundle() reads any
# supported generation through the migration adapter and builds frozen
# ClaimBundle objects.
#
# Round trip: parse_bundle(serialize_bundle(b)) == b.
#
# Claim text and sources are read leniently (missing strings become ""),
# because read-time checks never reject an incomplete claim. The snapshot is
# read strictly: without a code string, an integer seed and ten numeric vars
# there is nothing to verify. Empty code is allowed so drafts round-trip.

import json
from typing import Any, Dict, List

from recanon.bundle.migration import upgrade_bundle_dict
from recanon.bundle.schema import (
    Baseline,
    Claim,
    ClaimBundle,
    ClaimCanonical,
    ClaimCheck,
    ClaimDetails,
    ClaimSource,
    CLAIM_TYPES,
    ExecutionSettings,
    GenericClaimDetails,
    PnlClaimDetails,
    Snapshot,
    SportsClaimDetails,
    VAR_COUNT,
)
from recanon.verification.errors import MalformedBundleError, MissingFieldError
from recanon.verification.mode_resolver import resolve_mode, whole_frames
from recanon.version import CLAIM_BUNDLE_VERSION


# =============================================================================
# SECTION 1 -- ENCODING
# =============================================================================

def _details_to_dict(details: ClaimDetails) -> Dict[str, Any]:
    if isinstance(details, SportsClaimDetails):
        return {
            "competition": details.competition,
            "matchEvent":  details.match_event,
            "homeTeam":    details.home_team,
            "awayTeam":    details.away_team,
            "homeScore":   details.home_score,
            "awayScore":   details.away_score,
            "venue":       details.venue,
            "eventDate":   details.event_date,
            "notes":       details.notes,
        }
    if isinstance(details, PnlClaimDetails):
        return {
            "assetName":         details.asset_name,
            "startBalance":      details.start_balance,
            "endBalance":        details.end_balance,
            "fees":              details.fees,
            "periodStart":       details.period_start,
            "periodEnd":         details.period_end,
            "calculationMethod": details.calculation_method,
            "notes":             details.notes,
        }
    return {
        "title":     details.title,
        "statement": details.statement,
        "eventDate": details.event_date,
        "subject":   details.subject,
        "notes":     details.notes,
    }


def snapshot_to_dict(snapshot: Snapshot) -> Dict[str, Any]:
    return snapshot.to_request()


def bundle_to_dict(bundle: ClaimBundle) -> Dict[str, Any]:
    """Canonical JSON-ready dict, keys in schema order."""
    claim = bundle.claim
    return {
        "bundleVersion": bundle.bundle_version,
        "createdAt": bundle.created_at,
        "mode": bundle.mode,
        "claim": {
            "type": claim.type,
            "title": claim.title,
            "statement": claim.statement,
            "eventDate": claim.event_date,
            "subject": claim.subject,
            "notes": claim.notes,
            "details": _details_to_dict(claim.details),
        },
        "sources": [
            {
                "label": s.label,
                "url": s.url,
                "retrievedAt": s.retrieved_at,
                "selectorOrEvidence": s.selector_or_evidence,
            }
            for s in bundle.sources
        ],
        "canonical": {
            "via": bundle.canonical.via,
            "protocol": bundle.canonical.protocol,
            "protocolVersion": bundle.canonical.protocol_version,
        },
        "snapshot": snapshot_to_dict(bundle.snapshot),
        "baseline": {
            "posterHash": bundle.baseline.poster_hash,
            "animationHash": bundle.baseline.animation_hash,
        },
        "check": {
            "lastCheckedAt": bundle.check.last_checked_at,
            "result": bundle.check.result,
        },
    }


def serialize_bundle(bundle: ClaimBundle) -> str:
    return json.dumps(bundle_to_dict(bundle), indent=2, ensure_ascii=False)


# =============================================================================
# SECTION 2 -- DECODING
# =============================================================================

def _object(raw: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, dict) else {}


def _text(raw: Dict[str, Any], key: str) -> str:
    value = raw.get(key)
    return value if isinstance(value, str) else ""


def _number(raw: Dict[str, Any], key: str) -> Any:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _details_from_dict(claim_type: str, raw: Dict[str, Any]) -> ClaimDetails:
    if claim_type == "sports":
        return SportsClaimDetails(
            competition=_text(raw, "competition"),
            match_event=_text(raw, "matchEvent"),
            home_team=_text(raw, "homeTeam"),
            away_team=_text(raw, "awayTeam"),
            home_score=_number(raw, "homeScore"),
            away_score=_number(raw, "awayScore"),
            venue=_text(raw, "venue"),
            event_date=_text(raw, "eventDate"),
            notes=_text(raw, "notes"),
        )
    if claim_type == "pnl":
        return PnlClaimDetails(
            asset_name=_text(raw, "assetName"),
            start_balance=_number(raw, "startBalance"),
            end_balance=_number(raw, "endBalance"),
            fees=_number(raw, "fees"),
            period_start=_text(raw, "periodStart"),
            period_end=_text(raw, "periodEnd"),
            calculation_method=_text(raw, "calculationMethod") or "percent",
            notes=_text(raw, "notes"),
        )
    return GenericClaimDetails(
        title=_text(raw, "title"),
        statement=_text(raw, "statement"),
        event_date=_text(raw, "eventDate"),
        subject=_text(raw, "subject"),
        notes=_text(raw, "notes"),
    )


def snapshot_from_dict(raw: Any) -> Snapshot:
    """
    Strict snapshot reader.

    Raises MissingFieldError naming the first absent or malformed field.
    """
    if not isinstance(raw, dict):
        raise MissingFieldError("snapshot")
    code = raw.get("code")
    if not isinstance(code, str):
        raise MissingFieldError("snapshot.code")
    seed = raw.get("seed")
    if not isinstance(seed, int) or isinstance(seed, bool):
        raise MissingFieldError("snapshot.seed", "seed must be an integer.")
    values = raw.get("vars")
    if not isinstance(values, list) or len(values) != VAR_COUNT:
        raise MissingFieldError("snapshot.vars", f"vars must be an array of {VAR_COUNT} numbers.")
    if not all(_is_number(v) for v in values):
        raise MissingFieldError("snapshot.vars", "every var must be a number.")

    execution_raw = raw.get("execution")
    if isinstance(execution_raw, dict):
        frames = whole_frames(execution_raw.get("frames"))
        loop = execution_raw.get("loop")
        execution = ExecutionSettings(
            frames=frames if frames is not None else 1,
            loop=loop is True,
        )
    else:
        execution = ExecutionSettings()
    return Snapshot(code=code, seed=seed, vars=tuple(values), execution=execution)


def bundle_from_dict(raw: Any) -> ClaimBundle:
    """
    Build a ClaimBundle from a parsed JSON value of any supported generation.

    Raises MalformedBundleError (or UnsupportedBundleFormatError) for
    non-object input and unreadable formats, MissingFieldError for an
    unusable snapshot or claim type.
    """
    canonical_raw, _ = upgrade_bundle_dict(raw)

    snapshot = snapshot_from_dict(canonical_raw.get("snapshot"))

    claim_raw = _object(canonical_raw, "claim")
    claim_type = claim_raw.get("type", "generic")
    if claim_type not in CLAIM_TYPES:
        raise MissingFieldError("claim.type", f"expected one of {list(CLAIM_TYPES)}.")
    claim = Claim(
        type=claim_type,
        title=_text(claim_raw, "title"),
        statement=_text(claim_raw, "statement"),
        event_date=_text(claim_raw, "eventDate"),
        subject=_text(claim_raw, "subject"),
        notes=_text(claim_raw, "notes"),
        details=_details_from_dict(claim_type, _object(claim_raw, "details")),
    )

    sources_raw = canonical_raw.get("sources")
    sources: List[ClaimSource] = []
    if isinstance(sources_raw, list):
        for entry in sources_raw:
            if not isinstance(entry, dict):
                continue
            sources.append(ClaimSource(
                label=_text(entry, "label"),
                url=_text(entry, "url"),
                retrieved_at=_text(entry, "retrievedAt"),
                selector_or_evidence=_text(entry, "selectorOrEvidence"),
            ))

    canonical = _object(canonical_raw, "canonical")
    baseline = _object(canonical_raw, "baseline")
    animation = baseline.get("animationHash")
    check = _object(canonical_raw, "check")
    defaults = ClaimCanonical()

    declared_mode = canonical_raw.get("mode")
    return ClaimBundle(
        bundle_version=_text(canonical_raw, "bundleVersion") or CLAIM_BUNDLE_VERSION,
        created_at=_text(canonical_raw, "createdAt"),
        mode=declared_mode if isinstance(declared_mode, str) and declared_mode else resolve_mode(snapshot),
        claim=claim,
        sources=tuple(sources),
        canonical=ClaimCanonical(
            via=_text(canonical, "via") or defaults.via,
            protocol=_text(canonical, "protocol") or defaults.protocol,
            protocol_version=_text(canonical, "protocolVersion") or defaults.protocol_version,
        ),
        snapshot=snapshot,
        baseline=Baseline(
            poster_hash=_text(baseline, "posterHash"),
            animation_hash=animation if isinstance(animation, str) and animation else None,
        ),
        check=ClaimCheck(
            last_checked_at=_text(check, "lastCheckedAt"),
            result=_text(check, "result"),
        ),
    )


def parse_bundle(text: str) -> ClaimBundle:
    """
    Parse bundle JSON text.

    Raises MalformedBundleError when the text is not JSON, plus everything
    bundle_from_dict() raises.
    """
    try:
        raw = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise MalformedBundleError(
            "MalformedBundleError: bundle is not valid JSON: " + str(exc),
        ) from exc
    return bundle_from_dict(raw)
