# recanon/bundle/migration.py
# Versioned upgrade of older bundle generations to recanon.event.v1.
#
# Every reader (validator, codec, CLI) goes through upgrade_bundle_dict().
# Field-name fallbacks live here and nowhere else.
#
# Generations:
#   recanon.event.v1   -- canonical claim bundle. Returned unchanged.
#   recanon.verify.v0  -- top-level snapshot plus expectedImageHash /
#                         expectedPosterHash / expectedAnimationHash.
#                         Upgraded, read-only.
#   recanon.artifact.v0 -- backtest artifact bundles (artifactVersion).
#                         Recognised, rejected.
#
# The upgrade is tolerant: it relocates whatever fields exist and never
# invents snapshot content, so the validator still reports what is missing.

import copy
from typing import Any, Callable, Dict, Tuple

from recanon.bundle.schema import MODE_STATIC, MODE_UNKNOWN
from recanon.verification.errors import MalformedBundleError, UnsupportedBundleFormatError
from recanon.verification.mode_resolver import resolve_mode
from recanon.version import (
    CANONICAL_PROTOCOL,
    CANONICAL_PROTOCOL_VERSION,
    CANONICAL_VIA,
    CLAIM_BUNDLE_VERSION,
    LEGACY_ARTIFACT_FORMAT,
    LEGACY_VERIFICATION_FORMAT,
)

# Annotation keys carried across every upgrade. Never part of the schema.
MARKER_KEYS: Tuple[str, ...] = ("_tampered", "_tamperedAt", "_note")

_LEGACY_POSTER_KEYS: Tuple[str, ...] = ("expectedPosterHash", "expectedImageHash")
_LEGACY_ANIMATION_KEY: str = "expectedAnimationHash"


def detect_format(raw: Dict[str, Any]) -> str:
    """
    Name the generation a parsed bundle belongs to.

    Raises UnsupportedBundleFormatError for an unrecognised bundleVersion.
    """
    if "artifactVersion" in raw:
        return LEGACY_ARTIFACT_FORMAT
    version = raw.get("bundleVersion")
    if version is not None:
        if version == CLAIM_BUNDLE_VERSION:
            return CLAIM_BUNDLE_VERSION
        raise UnsupportedBundleFormatError(str(version))
    if "baseline" in raw or "claim" in raw:
        # Canonical shape with the version stamp stripped.
        return CLAIM_BUNDLE_VERSION
    return LEGACY_VERIFICATION_FORMAT


def _first_present(raw: Dict[str, Any], keys: Tuple[str, ...]) -> str:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def _upgrade_verification_v0(raw: Dict[str, Any]) -> Dict[str, Any]:
    snapshot = raw.get("snapshot")
    mode = resolve_mode(snapshot if isinstance(snapshot, dict) else None)
    animation = raw.get(_LEGACY_ANIMATION_KEY)

    upgraded: Dict[str, Any] = {
        "bundleVersion": CLAIM_BUNDLE_VERSION,
        "createdAt": raw.get("createdAt", ""),
        "mode": mode if mode != MODE_UNKNOWN else MODE_STATIC,
        "claim": {
            "type": "generic",
            "title": str(raw.get("artifactId", "")),
            "statement": "",
            "eventDate": "",
            "subject": "",
            "notes": "",
            "details": {
                "title": str(raw.get("artifactId", "")),
                "statement": "",
                "eventDate": "",
                "subject": "",
                "notes": "",
            },
        },
        "sources": [],
        "canonical": {
            "via": CANONICAL_VIA,
            "protocol": CANONICAL_PROTOCOL,
            "protocolVersion": CANONICAL_PROTOCOL_VERSION,
        },
        "baseline": {
            "posterHash": _first_present(raw, _LEGACY_POSTER_KEYS),
            "animationHash": animation if isinstance(animation, str) and animation else None,
        },
        "check": {"lastCheckedAt": "", "result": ""},
    }
    if "snapshot" in raw:
        upgraded["snapshot"] = copy.deepcopy(snapshot)
    return upgraded


# Registry of single-step upgrades, keyed by source generation.
MIGRATIONS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    LEGACY_VERIFICATION_FORMAT: _upgrade_verification_v0,
}


def upgrade_bundle_dict(raw: Any) -> Tuple[Dict[str, Any], str]:
    """
    Upgrade a parsed bundle to the canonical generation.

    Returns (canonical_dict, source_format). The input is never mutated.

    Raises:
        MalformedBundleError          -- raw is not a JSON object.
        UnsupportedBundleFormatError  -- artifact bundles and unknown versions.
    """
    if not isinstance(raw, dict):
        raise MalformedBundleError(
            "MalformedBundleError: bundle must be a JSON object; got "
            + type(raw).__name__,
            value=type(raw).__name__,
        )
    source_format = detect_format(raw)
    if source_format == CLAIM_BUNDLE_VERSION:
        return copy.deepcopy(raw), source_format
    step = MIGRATIONS.get(source_format)
    if step is None:
        raise UnsupportedBundleFormatError(source_format)

    upgraded = step(raw)
    for key in MARKER_KEYS:
        if key in raw:
            upgraded[key] = raw[key]
    return upgraded, source_format
