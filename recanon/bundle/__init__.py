# recanon/bundle/__init__.py
# Claim bundle schema and JSON codec.

from recanon.bundle.schema import (
    Baseline,
    Claim,
    ClaimBundle,
    ClaimCanonical,
    ClaimCheck,
    ClaimSource,
    ExecutionSettings,
    GenericClaimDetails,
    PnlClaimDetails,
    Snapshot,
    SportsClaimDetails,
    build_claim,
    create_empty_claim_bundle,
    make_execution,
    submission_problems,
)
from recanon.bundle.codec import parse_bundle, serialize_bundle

__all__ = [
    "Baseline",
    "Claim",
    "ClaimBundle",
    "ClaimCanonical",
    "ClaimCheck",
    "ClaimSource",
    "ExecutionSettings",
    "GenericClaimDetails",
    "PnlClaimDetails",
    "Snapshot",
    "SportsClaimDetails",
    "build_claim",
    "create_empty_claim_bundle",
    "make_execution",
    "submission_problems",
    "parse_bundle",
    "serialize_bundle",
]
