# recanon/__init__.py
# Claim bundles sealed against a deterministic renderer, and re-verification
# of those seals.
#
# Public API:
#   validate_bundle(text)                -> ValidationResult
#   resolve_mode(snapshot)               -> "static" | "loop" | "unknown"
#   normalize_hash / hashes_equal        -- hash comparison
#   compute_fingerprint(...)             -> "sha256:<hex>"
#   parse_bundle / serialize_bundle      -- JSON codec
#   Verifier                             -- check / seal / save cycles

from recanon.version import CLAIM_BUNDLE_VERSION, PACKAGE_VERSION
from recanon.bundle import (
    Baseline,
    ClaimBundle,
    ExecutionSettings,
    Snapshot,
    create_empty_claim_bundle,
    parse_bundle,
    serialize_bundle,
)
from recanon.client import RendererClient, RendererConfig
from recanon.storage import ClaimStore, InMemoryClaimStore
from recanon.verification.bundle_validator import validate_bundle
from recanon.verification.fingerprint import compute_fingerprint
from recanon.verification.hash_comparator import HashComparator, hashes_equal, normalize_hash
from recanon.verification.mode_resolver import resolve_mode
from recanon.verification.verifier import Verifier

__version__ = PACKAGE_VERSION
