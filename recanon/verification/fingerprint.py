# recanon/verification/fingerprint.py
# Payload fingerprint -- deterministic digest of exactly what is sent to the renderer.
#
# Preimage (UTF-8):
#   code | seed | v0,v1,...,v9 | true|false
#
#   code : raw, unescaped.
#   seed : decimal integer.
#   vars : in order, comma-joined. Integral floats are written as integers
#          (50.0 -> "50"), so a value that round-trips through JSON keeps
#          its fingerprint.
#   loop : lowercase boolean literal.
#
# The fingerprint detects stale or cached renders: if it changes while the
# renderer's output hash does not, something between request and response
# ignored the new payload. That is a warning, never a verification failure.

import math
from typing import Optional, Sequence

from recanon.bundle.schema import Snapshot
from recanon.core.integrity_layer import sha256_text
from recanon.verification.hash_comparator import HASH_PREFIX, normalize_hash


def _format_number(value: float) -> str:
    if isinstance(value, bool):
        raise TypeError("fingerprint: vars must be numbers, not booleans")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return repr(value)


def fingerprint_payload(code: str, seed: int, vars: Sequence[float], loop: bool) -> str:
    """The exact preimage string hashed by compute_fingerprint()."""
    return "|".join([
        code,
        _format_number(seed),
        ",".join(_format_number(v) for v in vars),
        "true" if loop else "false",
    ])


def compute_fingerprint(code: str, seed: int, vars: Sequence[float], loop: bool) -> str:
    """
    Returns "sha256:<64 hex>". Equal inputs always give equal fingerprints;
    any change to code, seed, a var or the loop flag changes it.
    """
    return HASH_PREFIX + sha256_text(fingerprint_payload(code, seed, vars, loop))


def fingerprint_snapshot(snapshot: Snapshot) -> str:
    return compute_fingerprint(
        snapshot.code,
        snapshot.seed,
        snapshot.vars,
        snapshot.execution.loop,
    )


def detect_stale_render(
    previous_fingerprint: Optional[str],
    previous_hash:        Optional[str],
    current_fingerprint:  str,
    current_hash:         Optional[str],
) -> Optional[str]:
    """
    Warning text when the payload fingerprint changed but the normalized
    output hash did not. None otherwise, including when there is no previous
    render to compare with.
    """
    if not previous_fingerprint or not previous_hash:
        return None
    if normalize_hash(previous_fingerprint) == normalize_hash(current_fingerprint):
        return None
    if normalize_hash(previous_hash) != normalize_hash(current_hash):
        return None
    return (
        "Payload fingerprint changed but the output hash is identical. "
        "The renderer may have served a cached result or ignored part of the payload."
    )
