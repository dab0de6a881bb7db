# recanon/verification/tamper.py
# Tamper simulator -- minimal mutations that must flip a VERIFIED check to FAILED.
#
# Every helper is pure: the input is never modified and a new value is
# returned. Each snapshot mutation changes the payload fingerprint.

import copy
import dataclasses
from typing import Any, Dict

from recanon.bundle.schema import Snapshot, VAR_MAX
from recanon.verification.hash_comparator import HASH_PREFIX

TAMPER_CODE_SUFFIX: str = "\n// tampered"


def tamper_seed(snapshot: Snapshot) -> Snapshot:
    return dataclasses.replace(snapshot, seed=snapshot.seed + 1)


def tamper_var(snapshot: Snapshot) -> Snapshot:
    """
    vars[0] + 1, clamped to 100. A value already at 100 is decremented
    instead, since clamping would leave it unchanged.
    """
    if not snapshot.vars:
        raise ValueError("tamper_var: snapshot has no vars to modify")
    first = snapshot.vars[0]
    changed = min(VAR_MAX, first + 1)
    if changed == first:
        changed = first - 1
    return dataclasses.replace(snapshot, vars=(changed,) + tuple(snapshot.vars[1:]))


def tamper_code(snapshot: Snapshot) -> Snapshot:
    return dataclasses.replace(snapshot, code=snapshot.code + TAMPER_CODE_SUFFIX)


def tamper_hash(value: str) -> str:
    """
    Flip the first hex character, ignoring case: "a" or "A" becomes "b",
    anything else becomes "a".
    An optional "sha256:" prefix is kept as written.
    """
    prefix = ""
    body = value
    if value[: len(HASH_PREFIX)].lower() == HASH_PREFIX:
        prefix = value[: len(HASH_PREFIX)]
        body = value[len(HASH_PREFIX):]
    if not body:
        raise ValueError("tamper_hash: hash is empty")
    flipped = "b" if body[0].lower() == "a" else "a"
    return prefix + flipped + body[1:]


def _flip_if_present(container: Dict[str, Any], key: str) -> None:
    value = container.get(key)
    if isinstance(value, str) and value:
        container[key] = tamper_hash(value)


def tamper_bundle(bundle: Dict[str, Any], tampered_at: str) -> Dict[str, Any]:
    """
    Copy of a parsed bundle with every baseline hash flipped and the
    _tampered / _tamperedAt markers set.

    Accepts canonical bundles and legacy verification bundles.
    """
    tampered = copy.deepcopy(bundle)
    baseline = tampered.get("baseline")
    if isinstance(baseline, dict):
        _flip_if_present(baseline, "posterHash")
        _flip_if_present(baseline, "animationHash")
    for key in ("expectedImageHash", "expectedPosterHash", "expectedAnimationHash"):
        _flip_if_present(tampered, key)
    tampered["_tampered"] = True
    tampered["_tamperedAt"] = tampered_at
    return tampered
