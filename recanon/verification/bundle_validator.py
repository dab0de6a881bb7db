# recanon/verification/bundle_validator.py
# validate_bundle() -- structural validation of bundle text before any network call.
#
# Order of checks:
#   1. Empty / whitespace-only text      -> is_empty, nothing else checked.
#   2. JSON parse                        -> parse_error, nothing else checked.
#   3. Format upgrade (migration)        -> unsupported formats become parse_error.
#   4. Snapshot structure                -> snapshot, code, seed, vars.
#   5. Mode-dependent baseline hashes    -> poster always, animation in loop mode.
#   6. Non-blocking warnings.
#
# Every structural problem is reported; the validator never stops at the
# first one. Var values outside [0, 100] are not rejected here.

import json
from typing import Any, Dict, List

from recanon.bundle.migration import upgrade_bundle_dict
from recanon.bundle.schema import MODE_LOOP, MODE_STATIC, MODE_UNKNOWN, VAR_COUNT
from recanon.verification.code_preflight import validate_no_create_canvas
from recanon.verification.data_models.validation_result import ValidationResult
from recanon.verification.errors import MalformedBundleError
from recanon.verification.mode_resolver import resolve_mode
from recanon.version import CLAIM_BUNDLE_VERSION

FIELD_SNAPSHOT: str = "snapshot"
FIELD_CODE: str = "snapshot.code"
FIELD_SEED: str = "snapshot.seed"
FIELD_VARS: str = f"snapshot.vars (array of {VAR_COUNT})"
FIELD_POSTER: str = "baseline.posterHash"
FIELD_ANIMATION: str = "baseline.animationHash (required for loop mode)"

WARN_TAMPERED: str = "This bundle is marked as tampered -- check is expected to fail"
WARN_EXAMPLE: str = "This is an example bundle -- hashes may not be valid"


def _rejected(parse_error: str, source_format: str = "") -> ValidationResult:
    return ValidationResult(
        is_valid=False,
        is_empty=False,
        parse_error=parse_error,
        missing_fields=(),
        mode=MODE_UNKNOWN,
        warnings=(),
        source_format=source_format,
    )


def _snapshot_problems(snapshot: Any) -> List[str]:
    if not isinstance(snapshot, dict):
        return [FIELD_SNAPSHOT]
    missing: List[str] = []
    code = snapshot.get("code")
    if not isinstance(code, str) or not code.strip():
        missing.append(FIELD_CODE)
    # 0 is a valid seed.
    if snapshot.get("seed") is None:
        missing.append(FIELD_SEED)
    values = snapshot.get("vars")
    if not isinstance(values, list) or len(values) != VAR_COUNT:
        missing.append(FIELD_VARS)
    return missing


def _hash_present(baseline: Any, key: str) -> bool:
    if not isinstance(baseline, dict):
        return False
    value = baseline.get(key)
    return isinstance(value, str) and bool(value.strip())


def _execution_warnings(snapshot: Dict[str, Any]) -> List[str]:
    execution = snapshot.get("execution")
    if not isinstance(execution, dict):
        return []
    loop = execution.get("loop")
    frames = execution.get("frames")
    if isinstance(frames, bool) or not isinstance(frames, (int, float)):
        return []
    if loop is True and frames < 2:
        return [f"execution.loop is true but frames is {frames}; loop mode needs at least 2 frames"]
    if loop is not True and frames != 1:
        return [f"execution.loop is false but frames is {frames}; static mode uses exactly 1 frame"]
    return []


def validate_bundle(bundle_text: str) -> ValidationResult:
    """
    Validate bundle text. Never raises for bad input; every problem is
    reported on the returned ValidationResult.
    """
    if bundle_text is None or not bundle_text.strip():
        return ValidationResult(
            is_valid=False,
            is_empty=True,
            parse_error=None,
            missing_fields=(),
            mode=MODE_UNKNOWN,
            warnings=(),
        )

    try:
        raw = json.loads(bundle_text)
    except ValueError as exc:
        return _rejected(str(exc) or "Invalid JSON")

    try:
        bundle, source_format = upgrade_bundle_dict(raw)
    except MalformedBundleError as exc:
        return _rejected(exc.message)

    snapshot = bundle.get("snapshot")
    missing = _snapshot_problems(snapshot)

    mode = resolve_mode(snapshot if isinstance(snapshot, dict) else None)
    baseline = bundle.get("baseline")
    if mode == MODE_LOOP:
        if not _hash_present(baseline, "posterHash"):
            missing.append(FIELD_POSTER)
        if not _hash_present(baseline, "animationHash"):
            missing.append(FIELD_ANIMATION)
    elif mode == MODE_STATIC:
        if not _hash_present(baseline, "posterHash"):
            missing.append(FIELD_POSTER)

    warnings: List[str] = []
    if bundle.get("_tampered"):
        warnings.append(WARN_TAMPERED)
    if bundle.get("_note"):
        warnings.append(WARN_EXAMPLE)
    if source_format != CLAIM_BUNDLE_VERSION:
        warnings.append(
            f"Legacy bundle format '{source_format}' was upgraded for reading; "
            "re-export to store it as " + CLAIM_BUNDLE_VERSION
        )
    declared = bundle.get("mode")
    if source_format == CLAIM_BUNDLE_VERSION and mode != MODE_UNKNOWN and declared is not None and declared != mode:
        warnings.append(
            f"Declared mode '{declared}' disagrees with snapshot.execution (resolves to '{mode}')"
        )
    if isinstance(snapshot, dict):
        warnings.extend(_execution_warnings(snapshot))
        code = snapshot.get("code")
        if isinstance(code, str) and code:
            canvas = validate_no_create_canvas(code)
            if not canvas.valid:
                warnings.append(
                    f"createCanvas() found on line {canvas.line_number}; "
                    "the renderer provides the canvas and will reject this code"
                )

    return ValidationResult(
        is_valid=not missing,
        is_empty=False,
        parse_error=None,
        missing_fields=tuple(missing),
        mode=mode,
        warnings=tuple(warnings),
        source_format=source_format,
    )
