# recanon/verification/mode_resolver.py
# Derives the execution mode of a snapshot.
#
# Pure and total: accepts any JSON-shaped value (dict, Snapshot, None or
# garbage) and never raises. Mode is always derived from execution settings,
# never read from the bundle's declared "mode" field.

from typing import Any, Optional

MODE_STATIC: str = "static"
MODE_LOOP: str = "loop"
MODE_UNKNOWN: str = "unknown"


def _execution_of(snapshot: Any) -> Any:
    if isinstance(snapshot, dict):
        return snapshot.get("execution")
    return getattr(snapshot, "execution", None)


def _field(execution: Any, name: str) -> Any:
    if isinstance(execution, dict):
        return execution.get(name)
    return getattr(execution, name, None)


def whole_frames(value: Any) -> Optional[int]:
    """Frame count as an int, or None unless value is a whole number (3.0 counts)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def resolve_mode(snapshot: Any) -> str:
    """
    Returns "unknown" iff no snapshot object is present; otherwise "loop" iff
    execution.loop is True or execution.frames > 1, else "static".

    A snapshot without execution settings, or whose frames is not a whole
    number, is static. Booleans are not counted as frame numbers.
    """
    if snapshot is None or not (isinstance(snapshot, dict) or hasattr(snapshot, "execution")):
        return MODE_UNKNOWN

    execution = _execution_of(snapshot)
    if execution is None:
        return MODE_STATIC

    if _field(execution, "loop") is True:
        return MODE_LOOP

    frames = whole_frames(_field(execution, "frames"))
    if frames is not None and frames > 1:
        return MODE_LOOP
    return MODE_STATIC
