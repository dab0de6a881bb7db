#!/usr/bin/env python3
# =============================================================================
# recanon -- CI CHECKS RUNNER
# File:   scripts/run_ci_checks.py
# =============================================================================
#
# PURPOSE
# -------
# Runs the full CI gate in two sequential stages:
#   Stage 1: pytest (all tests, with coverage report)
#   Stage 2: sample bundle gate (structural validation of every bundle in
#            sample_bundles/, no network)
#
# Exit codes:
#   0 -- All stages passed.
#   1 -- Stage 1 (pytest) failed.
#   2 -- Stage 2 (sample bundles) failed.
#
# Usage:
#   python scripts/run_ci_checks.py
#
# No side effects outside subprocess invocations and stdout/stderr writes.
# =============================================================================

from __future__ import annotations

import subprocess
import sys
import pathlib

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
_REPO_ROOT   = pathlib.Path(__file__).parent.parent
_SAMPLES_DIR = _REPO_ROOT / "sample_bundles"
_PYTHON      = sys.executable


def _separator(char: str = "=", width: int = 72) -> str:
    return char * width


def _run(cmd: list[str], label: str) -> int:
    """
    Run a subprocess command, stream stdout/stderr live, return exit code.
    """
    print(_separator())
    print(f"CI STAGE: {label}")
    print(f"CMD:      {' '.join(cmd)}")
    print(_separator("-"))
    sys.stdout.flush()

    proc = subprocess.run(
        cmd,
        cwd=str(_REPO_ROOT),
    )
    return proc.returncode


def _check_samples() -> int:
    """Validate every sample bundle. Returns the first non-zero exit code."""
    bundles = sorted(_SAMPLES_DIR.glob("*.json"))
    if not bundles:
        print(f"No sample bundles found in {_SAMPLES_DIR}")
        return 2
    for path in bundles:
        rc = _run(
            [
                _PYTHON, "-m", "recanon.verification.run_check",
                "--bundle", str(path.relative_to(_REPO_ROOT)),
                "--validate-only",
            ],
            f"validate {path.name}",
        )
        if rc != 0:
            return rc
    return 0


def main() -> int:
    print(_separator())
    print("recanon CI GATE -- starting")
    print(_separator())
    sys.stdout.flush()

    # ------------------------------------------------------------------
    # Stage 1: pytest
    # pyproject.toml provides: --cov=recanon --cov-report=term-missing
    # ------------------------------------------------------------------
    pytest_rc = _run(
        [_PYTHON, "-m", "pytest"],
        "pytest (tests + coverage report)",
    )

    if pytest_rc != 0:
        print(_separator())
        print(f"CI RESULT: FAIL  [stage=pytest  exit_code={pytest_rc}]")
        print("Merge BLOCKED: pytest stage did not pass.")
        print(_separator())
        sys.stdout.flush()
        return 1

    print(_separator("-"))
    print("CI STAGE pytest: PASS")
    sys.stdout.flush()

    # ------------------------------------------------------------------
    # Stage 2: sample bundles
    # A non-zero exit code means a shipped sample no longer passes
    # structural validation (exit code 2 from run_check).
    # ------------------------------------------------------------------
    samples_rc = _check_samples()

    if samples_rc != 0:
        print(_separator())
        print(f"CI RESULT: FAIL  [stage=samples  exit_code={samples_rc}]")
        print("Merge BLOCKED: sample bundle gate did not pass.")
        print(_separator())
        sys.stdout.flush()
        return 2

    print(_separator("-"))
    print("CI STAGE samples: PASS")

    # ------------------------------------------------------------------
    # All stages passed.
    # ------------------------------------------------------------------
    print(_separator())
    print("CI RESULT: PASS  [stages=pytest,samples]")
    print("Merge permitted.")
    print(_separator())
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
