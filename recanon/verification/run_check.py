# recanon/verification/run_check.py
# Check CLI -- validates a bundle file and re-verifies it against the renderer.
#
# Standard invocation:
#   python -m recanon.verification.run_check --bundle path/to/bundle.json
#
# Structural validation only (no network):
#   python -m recanon.verification.run_check --bundle path/to/bundle.json --validate-only
#
# Renderer URL precedence: --renderer-url > RECANON_RENDERER_URL > default.
#
# EXIT CODES:
#   0  -- VERIFIED (or valid, with --validate-only).
#   1  -- HASH_MISMATCH: renderer answered, baseline disagrees.
#   2  -- Bundle problems: unreadable, malformed, missing fields, no baseline.
#   3  -- Renderer problems: unreachable, rate limited, protocol violation,
#         malformed response.
#   4  -- Internal error.

import argparse
import sys
from pathlib import Path
from typing import List, Mapping, Optional

import httpx

from recanon.client.config import RendererConfig
from recanon.client.renderer_client import RendererClient
from recanon.verification import state_machine as sm
from recanon.verification.bundle_validator import validate_bundle
from recanon.verification.data_models.failure_record import EXIT_VERIFIED, FAILURE_TYPES
from recanon.verification.failure_handler import FailureHandler
from recanon.verification.verifier import Verifier
from recanon.version import PACKAGE_VERSION


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=f"recanon bundle check v{PACKAGE_VERSION}",
        prog="python -m recanon.verification.run_check",
    )
    parser.add_argument(
        "--bundle",
        required=True,
        help="Path to the bundle JSON file to check.",
    )
    parser.add_argument(
        "--renderer-url",
        default=None,
        help="Renderer base URL. Overrides RECANON_RENDERER_URL.",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Run structural validation only; never contact the renderer.",
    )
    return parser.parse_args(argv)


def _print_validation(path: Path, validation) -> None:
    print(
        f"Bundle:          {path}\n"
        f"Format:          {validation.source_format or '(unknown)'}\n"
        f"Mode:            {validation.mode}"
    )
    for field_name in validation.missing_fields:
        print(f"Missing:         {field_name}")
    for warning in validation.warnings:
        print(f"Warning:         {warning}")


def main(
    argv:      Optional[List[str]] = None,
    transport: Optional[httpx.BaseTransport] = None,
    environ:   Optional[Mapping[str, str]] = None,
) -> int:
    """
    Run one check and return the process exit code.

    transport and environ exist for tests; the command line leaves both
    unset.
    """
    args = _parse_args(argv)
    handler = FailureHandler()
    path = Path(args.bundle)

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        sys.stderr.write(f"MALFORMED_JSON: cannot read bundle {path}: {exc}\n")
        return FAILURE_TYPES["MALFORMED_JSON"]

    validation = validate_bundle(text)
    _print_validation(path, validation)

    if args.validate_only:
        if validation.is_valid:
            print("CHECK RESULT:    VALID")
            return EXIT_VERIFIED
        if validation.is_empty:
            print("CHECK RESULT:    INVALID (bundle is empty)")
        elif validation.parse_error is not None:
            print(f"CHECK RESULT:    INVALID ({validation.parse_error})")
        else:
            print("CHECK RESULT:    INVALID")
        return FAILURE_TYPES["MISSING_FIELD"]

    try:
        config = RendererConfig.resolve(override=args.renderer_url, environ=environ)
        with RendererClient(config, transport=transport) as client:
            verifier = Verifier(client)
            state = verifier.check_bundle(text)
    except Exception as exc:  # noqa: BLE001
        record = handler.classify(exc)
        sys.stderr.write(handler.summary(record) + "\n")
        return record.exit_code

    print(f"Renderer:        {config.base_url}")
    if isinstance(state, sm.Verified):
        report = state.report
        print(
            f"CHECK RESULT:    VERIFIED\n"
            f"Poster hash:     {'match' if report.poster_verified else 'mismatch'}"
        )
        if report.animation_verified is not None:
            print(f"Animation hash:  {'match' if report.animation_verified else 'mismatch'}")
        for warning in verifier.warnings:
            if warning not in validation.warnings:
                print(f"Warning:         {warning}")
        return EXIT_VERIFIED

    failure = getattr(state, "failure", None)
    if failure is None:
        record = handler.classify(RuntimeError(f"check ended in unexpected state '{state.name}'"))
        sys.stderr.write(handler.summary(record) + "\n")
        return record.exit_code
    print(handler.summary(failure))
    return failure.exit_code


if __name__ == "__main__":
    sys.exit(main())
