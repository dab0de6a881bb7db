# =============================================================================
# recanon -- CLAIM BUNDLE SCHEMA
# File:   recanon/bundle/schema.py
# =============================================================================
#
# PURPOSE
# -------
# Typed shapes of the claim bundle (format recanon.event.v1) and the
# invariants that hold between them. JSON field names are camelCase; the
# attribute names here are snake_case. Conversion lives in
# recanon.bundle.codec.
#
# LIFECYCLE
# ---------
#   draft  : created_at == "", baseline hashes empty, check.result == "".
#   sealed : baseline.poster_hash populated by a successful render.
# Once sealed, snapshot and baseline never change. Verification only
# replaces the check record (with_check_result()). All dataclasses are
# frozen; every update returns a new ClaimBundle.
# =============================================================================

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from recanon.verification import mode_resolver
from recanon.version import (
    CANONICAL_PROTOCOL,
    CANONICAL_PROTOCOL_VERSION,
    CANONICAL_VIA,
    CLAIM_BUNDLE_VERSION,
)


# =============================================================================
# SECTION 1 -- CONSTANTS
# =============================================================================

VAR_COUNT: int = 10
VAR_MIN: float = 0
VAR_MAX: float = 100

DEFAULT_SEED: int = 12345
DEFAULT_VAR_VALUE: int = 50
LOOP_FRAMES: int = 60

MODE_STATIC = mode_resolver.MODE_STATIC
MODE_LOOP = mode_resolver.MODE_LOOP
MODE_UNKNOWN = mode_resolver.MODE_UNKNOWN

CLAIM_TYPES: Tuple[str, ...] = ("generic", "sports", "pnl")
CALCULATION_METHODS: Tuple[str, ...] = ("simple", "percent", "cagr")

CHECK_RESULT_SEALED: str = "SEALED"
CHECK_RESULT_VERIFIED: str = "VERIFIED"
CHECK_RESULT_FAILED: str = "FAILED"


# =============================================================================
# SECTION 2 -- SNAPSHOT AND BASELINE
# =============================================================================

@dataclass(frozen=True)
class ExecutionSettings:
    frames: int = 1
    loop:   bool = False


@dataclass(frozen=True)
class Snapshot:
    """
    The unit of deterministic execution.

    Identical snapshots must always reproduce identical renderer hashes.

    Attributes:
        code:      Program source sent verbatim to the renderer.
        seed:      Integer seed controlling all randomness.
        vars:      Exactly ten numbers, nominally in [0, 100], in VAR order.
        execution: Frame count and loop flag.
    """
    code:      str
    seed:      int
    vars:      tuple    # tuple of int/float, immutable
    execution: ExecutionSettings = field(default_factory=ExecutionSettings)

    @property
    def mode(self) -> str:
        return mode_resolver.resolve_mode(self)

    def invariant_violations(self) -> List[str]:
        """Broken snapshot invariants, in a stable order. Empty when sound."""
        problems: List[str] = []
        if len(self.vars) != VAR_COUNT:
            problems.append(
                f"vars must contain exactly {VAR_COUNT} values; got {len(self.vars)}"
            )
        if self.execution.frames < 1:
            problems.append(f"execution.frames must be >= 1; got {self.execution.frames}")
        if self.execution.loop and self.execution.frames < 2:
            problems.append(
                f"execution.loop=true requires frames >= 2; got {self.execution.frames}"
            )
        if not self.execution.loop and self.execution.frames != 1:
            problems.append(
                f"execution.loop=false requires frames == 1; got {self.execution.frames}"
            )
        return problems

    def to_request(self) -> dict:
        """Body of a renderer /render call."""
        return {
            "code": self.code,
            "seed": self.seed,
            "vars": list(self.vars),
            "execution": {
                "frames": self.execution.frames,
                "loop": self.execution.loop,
            },
        }


@dataclass(frozen=True)
class Baseline:
    """
    Hashes captured at seal time. animation_hash is None in static mode.
    """
    poster_hash:    str = ""
    animation_hash: Optional[str] = None

    def is_complete(self, mode: str) -> bool:
        if not self.poster_hash:
            return False
        if mode == MODE_LOOP:
            return bool(self.animation_hash)
        return True


# =============================================================================
# SECTION 3 -- CLAIM DETAILS (tagged by claim type)
# =============================================================================

@dataclass(frozen=True)
class GenericClaimDetails:
    title:      str = ""
    statement:  str = ""
    event_date: str = ""
    subject:    str = ""
    notes:      str = ""


@dataclass(frozen=True)
class SportsClaimDetails:
    competition: str = ""
    match_event: str = ""
    home_team:   str = ""
    away_team:   str = ""
    home_score:  int = 0
    away_score:  int = 0
    venue:       str = ""
    event_date:  str = ""
    notes:       str = ""


@dataclass(frozen=True)
class PnlClaimDetails:
    asset_name:         str = ""
    start_balance:      float = 0
    end_balance:        float = 0
    fees:               float = 0
    period_start:       str = ""
    period_end:         str = ""
    calculation_method: str = "percent"
    notes:              str = ""


ClaimDetails = Union[GenericClaimDetails, SportsClaimDetails, PnlClaimDetails]

DETAILS_BY_TYPE = {
    "generic": GenericClaimDetails,
    "sports":  SportsClaimDetails,
    "pnl":     PnlClaimDetails,
}


@dataclass(frozen=True)
class Claim:
    type:       str = "generic"
    title:      str = ""
    statement:  str = ""
    event_date: str = ""
    subject:    str = ""
    notes:      str = ""
    details:    ClaimDetails = field(default_factory=GenericClaimDetails)


@dataclass(frozen=True)
class ClaimSource:
    """Evidence pointer. Never checked for reachability."""
    label:                str = ""
    url:                  str = ""
    retrieved_at:         str = ""
    selector_or_evidence: str = ""


@dataclass(frozen=True)
class ClaimCanonical:
    via:              str = CANONICAL_VIA
    protocol:         str = CANONICAL_PROTOCOL
    protocol_version: str = CANONICAL_PROTOCOL_VERSION


@dataclass(frozen=True)
class ClaimCheck:
    last_checked_at: str = ""
    result:          str = ""


# =============================================================================
# SECTION 4 -- CLAIM BUNDLE
# =============================================================================

@dataclass(frozen=True)
class ClaimBundle:
    """
    Top-level exported artifact.

    mode must agree with snapshot.mode; mode_drift() reports disagreement.
    """
    bundle_version: str
    created_at:     str
    mode:           str
    claim:          Claim
    sources:        tuple    # tuple of ClaimSource, immutable
    canonical:      ClaimCanonical
    snapshot:       Snapshot
    baseline:       Baseline
    check:          ClaimCheck

    @property
    def is_sealed(self) -> bool:
        return bool(self.baseline.poster_hash)

    def mode_drift(self) -> Optional[str]:
        resolved = self.snapshot.mode
        if self.mode != resolved:
            return (
                f"declared mode '{self.mode}' disagrees with snapshot.execution "
                f"(resolves to '{resolved}')"
            )
        return None

    def with_baseline(self, baseline: Baseline, sealed_at: str) -> ClaimBundle:
        """
        Seal a draft. Raises ValueError if the bundle is already sealed or the
        baseline lacks a hash the snapshot's mode requires.
        """
        if self.is_sealed:
            raise ValueError("bundle is already sealed; snapshot and baseline are immutable")
        mode = self.snapshot.mode
        if not baseline.is_complete(mode):
            raise ValueError(f"baseline is incomplete for {mode} mode")
        if mode == MODE_STATIC and baseline.animation_hash is not None:
            baseline = Baseline(poster_hash=baseline.poster_hash, animation_hash=None)
        return dataclasses.replace(
            self,
            created_at=sealed_at,
            mode=mode,
            baseline=baseline,
            check=ClaimCheck(last_checked_at=sealed_at, result=CHECK_RESULT_SEALED),
        )

    def with_check_result(self, result: str, checked_at: str) -> ClaimBundle:
        """Record the outcome of a verification cycle. Nothing else changes."""
        return dataclasses.replace(
            self, check=ClaimCheck(last_checked_at=checked_at, result=result)
        )


# =============================================================================
# SECTION 5 -- FACTORIES
# =============================================================================

def default_vars() -> tuple:
    return (DEFAULT_VAR_VALUE,) * VAR_COUNT


def make_execution(loop: bool) -> ExecutionSettings:
    """Execution settings used by the sealer: 60 frames for loops, else 1."""
    return ExecutionSettings(frames=LOOP_FRAMES, loop=True) if loop else ExecutionSettings()


def empty_details(claim_type: str) -> ClaimDetails:
    try:
        return DETAILS_BY_TYPE[claim_type]()
    except KeyError:
        raise ValueError(
            f"claim type must be one of {list(CLAIM_TYPES)}; got {claim_type!r}"
        ) from None


def create_empty_claim_bundle(claim_type: str = "generic") -> ClaimBundle:
    """Draft bundle with default snapshot settings and empty baseline."""
    return ClaimBundle(
        bundle_version=CLAIM_BUNDLE_VERSION,
        created_at="",
        mode=MODE_STATIC,
        claim=Claim(type=claim_type, details=empty_details(claim_type)),
        sources=(),
        canonical=ClaimCanonical(),
        snapshot=Snapshot(code="", seed=DEFAULT_SEED, vars=default_vars()),
        baseline=Baseline(),
        check=ClaimCheck(),
    )


def clamp_var(value: float) -> float:
    """Input-time clamping to [0, 100]. The validator never clamps."""
    return max(VAR_MIN, min(VAR_MAX, value))


# =============================================================================
# SECTION 6 -- DERIVED CLAIM FIELDS
# =============================================================================

def sports_title(details: SportsClaimDetails) -> str:
    if not details.home_team or not details.away_team or not details.competition:
        return ""
    return f"{details.home_team} vs {details.away_team} -- {details.competition}"


def sports_statement(details: SportsClaimDetails) -> str:
    if not details.home_team or not details.away_team:
        return ""
    return f"{details.home_team} {details.home_score}-{details.away_score} {details.away_team}"


def sports_subject(details: SportsClaimDetails) -> str:
    if not details.competition or not details.match_event:
        return details.competition or ""
    return f"{details.competition} / {details.match_event}"


def calculate_pnl_metrics(details: PnlClaimDetails) -> Tuple[float, float, float]:
    """
    Returns (profit, return_pct, net_balance).

    profit     = end - start - fees
    return_pct = profit / start * 100, or 0 when start <= 0
    net_balance = end - fees
    """
    profit = details.end_balance - details.start_balance - details.fees
    return_pct = (profit / details.start_balance) * 100 if details.start_balance > 0 else 0
    net_balance = details.end_balance - details.fees
    return profit, return_pct, net_balance


def pnl_title(details: PnlClaimDetails) -> str:
    if not details.asset_name:
        return ""
    return f"{details.asset_name} -- P&L Statement"


def pnl_statement(details: PnlClaimDetails) -> str:
    if not details.asset_name:
        return ""
    profit, _, _ = calculate_pnl_metrics(details)
    if profit < 0:
        return f"{details.asset_name}: -${abs(profit):.2f} loss over period"
    return f"{details.asset_name}: +${profit:.2f} profit over period"


def build_claim(claim_type: str, details: ClaimDetails, notes: str = "") -> Claim:
    """
    Claim with title/statement/subject derived from details the way the
    claim builder derives them. Generic claims copy their own fields.
    """
    if claim_type == "sports":
        return Claim(
            type=claim_type,
            title=sports_title(details),
            statement=sports_statement(details),
            event_date=details.event_date,
            subject=sports_subject(details),
            notes=(notes or details.notes).strip(),
            details=details,
        )
    if claim_type == "pnl":
        return Claim(
            type=claim_type,
            title=pnl_title(details),
            statement=pnl_statement(details),
            event_date=details.period_end,
            subject=details.asset_name.strip(),
            notes=(notes or details.notes).strip(),
            details=details,
        )
    if claim_type == "generic":
        return Claim(
            type=claim_type,
            title=details.title.strip(),
            statement=details.statement.strip(),
            event_date=details.event_date,
            subject=details.subject.strip(),
            notes=(notes or details.notes).strip(),
            details=details,
        )
    raise ValueError(f"claim type must be one of {list(CLAIM_TYPES)}; got {claim_type!r}")


# =============================================================================
# SECTION 7 -- SUBMISSION-TIME CHECKS
# =============================================================================

_REQUIRED_DETAIL_FIELDS = {
    "generic": ("title", "statement", "event_date"),
    "sports":  ("competition", "match_event", "home_team", "away_team", "event_date"),
    "pnl":     ("asset_name", "period_start", "period_end"),
}


def submission_problems(bundle: ClaimBundle) -> List[str]:
    """
    Problems that block sealing a draft.

    These are stricter than read-time validation: an incomplete source or an
    empty claim field never makes a stored bundle unreadable.
    """
    problems: List[str] = []
    claim = bundle.claim
    if claim.type not in CLAIM_TYPES:
        problems.append(f"claim.type must be one of {list(CLAIM_TYPES)}")
    else:
        expected_cls = DETAILS_BY_TYPE[claim.type]
        if not isinstance(claim.details, expected_cls):
            problems.append(f"claim.details does not match claim.type '{claim.type}'")
        else:
            for name in _REQUIRED_DETAIL_FIELDS[claim.type]:
                value = getattr(claim.details, name)
                if not isinstance(value, str) or not value.strip():
                    problems.append(f"claim.details.{name}")
            if claim.type == "pnl" and claim.details.calculation_method not in CALCULATION_METHODS:
                problems.append("claim.details.calculation_method")

    for i, source in enumerate(bundle.sources):
        if not source.label.strip():
            problems.append(f"sources[{i}].label")
        if not source.url.strip():
            problems.append(f"sources[{i}].url")

    if not isinstance(bundle.snapshot.seed, int) or bundle.snapshot.seed <= 0:
        problems.append("snapshot.seed must be a positive integer")
    if not bundle.snapshot.code.strip():
        problems.append("snapshot.code")
    problems.extend("snapshot: " + p for p in bundle.snapshot.invariant_violations())
    return problems
