# =============================================================================
# recanon -- SEALED CLAIM STORE
# File:   recanon/storage/claim_store.py
# =============================================================================
#
# ClaimStore is the persistence collaborator the Verifier saves sealed
# bundles to. InMemoryClaimStore is the reference implementation used by
# the CLI and the tests; a hosted store implements the same interface.
#
# STORAGE RULES
# -------------
#   Hashes are stored with the "sha256:" prefix.
#   get_by_hash() is prefix- and case-insensitive.
#   Saving the same poster hash again updates the existing record in place
#   and keeps its id. Stored claims are never deleted by callers.
#   Listing is newest first; the in-memory store keeps at most `capacity`.
#
# REJECTIONS
# ----------
#   not signed in                       -> AuthRequiredError
#   record breaks a storage constraint  -> PersistenceValidationError
# Both leave the seal intact; the save may simply be retried.
# =============================================================================

from __future__ import annotations

import dataclasses
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

from recanon.bundle.codec import serialize_bundle
from recanon.bundle.schema import Baseline, ClaimBundle, MODE_LOOP, MODE_STATIC, VAR_COUNT
from recanon.verification.errors import AuthRequiredError, PersistenceValidationError
from recanon.verification.hash_comparator import normalize_hash, prefixed_hash
from recanon.version import CLAIM_BUNDLE_VERSION

DEFAULT_CAPACITY: int = 50
DEFAULT_LIST_LIMIT: int = 50

MAX_TITLE_LENGTH: int = 500
MAX_STATEMENT_LENGTH: int = 5000
MAX_SUBJECT_LENGTH: int = 500
MAX_KEYWORDS_LENGTH: int = 2000
MAX_BUNDLE_JSON_LENGTH: int = 200_000

_HASH_FORMAT = re.compile(r"^(sha256:)?[a-fA-F0-9]{64}$")


@dataclass(frozen=True)
class SealedClaimRecord:
    id:             str
    created_at:     str
    bundle_version: str
    mode:           str
    claim_type:     str
    title:          str
    statement:      str
    subject:        str
    event_date:     str
    poster_hash:    str
    animation_hash: Optional[str]
    bundle:         ClaimBundle
    keywords:       str


@dataclass(frozen=True)
class SaveResult:
    id:          str
    poster_hash: str


def build_keywords(bundle: ClaimBundle) -> str:
    """Lowercased search text: claim fields, source labels and urls, bare poster hash."""
    parts: List[str] = []
    claim = bundle.claim
    for text in (claim.title, claim.statement, claim.subject, claim.notes):
        if text:
            parts.append(text)
    for source in bundle.sources:
        if source.label:
            parts.append(source.label)
        if source.url:
            parts.append(source.url)
    if bundle.baseline.poster_hash:
        parts.append(normalize_hash(bundle.baseline.poster_hash))
    return " ".join(parts).lower()


def normalize_bundle_hashes(bundle: ClaimBundle) -> ClaimBundle:
    """Copy of bundle with both baseline hashes in "sha256:" storage form."""
    baseline = Baseline(
        poster_hash=prefixed_hash(bundle.baseline.poster_hash),
        animation_hash=prefixed_hash(bundle.baseline.animation_hash) or None,
    )
    return dataclasses.replace(bundle, baseline=baseline)


def record_problems(bundle: ClaimBundle) -> List[str]:
    """
    Storage constraints a sealed bundle must satisfy, as field names.
    Empty when the bundle may be stored.
    """
    problems: List[str] = []
    if bundle.bundle_version != CLAIM_BUNDLE_VERSION:
        problems.append("bundleVersion")
    if bundle.mode not in (MODE_STATIC, MODE_LOOP):
        problems.append("mode")
    if len(bundle.claim.title) > MAX_TITLE_LENGTH:
        problems.append("claim.title")
    if len(bundle.claim.statement) > MAX_STATEMENT_LENGTH:
        problems.append("claim.statement")
    if len(bundle.claim.subject) > MAX_SUBJECT_LENGTH:
        problems.append("claim.subject")
    if len(build_keywords(bundle)) > MAX_KEYWORDS_LENGTH:
        problems.append("keywords")

    snapshot = bundle.snapshot
    if not snapshot.code.strip():
        problems.append("snapshot.code")
    if len(snapshot.vars) != VAR_COUNT:
        problems.append("snapshot.vars")

    if not _HASH_FORMAT.match(bundle.baseline.poster_hash or ""):
        problems.append("baseline.posterHash")
    animation = bundle.baseline.animation_hash
    if bundle.mode == MODE_LOOP and not animation:
        problems.append("baseline.animationHash")
    elif animation and not _HASH_FORMAT.match(animation):
        problems.append("baseline.animationHash")

    if len(serialize_bundle(bundle)) > MAX_BUNDLE_JSON_LENGTH:
        problems.append("bundle")
    return problems


class ClaimStore(ABC):
    """Persistence interface for sealed claim bundles."""

    @abstractmethod
    def list_claims(
        self,
        query:  Optional[str] = None,
        limit:  int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> List[SealedClaimRecord]:
        ...

    @abstractmethod
    def get_by_id(self, claim_id: str) -> Optional[SealedClaimRecord]:
        ...

    @abstractmethod
    def get_by_hash(self, poster_hash: str) -> Optional[SealedClaimRecord]:
        ...

    @abstractmethod
    def save(self, bundle: ClaimBundle, saved_at: str) -> SaveResult:
        """
        Raises AuthRequiredError or PersistenceValidationError.
        """
        ...

    def exists(self, poster_hash: str) -> bool:
        return self.get_by_hash(poster_hash) is not None


def _sequential_ids() -> Callable[[], str]:
    counter = [0]

    def next_id() -> str:
        counter[0] += 1
        return "claim-{:06d}".format(counter[0])

    return next_id


class InMemoryClaimStore(ClaimStore):
    """
    Process-local ClaimStore.

    authenticated simulates the signed-in state; set it to False to exercise
    the auth_required path. Oldest records beyond capacity are dropped.
    """

    def __init__(
        self,
        authenticated: bool = True,
        capacity:      int = DEFAULT_CAPACITY,
        id_factory:    Optional[Callable[[], str]] = None,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1; got {capacity}")
        self.authenticated = authenticated
        self._capacity = capacity
        self._next_id = id_factory or _sequential_ids()
        self._records: List[SealedClaimRecord] = []   # newest first

    def __len__(self) -> int:
        return len(self._records)

    def list_claims(
        self,
        query:  Optional[str] = None,
        limit:  int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> List[SealedClaimRecord]:
        records = self._records
        if query and query.strip():
            needle = query.strip().lower()
            records = [
                r for r in records
                if needle in r.keywords
                or needle in r.title.lower()
                or needle in r.statement.lower()
                or needle in r.subject.lower()
                or needle in r.poster_hash.lower()
            ]
        return list(records[offset: offset + limit])

    def get_by_id(self, claim_id: str) -> Optional[SealedClaimRecord]:
        for record in self._records:
            if record.id == claim_id:
                return record
        return None

    def get_by_hash(self, poster_hash: str) -> Optional[SealedClaimRecord]:
        wanted = normalize_hash(poster_hash)
        if not wanted:
            return None
        for record in self._records:
            if normalize_hash(record.poster_hash) == wanted:
                return record
        return None

    def save(self, bundle: ClaimBundle, saved_at: str) -> SaveResult:
        if not self.authenticated:
            raise AuthRequiredError()
        stored = normalize_bundle_hashes(bundle)
        problems = record_problems(stored)
        if problems:
            raise PersistenceValidationError(
                "PersistenceValidationError: sealed claim rejected; invalid field(s): "
                + ", ".join(problems),
                field_name=problems[0],
            )

        existing = self.get_by_hash(stored.baseline.poster_hash)
        record = SealedClaimRecord(
            id=existing.id if existing else self._next_id(),
            created_at=existing.created_at if existing else saved_at,
            bundle_version=stored.bundle_version,
            mode=stored.mode,
            claim_type=stored.claim.type,
            title=stored.claim.title,
            statement=stored.claim.statement,
            subject=stored.claim.subject,
            event_date=stored.claim.event_date,
            poster_hash=stored.baseline.poster_hash,
            animation_hash=stored.baseline.animation_hash,
            bundle=stored,
            keywords=build_keywords(stored),
        )
        if existing:
            index = self._records.index(existing)
            self._records[index] = record
        else:
            self._records.insert(0, record)
            del self._records[self._capacity:]
        return SaveResult(id=record.id, poster_hash=record.poster_hash)
