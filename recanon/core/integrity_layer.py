# recanon/core/integrity_layer.py
# Integrity primitives: SHA-256 helpers, canonical JSON and the append-only
# hash chain that backs the verification event log.
#
# DETERMINISM
# -----------
#   All hashing is SHA-256 over canonical UTF-8 byte sequences.
#   Timestamps are caller-supplied and never part of a hash preimage, so the
#   same logical sequence of events always yields the same chain.
#   No logging calls. No print statements. No os.environ reads.

from __future__ import annotations

import json
from dataclasses import dataclass, field
from hashlib import sha256
from typing import Any, Dict, List, Optional


# =============================================================================
# SECTION 1: PURE HELPERS
# =============================================================================

def sha256_hex(data: bytes) -> str:
    """Return the 64-character lowercase hex SHA-256 digest of data."""
    return sha256(data).hexdigest()


def sha256_text(text: str) -> str:
    """SHA-256 of a str encoded as UTF-8."""
    return sha256_hex(text.encode("utf-8"))


def canonical_json(obj: Any) -> str:
    """
    Serialize obj to compact, sorted-key JSON.

    ensure_ascii stays at its default (True) so the output is ASCII-only and
    byte-identical across platforms.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"))


def _derive_current_hash(
    sequence: int,
    event_type: str,
    data: Dict[str, Any],
    prev_hash: str,
) -> str:
    """
    current_hash = SHA-256(sequence || event_type || canonical_json(data) || prev_hash)

    Recomputed by verify_chain() to detect any mutation of a stored event.
    """
    raw: str = str(sequence) + "|" + event_type + "|" + canonical_json(data) + "|" + prev_hash
    return sha256_text(raw)


# =============================================================================
# SECTION 2: CHAIN TYPES
# =============================================================================

@dataclass(frozen=True)
class ChainLink:
    """
    One link of the audit chain.

    Attributes
    ----------
    sequence : int
        1-based position of the event in the chain.
    event_type : str
        Category label of the linked event.
    data : Dict[str, Any]
        JSON-serializable payload. Must not be mutated after linking.
    previous_hash : str
        current_hash of the preceding link, or the chain's genesis hash.
    current_hash : str
        Hash over this link's content and previous_hash.
    """

    sequence: int
    event_type: str
    data: Dict[str, Any]
    previous_hash: str
    current_hash: str


@dataclass(frozen=True)
class ChainVerificationResult:
    valid: bool
    broken_at: Optional[int]
    error_message: Optional[str]


@dataclass
class HashChain:
    """Append-only chain anchored by SHA-256 of a genesis label."""

    genesis_hash: str
    links: List[ChainLink] = field(default_factory=list)

    @property
    def head(self) -> str:
        return self.links[-1].current_hash if self.links else self.genesis_hash

    def to_json(self) -> str:
        data: Dict[str, Any] = {
            "genesis_hash": self.genesis_hash,
            "links": [
                {
                    "sequence": link.sequence,
                    "event_type": link.event_type,
                    "data": link.data,
                    "previous_hash": link.previous_hash,
                    "current_hash": link.current_hash,
                }
                for link in self.links
            ],
        }
        return json.dumps(data, indent=2, sort_keys=True)

    @classmethod
    def from_json(cls, json_str: str) -> HashChain:
        """
        Rebuild a chain produced by to_json().

        Raises KeyError on missing fields and json.JSONDecodeError on
        unparsable input. Integrity is not checked here; call
        IntegrityLayer.verify_chain() on the result.
        """
        data: Dict[str, Any] = json.loads(json_str)
        links = [
            ChainLink(
                sequence=item["sequence"],
                event_type=item["event_type"],
                data=item["data"],
                previous_hash=item["previous_hash"],
                current_hash=item["current_hash"],
            )
            for item in data["links"]
        ]
        return cls(genesis_hash=data["genesis_hash"], links=links)


# =============================================================================
# SECTION 3: INTEGRITY LAYER
# =============================================================================

class IntegrityLayer:
    """
    Stateless operations over HashChain instances.

    Methods
    -------
    init_hash_chain(genesis_label)
        New empty chain with genesis_hash = SHA-256(genesis_label).
    append_to_chain(chain, event_type, data)
        Link a new event; mutates chain.links and returns the new link.
    verify_chain(chain)
        Check linkage and recompute every content hash.
    """

    def init_hash_chain(self, genesis_label: str) -> HashChain:
        return HashChain(genesis_hash=sha256_text(genesis_label), links=[])

    def append_to_chain(
        self,
        chain: HashChain,
        event_type: str,
        data: Dict[str, Any],
    ) -> ChainLink:
        prev_hash: str = chain.head
        sequence: int = len(chain.links) + 1
        link = ChainLink(
            sequence=sequence,
            event_type=event_type,
            data=data,
            previous_hash=prev_hash,
            current_hash=_derive_current_hash(sequence, event_type, data, prev_hash),
        )
        chain.links.append(link)
        return link

    def verify_chain(self, chain: HashChain) -> ChainVerificationResult:
        """
        Verify linkage and content hashes of every link. O(n).

        Returns the zero-based index of the first failing link in
        broken_at. An empty chain is valid.
        """
        for i, link in enumerate(chain.links):
            expected_prev: str = chain.links[i - 1].current_hash if i > 0 else chain.genesis_hash
            if link.previous_hash != expected_prev:
                return ChainVerificationResult(
                    valid=False,
                    broken_at=i,
                    error_message=f"Chain linkage broken at link {i}: previous_hash mismatch",
                )
            recomputed: str = _derive_current_hash(
                link.sequence, link.event_type, link.data, link.previous_hash
            )
            if recomputed != link.current_hash:
                return ChainVerificationResult(
                    valid=False,
                    broken_at=i,
                    error_message=f"Content hash mismatch at link {i}: event data was altered",
                )
        return ChainVerificationResult(valid=True, broken_at=None, error_message=None)
