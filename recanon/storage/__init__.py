# recanon/storage/__init__.py
# Sealed-claim persistence.

from recanon.storage.claim_store import (
    ClaimStore,
    InMemoryClaimStore,
    SaveResult,
    SealedClaimRecord,
)
