"""Preset delegations between the upload, indexing, and storage services.

Each preset grants a fixed ability set, scoped to the issuer's DID, with
no expiration.
"""
from __future__ import annotations

from mkdelegation.builder import delegate
from mkdelegation.principal.did import DID
from mkdelegation.principal.signer import Signer
from mkdelegation.ucan.delegation import Delegation

INDEXING_TO_UPLOAD_ABILITIES: tuple[str, ...] = ("assert/equals", "assert/index")
STORAGE_TO_UPLOAD_ABILITIES: tuple[str, ...] = ("blob/allocate", "blob/accept")
INDEXING_TO_STORAGE_ABILITIES: tuple[str, ...] = ("claim/cache",)


def delegate_indexing_to_upload(indexer: Signer, upload: Signer | DID) -> Delegation:
    """Allow the upload service to publish assertions via the indexer."""
    return delegate(indexer, upload.did(), list(INDEXING_TO_UPLOAD_ABILITIES))


def delegate_storage_to_upload(storage: Signer, upload: Signer | DID) -> Delegation:
    """Allow the upload service to allocate and accept blobs on a storage node."""
    return delegate(storage, upload.did(), list(STORAGE_TO_UPLOAD_ABILITIES))


def delegate_indexing_to_storage(indexer: Signer, storage: Signer | DID) -> Delegation:
    """Allow a storage node to cache claims with the indexer."""
    return delegate(indexer, storage.did(), list(INDEXING_TO_STORAGE_ABILITIES))


__all__ = [
    "INDEXING_TO_STORAGE_ABILITIES",
    "INDEXING_TO_UPLOAD_ABILITIES",
    "STORAGE_TO_UPLOAD_ABILITIES",
    "delegate_indexing_to_storage",
    "delegate_indexing_to_upload",
    "delegate_storage_to_upload",
]
