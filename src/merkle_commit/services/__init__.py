"""
Merkle Commitment Service - Services Package

Provides root stores and the commitment service.

Note: Imports are performed lazily to avoid circular import issues.
Use direct imports from submodules when needed:
    from merkle_commit.services.root_store import InMemoryRootStore
    from merkle_commit.services.commitment_service import CommitmentService
    etc.
"""

__all__ = [
    "RootStore",
    "RootRecord",
    "RootStoreError",
    "RootNotPublishedError",
    "InMemoryRootStore",
    "DatabaseRootStore",
    "CommitmentService",
]
