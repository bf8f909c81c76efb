"""
Merkle Commitment API v1

Endpoints:
- POST /roots - Publish a trusted root
- GET /roots/current - Get the trusted root
- GET /roots - List published roots
- POST /proofs - Build an inclusion proof
- POST /verify - Verify a value against the trusted root
"""

from fastapi import APIRouter

from merkle_commit.api.v1.endpoints import proofs, roots

router = APIRouter()
router.include_router(roots.router, prefix="/roots", tags=["Roots"])
router.include_router(proofs.router, tags=["Proofs"])
