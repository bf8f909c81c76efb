"""
Merkle Commitment API - Proof Endpoints

- POST /proofs: Build an inclusion proof for one leaf
- POST /verify: Verify a value and proof against the trusted root

/verify is the integrity check for untrusted callers. It accepts only a
value and a proof; the root always comes from the root store.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from merkle_commit.api.v1.dependencies import (
    decode_leaves,
    decode_values,
    get_commitment_service,
)
from merkle_commit.core.logging import shorten_hex
from merkle_commit.crypto.errors import MerkleError
from merkle_commit.crypto.hashing import HashCombinator
from merkle_commit.services.commitment_service import CommitmentService
from merkle_commit.services.root_store import RootNotPublishedError, RootStoreError

logger = structlog.get_logger(__name__)
router = APIRouter()


class ProofRequest(BaseModel):
    """Request to build an inclusion proof."""

    leaves: list[str] = Field(
        ...,
        description="Ordered leaf values, hex encoded",
    )
    index: int = Field(
        ...,
        description="Index of the leaf to prove",
    )


class ProofResponse(BaseModel):
    """Inclusion proof for one leaf."""

    value: str
    leaf_index: int
    proof: list[str]
    root: str
    tree_size: int
    algorithm: str


class VerifyRequest(BaseModel):
    """Request to verify a value against the trusted root."""

    value: str = Field(
        ...,
        description="Claimed leaf value, hex encoded",
    )
    proof: list[str] = Field(
        default_factory=list,
        description="Sibling values in leaf-to-root order, hex encoded",
    )


class VerifyResponse(BaseModel):
    """Verification result."""

    verified: bool
    value: str
    root: str
    root_version: int
    message: str


@router.post(
    "/proofs",
    response_model=ProofResponse,
    summary="Build inclusion proof",
    responses={
        400: {"description": "Empty leaves, malformed value or index out of range"},
    },
)
async def build_proof(
    request: ProofRequest,
    service: CommitmentService = Depends(get_commitment_service),
) -> ProofResponse:
    """Build the sibling list proving leaves[index]."""
    leaves = decode_leaves(service, request.leaves)

    try:
        proof = service.build_proof(leaves, request.index)
    except MerkleError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    data = proof.to_dict()
    return ProofResponse(
        value=data["value"],
        leaf_index=proof.leaf_index,
        proof=data["siblings"],
        root=data["root"],
        tree_size=proof.tree_size,
        algorithm=proof.algorithm,
    )


@router.post(
    "/verify",
    response_model=VerifyResponse,
    summary="Verify inclusion proof",
    description="Verify that a value is committed to by the trusted root.",
    responses={
        200: {"description": "Verification result"},
        400: {"description": "Malformed value or proof"},
        409: {"description": "No trusted root has been published"},
    },
)
async def verify_inclusion(
    request: VerifyRequest,
    service: CommitmentService = Depends(get_commitment_service),
) -> VerifyResponse:
    """
    Verify inclusion of a value in the trusted commitment.

    A False result means the data must be rejected; it is not an error.
    """
    logger.info(
        "Verifying inclusion",
        value=shorten_hex(request.value),
        proof_length=len(request.proof),
    )

    try:
        record = await service.get_current_root()
        # One read: decoding, the check and the response all use this record
        combinator = HashCombinator(record.algorithm)
        value = decode_values(combinator, [request.value], "value")[0]
        proof = decode_values(combinator, request.proof, "proof")

        verified = await service.verify(value, proof, record=record)
    except RootNotPublishedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except RootStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to read trusted root: {e}",
        )
    except MerkleError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return VerifyResponse(
        verified=verified,
        value=combinator.to_hex(value),
        root=record.root_hex,
        root_version=record.version,
        message="Verification successful" if verified else "Merkle proof verification failed",
    )
