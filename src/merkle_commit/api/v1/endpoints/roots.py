"""
Merkle Commitment API - Root Endpoints

- POST /roots: Compute and publish a new trusted root
- GET /roots/current: Get the trusted root
- GET /roots: List published roots with pagination
"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from merkle_commit.api.v1.dependencies import decode_leaves, get_commitment_service
from merkle_commit.crypto.errors import MerkleError
from merkle_commit.services.commitment_service import CommitmentService
from merkle_commit.services.root_store import (
    RootNotPublishedError,
    RootRecord,
    RootStoreError,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


# Request/Response Models
class PublishRootRequest(BaseModel):
    """Request to publish a root over a finalized leaf sequence."""

    leaves: list[str] = Field(
        ...,
        description="Ordered leaf values, hex encoded",
    )


class RootResponse(BaseModel):
    """Published root details."""

    root: str
    algorithm: str
    leaf_count: int
    version: int
    created_at: datetime


class RootListResponse(BaseModel):
    """Paginated root history response."""

    items: list[RootResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


def _record_to_response(record: RootRecord) -> RootResponse:
    """Convert RootRecord to RootResponse."""
    return RootResponse(
        root=record.root_hex,
        algorithm=record.algorithm,
        leaf_count=record.leaf_count,
        version=record.version,
        created_at=record.created_at,
    )


# Endpoints
@router.post(
    "",
    response_model=RootResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish root",
    description="Compute the Merkle root over the leaves and publish it as the trusted root.",
    responses={
        201: {"description": "Root published"},
        400: {"description": "Empty or malformed leaves"},
        401: {"description": "Missing or invalid API key"},
        503: {"description": "Root store unavailable"},
    },
)
async def publish_root(
    request: PublishRootRequest,
    service: CommitmentService = Depends(get_commitment_service),
) -> RootResponse:
    """
    Publish a new trusted root.

    Replaces the current root; proofs built against earlier leaf
    sequences stop verifying.
    """
    leaves = decode_leaves(service, request.leaves)

    logger.info("Root publication requested", leaf_count=len(leaves))

    try:
        record = await service.publish_root(leaves)
    except MerkleError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except RootStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to publish root: {e}",
        )

    return _record_to_response(record)


@router.get(
    "/current",
    response_model=RootResponse,
    summary="Get trusted root",
    responses={
        404: {"description": "No root has been published"},
    },
)
async def get_current_root(
    service: CommitmentService = Depends(get_commitment_service),
) -> RootResponse:
    """Get the currently trusted root."""
    try:
        record = await service.get_current_root()
    except RootNotPublishedError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except RootStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to read root: {e}",
        )

    return _record_to_response(record)


@router.get(
    "",
    response_model=RootListResponse,
    summary="List roots",
    description="List published roots, newest first.",
)
async def list_roots(
    limit: int = Query(
        default=50,
        ge=1,
        le=500,
        description="Maximum number of roots to return",
    ),
    offset: int = Query(
        default=0,
        ge=0,
        description="Number of roots to skip",
    ),
    service: CommitmentService = Depends(get_commitment_service),
) -> RootListResponse:
    """List published roots with pagination."""
    try:
        records, total = await service.get_history(limit=limit, offset=offset)
    except RootStoreError as e:
        logger.error("Failed to list roots", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to list roots: {e}",
        )

    return RootListResponse(
        items=[_record_to_response(r) for r in records],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(records) < total,
    )
