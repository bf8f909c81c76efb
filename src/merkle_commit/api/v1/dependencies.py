"""
Merkle Commitment API - Shared Dependencies
"""

from fastapi import HTTPException, Request, status

from merkle_commit.crypto.errors import InvalidInputError
from merkle_commit.crypto.hashing import HashCombinator
from merkle_commit.services.commitment_service import CommitmentService


def get_commitment_service(request: Request) -> CommitmentService:
    """Resolve the commitment service stored on the application."""
    service = getattr(request.app.state, "commitment_service", None)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Commitment service not initialized",
        )
    return service


def decode_values(
    combinator: HashCombinator,
    encoded: list[str],
    name: str,
) -> list[int]:
    """
    Decode hex values at the combinator's width.

    Raises:
        HTTPException: 400 naming the first malformed entry
    """
    values = []
    for position, item in enumerate(encoded):
        try:
            values.append(combinator.from_hex(item))
        except InvalidInputError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{name}[{position}]: {e}",
            ) from e
    return values


def decode_leaves(service: CommitmentService, encoded: list[str]) -> list[int]:
    """
    Bound-check then decode a submitted leaf list.

    The leaf count is checked before any hex is parsed, so oversized
    requests are refused without decoding work.

    Raises:
        HTTPException: 400 if there are too many leaves or one is malformed
    """
    try:
        service.check_leaf_count(len(encoded))
    except InvalidInputError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    return decode_values(service.combinator, encoded, "leaves")
