from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from handlers.nft_handlers import ChainReader, get_chain_reader
from schemas import AvatarLookupResponse, AvatarUpdateRequest, AvatarUpdateResponse, ErrorResponse
from services.avatar_service import AvatarService

router = APIRouter()


@router.get(
    "",
    response_model=AvatarLookupResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def get_avatar(
        token_id: Optional[str] = Query(default=None, alias="tokenId"),
        db: Session = Depends(get_db)
):
    """
    Get the custom image URL of a token.
    PUBLIC ENDPOINT - No authentication required.

    Returns imageUrl null when the holder never set one.
    """
    return AvatarService.get_avatar(token_id, db)


@router.post(
    "",
    response_model=AvatarUpdateResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def update_avatar(
        request: AvatarUpdateRequest,
        chain: ChainReader = Depends(get_chain_reader),
        db: Session = Depends(get_db)
):
    """
    Set the custom image URL of a token.

    The caller proves control of address by signing message with it, and
    address must be the current on-chain owner of tokenId.
    """
    return AvatarService.update_avatar(request, chain, db)
