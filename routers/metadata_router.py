from fastapi import Depends, APIRouter
from sqlalchemy.orm import Session

from database import get_db
from schemas import ErrorResponse, TokenMetadataResponse
from services.avatar_service import AvatarService

router = APIRouter()


@router.get(
    "/{token_id}",
    response_model=TokenMetadataResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def get_token_metadata(token_id: str, db: Session = Depends(get_db)):
    return AvatarService.render_metadata(token_id, db)
