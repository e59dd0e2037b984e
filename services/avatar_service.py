import logging
import os
from typing import Dict, Any, Optional

from sqlalchemy.orm import Session

from errors import AuthenticationError, AuthorizationError, NotFoundError
from handlers.avatar_handlers import get_avatar_record, upsert_avatar_record
from handlers.nft_handlers import ChainReader
from schemas import AvatarUpdateRequest
from validators import parse_token_id, validate_image_url, validate_required_fields

logger = logging.getLogger(__name__)

DEFAULT_METADATA_NAME_PREFIX = "Portal Avatar"
DEFAULT_METADATA_DESCRIPTION = "Dynamic NFT avatar for Portal app."


class AvatarService:
    """
    Custom avatar images for NFT holders.

    Checks in update_avatar run cheapest first: request shape, then signature
    (one chain read), then ownership (a second chain read), then the URL.
    The store is written only once everything has passed.
    """

    @staticmethod
    def update_avatar(request: AvatarUpdateRequest, chain: ChainReader, db: Session) -> Dict[str, Any]:
        validate_required_fields(request)
        token_id = parse_token_id(request.token_id)

        if not chain.verify_message(request.address, request.message, request.signature):
            logger.info(f"Rejected avatar update for token {token_id}: invalid signature from {request.address}")
            raise AuthenticationError("Invalid signature")

        owner = chain.owner_of(token_id)
        if owner is None or owner.lower() != request.address.lower():
            logger.info(f"Rejected avatar update for token {token_id}: {request.address} is not the owner ({owner})")
            raise AuthorizationError("Address does not own this token")

        validate_image_url(request.image_url)

        record = upsert_avatar_record(db, token_id, request.image_url)
        logger.info(f"Token {record.token_id} avatar set to {record.image_url} by {request.address}")

        return {"success": True}

    @staticmethod
    def get_avatar(token_id_param: Optional[str], db: Session) -> Dict[str, Any]:
        token_id = parse_token_id(token_id_param)

        record = get_avatar_record(db, token_id)
        # No record means no custom image has been set
        return {"imageUrl": record.image_url if record else None}

    @staticmethod
    def render_metadata(token_id_param: str, db: Session) -> Dict[str, Any]:
        token_id = parse_token_id(token_id_param)

        record = get_avatar_record(db, token_id)
        if not record:
            raise NotFoundError("Avatar not found")

        name_prefix = os.getenv("METADATA_NAME_PREFIX", DEFAULT_METADATA_NAME_PREFIX)
        return {
            "name": f"{name_prefix} #{token_id}",
            "description": os.getenv("METADATA_DESCRIPTION", DEFAULT_METADATA_DESCRIPTION),
            "image": record.image_url,
        }
