import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database_utils import translate_db_errors
from models import AvatarRecord

logger = logging.getLogger(__name__)


@translate_db_errors
def get_avatar_record(db: Session, token_id: int) -> Optional[AvatarRecord]:
    return AvatarRecord.find_one(db, token_id=token_id)


@translate_db_errors
def upsert_avatar_record(db: Session, token_id: int, image_url: str) -> AvatarRecord:
    """
    Insert the record for token_id or overwrite its image_url.

    Concurrent writers are last-write-wins: losing the insert race on the
    unique token_id falls back to updating the winner's row.
    """
    existing = AvatarRecord.find_one(db, token_id=token_id)
    if existing:
        return existing.update(db, image_url=image_url)

    try:
        return AvatarRecord(token_id=token_id, image_url=image_url).save(db)
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Avatar for token {token_id} was inserted concurrently, updating instead: {e}")
        existing = AvatarRecord.find_one(db, token_id=token_id)
        return existing.update(db, image_url=image_url)
