import re
from typing import Optional, Union

from errors import ValidationError
from schemas import AvatarUpdateRequest

IMAGE_URL_PATTERN = re.compile(r"^https?://\S+\.(png|jpg|jpeg|gif|webp)$", re.IGNORECASE)

# token_id is stored in a BIGINT column
MAX_TOKEN_ID = 2 ** 63 - 1

REQUIRED_UPDATE_FIELDS = ("address", "token_id", "image_url", "message", "signature")


def parse_token_id(value: Optional[Union[int, str]]) -> int:
    """
    Convert a tokenId from a query string, path or JSON body to an int.

    Raises:
        ValidationError: If the value is missing, not a base-10 integer, or not
            in 1..MAX_TOKEN_ID
    """
    if value is None or value == "":
        raise ValidationError("Missing tokenId")

    if isinstance(value, bool):
        raise ValidationError("Invalid tokenId")

    if isinstance(value, int):
        token_id = value
    else:
        text = str(value).strip()
        if not text.isascii() or not text.isdigit():
            raise ValidationError("Invalid tokenId")
        token_id = int(text, 10)

    if token_id <= 0 or token_id > MAX_TOKEN_ID:
        raise ValidationError("Invalid tokenId")

    return token_id


def validate_required_fields(request: AvatarUpdateRequest) -> None:
    """
    Validate that every field of an update request is present and truthy.

    Raises:
        ValidationError: If any field is missing or empty
    """
    for field in REQUIRED_UPDATE_FIELDS:
        if not getattr(request, field):
            raise ValidationError("Missing fields")


def is_valid_image_url(image_url: str) -> bool:
    return bool(IMAGE_URL_PATTERN.fullmatch(image_url or ""))


def validate_image_url(image_url: str) -> None:
    if not is_valid_image_url(image_url):
        raise ValidationError("Invalid image URL")
