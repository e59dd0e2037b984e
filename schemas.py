# schemas.py - request and response bodies of the avatar API

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt


# Base Pydantic schemas (NOT SQLAlchemy Base!)
class Base(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# Avatar schemas
class AvatarUpdateRequest(Base):
    """
    Body of POST /api/avatar.

    Every field is optional here so that missing values are reported by the
    update flow as a 400 rather than rejected by the schema.
    """
    address: Optional[str] = None
    # Wallet address claiming the token
    token_id: Optional[Union[StrictInt, str]] = Field(default=None, alias="tokenId")
    # Token ID, as a JSON integer or a decimal string; booleans are rejected
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    # New image URL for the token
    message: Optional[str] = None
    # Plain text message that was signed
    signature: Optional[str] = None
    # Hex encoded signature over message


class AvatarUpdateResponse(Base):
    success: bool


class AvatarLookupResponse(Base):
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    # None when no custom image is set


# Metadata schemas
class TokenMetadataResponse(Base):
    """Public NFT metadata document"""
    name: str
    description: str
    image: str


class ErrorResponse(Base):
    error: str


class HealthResponse(Base):
    status: str
    version: str
