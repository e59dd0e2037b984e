# services/__init__.py
"""
Services package for the Portal avatar API

This package contains business logic services for:
- Authorizing and storing custom avatar images
- Looking up the current avatar of a token
- Rendering public NFT metadata
"""

from .avatar_service import AvatarService

__all__ = [
    "AvatarService"
]
