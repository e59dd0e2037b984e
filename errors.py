from fastapi import status


class AvatarServiceError(Exception):
    """Base exception for avatar operations. Serialized as {"error": message}."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AvatarServiceError):
    """Raised when request input is missing or malformed."""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(AvatarServiceError):
    """Raised when a signature does not belong to the claimed address."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(AvatarServiceError):
    """Raised when the address does not own the token."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AvatarServiceError):
    """Raised when no avatar record exists."""
    status_code = status.HTTP_404_NOT_FOUND


class UpstreamError(AvatarServiceError):
    """Raised when the chain node or the database fails."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
