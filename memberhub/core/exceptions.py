"""Custom exception classes for MemberHub."""

from fastapi import status


class MemberHubError(Exception):
    """Base exception for MemberHub."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(MemberHubError):
    """Raised when the acting user cannot be resolved."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(MemberHubError):
    """Raised when a hierarchy or permission check fails."""
    status_code = status.HTTP_403_FORBIDDEN


class ResourceNotFoundError(MemberHubError):
    """Raised when a requested user or role does not exist."""
    status_code = status.HTTP_404_NOT_FOUND


class ResourceConflictError(MemberHubError):
    """Raised when a role is still in use or a concurrent write won."""
    status_code = status.HTTP_409_CONFLICT


class ValidationError(MemberHubError):
    """Raised when input validation fails."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
