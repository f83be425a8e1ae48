"""Errors raised by the GymDesk API client."""
from typing import Dict, Optional


class ClientError(Exception):
    pass


class ClientValidationError(ClientError):
    """Input rejected before any request is sent; ``errors`` maps field -> message."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in errors.items()))


class ApiError(ClientError):
    """Non-success response; ``message`` is the server's message verbatim."""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code


class AuthenticationRequired(ApiError):
    def __init__(self, message: str = "Authentication required", redirect_to: str = "/admin"):
        super().__init__(401, message, "unauthorized")
        self.redirect_to = redirect_to


class OrganizationRequired(ApiError):
    def __init__(self, message: str = "Organization context required"):
        super().__init__(403, message, "forbidden")


class TransportError(ClientError):
    """The server could not be reached, even after retrying."""
