from gymdesk.client.api import GymDeskClient
from gymdesk.client.cache import QueryCache, make_key
from gymdesk.client.errors import (
    ApiError,
    AuthenticationRequired,
    ClientError,
    ClientValidationError,
    OrganizationRequired,
    TransportError,
)
from gymdesk.client.http import ApiResponse, AuthContext, HttpClient
from gymdesk.client.wizard import SubscriptionWizard

__all__ = [
    "ApiError",
    "ApiResponse",
    "AuthContext",
    "AuthenticationRequired",
    "ClientError",
    "ClientValidationError",
    "GymDeskClient",
    "HttpClient",
    "OrganizationRequired",
    "QueryCache",
    "SubscriptionWizard",
    "TransportError",
    "make_key",
]
