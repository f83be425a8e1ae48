"""
HTTP pipeline of the GymDesk API client.

Every request carries the bearer token for the current organization, is
retried on network errors and 5xx responses, and turns 401/403/404 answers
into the errors the dashboard reacts to. A missing local profile triggers a
single shared ``POST /users/sync`` followed by one retry of the request.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx
from jose import JWTError, jwt

from gymdesk.core.config import GYMDESK_API_URL, SIGN_IN_ROUTE
from gymdesk.core.logging_config import get_logger
from gymdesk.client.errors import (
    ApiError,
    AuthenticationRequired,
    OrganizationRequired,
    TransportError,
)

logger = get_logger("client")

DEFAULT_BASE_URL = GYMDESK_API_URL
DEFAULT_TIMEOUT = 120.0
MAX_RETRIES = 3
RETRY_DELAY = 1.0

ORGANIZATION_REQUIRED = "Organization context required"
PROFILE_NOT_FOUND = "User profile not found"
SYNC_PATH = "/users/sync"

TokenSupplier = Callable[[Optional[str]], Awaitable[Optional[str]]]


@dataclass
class AuthContext:
    """
    Who is calling: a token supplier and the active organization.

    ``token_supplier`` is awaited with the organization id before every
    request and returns the bearer token to send (or None when signed out).
    """
    token_supplier: TokenSupplier
    organization_id: Optional[str] = None

    async def token(self) -> Optional[str]:
        return await self.token_supplier(self.organization_id)


@dataclass
class ApiResponse:
    data: Any = None
    message: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    pagination: Optional[Dict[str, Any]] = None


def _subject_of(token: str) -> str:
    try:
        return str(jwt.get_unverified_claims(token).get("sub") or token)
    except JWTError:
        return token


class HttpClient:
    def __init__(
        self,
        auth: AuthContext,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.auth = auth
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self._syncs: Dict[Tuple[str, str], asyncio.Task] = {}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        token: Optional[str],
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        """Send one request, retrying network errors and 5xx with a linear backoff."""
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        attempt = 0
        while True:
            try:
                response = await self._client.request(
                    method, path, params=params, json=json, headers=headers
                )
            except httpx.TransportError as exc:
                if attempt >= self.max_retries:
                    raise TransportError(f"{method} {path} failed: {exc}") from exc
                attempt += 1
                logger.warning(f"{method} {path} network error, retry {attempt}/{self.max_retries}")
                await self._sleep(attempt * self.retry_delay)
                continue

            if response.status_code >= 500 and attempt < self.max_retries:
                attempt += 1
                logger.warning(
                    f"{method} {path} returned {response.status_code}, retry {attempt}/{self.max_retries}"
                )
                await self._sleep(attempt * self.retry_delay)
                continue
            return response

    @staticmethod
    def _message(response: httpx.Response) -> Tuple[str, Optional[str]]:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase, None
        if isinstance(body, dict):
            return str(body.get("message") or body.get("detail") or response.reason_phrase), body.get("error")
        return response.reason_phrase, None

    async def _sync_profile(self, token: Optional[str]) -> None:
        """Create the caller's profile once; concurrent callers await the same sync."""
        org_id = self.auth.organization_id
        if not org_id:
            raise OrganizationRequired()
        key = (org_id, _subject_of(token or ""))
        task = self._syncs.get(key)
        if task is None:
            task = asyncio.ensure_future(self._send("POST", SYNC_PATH, token))
            self._syncs[key] = task
        try:
            response = await asyncio.shield(task)
        finally:
            if task.done():
                self._syncs.pop(key, None)
        if response.status_code >= 400:
            message, code = self._message(response)
            raise ApiError(response.status_code, message, code)
        logger.info(f"Synced user profile for organization {org_id}")

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> ApiResponse:
        token = await self.auth.token()
        response = await self._send(method, path, token, params=params, json=json)

        if response.status_code == 404 and path != SYNC_PATH:
            message, _ = self._message(response)
            if message == PROFILE_NOT_FOUND:
                await self._sync_profile(token)
                response = await self._send(method, path, token, params=params, json=json)

        return self._unwrap(response)

    def _unwrap(self, response: httpx.Response) -> ApiResponse:
        status_code = response.status_code
        if status_code >= 400:
            message, code = self._message(response)
            if status_code == 401:
                raise AuthenticationRequired(message, redirect_to=SIGN_IN_ROUTE)
            if status_code == 403 and ORGANIZATION_REQUIRED in message:
                raise OrganizationRequired(message)
            raise ApiError(status_code, message, code)

        body = response.json() if response.content else {}
        return ApiResponse(
            data=body.get("data"),
            message=body.get("message"),
            warnings=body.get("warnings") or [],
            pagination=body.get("pagination"),
        )

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> ApiResponse:
        return await self.request("POST", path, json=json)

    async def patch(self, path: str, json: Any = None) -> ApiResponse:
        return await self.request("PATCH", path, json=json)

    async def put(self, path: str, json: Any = None) -> ApiResponse:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> ApiResponse:
        return await self.request("DELETE", path)
