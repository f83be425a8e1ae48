"""
Request dependencies: identity, organization, profile and role guards
"""
from dataclasses import dataclass

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.auth.jwt import Identity, bearer_token, identity_from_token
from gymdesk.core.errors import AuthError, NotFoundError, PermissionDeniedError
from gymdesk.core.logging_config import log_auth_event
from gymdesk.crud.usersCrud import UserData, get_user_by_external_id
from gymdesk.db.postgresql import get_db

ORGANIZATION_REQUIRED = "Organization context required"
PROFILE_NOT_FOUND = "User profile not found"


@dataclass
class CurrentUser:
    identity: Identity
    profile: UserData

    @property
    def org_id(self) -> str:
        return self.identity.org_id

    @property
    def id(self) -> int:
        return self.profile.id

    @property
    def role(self) -> str:
        return self.profile.role


async def get_identity(authorization: str = Header(default=None)) -> Identity:
    """Verified token claims; 401 when the token is missing or invalid."""
    token = bearer_token(authorization)
    if not token:
        raise AuthError("Authentication required")
    identity = identity_from_token(token)
    if identity is None:
        log_auth_event("token_rejected", success=False)
        raise AuthError("Invalid or expired token")
    return identity


async def get_org_identity(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.org_id:
        log_auth_event("missing_organization", identity.subject, success=False)
        raise PermissionDeniedError(ORGANIZATION_REQUIRED)
    return identity


async def get_current_user(
    identity: Identity = Depends(get_org_identity),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    profile = await get_user_by_external_id(db, identity.org_id, identity.subject)
    if profile is None:
        raise NotFoundError(PROFILE_NOT_FOUND)
    if not profile.is_active:
        raise PermissionDeniedError("User profile is inactive")
    return CurrentUser(identity=identity, profile=profile)


def require_roles(*roles: str):
    async def _guard(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            log_auth_event("role_denied", user.identity.subject, user.org_id, success=False)
            raise PermissionDeniedError(
                f"This action requires one of the roles: {', '.join(roles)}"
            )
        return user
    return _guard


require_admin = require_roles("admin")
require_staff = require_roles("admin", "trainer")
