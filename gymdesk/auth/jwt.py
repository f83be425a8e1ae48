from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from gymdesk.core.config import IDP_JWT_ALGORITHM, IDP_JWT_AUDIENCE, IDP_JWT_SECRET
from gymdesk.core.logging_config import get_logger

logger = get_logger("auth.jwt")

IDENTITY_TOKEN_EXPIRE_MINUTES = 60


@dataclass
class Identity:
    """Claims the identity provider puts in its bearer tokens."""
    subject: str
    org_id: Optional[str]
    org_role: Optional[str]
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


def create_identity_token(
    subject: str,
    org_id: Optional[str] = None,
    org_role: Optional[str] = None,
    expires_delta: timedelta = None,
    **extra,
) -> str:
    """Mint a token shaped like the identity provider's; used by tests and local tooling."""
    to_encode = {"sub": subject, **extra}
    if org_id:
        to_encode["org_id"] = org_id
    if org_role:
        to_encode["org_role"] = org_role
    if IDP_JWT_AUDIENCE:
        to_encode["aud"] = IDP_JWT_AUDIENCE
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=IDENTITY_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, IDP_JWT_SECRET, algorithm=IDP_JWT_ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(
            token,
            IDP_JWT_SECRET,
            algorithms=[IDP_JWT_ALGORITHM],
            audience=IDP_JWT_AUDIENCE,
            options={"verify_aud": IDP_JWT_AUDIENCE is not None},
        )
    except JWTError as e:
        logger.warning(f"Error verifying identity token: {e}")
        return None


def identity_from_token(token: str) -> Optional[Identity]:
    payload = verify_token(token)
    if not payload or not payload.get("sub"):
        return None
    return Identity(
        subject=str(payload["sub"]),
        org_id=payload.get("org_id"),
        org_role=payload.get("org_role"),
        email=payload.get("email"),
        first_name=payload.get("first_name"),
        last_name=payload.get("last_name"),
    )


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer ...`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
