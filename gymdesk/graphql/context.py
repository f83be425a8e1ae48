from dataclasses import dataclass
from typing import Optional

from strawberry.fastapi import BaseContext
from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.auth.jwt import Identity, bearer_token, identity_from_token
from gymdesk.crud.usersCrud import UserData, get_user_by_external_id
from gymdesk.db.postgresql import get_db


@dataclass
class Context(BaseContext):
    db: AsyncSession
    request: Request
    response: Response
    identity: Optional[Identity] = None
    user: Optional[UserData] = None

    @property
    def org_id(self) -> Optional[str]:
        return self.identity.org_id if self.identity else None


async def build_context(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Context:
    identity = None
    user = None

    token = bearer_token(request.headers.get("Authorization"))
    if token:
        identity = identity_from_token(token)
        if identity and identity.org_id:
            user = await get_user_by_external_id(db, identity.org_id, identity.subject)
            if user is not None and not user.is_active:
                user = None

    return Context(db=db, request=request, response=response, identity=identity, user=user)
