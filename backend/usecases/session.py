# usecases/session.py — Token revocation on logout
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from errors import ConflictError
from usecases.base import UseCase, UseCaseRequest

logger = logging.getLogger("kanban.auth")


class LogoutRequest(UseCaseRequest):
    jti: Optional[str] = None
    expires_at: datetime


class LogoutUser(UseCase):
    """Best effort: the client drops its token whatever happens here"""

    async def execute(self, request: LogoutRequest) -> bool:
        try:
            await super().execute(request)
        except (SQLAlchemyError, ConflictError) as e:
            logger.warning(f"Token revocation failed for user {request.user_id}: {e}")
        return True

    async def handle(self, request: LogoutRequest) -> None:
        if not request.jti:
            logger.warning(f"Logout without a token id for user {request.user_id}; nothing to revoke")
            return
        if await self.repos.tokens.is_revoked(request.jti):
            return
        await self.repos.tokens.revoke(request.jti, request.user_id, request.expires_at)
        logger.info(f"Token revoked for user {request.user_id}")
