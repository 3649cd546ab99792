# usecases/base.py — Transaction boundary shared by every use case
# load → authorize → rules → mutate → persist → one activity → commit

import logging

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from activity import ActivityRecorder
from authorization import AuthorizationGate
from errors import ConflictError
from repositories import Repositories

logger = logging.getLogger("kanban.usecases")


class UseCaseRequest(BaseModel):
    """Every request carries the already-authenticated caller"""
    user_id: str


class UseCase:
    """One business operation, run as one transaction.

    Subclasses implement ``handle``. ``execute`` commits on success and rolls
    back on any error, so a failed call leaves no writes and no activity.
    The session must not have a transaction started by anyone but us.
    """

    read_only = False

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repos = Repositories(session)
        self.gate = AuthorizationGate(self.repos.boards)
        self.recorder = ActivityRecorder(self.repos.activities)

    async def execute(self, request: UseCaseRequest):
        # Fresh recorder per call: one activity per invocation
        self.recorder = ActivityRecorder(self.repos.activities)
        name = type(self).__name__
        try:
            result = await self.handle(request)
            if not self.read_only:
                await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.info(f"{name} rejected by a constraint for user {request.user_id}: {e.orig}")
            raise ConflictError(
                "Concurrent change detected; reload and retry", resource=name,
            ) from e
        except Exception:
            await self.session.rollback()
            raise
        return result

    async def handle(self, request: UseCaseRequest):
        raise NotImplementedError
