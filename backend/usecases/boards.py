# usecases/boards.py — Board lifecycle
import logging
from typing import Optional

from activity import diff_fields
from authorization import Capability
from errors import BusinessRuleViolation, NotFoundError
from models import (
    ActivityAction, Board, BoardRole, EntityType,
    clean_optional_text, clean_title,
)
from usecases.base import UseCase, UseCaseRequest

logger = logging.getLogger("kanban.usecases")

BOARD_UPDATABLE_FIELDS = ("title", "description", "background_url", "is_public")


# ============================================================
# REQUESTS
# ============================================================

class CreateBoardRequest(UseCaseRequest):
    title: str
    description: Optional[str] = None
    background_url: Optional[str] = None
    is_public: bool = False


class UpdateBoardRequest(UseCaseRequest):
    board_id: str
    title: Optional[str] = None
    description: Optional[str] = None
    background_url: Optional[str] = None
    is_public: Optional[bool] = None


class BoardRequest(UseCaseRequest):
    board_id: str


# ============================================================
# USE CASES
# ============================================================

class CreateBoard(UseCase):
    async def handle(self, request: CreateBoardRequest) -> Board:
        owner = await self.repos.users.find_by_id(request.user_id)
        if not owner:
            raise NotFoundError("user", request.user_id)
        if not owner.is_active:
            raise BusinessRuleViolation("Inactive users cannot create boards", resource="user")

        board = Board(
            title=clean_title(request.title),
            description=clean_optional_text(request.description),
            background_url=request.background_url,
            is_public=request.is_public,
            is_archived=False,
            owner_id=owner.id,
        )
        await self.repos.boards.save(board)
        await self.repos.boards.add_member(board.id, owner.id, BoardRole.OWNER)

        await self.recorder.record(
            ActivityAction.CREATE, EntityType.BOARD, board.id, board.title,
            user_id=request.user_id, board_id=board.id,
        )
        return board


class UpdateBoard(UseCase):
    async def handle(self, request: UpdateBoardRequest) -> Board:
        board, _ = await self.gate.authorize(request.board_id, request.user_id, Capability.EDIT_BOARD)

        changes = {}
        provided = request.model_fields_set
        if "title" in provided:
            changes["title"] = clean_title(request.title)
        if "description" in provided:
            changes["description"] = clean_optional_text(request.description)
        if "background_url" in provided:
            changes["background_url"] = request.background_url
        if "is_public" in provided and request.is_public is not None:
            changes["is_public"] = request.is_public

        diff = diff_fields(board, changes, BOARD_UPDATABLE_FIELDS)
        if not diff:
            return board

        for field in diff:
            setattr(board, field, changes[field])
        await self.repos.boards.save(board)

        await self.recorder.record(
            ActivityAction.UPDATE, EntityType.BOARD, board.id, board.title,
            user_id=request.user_id, board_id=board.id, data=diff,
        )
        return board


class ArchiveBoard(UseCase):
    async def handle(self, request: BoardRequest) -> Board:
        board, _ = await self.gate.authorize(request.board_id, request.user_id, Capability.ARCHIVE_BOARD)
        board.archive()
        await self.repos.boards.save(board)

        await self.recorder.record(
            ActivityAction.ARCHIVE, EntityType.BOARD, board.id, board.title,
            user_id=request.user_id, board_id=board.id,
        )
        return board


class UnarchiveBoard(UseCase):
    async def handle(self, request: BoardRequest) -> Board:
        board, _ = await self.gate.authorize(request.board_id, request.user_id, Capability.ARCHIVE_BOARD)
        board.unarchive()
        await self.repos.boards.save(board)

        await self.recorder.record(
            ActivityAction.UNARCHIVE, EntityType.BOARD, board.id, board.title,
            user_id=request.user_id, board_id=board.id,
        )
        return board


class DeleteBoard(UseCase):
    """Owner only. The board cascade removes everything below it.

    The DELETE activity is still recorded so the call honours the one entry
    per mutation rule, but it is transient: the cascade drops it with the
    rest of the board's trail in the same transaction. The log line below is
    the only record that outlives the board.
    """

    async def handle(self, request: BoardRequest) -> None:
        board, _ = await self.gate.authorize(request.board_id, request.user_id, Capability.DELETE_BOARD)

        await self.recorder.record(
            ActivityAction.DELETE, EntityType.BOARD, board.id, board.title,
            user_id=request.user_id, board_id=board.id,
        )
        logger.info(f"Deleting board {board.id} ('{board.title}') for user {request.user_id}")
        await self.repos.boards.delete(board)
