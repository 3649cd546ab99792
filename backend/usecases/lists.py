# usecases/lists.py — Lists inside a board
from typing import List, Optional

from activity import diff_fields
from authorization import Capability
from errors import NotFoundError
from models import ActivityAction, BoardList, EntityType, clean_color, clean_title
from positions import PositionAllocator, ReorderItem
from usecases.base import UseCase, UseCaseRequest


class CreateListRequest(UseCaseRequest):
    board_id: str
    title: str
    color: Optional[str] = None


class UpdateListRequest(UseCaseRequest):
    list_id: str
    title: Optional[str] = None
    color: Optional[str] = None


class ReorderListsRequest(UseCaseRequest):
    board_id: str
    items: List[ReorderItem]


class ListRequest(UseCaseRequest):
    list_id: str


class CreateList(UseCase):
    async def handle(self, request: CreateListRequest) -> BoardList:
        # Board row stays locked until commit; max(position) cannot move under us
        board, _ = await self.gate.authorize(
            request.board_id, request.user_id, Capability.MANAGE_LISTS, lock=True,
        )
        board_list = BoardList(
            board_id=board.id,
            title=clean_title(request.title),
            color=clean_color(request.color) if request.color else None,
            position=await PositionAllocator.next_position(self.repos.lists, board.id),
        )
        await self.repos.lists.save(board_list)

        await self.recorder.record(
            ActivityAction.CREATE, EntityType.LIST, board_list.id, board_list.title,
            user_id=request.user_id, board_id=board.id,
        )
        return board_list


class UpdateList(UseCase):
    async def handle(self, request: UpdateListRequest) -> BoardList:
        board_list = await self.repos.lists.find_by_id(request.list_id)
        if not board_list:
            raise NotFoundError("list", request.list_id)
        await self.gate.authorize(board_list.board_id, request.user_id, Capability.MANAGE_LISTS)

        changes = {}
        if "title" in request.model_fields_set:
            changes["title"] = clean_title(request.title)
        if "color" in request.model_fields_set:
            changes["color"] = clean_color(request.color) if request.color else None

        diff = diff_fields(board_list, changes, ("title", "color"))
        if not diff:
            return board_list

        for field in diff:
            setattr(board_list, field, changes[field])
        await self.repos.lists.save(board_list)

        await self.recorder.record(
            ActivityAction.UPDATE, EntityType.LIST, board_list.id, board_list.title,
            user_id=request.user_id, board_id=board_list.board_id, data=diff,
        )
        return board_list


class ReorderLists(UseCase):
    """Bulk reorder; one MOVE activity for the whole batch"""

    async def handle(self, request: ReorderListsRequest) -> List[BoardList]:
        board, _ = await self.gate.authorize(
            request.board_id, request.user_id, Capability.MANAGE_LISTS, lock=True,
        )
        applied = await PositionAllocator.apply_reorder(self.repos.lists, board.id, request.items)

        await self.recorder.record(
            ActivityAction.MOVE, EntityType.LIST, board.id, "Lists reordered",
            user_id=request.user_id, board_id=board.id,
            data={"listCount": len(applied)},
        )
        return await self.repos.lists.find_by_board(board.id)


class DeleteList(UseCase):
    async def handle(self, request: ListRequest) -> None:
        board_list = await self.repos.lists.find_by_id(request.list_id)
        if not board_list:
            raise NotFoundError("list", request.list_id)
        board, _ = await self.gate.authorize(board_list.board_id, request.user_id, Capability.MANAGE_LISTS)

        await self.recorder.record(
            ActivityAction.DELETE, EntityType.LIST, board_list.id, board_list.title,
            user_id=request.user_id, board_id=board.id,
        )
        await self.repos.lists.delete(board_list)
