# usecases/queries.py — Read side; every query requires VIEW on the board
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from authorization import Capability, board_permissions
from errors import BusinessRuleViolation, NotFoundError
from models import Activity, Board, BoardList, BoardMember, BoardRole, Card, Label
from usecases.base import UseCase, UseCaseRequest

ACTIVITY_PAGE_LIMIT = int(os.getenv("ACTIVITY_PAGE_LIMIT", "50"))


class BoardQuery(UseCaseRequest):
    board_id: str


class UserBoardsQuery(UseCaseRequest):
    include_archived: bool = False


class ListQuery(UseCaseRequest):
    list_id: str


class ListCardsQuery(UseCaseRequest):
    list_id: str
    include_archived: bool = False


class CardQuery(UseCaseRequest):
    card_id: str


class BoardActivityQuery(UseCaseRequest):
    board_id: str
    limit: Optional[int] = None


@dataclass
class BoardView:
    board: Board
    role: Optional[BoardRole]
    permissions: Dict[str, bool] = field(default_factory=dict)


@dataclass
class UserBoards:
    owned: List[Board] = field(default_factory=list)
    member: List[Board] = field(default_factory=list)


@dataclass
class CardView:
    card: Card
    labels: List[Label] = field(default_factory=list)


class Query(UseCase):
    read_only = True


class GetBoard(Query):
    async def handle(self, request: BoardQuery) -> BoardView:
        board, role = await self.gate.authorize(request.board_id, request.user_id, Capability.VIEW)
        return BoardView(board=board, role=role, permissions=board_permissions(role, board.is_public))


class GetUserBoards(Query):
    """Boards the user owns, then boards they merely belong to"""

    async def handle(self, request: UserBoardsQuery) -> UserBoards:
        user = await self.repos.users.find_by_id(request.user_id)
        if not user:
            raise NotFoundError("user", request.user_id)
        if not user.is_active:
            raise BusinessRuleViolation("User account is inactive", resource="user")

        result = UserBoards()
        for board in await self.repos.boards.find_for_user(user.id, request.include_archived):
            (result.owned if board.is_owner(user.id) else result.member).append(board)
        return result


class GetBoardMembers(Query):
    async def handle(self, request: BoardQuery) -> List[BoardMember]:
        board, _ = await self.gate.authorize(request.board_id, request.user_id, Capability.VIEW)
        return await self.repos.boards.get_members(board.id)


class GetBoardLists(Query):
    async def handle(self, request: BoardQuery) -> List[BoardList]:
        board, _ = await self.gate.authorize(request.board_id, request.user_id, Capability.VIEW)
        return await self.repos.lists.find_by_board(board.id)


class GetList(Query):
    async def handle(self, request: ListQuery) -> BoardList:
        board_list = await self.repos.lists.find_by_id(request.list_id)
        if not board_list:
            raise NotFoundError("list", request.list_id)
        await self.gate.authorize(board_list.board_id, request.user_id, Capability.VIEW)
        return board_list


class GetListCards(Query):
    async def handle(self, request: ListCardsQuery) -> List[Card]:
        board_list = await self.repos.lists.find_by_id(request.list_id)
        if not board_list:
            raise NotFoundError("list", request.list_id)
        await self.gate.authorize(board_list.board_id, request.user_id, Capability.VIEW)
        return await self.repos.cards.find_by_list(board_list.id, request.include_archived)


class GetCard(Query):
    async def handle(self, request: CardQuery) -> CardView:
        card = await self.repos.cards.find_by_id(request.card_id)
        if not card:
            raise NotFoundError("card", request.card_id)
        await self.gate.authorize(card.list.board_id, request.user_id, Capability.VIEW)
        return CardView(card=card, labels=await self.repos.labels.get_card_labels(card.id))


class GetBoardLabels(Query):
    async def handle(self, request: BoardQuery) -> List[Label]:
        board, _ = await self.gate.authorize(request.board_id, request.user_id, Capability.VIEW)
        return await self.repos.labels.find_by_board(board.id)


class GetCardLabels(Query):
    async def handle(self, request: CardQuery) -> List[Label]:
        card = await self.repos.cards.find_by_id(request.card_id)
        if not card:
            raise NotFoundError("card", request.card_id)
        await self.gate.authorize(card.list.board_id, request.user_id, Capability.VIEW)
        return await self.repos.labels.get_card_labels(card.id)


class GetBoardActivity(Query):
    """Newest first"""

    async def handle(self, request: BoardActivityQuery) -> List[Activity]:
        board, _ = await self.gate.authorize(request.board_id, request.user_id, Capability.VIEW)
        limit = min(request.limit or ACTIVITY_PAGE_LIMIT, ACTIVITY_PAGE_LIMIT)
        return await self.repos.activities.find_by_board(board.id, limit=limit)
