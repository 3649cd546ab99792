# usecases/cards.py — Cards inside lists: create, edit, move, reorder, archive
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from activity import diff_fields
from authorization import Capability, can_edit
from errors import BusinessRuleViolation, ForbiddenError, NotFoundError
from models import (
    ActivityAction, BoardList, BoardRole, Card, EntityType,
    check_date_order, clean_optional_text, clean_title,
)
from positions import PositionAllocator, ReorderItem
from usecases.base import UseCase, UseCaseRequest

CARD_UPDATABLE_FIELDS = (
    "title", "description", "due_date", "start_date", "cover_url", "assignee_id",
)


class CreateCardRequest(UseCaseRequest):
    list_id: str
    title: str
    description: Optional[str] = None
    assignee_id: Optional[str] = None
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    cover_url: Optional[str] = None


class UpdateCardRequest(UseCaseRequest):
    card_id: str
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    cover_url: Optional[str] = None
    assignee_id: Optional[str] = None


class MoveCardRequest(UseCaseRequest):
    card_id: str
    target_list_id: str
    position: Optional[Decimal] = None


class ReorderCardsRequest(UseCaseRequest):
    list_id: str
    items: List[ReorderItem]


class CardRequest(UseCaseRequest):
    card_id: str


class CardUseCase(UseCase):
    """Shared loading for use cases addressed by card id"""

    async def load_card(
        self, card_id: str, user_id: str, capability: Capability = Capability.EDIT_CARDS,
    ) -> Tuple[Card, Optional[BoardRole]]:
        card = await self.repos.cards.find_by_id(card_id)
        if not card:
            raise NotFoundError("card", card_id)
        _, role = await self.gate.authorize(card.list.board_id, user_id, capability)
        return card, role

    async def ensure_assignee(self, assignee_id: Optional[str]) -> None:
        if assignee_id and not await self.repos.users.find_by_id(assignee_id):
            raise NotFoundError("user", assignee_id)


class CreateCard(CardUseCase):
    async def handle(self, request: CreateCardRequest) -> Card:
        # List row stays locked until commit; max(position) cannot move under us
        board_list = await self.repos.lists.lock(request.list_id)
        if not board_list:
            raise NotFoundError("list", request.list_id)
        await self.gate.authorize(board_list.board_id, request.user_id, Capability.EDIT_CARDS)

        title = clean_title(request.title)
        await self.ensure_assignee(request.assignee_id)
        check_date_order(request.start_date, request.due_date)

        card = Card(
            list_id=board_list.id,
            title=title,
            description=clean_optional_text(request.description),
            position=await PositionAllocator.next_position(self.repos.cards, board_list.id),
            due_date=request.due_date,
            start_date=request.start_date,
            cover_url=request.cover_url,
            is_archived=False,
            creator_id=request.user_id,
            assignee_id=request.assignee_id,
        )
        await self.repos.cards.save(card)

        await self.recorder.record(
            ActivityAction.CREATE, EntityType.CARD, card.id, card.title,
            user_id=request.user_id, board_id=board_list.board_id, card_id=card.id,
        )
        return card


class UpdateCard(CardUseCase):
    async def handle(self, request: UpdateCardRequest) -> Card:
        card, _ = await self.load_card(request.card_id, request.user_id)

        provided = request.model_fields_set
        changes = {}
        if "title" in provided:
            changes["title"] = clean_title(request.title)
        if "description" in provided:
            changes["description"] = clean_optional_text(request.description)
        for field in ("due_date", "start_date", "cover_url", "assignee_id"):
            if field in provided:
                changes[field] = getattr(request, field)

        diff = diff_fields(card, changes, CARD_UPDATABLE_FIELDS)
        if not diff:
            return card

        if "assignee_id" in diff:
            await self.ensure_assignee(changes["assignee_id"])
        check_date_order(
            changes.get("start_date", card.start_date),
            changes.get("due_date", card.due_date),
        )

        for field in diff:
            setattr(card, field, changes[field])
        await self.repos.cards.save(card)

        action = ActivityAction.UPDATE
        if set(diff) == {"assignee_id"}:
            action = ActivityAction.ASSIGN if card.assignee_id else ActivityAction.UNASSIGN

        await self.recorder.record(
            action, EntityType.CARD, card.id, card.title,
            user_id=request.user_id, board_id=card.list.board_id, card_id=card.id, data=diff,
        )
        return card


class MoveCard(CardUseCase):
    """Move within a list or across lists of the same board"""

    async def handle(self, request: MoveCardRequest) -> Card:
        card, _ = await self.load_card(request.card_id, request.user_id)
        source: BoardList = card.list

        target = await self.repos.lists.find_by_id(request.target_list_id)
        if not target:
            raise NotFoundError("list", request.target_list_id)
        if target.board_id != source.board_id:
            raise BusinessRuleViolation("Cannot move a card between different boards", resource="card")

        # Fixed lock order keeps two opposite moves from deadlocking
        for list_id in sorted({source.id, target.id}):
            await self.repos.lists.lock(list_id)

        from_position = card.position
        to_position = await PositionAllocator.move_between_scopes(
            self.repos.cards, card, source.id, target.id, request.position,
        )

        await self.recorder.record(
            ActivityAction.MOVE, EntityType.CARD, card.id, card.title,
            user_id=request.user_id, board_id=source.board_id, card_id=card.id,
            data={
                "fromListId": source.id,
                "toListId": target.id,
                "fromPosition": from_position,
                "toPosition": to_position,
            },
        )
        return card


class ReorderCards(UseCase):
    async def handle(self, request: ReorderCardsRequest) -> List[Card]:
        board_list = await self.repos.lists.lock(request.list_id)
        if not board_list:
            raise NotFoundError("list", request.list_id)
        await self.gate.authorize(board_list.board_id, request.user_id, Capability.EDIT_CARDS)

        applied = await PositionAllocator.apply_reorder(self.repos.cards, board_list.id, request.items)

        await self.recorder.record(
            ActivityAction.MOVE, EntityType.LIST, board_list.id, board_list.title,
            user_id=request.user_id, board_id=board_list.board_id,
            data={"cardCount": len(applied)},
        )
        return await self.repos.cards.find_by_list(board_list.id, include_archived=True)


class ArchiveCard(CardUseCase):
    async def handle(self, request: CardRequest) -> Card:
        card, _ = await self.load_card(request.card_id, request.user_id)
        card.archive()
        await self.repos.cards.save(card)

        await self.recorder.record(
            ActivityAction.ARCHIVE, EntityType.CARD, card.id, card.title,
            user_id=request.user_id, board_id=card.list.board_id, card_id=card.id,
        )
        return card


class UnarchiveCard(CardUseCase):
    async def handle(self, request: CardRequest) -> Card:
        card, _ = await self.load_card(request.card_id, request.user_id)
        card.unarchive()
        await self.repos.cards.save(card)

        await self.recorder.record(
            ActivityAction.UNARCHIVE, EntityType.CARD, card.id, card.title,
            user_id=request.user_id, board_id=card.list.board_id, card_id=card.id,
        )
        return card


class DeleteCard(CardUseCase):
    """Owners and admins delete any card; members only the cards they created"""

    async def handle(self, request: CardRequest) -> None:
        card, role = await self.load_card(request.card_id, request.user_id)
        if not can_edit(role) and not card.is_created_by(request.user_id):
            raise ForbiddenError("Members can only delete cards they created", resource="card")

        card_id, title, board_id = card.id, card.title, card.list.board_id
        await self.repos.cards.delete(card)

        await self.recorder.record(
            ActivityAction.DELETE, EntityType.CARD, card_id, title,
            user_id=request.user_id, board_id=board_id,
        )
