# usecases/labels.py — Board labels and their attachment to cards
from typing import Optional, Tuple

from activity import diff_fields
from authorization import Capability
from errors import BusinessRuleViolation, ConflictError, NotFoundError
from models import (
    LABEL_NAME_MAX_LENGTH, ActivityAction, Card, EntityType, Label,
    clean_color, clean_title,
)
from usecases.base import UseCase, UseCaseRequest


class CreateLabelRequest(UseCaseRequest):
    board_id: str
    name: str
    color: str


class UpdateLabelRequest(UseCaseRequest):
    label_id: str
    name: Optional[str] = None
    color: Optional[str] = None


class LabelRequest(UseCaseRequest):
    label_id: str


class CardLabelRequest(UseCaseRequest):
    card_id: str
    label_id: str


def clean_label_name(value: str) -> str:
    return clean_title(value, field="name", max_length=LABEL_NAME_MAX_LENGTH)


def label_snapshot(label: Label) -> dict:
    return {"labelId": label.id, "labelName": label.name, "labelColor": label.color}


class CreateLabel(UseCase):
    async def handle(self, request: CreateLabelRequest) -> Label:
        board, _ = await self.gate.authorize(request.board_id, request.user_id, Capability.MANAGE_LABELS)

        label = Label(
            board_id=board.id,
            name=clean_label_name(request.name),
            color=clean_color(request.color),
        )
        await self.repos.labels.save(label)

        await self.recorder.record(
            ActivityAction.CREATE, EntityType.LABEL, label.id, label.name,
            user_id=request.user_id, board_id=board.id,
            data={"labelName": label.name, "labelColor": label.color},
        )
        return label


class UpdateLabel(UseCase):
    async def handle(self, request: UpdateLabelRequest) -> Label:
        label = await self.repos.labels.find_by_id(request.label_id)
        if not label:
            raise NotFoundError("label", request.label_id)
        await self.gate.authorize(label.board_id, request.user_id, Capability.MANAGE_LABELS)

        changes = {}
        if request.name is not None:
            changes["name"] = clean_label_name(request.name)
        if request.color is not None:
            changes["color"] = clean_color(request.color)

        diff = diff_fields(label, changes, ("name", "color"))
        if not diff:
            return label

        for field in diff:
            setattr(label, field, changes[field])
        await self.repos.labels.save(label)

        await self.recorder.record(
            ActivityAction.UPDATE, EntityType.LABEL, label.id, label.name,
            user_id=request.user_id, board_id=label.board_id, data=diff,
        )
        return label


class DeleteLabel(UseCase):
    """Attachments go with the label (card_labels cascade)"""

    async def handle(self, request: LabelRequest) -> None:
        label = await self.repos.labels.find_by_id(request.label_id)
        if not label:
            raise NotFoundError("label", request.label_id)
        await self.gate.authorize(label.board_id, request.user_id, Capability.MANAGE_LABELS)

        await self.recorder.record(
            ActivityAction.DELETE, EntityType.LABEL, label.id, label.name,
            user_id=request.user_id, board_id=label.board_id,
            data={"labelName": label.name, "labelColor": label.color},
        )
        await self.repos.labels.delete(label)


class CardLabelUseCase(UseCase):
    async def load(self, request: CardLabelRequest) -> Tuple[Card, Label, str]:
        card = await self.repos.cards.find_by_id(request.card_id)
        if not card:
            raise NotFoundError("card", request.card_id)
        label = await self.repos.labels.find_by_id(request.label_id)
        if not label:
            raise NotFoundError("label", request.label_id)

        board_id = card.list.board_id
        await self.gate.authorize(board_id, request.user_id, Capability.MANAGE_LABELS)
        return card, label, board_id


class AddLabelToCard(CardLabelUseCase):
    async def handle(self, request: CardLabelRequest) -> Label:
        card, label, board_id = await self.load(request)
        if not label.belongs_to_board(board_id):
            raise BusinessRuleViolation(
                "Label does not belong to the same board as the card", resource="label",
            )
        if await self.repos.labels.is_attached_to_card(card.id, label.id):
            raise ConflictError("Label is already attached to this card", resource="label")

        await self.repos.labels.add_to_card(card.id, label.id)

        await self.recorder.record(
            ActivityAction.ADD_LABEL, EntityType.CARD, card.id, card.title,
            user_id=request.user_id, board_id=board_id, card_id=card.id,
            data=label_snapshot(label),
        )
        return label


class RemoveLabelFromCard(CardLabelUseCase):
    async def handle(self, request: CardLabelRequest) -> None:
        card, label, board_id = await self.load(request)
        if not await self.repos.labels.is_attached_to_card(card.id, label.id):
            raise NotFoundError("label attachment", label.id)

        await self.repos.labels.remove_from_card(card.id, label.id)

        await self.recorder.record(
            ActivityAction.REMOVE_LABEL, EntityType.CARD, card.id, card.title,
            user_id=request.user_id, board_id=board_id, card_id=card.id,
            data=label_snapshot(label),
        )
