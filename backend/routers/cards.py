# routers/cards.py — Card edits, moves, archiving and label attachment
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from routers.schemas import (
    CardUpdate, CardMove, CardOut, CardDetailOut, LabelOut, card_out, label_out,
)
from usecases.cards import (
    UpdateCard, MoveCard, ArchiveCard, UnarchiveCard, DeleteCard,
    UpdateCardRequest, MoveCardRequest, CardRequest,
)
from usecases.labels import AddLabelToCard, RemoveLabelFromCard, CardLabelRequest
from usecases.queries import GetCard, GetCardLabels, CardQuery

router = APIRouter(prefix="/api/v1/cards", tags=["Cards"])


@router.get("/{card_id}", response_model=CardDetailOut)
async def get_card(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Card with its labels"""
    view = await GetCard(db).execute(CardQuery(user_id=user.id, card_id=card_id))
    return CardDetailOut(
        **card_out(view.card).model_dump(),
        labels=[label_out(l) for l in view.labels],
    )


@router.patch("/{card_id}", response_model=CardOut)
async def update_card(
    card_id: str,
    data: CardUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card = await UpdateCard(db).execute(UpdateCardRequest(
        user_id=user.id, card_id=card_id, **data.model_dump(exclude_unset=True),
    ))
    return card_out(card)


@router.post("/{card_id}/move", response_model=CardOut)
async def move_card(
    card_id: str,
    data: CardMove,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Move to a list on the same board; no position means the end of it"""
    card = await MoveCard(db).execute(MoveCardRequest(
        user_id=user.id, card_id=card_id, target_list_id=data.list_id, position=data.position,
    ))
    return card_out(card)


@router.post("/{card_id}/archive", response_model=CardOut)
async def archive_card(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card = await ArchiveCard(db).execute(CardRequest(user_id=user.id, card_id=card_id))
    return card_out(card)


@router.post("/{card_id}/unarchive", response_model=CardOut)
async def unarchive_card(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card = await UnarchiveCard(db).execute(CardRequest(user_id=user.id, card_id=card_id))
    return card_out(card)


@router.delete("/{card_id}")
async def delete_card(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await DeleteCard(db).execute(CardRequest(user_id=user.id, card_id=card_id))
    return {"status": "deleted", "card_id": card_id}


# ============================================================
# LABEL ATTACHMENT
# ============================================================

@router.get("/{card_id}/labels", response_model=List[LabelOut])
async def card_labels(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    labels = await GetCardLabels(db).execute(CardQuery(user_id=user.id, card_id=card_id))
    return [label_out(l) for l in labels]


@router.post("/{card_id}/labels/{label_id}", response_model=LabelOut, status_code=201)
async def attach_label(
    card_id: str,
    label_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    label = await AddLabelToCard(db).execute(CardLabelRequest(
        user_id=user.id, card_id=card_id, label_id=label_id,
    ))
    return label_out(label)


@router.delete("/{card_id}/labels/{label_id}")
async def detach_label(
    card_id: str,
    label_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await RemoveLabelFromCard(db).execute(CardLabelRequest(
        user_id=user.id, card_id=card_id, label_id=label_id,
    ))
    return {"status": "removed", "card_id": card_id, "label_id": label_id}
