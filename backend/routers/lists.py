# routers/lists.py — Single-list operations and the cards inside a list
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from positions import ReorderItem
from routers.schemas import (
    ListUpdate, CardCreate, ReorderBody, ListOut, CardOut, list_out, card_out,
)
from usecases.lists import UpdateList, DeleteList, UpdateListRequest, ListRequest
from usecases.cards import CreateCard, ReorderCards, CreateCardRequest, ReorderCardsRequest
from usecases.queries import GetList, GetListCards, ListCardsQuery, ListQuery

router = APIRouter(prefix="/api/v1/lists", tags=["Lists"])


@router.get("/{list_id}", response_model=ListOut)
async def get_list(
    list_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    board_list = await GetList(db).execute(ListQuery(user_id=user.id, list_id=list_id))
    return list_out(board_list)


@router.patch("/{list_id}", response_model=ListOut)
async def update_list(
    list_id: str,
    data: ListUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Rename or recolor a list"""
    board_list = await UpdateList(db).execute(UpdateListRequest(
        user_id=user.id, list_id=list_id, **data.model_dump(exclude_unset=True),
    ))
    return list_out(board_list)


@router.delete("/{list_id}")
async def delete_list(
    list_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Delete a list and its cards"""
    await DeleteList(db).execute(ListRequest(user_id=user.id, list_id=list_id))
    return {"status": "deleted", "list_id": list_id}


@router.get("/{list_id}/cards", response_model=List[CardOut])
async def list_cards(
    list_id: str,
    include_archived: bool = Query(False),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    cards = await GetListCards(db).execute(ListCardsQuery(
        user_id=user.id, list_id=list_id, include_archived=include_archived,
    ))
    return [card_out(c) for c in cards]


@router.post("/{list_id}/cards", response_model=CardOut, status_code=201)
async def create_card(
    list_id: str,
    data: CardCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Append a card to the end of the list"""
    card = await CreateCard(db).execute(CreateCardRequest(
        user_id=user.id, list_id=list_id, **data.model_dump(),
    ))
    return card_out(card)


@router.put("/{list_id}/cards/reorder", response_model=List[CardOut])
async def reorder_cards(
    list_id: str,
    data: ReorderBody,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    cards = await ReorderCards(db).execute(ReorderCardsRequest(
        user_id=user.id, list_id=list_id,
        items=[ReorderItem(id=i.id, position=i.position) for i in data.items],
    ))
    return [card_out(c) for c in cards]
