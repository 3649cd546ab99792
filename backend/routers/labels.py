# routers/labels.py — Label edits; creation lives under /boards/{id}/labels
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from routers.schemas import LabelUpdate, LabelOut, label_out
from usecases.labels import UpdateLabel, DeleteLabel, UpdateLabelRequest, LabelRequest

router = APIRouter(prefix="/api/v1/labels", tags=["Labels"])


@router.patch("/{label_id}", response_model=LabelOut)
async def update_label(
    label_id: str,
    data: LabelUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    label = await UpdateLabel(db).execute(UpdateLabelRequest(
        user_id=user.id, label_id=label_id, **data.model_dump(exclude_unset=True),
    ))
    return label_out(label)


@router.delete("/{label_id}")
async def delete_label(
    label_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Delete a label and detach it from every card"""
    await DeleteLabel(db).execute(LabelRequest(user_id=user.id, label_id=label_id))
    return {"status": "deleted", "label_id": label_id}
