# routers/session.py — Caller identity and logout
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from usecases.session import LogoutUser, LogoutRequest

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.get("/me", response_model=CurrentUser)
async def me(user: CurrentUser = Depends(get_current_user)):
    return user


@router.post("/logout")
async def logout(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Revoke the presented token. Always succeeds for an authenticated caller."""
    await LogoutUser(db).execute(LogoutRequest(
        user_id=user.id, jti=user.jti, expires_at=user.expires_at,
    ))
    return {"status": "logged_out"}
