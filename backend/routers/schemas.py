# routers/schemas.py — Request/response bodies shared by the board routers
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field

from models import Activity, Board, BoardList, BoardMember, Card, Label


def _ts(dt) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat() if isinstance(dt, datetime) else str(dt)


def enum_value(value) -> Optional[str]:
    return getattr(value, "value", value)


# ============================================================
# INPUT
# ============================================================

# --- Board ---
class BoardCreate(BaseModel):
    title: str = Field(..., max_length=255)
    description: Optional[str] = None
    background_url: Optional[str] = None
    is_public: bool = False


class BoardUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    background_url: Optional[str] = None
    is_public: Optional[bool] = None


class MemberAdd(BaseModel):
    user_id: str
    role: str = "MEMBER"


class MemberRoleUpdate(BaseModel):
    role: str


# --- List ---
class ListCreate(BaseModel):
    title: str = Field(..., max_length=255)
    color: Optional[str] = None


class ListUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    color: Optional[str] = None


class ReorderEntry(BaseModel):
    id: str
    position: Decimal


class ReorderBody(BaseModel):
    items: List[ReorderEntry]


# --- Card ---
class CardCreate(BaseModel):
    title: str = Field(..., max_length=255)
    description: Optional[str] = None
    assignee_id: Optional[str] = None
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    cover_url: Optional[str] = None


class CardUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    assignee_id: Optional[str] = None
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    cover_url: Optional[str] = None


class CardMove(BaseModel):
    list_id: str
    position: Optional[Decimal] = None


# --- Label ---
class LabelCreate(BaseModel):
    name: str = Field(..., max_length=50)
    color: str


class LabelUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = None


# ============================================================
# OUTPUT
# ============================================================

class BoardOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    background_url: Optional[str] = None
    is_public: bool
    is_archived: bool
    owner_id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class BoardDetailOut(BoardOut):
    role: Optional[str] = None
    permissions: Dict[str, bool] = {}


class UserBoardsOut(BaseModel):
    owned: List[BoardOut] = []
    member: List[BoardOut] = []


class MemberOut(BaseModel):
    user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    role: str
    joined_at: Optional[str] = None


class ListOut(BaseModel):
    id: str
    board_id: str
    title: str
    position: float
    color: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class LabelOut(BaseModel):
    id: str
    board_id: str
    name: str
    color: str


class CardOut(BaseModel):
    id: str
    list_id: str
    title: str
    description: Optional[str] = None
    position: float
    due_date: Optional[str] = None
    start_date: Optional[str] = None
    is_archived: bool
    cover_url: Optional[str] = None
    creator_id: str
    assignee_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CardDetailOut(CardOut):
    labels: List[LabelOut] = []


class ActivityOut(BaseModel):
    id: str
    action: str
    entity_type: str
    entity_id: str
    entity_title: str
    user_id: str
    board_id: str
    card_id: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None


# ============================================================
# CONVERTERS
# ============================================================

def board_out(b: Board) -> BoardOut:
    return BoardOut(
        id=b.id, title=b.title, description=b.description,
        background_url=b.background_url, is_public=bool(b.is_public),
        is_archived=bool(b.is_archived), owner_id=b.owner_id,
        created_at=_ts(b.created_at), updated_at=_ts(b.updated_at),
    )


def member_out(m: BoardMember) -> MemberOut:
    return MemberOut(
        user_id=m.user_id,
        username=m.user.username if m.user else None,
        display_name=m.user.display_name if m.user else None,
        role=enum_value(m.role),
        joined_at=_ts(m.joined_at),
    )


def list_out(l: BoardList) -> ListOut:
    return ListOut(
        id=l.id, board_id=l.board_id, title=l.title, position=float(l.position),
        color=l.color, created_at=_ts(l.created_at), updated_at=_ts(l.updated_at),
    )


def label_out(l: Label) -> LabelOut:
    return LabelOut(id=l.id, board_id=l.board_id, name=l.name, color=l.color)


def card_out(c: Card) -> CardOut:
    return CardOut(
        id=c.id, list_id=c.list_id, title=c.title, description=c.description,
        position=float(c.position), due_date=_ts(c.due_date), start_date=_ts(c.start_date),
        is_archived=bool(c.is_archived), cover_url=c.cover_url,
        creator_id=c.creator_id, assignee_id=c.assignee_id,
        created_at=_ts(c.created_at), updated_at=_ts(c.updated_at),
    )


def activity_out(a: Activity) -> ActivityOut:
    return ActivityOut(
        id=a.id, action=enum_value(a.action), entity_type=enum_value(a.entity_type),
        entity_id=a.entity_id, entity_title=a.entity_title, user_id=a.user_id,
        board_id=a.board_id, card_id=a.card_id, data=a.data, created_at=_ts(a.created_at),
    )
