# models.py — Database models for the Kanban board service
# - UUID string primary keys everywhere
# - Per-board roles (OWNER, ADMIN, MEMBER, VIEWER)
# - Numeric positions unique per scope (board for lists, list for cards)
# - Append-only activity trail, removed only with its board

import re
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, String, DateTime, JSON, Boolean, Numeric,
    Enum as SQLEnum, ForeignKey, Text, Index, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from errors import BusinessRuleViolation, ValidationError

Base = declarative_base()

TITLE_MAX_LENGTH = 255
LABEL_NAME_MAX_LENGTH = 50
HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

# Fixed-point ordering key: 14 integer digits, 6 fractional
POSITION_TYPE = Numeric(20, 6, asdecimal=True)


def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


# ============================================================
# ENUMS
# ============================================================

class BoardRole(str, PyEnum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


class ActivityAction(str, PyEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    MOVE = "MOVE"
    ARCHIVE = "ARCHIVE"
    UNARCHIVE = "UNARCHIVE"
    ASSIGN = "ASSIGN"
    UNASSIGN = "UNASSIGN"
    ADD_MEMBER = "ADD_MEMBER"
    REMOVE_MEMBER = "REMOVE_MEMBER"
    ADD_LABEL = "ADD_LABEL"
    REMOVE_LABEL = "REMOVE_LABEL"


class EntityType(str, PyEnum):
    BOARD = "BOARD"
    LIST = "LIST"
    CARD = "CARD"
    LABEL = "LABEL"


# ============================================================
# FIELD RULES
# ============================================================

def clean_title(value: str, field: str = "title", max_length: int = TITLE_MAX_LENGTH) -> str:
    """Trim a title-like field and enforce 1..max_length characters."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} is required", field=field)
    if len(cleaned) > max_length:
        raise ValidationError(f"{field} must be {max_length} characters or less", field=field)
    return cleaned


def clean_color(value: str, field: str = "color") -> str:
    cleaned = (value or "").strip()
    if not HEX_COLOR_RE.match(cleaned):
        raise ValidationError(f"{field} must be a hex color like #FF0000", field=field)
    return cleaned.upper()


def clean_optional_text(value):
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def as_utc(value):
    """SQLite hands back naive datetimes; treat them as UTC"""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def check_date_order(start_date, due_date) -> None:
    start_date, due_date = as_utc(start_date), as_utc(due_date)
    if start_date and due_date and start_date > due_date:
        raise ValidationError("start_date cannot be after due_date", field="start_date")


# ============================================================
# USERS
# ============================================================

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_uuid)
    email = Column(String, unique=True, nullable=False, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    display_name = Column(String, nullable=False, default="")
    avatar_url = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class RevokedToken(Base):
    __tablename__ = "revoked_tokens"

    id = Column(String, primary_key=True, default=new_uuid)
    jti = Column(String, unique=True, nullable=False, index=True)  # JWT ID
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    revoked_at = Column(DateTime(timezone=True), default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)  # When the token would have expired


# ============================================================
# BOARDS
# ============================================================

class Board(Base):
    """Root aggregate: a shared workspace with one immutable owner"""
    __tablename__ = "boards"

    id = Column(String, primary_key=True, default=new_uuid)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=True)
    background_url = Column(String, nullable=True)
    is_public = Column(Boolean, nullable=False, default=False)
    is_archived = Column(Boolean, nullable=False, default=False)
    owner_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    owner = relationship("User", foreign_keys=[owner_id])
    members = relationship("BoardMember", back_populates="board", cascade="all, delete-orphan", passive_deletes=True)
    lists = relationship(
        "BoardList", back_populates="board", order_by="BoardList.position",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    labels = relationship("Label", back_populates="board", cascade="all, delete-orphan", passive_deletes=True)
    activities = relationship("Activity", back_populates="board", cascade="all, delete-orphan", passive_deletes=True)

    def is_owner(self, user_id: str) -> bool:
        return self.owner_id == user_id

    def archive(self) -> None:
        if self.is_archived:
            raise BusinessRuleViolation("Board is already archived", resource="board")
        self.is_archived = True

    def unarchive(self) -> None:
        if not self.is_archived:
            raise BusinessRuleViolation("Board is not archived", resource="board")
        self.is_archived = False


class BoardMember(Base):
    """Role held by a user on a board; one row per (board, user)"""
    __tablename__ = "board_members"

    id = Column(String, primary_key=True, default=new_uuid)
    board_id = Column(String, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(SQLEnum(BoardRole), nullable=False, default=BoardRole.MEMBER)
    joined_at = Column(DateTime(timezone=True), default=utcnow)

    board = relationship("Board", back_populates="members")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("board_id", "user_id", name="uq_board_member"),
    )


# ============================================================
# LISTS & CARDS
# ============================================================

class BoardList(Base):
    """Ordered column within a board"""
    __tablename__ = "lists"

    id = Column(String, primary_key=True, default=new_uuid)
    board_id = Column(String, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    position = Column(POSITION_TYPE, nullable=False)
    color = Column(String(7), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    board = relationship("Board", back_populates="lists")
    cards = relationship(
        "Card", back_populates="list", order_by="Card.position",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("board_id", "position", name="uq_list_board_position"),
    )


class Card(Base):
    """Work item; belongs to exactly one list at a time"""
    __tablename__ = "cards"

    id = Column(String, primary_key=True, default=new_uuid)
    list_id = Column(String, ForeignKey("lists.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=True)
    position = Column(POSITION_TYPE, nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    cover_url = Column(String, nullable=True)
    creator_id = Column(String, ForeignKey("users.id"), nullable=False)
    assignee_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    list = relationship("BoardList", back_populates="cards")
    creator = relationship("User", foreign_keys=[creator_id])
    assignee = relationship("User", foreign_keys=[assignee_id])
    labels = relationship("Label", secondary="card_labels", viewonly=True)

    __table_args__ = (
        UniqueConstraint("list_id", "position", name="uq_card_list_position"),
    )

    def archive(self) -> None:
        if self.is_archived:
            raise BusinessRuleViolation("Card is already archived", resource="card")
        self.is_archived = True

    def unarchive(self) -> None:
        if not self.is_archived:
            raise BusinessRuleViolation("Card is not archived", resource="card")
        self.is_archived = False

    def move_to(self, list_id: str, position: Decimal) -> None:
        self.list_id = list_id
        self.position = position

    def is_created_by(self, user_id: str) -> bool:
        return self.creator_id == user_id


# ============================================================
# LABELS
# ============================================================

class Label(Base):
    """Board-scoped tag; attached to cards of the same board only"""
    __tablename__ = "labels"

    id = Column(String, primary_key=True, default=new_uuid)
    board_id = Column(String, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(LABEL_NAME_MAX_LENGTH), nullable=False)
    color = Column(String(7), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    board = relationship("Board", back_populates="labels")

    def belongs_to_board(self, board_id: str) -> bool:
        return self.board_id == board_id


class CardLabel(Base):
    __tablename__ = "card_labels"

    card_id = Column(String, ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True)
    label_id = Column(String, ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


# ============================================================
# ACTIVITY (append-only)
# ============================================================

class Activity(Base):
    __tablename__ = "activities"

    id = Column(String, primary_key=True, default=new_uuid)
    action = Column(SQLEnum(ActivityAction), nullable=False, index=True)
    entity_type = Column(SQLEnum(EntityType), nullable=False)
    entity_id = Column(String, nullable=False)
    entity_title = Column(String, nullable=False)  # Snapshot at the time of the change
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    board_id = Column(String, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False)
    card_id = Column(String, ForeignKey("cards.id", ondelete="SET NULL"), nullable=True, index=True)
    data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    board = relationship("Board", back_populates="activities")
    user = relationship("User")

    __table_args__ = (
        Index("idx_activity_board_time", "board_id", "created_at"),
    )
