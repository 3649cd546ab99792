# repositories.py — Persistence contracts consumed by the board core
# Every repository wraps the request's AsyncSession. Nothing here commits:
# the owning use case decides the transaction boundary.

from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select, func, update, delete, exists, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models import (
    Activity, Board, BoardList, BoardMember, BoardRole, Card, CardLabel,
    Label, RevokedToken, User,
)


class BoardRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, board_id: str) -> Optional[Board]:
        return await self.session.get(Board, board_id)

    async def lock(self, board_id: str) -> Optional[Board]:
        """Load the board with a row lock; serializes list ordering on the board"""
        stmt = select(Board).where(Board.id == board_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_for_user(self, user_id: str, include_archived: bool = False) -> List[Board]:
        member_of = select(BoardMember.board_id).where(BoardMember.user_id == user_id)
        stmt = (
            select(Board)
            .where(or_(Board.owner_id == user_id, Board.id.in_(member_of)))
            .order_by(Board.created_at.desc())
        )
        if not include_archived:
            stmt = stmt.where(Board.is_archived.is_(False))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_member_role(self, board_id: str, user_id: str) -> Optional[BoardRole]:
        stmt = select(BoardMember.role).where(
            BoardMember.board_id == board_id, BoardMember.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def is_member(self, board_id: str, user_id: str) -> bool:
        return await self.get_member_role(board_id, user_id) is not None

    async def get_member(self, board_id: str, user_id: str) -> Optional[BoardMember]:
        stmt = (
            select(BoardMember)
            .where(BoardMember.board_id == board_id, BoardMember.user_id == user_id)
            .options(selectinload(BoardMember.user))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_members(self, board_id: str) -> List[BoardMember]:
        stmt = (
            select(BoardMember)
            .where(BoardMember.board_id == board_id)
            .options(selectinload(BoardMember.user))
            .order_by(BoardMember.joined_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add_member(self, board_id: str, user_id: str, role: BoardRole) -> BoardMember:
        member = BoardMember(board_id=board_id, user_id=user_id, role=role)
        self.session.add(member)
        await self.session.flush()
        return member

    async def update_member_role(self, board_id: str, user_id: str, role: BoardRole) -> None:
        await self.session.execute(
            update(BoardMember)
            .where(BoardMember.board_id == board_id, BoardMember.user_id == user_id)
            .values(role=role)
        )

    async def remove_member(self, board_id: str, user_id: str) -> None:
        await self.session.execute(
            delete(BoardMember).where(
                BoardMember.board_id == board_id, BoardMember.user_id == user_id,
            )
        )

    async def save(self, board: Board) -> Board:
        self.session.add(board)
        await self.session.flush()
        return board

    async def delete(self, board: Board) -> None:
        await self.session.delete(board)
        await self.session.flush()


class ListRepository:
    """Lists are ordered within their board"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, list_id: str) -> Optional[BoardList]:
        return await self.session.get(BoardList, list_id)

    async def lock(self, list_id: str) -> Optional[BoardList]:
        """Load the list with a row lock; serializes card ordering in the list"""
        stmt = select(BoardList).where(BoardList.id == list_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_board(self, board_id: str) -> List[BoardList]:
        stmt = (
            select(BoardList)
            .where(BoardList.board_id == board_id)
            .order_by(BoardList.position.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def max_position(self, board_id: str) -> Optional[Decimal]:
        stmt = select(func.max(BoardList.position)).where(BoardList.board_id == board_id)
        return (await self.session.execute(stmt)).scalar()

    async def positions_in_scope(self, board_id: str) -> Dict[str, Decimal]:
        stmt = select(BoardList.id, BoardList.position).where(BoardList.board_id == board_id)
        result = await self.session.execute(stmt)
        return {row.id: row.position for row in result.all()}

    async def set_positions(self, positions: Dict[str, Decimal]) -> None:
        for list_id, position in positions.items():
            await self.session.execute(
                update(BoardList).where(BoardList.id == list_id).values(position=position)
            )

    async def exists_in_board(self, list_id: str, board_id: str) -> bool:
        stmt = select(exists().where(BoardList.id == list_id, BoardList.board_id == board_id))
        return bool((await self.session.execute(stmt)).scalar())

    async def save(self, board_list: BoardList) -> BoardList:
        self.session.add(board_list)
        await self.session.flush()
        return board_list

    async def delete(self, board_list: BoardList) -> None:
        await self.session.delete(board_list)
        await self.session.flush()


class CardRepository:
    """Cards are ordered within their list"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, card_id: str) -> Optional[Card]:
        stmt = select(Card).where(Card.id == card_id).options(selectinload(Card.list))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_list(self, list_id: str, include_archived: bool = False) -> List[Card]:
        stmt = select(Card).where(Card.list_id == list_id).order_by(Card.position.asc())
        if not include_archived:
            stmt = stmt.where(Card.is_archived.is_(False))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_board(self, board_id: str, include_archived: bool = False) -> List[Card]:
        stmt = (
            select(Card)
            .join(BoardList, Card.list_id == BoardList.id)
            .where(BoardList.board_id == board_id)
            .order_by(BoardList.position.asc(), Card.position.asc())
        )
        if not include_archived:
            stmt = stmt.where(Card.is_archived.is_(False))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def max_position(self, list_id: str) -> Optional[Decimal]:
        stmt = select(func.max(Card.position)).where(Card.list_id == list_id)
        return (await self.session.execute(stmt)).scalar()

    async def positions_in_scope(self, list_id: str) -> Dict[str, Decimal]:
        stmt = select(Card.id, Card.position).where(Card.list_id == list_id)
        result = await self.session.execute(stmt)
        return {row.id: row.position for row in result.all()}

    async def set_positions(self, positions: Dict[str, Decimal]) -> None:
        for card_id, position in positions.items():
            await self.session.execute(
                update(Card).where(Card.id == card_id).values(position=position)
            )

    async def move_card(self, card: Card, target_list_id: str, position: Decimal) -> Card:
        card.move_to(target_list_id, position)
        await self.session.flush()
        # Point the loaded `list` relationship at the new list
        await self.session.refresh(card, attribute_names=["list"])
        return card

    async def exists_in_list(self, card_id: str, list_id: str) -> bool:
        stmt = select(exists().where(Card.id == card_id, Card.list_id == list_id))
        return bool((await self.session.execute(stmt)).scalar())

    async def save(self, card: Card) -> Card:
        self.session.add(card)
        await self.session.flush()
        return card

    async def delete(self, card: Card) -> None:
        await self.session.delete(card)
        await self.session.flush()


class LabelRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, label_id: str) -> Optional[Label]:
        return await self.session.get(Label, label_id)

    async def find_by_board(self, board_id: str) -> List[Label]:
        stmt = select(Label).where(Label.board_id == board_id).order_by(Label.name.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_card_labels(self, card_id: str) -> List[Label]:
        stmt = (
            select(Label)
            .join(CardLabel, CardLabel.label_id == Label.id)
            .where(CardLabel.card_id == card_id)
            .order_by(Label.name.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def is_attached_to_card(self, card_id: str, label_id: str) -> bool:
        stmt = select(exists().where(CardLabel.card_id == card_id, CardLabel.label_id == label_id))
        return bool((await self.session.execute(stmt)).scalar())

    async def add_to_card(self, card_id: str, label_id: str) -> None:
        self.session.add(CardLabel(card_id=card_id, label_id=label_id))
        await self.session.flush()

    async def remove_from_card(self, card_id: str, label_id: str) -> None:
        await self.session.execute(
            delete(CardLabel).where(CardLabel.card_id == card_id, CardLabel.label_id == label_id)
        )

    async def exists_in_board(self, label_id: str, board_id: str) -> bool:
        stmt = select(exists().where(Label.id == label_id, Label.board_id == board_id))
        return bool((await self.session.execute(stmt)).scalar())

    async def save(self, label: Label) -> Label:
        self.session.add(label)
        await self.session.flush()
        return label

    async def delete(self, label: Label) -> None:
        await self.session.delete(label)
        await self.session.flush()


class ActivityRepository:
    """Append-only: there is no update or delete here on purpose"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, activity: Activity) -> Activity:
        self.session.add(activity)
        await self.session.flush()
        return activity

    async def find_by_board(self, board_id: str, limit: int = 50) -> List[Activity]:
        stmt = (
            select(Activity)
            .where(Activity.board_id == board_id)
            .order_by(Activity.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_card(self, card_id: str, limit: int = 50) -> List[Activity]:
        stmt = (
            select(Activity)
            .where(Activity.card_id == card_id)
            .order_by(Activity.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_user(self, user_id: str, limit: int = 50) -> List[Activity]:
        stmt = (
            select(Activity)
            .where(Activity.user_id == user_id)
            .order_by(Activity.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, user_id: str) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def exists_by_email(self, email: str) -> bool:
        stmt = select(exists().where(func.lower(User.email) == email.lower()))
        return bool((await self.session.execute(stmt)).scalar())

    async def exists_by_username(self, username: str) -> bool:
        stmt = select(exists().where(User.username == username))
        return bool((await self.session.execute(stmt)).scalar())


class TokenRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def is_revoked(self, jti: str) -> bool:
        stmt = select(exists().where(RevokedToken.jti == jti))
        return bool((await self.session.execute(stmt)).scalar())

    async def revoke(self, jti: str, user_id: str, expires_at) -> None:
        self.session.add(RevokedToken(jti=jti, user_id=user_id, expires_at=expires_at))
        await self.session.flush()


class Repositories:
    """All repositories bound to one session, i.e. one unit of work"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.boards = BoardRepository(session)
        self.lists = ListRepository(session)
        self.cards = CardRepository(session)
        self.labels = LabelRepository(session)
        self.activities = ActivityRepository(session)
        self.users = UserRepository(session)
        self.tokens = TokenRepository(session)
