# authorization.py — Per-board role resolution and capability checks
# - The owner always resolves to OWNER, whatever the membership rows say
# - One capability table drives every predicate
# - Public boards are viewable by anyone; nothing else is

import logging
from enum import Enum as PyEnum
from typing import Dict, FrozenSet, Optional, Tuple

from errors import ForbiddenError, NotFoundError
from models import Board, BoardRole
from repositories import BoardRepository

logger = logging.getLogger("kanban.auth")


class Capability(str, PyEnum):
    VIEW = "VIEW"
    EDIT_CARDS = "EDIT_CARDS"
    MANAGE_LISTS = "MANAGE_LISTS"
    MANAGE_LABELS = "MANAGE_LABELS"
    EDIT_BOARD = "EDIT_BOARD"
    MANAGE_MEMBERS = "MANAGE_MEMBERS"
    DELETE_BOARD = "DELETE_BOARD"
    ARCHIVE_BOARD = "ARCHIVE_BOARD"


_ALL_ROLES = frozenset(BoardRole)
_EDITORS = frozenset({BoardRole.OWNER, BoardRole.ADMIN})
_OWNER_ONLY = frozenset({BoardRole.OWNER})

CAPABILITY_TABLE: Dict[Capability, FrozenSet[BoardRole]] = {
    Capability.VIEW: _ALL_ROLES,
    Capability.EDIT_CARDS: frozenset({BoardRole.OWNER, BoardRole.ADMIN, BoardRole.MEMBER}),
    Capability.MANAGE_LISTS: _EDITORS,
    Capability.MANAGE_LABELS: _EDITORS,
    Capability.EDIT_BOARD: _EDITORS,
    Capability.MANAGE_MEMBERS: _EDITORS,
    Capability.DELETE_BOARD: _OWNER_ONLY,
    Capability.ARCHIVE_BOARD: _OWNER_ONLY,
}

# Roles that member management may hand out
ASSIGNABLE_ROLES = frozenset({BoardRole.ADMIN, BoardRole.MEMBER, BoardRole.VIEWER})


def has_capability(role: Optional[BoardRole], capability: Capability, is_public: bool = False) -> bool:
    if role is None:
        return capability == Capability.VIEW and is_public
    return role in CAPABILITY_TABLE[capability]


def can_view(role: Optional[BoardRole], is_public: bool = False) -> bool:
    return has_capability(role, Capability.VIEW, is_public)


def can_edit(role: Optional[BoardRole]) -> bool:
    return has_capability(role, Capability.EDIT_BOARD)


def can_edit_cards(role: Optional[BoardRole]) -> bool:
    return has_capability(role, Capability.EDIT_CARDS)


def can_manage_members(role: Optional[BoardRole]) -> bool:
    return has_capability(role, Capability.MANAGE_MEMBERS)


def can_manage_lists(role: Optional[BoardRole]) -> bool:
    return has_capability(role, Capability.MANAGE_LISTS)


def can_manage_labels(role: Optional[BoardRole]) -> bool:
    return has_capability(role, Capability.MANAGE_LABELS)


def board_permissions(role: Optional[BoardRole], is_public: bool = False) -> Dict[str, bool]:
    """What the caller may do on a board, for clients that hide controls"""
    return {
        "can_view": can_view(role, is_public),
        "can_edit": can_edit(role),
        "can_edit_cards": can_edit_cards(role),
        "can_manage_lists": can_manage_lists(role),
        "can_manage_labels": can_manage_labels(role),
        "can_manage_members": can_manage_members(role),
    }


class AuthorizationGate:
    """Answers "may this user do X on this board" from persisted roles"""

    def __init__(self, boards: BoardRepository):
        self.boards = boards

    async def resolve_role(self, board: Board, user_id: str) -> Optional[BoardRole]:
        if board.is_owner(user_id):
            return BoardRole.OWNER
        return await self.boards.get_member_role(board.id, user_id)

    async def authorize(
        self, board_id: str, user_id: str, capability: Capability, lock: bool = False,
    ) -> Tuple[Board, Optional[BoardRole]]:
        """Load the board, then require `capability` for the user.

        With ``lock=True`` the board row is selected FOR UPDATE so that list
        ordering on it is serialized for the rest of the transaction.
        """
        board = await (self.boards.lock(board_id) if lock else self.boards.find_by_id(board_id))
        if not board:
            raise NotFoundError("board", board_id)

        role = await self.resolve_role(board, user_id)
        if not has_capability(role, capability, board.is_public):
            logger.info(
                f"Denied {capability.value} on board {board_id} for user {user_id} "
                f"(role={role.value if role else None})"
            )
            raise ForbiddenError(
                f"Insufficient permissions: {capability.value} requires "
                f"{'/'.join(sorted(r.value for r in CAPABILITY_TABLE[capability]))}",
                resource="board",
            )
        return board, role
