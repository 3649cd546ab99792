# usecases/members.py — Board membership management
from authorization import ASSIGNABLE_ROLES, Capability
from errors import BusinessRuleViolation, ConflictError, NotFoundError, ValidationError
from models import ActivityAction, Board, BoardMember, BoardRole, EntityType
from usecases.base import UseCase, UseCaseRequest


class AddBoardMemberRequest(UseCaseRequest):
    board_id: str
    member_user_id: str
    role: str = BoardRole.MEMBER.value


class UpdateMemberRoleRequest(UseCaseRequest):
    board_id: str
    member_user_id: str
    role: str


class RemoveBoardMemberRequest(UseCaseRequest):
    board_id: str
    member_user_id: str


def parse_assignable_role(value: str) -> BoardRole:
    """Member management hands out ADMIN, MEMBER or VIEWER and nothing else"""
    try:
        role = BoardRole((value or "").upper())
    except ValueError:
        raise ValidationError(f"Unknown role '{value}'", field="role")
    if role not in ASSIGNABLE_ROLES:
        raise BusinessRuleViolation(
            "Only ADMIN, MEMBER or VIEWER roles can be assigned", resource="member",
        )
    return role


def ensure_not_archived(board: Board, action: str) -> None:
    if board.is_archived:
        raise BusinessRuleViolation(f"Cannot {action} an archived board", resource="board")


class AddBoardMember(UseCase):
    async def handle(self, request: AddBoardMemberRequest) -> BoardMember:
        board, _ = await self.gate.authorize(request.board_id, request.user_id, Capability.MANAGE_MEMBERS)
        ensure_not_archived(board, "add members to")
        role = parse_assignable_role(request.role)

        user = await self.repos.users.find_by_id(request.member_user_id)
        if not user:
            raise NotFoundError("user", request.member_user_id)
        if not user.is_active:
            raise BusinessRuleViolation("User account is inactive", resource="user")

        if board.is_owner(user.id) or await self.repos.boards.is_member(board.id, user.id):
            raise ConflictError("User is already a member of this board", resource="member")

        await self.repos.boards.add_member(board.id, user.id, role)
        member = await self.repos.boards.get_member(board.id, user.id)

        await self.recorder.record(
            ActivityAction.ADD_MEMBER, EntityType.BOARD, board.id, board.title,
            user_id=request.user_id, board_id=board.id,
            data={"memberUserId": user.id, "role": role},
        )
        return member


class UpdateMemberRole(UseCase):
    async def handle(self, request: UpdateMemberRoleRequest) -> BoardMember:
        board, _ = await self.gate.authorize(request.board_id, request.user_id, Capability.MANAGE_MEMBERS)
        ensure_not_archived(board, "change roles on")

        if board.is_owner(request.member_user_id):
            raise BusinessRuleViolation("The board owner's role cannot be changed", resource="member")
        new_role = parse_assignable_role(request.role)

        old_role = await self.repos.boards.get_member_role(board.id, request.member_user_id)
        if old_role is None:
            raise NotFoundError("member", request.member_user_id)
        if old_role == new_role:
            raise BusinessRuleViolation(f"Member already has role {new_role.value}", resource="member")

        await self.repos.boards.update_member_role(board.id, request.member_user_id, new_role)
        member = await self.repos.boards.get_member(board.id, request.member_user_id)

        await self.recorder.record(
            ActivityAction.UPDATE, EntityType.BOARD, board.id, board.title,
            user_id=request.user_id, board_id=board.id,
            data={"memberUserId": request.member_user_id, "oldRole": old_role, "newRole": new_role},
        )
        return member


class RemoveBoardMember(UseCase):
    """Admins remove others; any member may remove themselves"""

    async def handle(self, request: RemoveBoardMemberRequest) -> None:
        self_removal = request.user_id == request.member_user_id
        capability = Capability.VIEW if self_removal else Capability.MANAGE_MEMBERS
        board, _ = await self.gate.authorize(request.board_id, request.user_id, capability)
        ensure_not_archived(board, "remove members from")

        if board.is_owner(request.member_user_id):
            raise BusinessRuleViolation("Cannot remove the board owner", resource="member")

        removed_role = await self.repos.boards.get_member_role(board.id, request.member_user_id)
        if removed_role is None:
            raise NotFoundError("member", request.member_user_id)

        await self.repos.boards.remove_member(board.id, request.member_user_id)

        await self.recorder.record(
            ActivityAction.REMOVE_MEMBER, EntityType.BOARD, board.id, board.title,
            user_id=request.user_id, board_id=board.id,
            data={
                "memberUserId": request.member_user_id,
                "removedRole": removed_role,
                "selfRemoval": self_removal,
            },
        )
