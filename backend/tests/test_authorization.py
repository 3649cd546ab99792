# tests/test_authorization.py — Board roles and the capability table
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import delete

from authorization import (
    AuthorizationGate, Capability, CAPABILITY_TABLE, has_capability,
    board_permissions, can_view, can_edit, can_edit_cards, can_manage_members, can_manage_lists,
)
from errors import ForbiddenError, NotFoundError
from models import BoardMember, BoardRole
from positions import ReorderItem
from repositories import ActivityRepository, BoardRepository
from tests.conftest import make_user
from usecases.boards import CreateBoard, CreateBoardRequest, UpdateBoard, UpdateBoardRequest
from usecases.cards import ArchiveCard, CardRequest, MoveCard, MoveCardRequest
from usecases.labels import (
    AddLabelToCard, CardLabelRequest, CreateLabel, CreateLabelRequest,
)
from usecases.lists import CreateList, CreateListRequest, ReorderLists, ReorderListsRequest
from usecases.members import AddBoardMember, AddBoardMemberRequest
from usecases.queries import GetBoard, BoardQuery

ROLES = ("OWNER", "ADMIN", "MEMBER", "VIEWER", "NONE")


# ============================================================
# PURE PREDICATES
# ============================================================

class TestCapabilityTable:
    def test_every_role_can_view(self):
        for role in BoardRole:
            assert can_view(role)

    def test_no_role_sees_private_board(self):
        assert not can_view(None)
        assert not can_view(None, is_public=False)

    def test_no_role_sees_public_board_but_nothing_more(self):
        assert can_view(None, is_public=True)
        for capability in Capability:
            if capability != Capability.VIEW:
                assert not has_capability(None, capability, is_public=True)

    def test_edit_is_owner_and_admin(self):
        assert can_edit(BoardRole.OWNER) and can_edit(BoardRole.ADMIN)
        assert not can_edit(BoardRole.MEMBER)
        assert not can_edit(BoardRole.VIEWER)

    def test_members_may_edit_cards(self):
        assert can_edit_cards(BoardRole.MEMBER)
        assert not can_edit_cards(BoardRole.VIEWER)

    def test_board_permissions_summarize_the_predicates(self):
        assert board_permissions(BoardRole.MEMBER) == {
            "can_view": True, "can_edit": False, "can_edit_cards": True,
            "can_manage_lists": False, "can_manage_labels": False, "can_manage_members": False,
        }
        assert all(board_permissions(BoardRole.OWNER).values())
        public_visitor = board_permissions(None, is_public=True)
        assert public_visitor["can_view"]
        assert not any(v for k, v in public_visitor.items() if k != "can_view")

    def test_structure_and_membership_need_admin(self):
        for check in (can_manage_lists, can_manage_members):
            assert check(BoardRole.ADMIN)
            assert not check(BoardRole.MEMBER)

    def test_destructive_board_actions_are_owner_only(self):
        assert CAPABILITY_TABLE[Capability.DELETE_BOARD] == {BoardRole.OWNER}
        assert CAPABILITY_TABLE[Capability.ARCHIVE_BOARD] == {BoardRole.OWNER}


# ============================================================
# ROLE x OPERATION MATRIX
# ============================================================

async def op_view_board(db, ctx, user_id):
    await GetBoard(db).execute(BoardQuery(user_id=user_id, board_id=ctx.board_id))


async def op_create_list(db, ctx, user_id):
    await CreateList(db).execute(CreateListRequest(user_id=user_id, board_id=ctx.board_id, title="Backlog"))


async def op_reorder_lists(db, ctx, user_id):
    reordered = [ReorderItem(id=list_id, position=10 - n) for n, list_id in enumerate(ctx.list_ids)]
    await ReorderLists(db).execute(ReorderListsRequest(
        user_id=user_id, board_id=ctx.board_id, items=reordered,
    ))


async def op_move_card(db, ctx, user_id):
    await MoveCard(db).execute(MoveCardRequest(
        user_id=user_id, card_id=ctx.card_ids[0], target_list_id=ctx.list_ids[1], position=Decimal(10),
    ))


async def op_archive_card(db, ctx, user_id):
    await ArchiveCard(db).execute(CardRequest(user_id=user_id, card_id=ctx.card_ids[0]))


async def op_add_member(db, ctx, user_id):
    await AddBoardMember(db).execute(AddBoardMemberRequest(
        user_id=user_id, board_id=ctx.board_id, member_user_id=ctx.newcomer_id, role="VIEWER",
    ))


async def op_add_label(db, ctx, user_id):
    await AddLabelToCard(db).execute(CardLabelRequest(
        user_id=user_id, card_id=ctx.card_ids[0], label_id=ctx.label_id,
    ))


MATRIX = {
    op_view_board: {"OWNER", "ADMIN", "MEMBER", "VIEWER"},
    op_create_list: {"OWNER", "ADMIN"},
    op_reorder_lists: {"OWNER", "ADMIN"},
    op_move_card: {"OWNER", "ADMIN", "MEMBER"},
    op_archive_card: {"OWNER", "ADMIN", "MEMBER"},
    op_add_member: {"OWNER", "ADMIN"},
    op_add_label: {"OWNER", "ADMIN"},
}

CASES = [
    pytest.param(op, role, role in allowed, id=f"{op.__name__[3:]}-{role}")
    for op, allowed in MATRIX.items()
    for role in ROLES
]


@pytest.mark.asyncio
@pytest.mark.parametrize("operation,role,allowed", CASES)
async def test_role_operation_matrix(
    db_session, board, lists, cards, owner, admin_user, member_user, viewer_user, outsider,
    operation, role, allowed,
):
    label = await CreateLabel(db_session).execute(CreateLabelRequest(
        user_id=owner.id, board_id=board.id, name="Bug", color="#ff0000",
    ))
    newcomer = await make_user(db_session, "newcomer")
    ctx = SimpleNamespace(
        board_id=board.id,
        list_ids=[l.id for l in lists],
        card_ids=[c.id for c in cards],
        label_id=label.id,
        newcomer_id=newcomer.id,
    )
    users = {
        "OWNER": owner, "ADMIN": admin_user, "MEMBER": member_user,
        "VIEWER": viewer_user, "NONE": outsider,
    }
    user_id = users[role].id
    activities = ActivityRepository(db_session)
    before = len(await activities.find_by_board(ctx.board_id, limit=1000))

    if allowed:
        await operation(db_session, ctx, user_id)
    else:
        with pytest.raises(ForbiddenError):
            await operation(db_session, ctx, user_id)

    after = len(await activities.find_by_board(ctx.board_id, limit=1000))
    if operation is op_view_board:
        assert after == before
    else:
        assert after == before + (1 if allowed else 0)


# ============================================================
# GATE
# ============================================================

@pytest.mark.asyncio
class TestAuthorizationGate:
    async def test_missing_board_is_not_found(self, db_session, owner):
        gate = AuthorizationGate(BoardRepository(db_session))
        with pytest.raises(NotFoundError):
            await gate.authorize("no-such-board", owner.id, Capability.VIEW)

    async def test_existing_private_board_is_forbidden_for_outsider(self, db_session, board, outsider):
        gate = AuthorizationGate(BoardRepository(db_session))
        with pytest.raises(ForbiddenError):
            await gate.authorize(board.id, outsider.id, Capability.VIEW)

    async def test_owner_without_membership_row_is_still_owner(self, db_session, board, owner):
        await db_session.execute(
            delete(BoardMember).where(BoardMember.board_id == board.id, BoardMember.user_id == owner.id)
        )
        await db_session.commit()
        gate = AuthorizationGate(BoardRepository(db_session))
        assert await gate.resolve_role(board, owner.id) == BoardRole.OWNER

    async def test_membership_row_decides_other_roles(self, db_session, board, admin_user, viewer_user, outsider):
        gate = AuthorizationGate(BoardRepository(db_session))
        assert await gate.resolve_role(board, admin_user.id) == BoardRole.ADMIN
        assert await gate.resolve_role(board, viewer_user.id) == BoardRole.VIEWER
        assert await gate.resolve_role(board, outsider.id) is None


@pytest.mark.asyncio
class TestPublicBoards:
    async def test_outsider_views_public_board(self, db_session, owner, outsider):
        board = await CreateBoard(db_session).execute(CreateBoardRequest(
            user_id=owner.id, title="Open roadmap", is_public=True,
        ))
        view = await GetBoard(db_session).execute(BoardQuery(user_id=outsider.id, board_id=board.id))
        assert view.board.id == board.id
        assert view.role is None

    async def test_outsider_cannot_change_public_board(self, db_session, owner, outsider):
        board = await CreateBoard(db_session).execute(CreateBoardRequest(
            user_id=owner.id, title="Open roadmap", is_public=True,
        ))
        board_id = board.id
        with pytest.raises(ForbiddenError):
            await CreateList(db_session).execute(CreateListRequest(
                user_id=outsider.id, board_id=board_id, title="Sneaky",
            ))

    async def test_making_board_private_hides_it(self, db_session, owner, outsider):
        board = await CreateBoard(db_session).execute(CreateBoardRequest(
            user_id=owner.id, title="Open roadmap", is_public=True,
        ))
        await UpdateBoard(db_session).execute(UpdateBoardRequest(
            user_id=owner.id, board_id=board.id, is_public=False,
        ))
        with pytest.raises(ForbiddenError):
            await GetBoard(db_session).execute(BoardQuery(user_id=outsider.id, board_id=board.id))
