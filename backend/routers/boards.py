# routers/boards.py — Boards, their members, lists, labels and activity feed
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from positions import ReorderItem
from routers.schemas import (
    BoardCreate, BoardUpdate, MemberAdd, MemberRoleUpdate, ListCreate, LabelCreate, ReorderBody,
    BoardOut, BoardDetailOut, UserBoardsOut, MemberOut, ListOut, LabelOut, ActivityOut,
    board_out, member_out, list_out, label_out, activity_out, enum_value,
)
from usecases.boards import (
    CreateBoard, UpdateBoard, ArchiveBoard, UnarchiveBoard, DeleteBoard,
    CreateBoardRequest, UpdateBoardRequest, BoardRequest,
)
from usecases.members import (
    AddBoardMember, UpdateMemberRole, RemoveBoardMember,
    AddBoardMemberRequest, UpdateMemberRoleRequest, RemoveBoardMemberRequest,
)
from usecases.lists import CreateList, ReorderLists, CreateListRequest, ReorderListsRequest
from usecases.labels import CreateLabel, CreateLabelRequest
from usecases.queries import (
    GetBoard, GetUserBoards, GetBoardMembers, GetBoardLists, GetBoardLabels, GetBoardActivity,
    BoardQuery, UserBoardsQuery, BoardActivityQuery,
)

router = APIRouter(prefix="/api/v1/boards", tags=["Boards"])


# ============================================================
# BOARD ENDPOINTS
# ============================================================

@router.get("", response_model=UserBoardsOut)
async def list_boards(
    include_archived: bool = Query(False),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Boards the caller owns or belongs to"""
    result = await GetUserBoards(db).execute(
        UserBoardsQuery(user_id=user.id, include_archived=include_archived)
    )
    return UserBoardsOut(
        owned=[board_out(b) for b in result.owned],
        member=[board_out(b) for b in result.member],
    )


@router.post("", response_model=BoardOut, status_code=201)
async def create_board(
    data: BoardCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Create a board owned by the caller"""
    board = await CreateBoard(db).execute(CreateBoardRequest(user_id=user.id, **data.model_dump()))
    return board_out(board)


@router.get("/{board_id}", response_model=BoardDetailOut)
async def get_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    view = await GetBoard(db).execute(BoardQuery(user_id=user.id, board_id=board_id))
    return BoardDetailOut(
        **board_out(view.board).model_dump(),
        role=enum_value(view.role),
        permissions=view.permissions,
    )


@router.patch("/{board_id}", response_model=BoardOut)
async def update_board(
    board_id: str,
    data: BoardUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Update title, description, background or visibility"""
    board = await UpdateBoard(db).execute(UpdateBoardRequest(
        user_id=user.id, board_id=board_id, **data.model_dump(exclude_unset=True),
    ))
    return board_out(board)


@router.post("/{board_id}/archive", response_model=BoardOut)
async def archive_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    board = await ArchiveBoard(db).execute(BoardRequest(user_id=user.id, board_id=board_id))
    return board_out(board)


@router.post("/{board_id}/unarchive", response_model=BoardOut)
async def unarchive_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    board = await UnarchiveBoard(db).execute(BoardRequest(user_id=user.id, board_id=board_id))
    return board_out(board)


@router.delete("/{board_id}")
async def delete_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Delete a board with everything in it (owner only)"""
    await DeleteBoard(db).execute(BoardRequest(user_id=user.id, board_id=board_id))
    return {"status": "deleted", "board_id": board_id}


# ============================================================
# MEMBER ENDPOINTS
# ============================================================

@router.get("/{board_id}/members", response_model=List[MemberOut])
async def list_members(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    members = await GetBoardMembers(db).execute(BoardQuery(user_id=user.id, board_id=board_id))
    return [member_out(m) for m in members]


@router.post("/{board_id}/members", response_model=MemberOut, status_code=201)
async def add_member(
    board_id: str,
    data: MemberAdd,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Add a user with role ADMIN, MEMBER or VIEWER"""
    member = await AddBoardMember(db).execute(AddBoardMemberRequest(
        user_id=user.id, board_id=board_id, member_user_id=data.user_id, role=data.role,
    ))
    return member_out(member)


@router.patch("/{board_id}/members/{member_user_id}", response_model=MemberOut)
async def update_member_role(
    board_id: str,
    member_user_id: str,
    data: MemberRoleUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    member = await UpdateMemberRole(db).execute(UpdateMemberRoleRequest(
        user_id=user.id, board_id=board_id, member_user_id=member_user_id, role=data.role,
    ))
    return member_out(member)


@router.delete("/{board_id}/members/{member_user_id}")
async def remove_member(
    board_id: str,
    member_user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Remove a member; any member may remove themselves"""
    await RemoveBoardMember(db).execute(RemoveBoardMemberRequest(
        user_id=user.id, board_id=board_id, member_user_id=member_user_id,
    ))
    return {"status": "removed", "board_id": board_id, "user_id": member_user_id}


# ============================================================
# LIST ENDPOINTS
# ============================================================

@router.get("/{board_id}/lists", response_model=List[ListOut])
async def list_lists(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Lists of a board in position order"""
    lists = await GetBoardLists(db).execute(BoardQuery(user_id=user.id, board_id=board_id))
    return [list_out(l) for l in lists]


@router.post("/{board_id}/lists", response_model=ListOut, status_code=201)
async def create_list(
    board_id: str,
    data: ListCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Append a list to the end of the board"""
    board_list = await CreateList(db).execute(CreateListRequest(
        user_id=user.id, board_id=board_id, title=data.title, color=data.color,
    ))
    return list_out(board_list)


@router.put("/{board_id}/lists/reorder", response_model=List[ListOut])
async def reorder_lists(
    board_id: str,
    data: ReorderBody,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Assign new positions to some or all lists of the board"""
    lists = await ReorderLists(db).execute(ReorderListsRequest(
        user_id=user.id, board_id=board_id,
        items=[ReorderItem(id=i.id, position=i.position) for i in data.items],
    ))
    return [list_out(l) for l in lists]


# ============================================================
# LABEL & ACTIVITY ENDPOINTS
# ============================================================

@router.get("/{board_id}/labels", response_model=List[LabelOut])
async def list_labels(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    labels = await GetBoardLabels(db).execute(BoardQuery(user_id=user.id, board_id=board_id))
    return [label_out(l) for l in labels]


@router.post("/{board_id}/labels", response_model=LabelOut, status_code=201)
async def create_label(
    board_id: str,
    data: LabelCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    label = await CreateLabel(db).execute(CreateLabelRequest(
        user_id=user.id, board_id=board_id, name=data.name, color=data.color,
    ))
    return label_out(label)


@router.get("/{board_id}/activity", response_model=List[ActivityOut])
async def board_activity(
    board_id: str,
    limit: Optional[int] = Query(None, ge=1, le=200),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Most recent activity first"""
    activities = await GetBoardActivity(db).execute(
        BoardActivityQuery(user_id=user.id, board_id=board_id, limit=limit)
    )
    return [activity_out(a) for a in activities]
