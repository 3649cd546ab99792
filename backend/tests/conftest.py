# tests/conftest.py — Shared test fixtures
import os
import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["ENVIRONMENT"] = "test"

from models import Base, User, BoardRole
from auth import AuthService
from database import get_db_session, enable_sqlite_foreign_keys
from main import app
from usecases.boards import CreateBoard, CreateBoardRequest
from usecases.members import AddBoardMember, AddBoardMemberRequest
from usecases.lists import CreateList, CreateListRequest
from usecases.cards import CreateCard, CreateCardRequest


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_engine):
    """HTTP test client with overridden DB dependency"""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    app.state.rate_limiter.clear()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def make_user(db_session, username: str, is_active: bool = True) -> User:
    user = User(
        id=str(uuid.uuid4()),
        email=f"{username}@kanban.test",
        username=username,
        display_name=username.capitalize(),
        is_active=is_active,
    )
    db_session.add(user)
    await db_session.commit()
    return user


# ============================================================
# USERS: one per role on the shared board, plus outsiders
# ============================================================

@pytest_asyncio.fixture
async def owner(db_session):
    return await make_user(db_session, "owner")


@pytest_asyncio.fixture
async def admin_user(db_session):
    return await make_user(db_session, "admin")


@pytest_asyncio.fixture
async def member_user(db_session):
    return await make_user(db_session, "member")


@pytest_asyncio.fixture
async def viewer_user(db_session):
    return await make_user(db_session, "viewer")


@pytest_asyncio.fixture
async def outsider(db_session):
    return await make_user(db_session, "outsider")


@pytest_asyncio.fixture
async def inactive_user(db_session):
    return await make_user(db_session, "inactive", is_active=False)


# ============================================================
# BOARD CONTENT
# ============================================================

@pytest_asyncio.fixture
async def board(db_session, owner, admin_user, member_user, viewer_user):
    """Private board: owner plus one ADMIN, one MEMBER and one VIEWER"""
    b = await CreateBoard(db_session).execute(CreateBoardRequest(user_id=owner.id, title="Roadmap"))
    for user, role in (
        (admin_user, BoardRole.ADMIN),
        (member_user, BoardRole.MEMBER),
        (viewer_user, BoardRole.VIEWER),
    ):
        await AddBoardMember(db_session).execute(AddBoardMemberRequest(
            user_id=owner.id, board_id=b.id, member_user_id=user.id, role=role.value,
        ))
    return b


@pytest_asyncio.fixture
async def lists(db_session, board, owner):
    """Three lists at positions 0, 1, 2"""
    created = []
    for title in ("To Do", "Doing", "Done"):
        created.append(await CreateList(db_session).execute(CreateListRequest(
            user_id=owner.id, board_id=board.id, title=title,
        )))
    return created


@pytest_asyncio.fixture
async def cards(db_session, lists, owner):
    """Three cards in the first list at positions 0, 1, 2"""
    created = []
    for title in ("Design", "Build", "Ship"):
        created.append(await CreateCard(db_session).execute(CreateCardRequest(
            user_id=owner.id, list_id=lists[0].id, title=title,
        )))
    return created


def get_auth_headers(user: User) -> dict:
    """Generate auth headers for a user"""
    token_data = {
        "sub": user.id,
        "email": user.email,
    }
    token = AuthService.create_access_token(token_data)
    return {"Authorization": f"Bearer {token}"}
