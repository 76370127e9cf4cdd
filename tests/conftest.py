"""
Sleeping Backend: Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite database file (aiosqlite) with the
       full schema, so services run real SQL, real constraints and real
       transactions. Nothing talks to PostgreSQL or Cloudinary.

Fixture Hierarchy (all function-scoped):
    engine ─── session_factory ─┬── db_session
                                ├── make_account / make_item / make_post
                                └── client (HTTPX AsyncClient, dependency overrides)
    media_storage: in-memory MediaStorage fake
"""

import os
import tempfile

# Override settings for testing BEFORE any sleeping imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="sleeping_test_"), "unused.db"
)
os.environ["JWT_SECRET"] = "test-secret-0123456789-abcdefghijklmnopqrstuvwxyz"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MEDIA_BACKEND"] = "local"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="sleeping_media_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"

from typing import List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from sleeping.database import Base, get_db_session, get_session_factory  # noqa: E402
from sleeping.models import Account, Post, ShopItem  # noqa: E402
from sleeping.security import create_access_token, hash_password  # noqa: E402
from sleeping.services.media_base import MediaStorage, get_media_storage  # noqa: E402

TEST_PASSWORD = "sleepy-pass"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine(tmp_path):
    """
    A throwaway SQLite database file with every table created.

    A file (not :memory:) so that concurrent sessions each get their own
    connection to the same data, which the concurrency tests rely on.
    """
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Seed helpers
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_account(session_factory):
    """
    Insert an account directly and return its id.

    Usage:
        account_id = await make_account("luna", balance=1000)
    """
    counter = {"n": 0}

    async def _make(
        username: Optional[str] = None,
        balance: int = 1000,
        role: str = "user",
        aura_color: str = "#ffffff",
        xp: int = 0,
    ) -> int:
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        async with session_factory() as session:
            account = Account(
                username=username,
                email=f"{username}@sleeping.test",
                password_hash=hash_password(TEST_PASSWORD, rounds=4),
                balance=balance,
                xp=xp,
                role=role,
                aura_color=aura_color,
            )
            session.add(account)
            await session.commit()
            return account.id

    return _make


@pytest.fixture
def make_item(session_factory):
    async def _make(
        name: str = "Item",
        price: int = 300,
        category: str = "generic",
        effect_value: Optional[str] = None,
    ) -> int:
        async with session_factory() as session:
            item = ShopItem(name=name, price=price, category=category, effect_value=effect_value)
            session.add(item)
            await session.commit()
            return item.id

    return _make


@pytest.fixture
def make_post(session_factory):
    async def _make(user_id: int, description: Optional[str] = None, title: str = "clip") -> int:
        async with session_factory() as session:
            post = Post(
                user_id=user_id,
                title=title,
                description=description,
                video_url="https://cdn.test/posts/videos/clip.mp4",
                thumbnail_url="https://cdn.test/posts/videos/clip.jpg",
            )
            session.add(post)
            await session.commit()
            return post.id

    return _make


async def fetch_account(session_factory, account_id: int) -> Account:
    async with session_factory() as session:
        return await session.get(Account, account_id)


def auth_headers(account_id: int) -> dict:
    return {"Authorization": f"Bearer {create_access_token(account_id)}"}


# ══════════════════════════════════════════════════════════════════════════
# Media & realtime fakes
# ══════════════════════════════════════════════════════════════════════════

class FakeMediaStorage(MediaStorage):
    """Records uploads in memory and returns predictable CDN-style URLs."""

    name = "fake"

    def __init__(self, fail: bool = False, max_size: Optional[int] = None):
        super().__init__(max_size=max_size)
        self.fail = fail
        self.uploads: List[Tuple[str, str, int]] = []

    async def _store(self, content: bytes, filename: str, folder: str, kind: str) -> str:
        if self.fail:
            raise RuntimeError("upstream rejected the upload")
        self.uploads.append((folder, kind, len(content)))
        ext = ".jpg" if kind == "image" else ".mp4"
        return f"https://cdn.test/{folder}/{len(self.uploads)}{ext}"


class FakeConnection:
    """Stands in for a WebSocket: collects every frame sent to it."""

    def __init__(self, name: str = "conn", broken: bool = False):
        self.name = name
        self.broken = broken
        self.sent: List[dict] = []

    async def send_json(self, message: dict) -> None:
        if self.broken:
            raise ConnectionResetError("socket closed")
        self.sent.append(message)

    def events(self, name: str) -> List[object]:
        return [frame["data"] for frame in self.sent if frame["event"] == name]

    def __repr__(self) -> str:
        return f"<FakeConnection {self.name}>"


@pytest.fixture
def media_storage():
    return FakeMediaStorage()


# ══════════════════════════════════════════════════════════════════════════
# HTTP client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def client(session_factory, media_storage):
    """
    HTTPX AsyncClient wired to a fresh app whose database and media storage
    dependencies point at the per-test fixtures.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from sleeping.main import create_app

    app = create_app()

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_media_storage] = lambda: media_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
