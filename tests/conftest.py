# =============================================================================
# TEST CONFIGURATION
# =============================================================================
# Each test runs against a fresh SQLite file through aiosqlite. The app's
# get_db dependency is overridden to hand out sessions bound to that file.
# =============================================================================

import os

# Must be set before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MAIL_ENABLED"] = "false"
os.environ["DB_CREATE_ALL"] = "false"
os.environ["JWT_SECRET"] = "test-secret"

from typing import AsyncGenerator, Callable, Dict, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from core.database import Base, get_sessionmaker
from core.dependencies import get_db
from core.models.users import User, Role
from core.models.clinics import Clinic
from core.security import get_password_hash, create_access_token, build_token_payload
from main import app

DEFAULT_PASSWORD = "Password123!"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh database file with all tables created."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_sessionmaker(engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# =============================================================================
# APPLICATION FIXTURES
# =============================================================================

@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async client talking to the app in-process."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


# =============================================================================
# DATA FIXTURES
# =============================================================================

@pytest.fixture
def make_user(session_factory) -> Callable:
    """Insert a user directly, bypassing the API and its side effects."""

    async def _make_user(
        email: str,
        role: Role = Role.USER,
        username: Optional[str] = None,
        password: str = DEFAULT_PASSWORD,
        is_verified: bool = True,
    ) -> User:
        async with session_factory() as session:
            user = User(
                email=email,
                username=username or email.split("@")[0],
                password=get_password_hash(password),
                is_verified=is_verified,
                role=role,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make_user


@pytest.fixture
def make_clinic(session_factory) -> Callable:
    """Insert a clinic directly, without superadmin links."""

    async def _make_clinic(name: str, phone: str, **kwargs) -> Clinic:
        async with session_factory() as session:
            clinic = Clinic(name=name, phone=phone, **kwargs)
            session.add(clinic)
            await session.commit()
            await session.refresh(clinic)
            return clinic

    return _make_clinic


def auth_headers(user: User, clinic: Optional[dict] = None) -> Dict[str, str]:
    token = create_access_token(build_token_payload(user, clinic))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def superadmin(make_user) -> User:
    return await make_user("root@example.com", Role.SUPERADMIN, username="root")


@pytest_asyncio.fixture
async def manager(make_user) -> User:
    return await make_user("manager@example.com", Role.MANAGER)


@pytest_asyncio.fixture
async def doctor(make_user) -> User:
    return await make_user("doctor@example.com", Role.DOCTOR)


@pytest_asyncio.fixture
async def plain_user(make_user) -> User:
    return await make_user("patient@example.com", Role.USER)


@pytest.fixture
def superadmin_headers(superadmin) -> Dict[str, str]:
    return auth_headers(superadmin)


@pytest.fixture
def manager_headers(manager) -> Dict[str, str]:
    return auth_headers(manager)


@pytest.fixture
def doctor_headers(doctor) -> Dict[str, str]:
    return auth_headers(doctor)


@pytest.fixture
def user_headers(plain_user) -> Dict[str, str]:
    return auth_headers(plain_user)


@pytest.fixture
def profile_payload() -> Dict:
    return {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "phone": "+44 20 7946 0000",
        "birthday": "1990-05-01T00:00:00Z",
        "socialId": "SOC-001",
        "license": "LIC-001",
        "specialization": "Cardiology",
        "bio": "Cardiologist",
        "gender": "FEMALE",
    }


@pytest.fixture
def headers_for() -> Callable:
    return auth_headers


@pytest.fixture
def break_commits(monkeypatch) -> Callable:
    """Make every later session commit fail as if the connection dropped."""

    def _break():
        async def commit(self):
            raise OperationalError("COMMIT", {}, Exception("connection lost"))

        monkeypatch.setattr(AsyncSession, "commit", commit)

    return _break


@pytest.fixture
def skip_first_check(monkeypatch) -> Callable:
    """Let the first call of a uniqueness check pass, as when a concurrent
    request inserts the same value between the check and the commit."""

    def _skip(module, name: str):
        original = getattr(module, name)
        calls = []

        async def check(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                return None
            return await original(*args, **kwargs)

        monkeypatch.setattr(module, name, check)

    return _skip
