import base64
import os
import uuid
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ------------------------------------------------------------------
# FORCE TESTING SETTINGS
# Must happen BEFORE importing app.main so Settings() and the engine
# pick them up.
# ------------------------------------------------------------------
WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"department-tracker-webhook-secret").decode()
SUPER_ADMIN_EMAIL = "founder@example.com"

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SESSION_JWT_KEY"] = "test-session-signing-key-that-is-long-enough"
os.environ["SESSION_JWT_ALGORITHM"] = "HS256"
os.environ["CLERK_WEBHOOK_SECRET"] = WEBHOOK_SECRET
os.environ["SUPER_ADMIN_EMAIL"] = SUPER_ADMIN_EMAIL
os.environ["REDIS_URL"] = ""
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_KEY"] = ""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from app.main import app
from app.api.deps import get_db_session, get_identity_provider, get_storage
from app.core.errors import UpstreamError
from app.core.security import create_session_token
from app.core.storage import AttachmentStorage
from app.models.department import Department
from app.models.project import Project
from app.models.task import Task
from app.models.user import User
from app.services.identity_provider import Identity, IdentityProvider


# ------------------------------------------------------------------
# Fakes for the external collaborators
# ------------------------------------------------------------------
class FakeIdentityProvider(IdentityProvider):
    def __init__(self):
        self.users = {}
        self.fail_reads = False
        self.fail_updates = False
        self.updates = []

    def add(self, user_id=None, email=None, first_name="Test", last_name="User", **metadata) -> Identity:
        user_id = user_id or f"user_{uuid.uuid4().hex[:12]}"
        identity = Identity(
            id=user_id,
            first_name=first_name,
            last_name=last_name,
            email_addresses=[email or f"{user_id}@example.com"],
            public_metadata=metadata,
        )
        self.users[user_id] = identity
        return identity

    async def get_user(self, user_id):
        if self.fail_reads:
            raise UpstreamError("Identity provider unavailable")
        identity = self.users.get(user_id)
        return identity.model_copy(deep=True) if identity else None

    async def list_users(self):
        if self.fail_reads:
            raise UpstreamError("Identity provider unavailable")
        return [u.model_copy(deep=True) for u in self.users.values()]

    async def update_user(self, user_id, first_name=None, last_name=None, public_metadata=None):
        if self.fail_updates:
            raise UpstreamError("Identity provider returned 500")
        identity = self.users.get(user_id)
        if identity is None:
            raise UpstreamError(f"Identity {user_id} not found")
        if first_name is not None:
            identity.first_name = first_name
        if last_name is not None:
            identity.last_name = last_name
        if public_metadata is not None:
            identity.public_metadata = dict(public_metadata)
        self.updates.append((user_id, public_metadata))
        return identity

    async def delete_user(self, user_id):
        if user_id not in self.users:
            raise UpstreamError(f"Identity {user_id} not found")
        del self.users[user_id]


class FakeBucket:
    def __init__(self, name):
        self.name = name
        self.objects = {}
        self.removed = []

    def upload(self, path, file, file_options=None):
        self.objects[path] = file
        return {"path": path}

    def get_public_url(self, path):
        return f"https://storage.test/storage/v1/object/public/{self.name}/{path}"

    def remove(self, paths):
        for path in paths:
            self.objects.pop(path, None)
            self.removed.append(path)
        return paths


class FakeSupabase:
    def __init__(self, bucket):
        self._bucket = bucket
        self.storage = self

    def from_(self, name):
        assert name == self._bucket.name
        return self._bucket


# ------------------------------------------------------------------
# Database
# ------------------------------------------------------------------
@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ------------------------------------------------------------------
# Collaborators & client
# ------------------------------------------------------------------
@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def storage_bucket():
    return FakeBucket("project-attachments")


@pytest.fixture
def storage(storage_bucket):
    return AttachmentStorage(FakeSupabase(storage_bucket), bucket=storage_bucket.name, max_size=1024 * 1024)


@pytest_asyncio.fixture
async def client(session_factory, identity_provider, storage):
    async def _get_db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _get_db_session
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[get_storage] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ------------------------------------------------------------------
# Seeding helpers
# ------------------------------------------------------------------
def bearer(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_session_token(user_id)}"}


@pytest_asyncio.fixture
async def make_department(session_factory):
    async def _make(name=None) -> Department:
        async with session_factory() as session:
            dept = Department(name=name or f"Dept {uuid.uuid4().hex[:6]}")
            session.add(dept)
            await session.commit()
            await session.refresh(dept)
            return dept
    return _make


@pytest_asyncio.fixture
async def make_user(session_factory, identity_provider):
    """
    Registers an identity with the fake provider (and, by default, its
    mirror row). Returns id, identity and ready-to-use auth headers.
    """
    async def _make(role="member", department_id=None, department_head=False, position="", email=None, mirror=True):
        identity = identity_provider.add(
            email=email,
            role=role,
            department_id=department_id,
            department_head=department_head,
            position=position,
        )
        if mirror:
            async with session_factory() as session:
                session.add(User(
                    clerk_id=identity.id,
                    email=identity.primary_email,
                    full_name=identity.full_name,
                    role=role,
                    position=position or None,
                    department_id=department_id,
                    department_head=department_head,
                ))
                await session.commit()
        return SimpleNamespace(id=identity.id, identity=identity, headers=bearer(identity.id))
    return _make


@pytest_asyncio.fixture
async def make_project(session_factory):
    async def _make(department_id, name="Roadworks", created_by=None, attachments=None, **fields) -> Project:
        async with session_factory() as session:
            project = Project(
                name=name,
                department_id=department_id,
                created_by=created_by,
                attachments=attachments or [],
                **fields,
            )
            session.add(project)
            await session.commit()
            await session.refresh(project)
            return project
    return _make


@pytest_asyncio.fixture
async def make_task(session_factory):
    async def _make(project: Project, title="Survey site") -> Task:
        async with session_factory() as session:
            task = Task(project_id=project.id, department_id=project.department_id, title=title)
            session.add(task)
            await session.commit()
            await session.refresh(task)
            return task
    return _make
