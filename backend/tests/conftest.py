"""
Pytest configuration and fixtures
"""
import io
import pytest
from typing import AsyncGenerator
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from core.context import SessionContext
from database import create_db_and_tables
from routes.dependencies import get_photo_service, get_report_compiler, get_repository
from services.audit_store import AuditRepository
from services.lifecycle import LifecycleController
from services.photo_service import PhotoService
from services.report_compiler import ReportCompiler
from services.storage import StorageService

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_USER_ID = 7
USER_HEADERS = {"X-User-Id": str(TEST_USER_ID), "X-User-Name": "field.advisor"}


@pytest.fixture
async def test_engine():
    """One in-memory database per test, shared by every connection"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False
    )
    await create_db_and_tables(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def repository(session_factory) -> AuditRepository:
    return AuditRepository(session_factory)


@pytest.fixture
def ctx() -> SessionContext:
    return SessionContext(user_id=TEST_USER_ID, username="field.advisor")


@pytest.fixture
def storage(tmp_path) -> StorageService:
    return StorageService(str(tmp_path))


@pytest.fixture
def lifecycle(repository) -> LifecycleController:
    return LifecycleController(repository)


@pytest.fixture
def photos(repository, storage) -> PhotoService:
    return PhotoService(repository, storage, max_bytes=1024 * 1024)


@pytest.fixture
def compiler(repository, storage) -> ReportCompiler:
    return ReportCompiler(repository, storage, max_px=400, evaluator_name="Test Evaluator")


@pytest.fixture
async def audit(repository, ctx):
    """A fresh draft audit owned by the test user"""
    return await repository.create_audit(ctx, {
        "customer_first_name": "Marie",
        "customer_last_name": "Belanger",
        "customer_city": "Moncton",
        "customer_province": "NB",
    })


def make_image_bytes(size=(64, 48), color=(200, 80, 40), fmt="JPEG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_factory():
    return make_image_bytes


@pytest.fixture
def sample_jpeg() -> bytes:
    """Return a small but real JPEG for upload tests"""
    return make_image_bytes()


@pytest.fixture
async def client(repository, photos, compiler) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with service overrides"""
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_photo_service] = lambda: photos
    app.dependency_overrides[get_report_compiler] = lambda: compiler

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", headers=USER_HEADERS) as ac:
        yield ac

    app.dependency_overrides.clear()
