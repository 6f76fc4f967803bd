"""Shared test fixtures for pytest"""
import os

# Settings are read at import time; configure before importing the package
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from crm_rbac.application.services import (
    AuditLogService,
    AuthorizationService,
    PermissionCatalogService,
    PermissionMatrixService,
    PlatformInitializationService,
    RoleService,
)
from crm_rbac.domain.entities import Principal
from crm_rbac.domain.enums import RoleKind
from crm_rbac.infrastructure.persistence import models  # noqa: F401 - registers tables
from crm_rbac.infrastructure.persistence.database import Base
from crm_rbac.infrastructure.persistence.repositories import RoleRepository

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TENANT_ID = "techcorp"
OTHER_TENANT_ID = "globex"
PLATFORM_TENANT_ID = "platform"


@pytest.fixture
async def test_engine():
    """In-memory database shared by every session of a test"""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def test_db(test_engine):
    """Create test database session"""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
async def seeded_db(test_db):
    """Catalog, platform role and two initialized tenants, committed"""
    initializer = PlatformInitializationService(test_db)
    await initializer.initialize_platform()
    await initializer.initialize_tenant(TENANT_ID)
    await initializer.initialize_tenant(OTHER_TENANT_ID)
    await test_db.commit()
    return test_db


@pytest.fixture
async def system_role_ids(seeded_db) -> dict[RoleKind, str]:
    """Ids of the techcorp system roles (plus the platform role) by kind"""
    repo = RoleRepository(seeded_db)
    ids = {}
    for kind in RoleKind:
        tenant_id = PLATFORM_TENANT_ID if kind == RoleKind.SUPER_ADMIN else TENANT_ID
        role = await repo.get_system_role(tenant_id, kind.value)
        ids[kind] = role.id
    return ids


@pytest.fixture
def count_rows(test_db):
    """Count rows of a model in the current session"""

    async def _count(model) -> int:
        result = await test_db.execute(select(func.count()).select_from(model))
        return result.scalar_one()

    return _count


# Principals


@pytest.fixture
def super_admin() -> Principal:
    return Principal(user_id="super_admin_1", tenant_id=PLATFORM_TENANT_ID, role_kind=RoleKind.SUPER_ADMIN)


@pytest.fixture
def admin() -> Principal:
    return Principal(
        user_id="admin_techcorp_1",
        tenant_id=TENANT_ID,
        role_kind=RoleKind.ADMIN,
        ip_address="10.0.0.7",
        user_agent="pytest",
    )


@pytest.fixture
def manager() -> Principal:
    return Principal(user_id="manager_techcorp_1", tenant_id=TENANT_ID, role_kind=RoleKind.MANAGER)


@pytest.fixture
def agent() -> Principal:
    return Principal(user_id="agent_techcorp_1", tenant_id=TENANT_ID, role_kind=RoleKind.AGENT)


@pytest.fixture
def engineer() -> Principal:
    return Principal(user_id="engineer_techcorp_1", tenant_id=TENANT_ID, role_kind=RoleKind.ENGINEER)


@pytest.fixture
def customer() -> Principal:
    return Principal(user_id="customer_techcorp_1", tenant_id=TENANT_ID, role_kind=RoleKind.CUSTOMER)


@pytest.fixture
def other_admin() -> Principal:
    return Principal(user_id="admin_globex_1", tenant_id=OTHER_TENANT_ID, role_kind=RoleKind.ADMIN)


# Services


@pytest.fixture
def authz(seeded_db) -> AuthorizationService:
    return AuthorizationService(seeded_db)


@pytest.fixture
def catalog(seeded_db) -> PermissionCatalogService:
    return PermissionCatalogService(seeded_db)


@pytest.fixture
def audit_service(seeded_db) -> AuditLogService:
    return AuditLogService(seeded_db)


@pytest.fixture
def role_service(seeded_db) -> RoleService:
    return RoleService(seeded_db)


@pytest.fixture
def matrix_service(seeded_db, role_service) -> PermissionMatrixService:
    return PermissionMatrixService(seeded_db, role_service=role_service)
