# gatepass/tests/conftest.py
import os
os.environ.setdefault("ANYIO_BACKEND", "asyncio")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("ENFORCE_STEP_ORDER", "false")

import sys
from pathlib import Path

API_DIR = Path(__file__).resolve().parents[2]
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

import datetime as dt
import typing as t

import pytest
from alembic import command
from alembic.config import Config
from fastapi import Request
from asgi_lifespan import LifespanManager
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from gatepass.core.security.auth import create_access_token, get_current_user
from gatepass.domain.workflow.engine import WorkflowEngine
from gatepass.domain.v1.approval.service import ApprovalService
from gatepass.domain.v1.visitor.schema import VisitorRequestCreate
from gatepass.domain.v1.visitor.service import VisitorRequestService
from gatepass.main import app
from gatepass.tests.fakes import InMemoryWorkflowStore, RecordingNotifier
from gatepass.utils.deps import get_notifier, get_store
from gatepass.utils.helper.helper import today_local


@pytest.fixture
def anyio_backend():
    return "asyncio"


# ---------- engine fixtures (in-memory store) ----------
@pytest.fixture
def store() -> InMemoryWorkflowStore:
    return InMemoryWorkflowStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def engine(store, notifier) -> WorkflowEngine:
    return WorkflowEngine(store, notifier)


@pytest.fixture
def visit_date() -> dt.date:
    return today_local() + dt.timedelta(days=3)


@pytest.fixture
def world(store):
    """
    One warehouse with two slots and the two workflows used throughout:
    "Auditor" (F only) and "External Guest" (F then CEO).
    """
    wh = store.seed_warehouse("Central Warehouse")
    morning = store.seed_time_slot(wh, "Morning", dt.time(9, 0), dt.time(11, 0))
    afternoon = store.seed_time_slot(wh, "Afternoon", dt.time(14, 0), dt.time(16, 0))
    auditor = store.seed_visitor_type("Auditor")
    guest = store.seed_visitor_type("External Guest")
    f = store.seed_user("Floor Manager", "Approver")
    ceo = store.seed_user("Chief Executive", "Approver")
    admin = store.seed_user("Site Admin", "Admin")
    desk = store.seed_user("Front Desk", "Receptionist")
    store.seed_step(wh, auditor, 1, f)
    store.seed_step(wh, guest, 1, f)
    store.seed_step(wh, guest, 2, ceo)
    return {
        "warehouse": wh,
        "morning": morning,
        "afternoon": afternoon,
        "auditor": auditor,
        "guest": guest,
        "f": f,
        "ceo": ceo,
        "admin": admin,
        "desk": desk,
    }


# ---------- ASGI client over the in-memory store ----------
def _bearer(user) -> t.Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(sub=user.id, role=user.role)}"}


@pytest.fixture
def auth_headers():
    return _bearer


@pytest.fixture
async def async_client(store, notifier):
    """ASGI client + dependency overrides; the JWT middleware stays in place."""

    async def _override_current_user(request: Request):
        payload = request.state.user
        return store.users[payload["sub"]]

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_current_user] = _override_current_user

    transport = ASGITransport(app=app)
    async with LifespanManager(app):
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            try:
                yield client
            finally:
                app.dependency_overrides.pop(get_store, None)
                app.dependency_overrides.pop(get_notifier, None)
                app.dependency_overrides.pop(get_current_user, None)


# ---------- service fixtures ----------
@pytest.fixture
def visitors(store, engine):
    return VisitorRequestService(store, engine)


@pytest.fixture
def approvals(store, engine):
    return ApprovalService(store, engine, enforce_step_order=False)


@pytest.fixture
def submit(visitors, world, visit_date):
    """Submit a request through the public path and return the stored row's id."""
    async def _submit(visitor_type="auditor", slot="morning", *, name="Asha Verma",
                      date=None, email="asha@example.com", warehouse=None):
        body = VisitorRequestCreate(
            name=name,
            email=email,
            visitor_type_id=world[visitor_type].id,
            warehouse_id=(warehouse or world["warehouse"]).id,
            warehouse_time_slot_id=world[slot].id,
            date=date or visit_date,
        )
        out = await visitors.submit_request(body)
        return out.id

    return _submit


# ---------- Postgres fixtures (Docker; opt in with GATEPASS_PG_TESTS=1) ----------
def _start_pg():
    from testcontainers.core.container import DockerContainer
    from testcontainers.core.waiting_utils import wait_for_logs

    c = (
        DockerContainer("postgres:16-alpine")
        .with_env("POSTGRES_DB", "gatepass_test")
        .with_env("POSTGRES_USER", "postgres")
        .with_env("POSTGRES_PASSWORD", "postgres")
        .with_exposed_ports(5432)
    )
    c.start()
    wait_for_logs(c, "database system is ready to accept connections", timeout=60)
    host = c.get_container_host_ip()
    port = int(c.get_exposed_port(5432))
    return c, f"postgresql+psycopg2://postgres:postgres@{host}:{port}/gatepass_test"


def _alembic_config_for_url(db_url: str) -> Config:
    cfg = Config(str(API_DIR / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    cfg.set_main_option("script_location", str(API_DIR / "gatepass" / "core" / "migrations"))
    return cfg


@pytest.fixture(scope="session")
def _migrated_db():
    container, url = _start_pg()
    try:
        command.upgrade(_alembic_config_for_url(url), "head")
        yield url.replace("+psycopg2", "+asyncpg")
    finally:
        container.stop()


@pytest.fixture
async def db(_migrated_db):
    engine = create_async_engine(_migrated_db, poolclass=NullPool)
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with factory() as session:
        yield session
    await engine.dispose()
