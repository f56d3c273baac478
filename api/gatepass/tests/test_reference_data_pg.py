"""
Reference-data guards against the real schema: unique names and emails, and
deletes refused while visitor requests still point at the row.

Needs Docker; opt in with ``GATEPASS_PG_TESTS=1``.
"""
import datetime as dt
import os
import uuid

import pytest

from gatepass.core.db.repo.workflow.workflow_repo import SqlWorkflowStore
from gatepass.core.errors import ConflictError
from gatepass.domain.workflow.engine import WorkflowEngine
from gatepass.domain.v1.user.schema import UserCreate, UserUpdate
from gatepass.domain.v1.user.service import UserService
from gatepass.domain.v1.visitor.schema import VisitorRequestCreate
from gatepass.domain.v1.visitor.service import VisitorRequestService
from gatepass.domain.v1.visitor_type.schema import VisitorTypeIn
from gatepass.domain.v1.visitor_type.service import VisitorTypeService
from gatepass.domain.v1.warehouse.schema import TimeSlotIn, WarehouseIn
from gatepass.domain.v1.warehouse.service import WarehouseService
from gatepass.tests.fakes import RecordingNotifier
from gatepass.utils.helper.helper import today_local

pytestmark = pytest.mark.skipif(
    os.getenv("GATEPASS_PG_TESTS") != "1", reason="set GATEPASS_PG_TESTS=1 to run against Postgres"
)


@pytest.fixture
def tag() -> str:
    return uuid.uuid4().hex[:8]


@pytest.fixture
async def booked(db, tag):
    """A warehouse, slot and visitor type with one visitor request against them."""
    warehouses = WarehouseService(db)
    wh = await warehouses.create_warehouse(WarehouseIn(name=f"Depot {tag}"))
    slot = await warehouses.create_time_slot(
        wh.id, TimeSlotIn(name="Morning", from_time=dt.time(9, 0), to_time=dt.time(11, 0))
    )
    vt = await VisitorTypeService(db).create_type(VisitorTypeIn(name=f"Guest {tag}"))

    store = SqlWorkflowStore(db)
    visitors = VisitorRequestService(store, WorkflowEngine(store, RecordingNotifier()))
    await visitors.submit_request(
        VisitorRequestCreate(
            name="Asha Verma",
            email="asha@example.com",
            visitor_type_id=vt.id,
            warehouse_id=wh.id,
            warehouse_time_slot_id=slot.id,
            date=today_local() + dt.timedelta(days=30),
        )
    )
    return {"warehouse": wh, "slot": slot, "type": vt}


@pytest.mark.anyio
async def test_duplicate_warehouse_name_is_a_conflict(db, tag):
    svc = WarehouseService(db)
    await svc.create_warehouse(WarehouseIn(name=f"Depot {tag}"))

    with pytest.raises(ConflictError, match="already exists"):
        await svc.create_warehouse(WarehouseIn(name=f"Depot {tag}"))


@pytest.mark.anyio
async def test_unique_constraint_catches_a_name_the_precheck_missed(db, tag, monkeypatch):
    svc = VisitorTypeService(db)
    await svc.create_type(VisitorTypeIn(name=f"Auditor {tag}"))

    async def _looks_free(*_args, **_kwargs):
        return None

    monkeypatch.setattr(svc, "_ensure_name_free", _looks_free)
    with pytest.raises(ConflictError, match=f"Visitor type 'Auditor {tag}' already exists"):
        await svc.create_type(VisitorTypeIn(name=f"Auditor {tag}"))

    # the session is usable again after the rollback
    assert any(t.name == f"Auditor {tag}" for t in await svc.list_types())


@pytest.mark.anyio
async def test_duplicate_user_email_is_a_conflict(db, tag):
    svc = UserService(db)
    body = UserCreate(name="Priya Nair", email=f"priya.{tag}@gatepass.com", password="s3cret-pass", role="Approver")
    await svc.create_user(body)

    with pytest.raises(ConflictError, match="email already exists"):
        await svc.create_user(body.model_copy(update={"email": f"PRIYA.{tag}@GatePass.com"}))


@pytest.mark.anyio
async def test_in_use_reference_rows_cannot_be_deleted(db, booked):
    warehouses = WarehouseService(db)

    with pytest.raises(ConflictError, match="Time slot has visitor requests"):
        await warehouses.delete_time_slot(booked["warehouse"].id, booked["slot"].id)
    with pytest.raises(ConflictError, match="Warehouse has visitor requests"):
        await warehouses.delete_warehouse(booked["warehouse"].id)
    with pytest.raises(ConflictError, match="referenced by workflows or requests"):
        await VisitorTypeService(db).delete_type(booked["type"].id)

    assert [s.id for s in await warehouses.list_time_slots(booked["warehouse"].id)] == [booked["slot"].id]


@pytest.mark.anyio
async def test_admin_cannot_deactivate_own_account(db, tag):
    svc = UserService(db)
    admin = await svc.create_user(
        UserCreate(name="Site Admin", email=f"admin.{tag}@gatepass.com", password="s3cret-pass", role="Admin")
    )

    with pytest.raises(ConflictError, match="your own account"):
        await svc.deactivate_user(admin.id, actor_id=admin.id)
    with pytest.raises(ConflictError, match="your own account"):
        await svc.update_user(admin.id, UserUpdate(is_active=False), actor_id=admin.id)

    assert (await svc.get_user(admin.id)).is_active is True
