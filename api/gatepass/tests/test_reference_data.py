import datetime as dt

import pydantic
import pytest
from sqlalchemy.exc import IntegrityError

from gatepass.core.db.repo.models import User, VisitorType, Warehouse, WarehouseTimeSlot
from gatepass.core.db.session import commit_or_conflict
from gatepass.core.errors import ConflictError
from gatepass.domain.workflow.engine import new_id
from gatepass.domain.v1.user.schema import UserCreate, UserUpdate
from gatepass.domain.v1.user.service import UserService
from gatepass.domain.v1.visitor_type.service import VisitorTypeService
from gatepass.domain.v1.warehouse.schema import TimeSlotIn, WarehouseIn
from gatepass.domain.v1.warehouse.service import WarehouseService


class StubSession:
    """Just enough of ``AsyncSession`` for the reference-data services."""

    def __init__(self, *rows, scalar=None, commit_error=None):
        self.rows = {r.id: r for r in rows}
        self.scalar_result = scalar
        self.commit_error = commit_error
        self.deleted = []
        self.commits = 0
        self.rollbacks = 0

    async def get(self, model, key):
        row = self.rows.get(key)
        return row if isinstance(row, model) else None

    async def scalar(self, _query):
        return self.scalar_result

    def add(self, row):
        self.rows[row.id] = row

    async def delete(self, row):
        self.deleted.append(row)

    async def commit(self):
        if self.commit_error is not None:
            raise self.commit_error
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1


def _duplicate_key():
    return IntegrityError("INSERT ...", {}, Exception("duplicate key value violates unique constraint"))


def _user(**overrides):
    data = dict(id=new_id(), name="Priya Nair", email="priya@gatepass.com", password="x", role="Admin", is_active=True)
    data.update(overrides)
    return User(**data)


# ---------- commit helper ----------
@pytest.mark.anyio
async def test_commit_or_conflict_maps_integrity_errors():
    db = StubSession(commit_error=_duplicate_key())

    with pytest.raises(ConflictError, match="already taken"):
        await commit_or_conflict(db, "Name already taken")
    assert db.rollbacks == 1


@pytest.mark.anyio
async def test_commit_or_conflict_commits_cleanly():
    db = StubSession()
    await commit_or_conflict(db)
    assert (db.commits, db.rollbacks) == (1, 0)


# ---------- warehouses and time slots ----------
@pytest.mark.anyio
async def test_concurrent_duplicate_warehouse_name_is_a_conflict():
    # the name looked free but another writer won the unique constraint
    db = StubSession(scalar=None, commit_error=_duplicate_key())

    with pytest.raises(ConflictError, match="Warehouse 'Central Depot' already exists"):
        await WarehouseService(db).create_warehouse(WarehouseIn(name="  Central Depot "))
    assert db.rollbacks == 1


@pytest.mark.anyio
async def test_duplicate_warehouse_name_is_refused_before_commit():
    db = StubSession(scalar=new_id())

    with pytest.raises(ConflictError, match="already exists"):
        await WarehouseService(db).create_warehouse(WarehouseIn(name="Central Depot"))
    assert db.commits == 0


@pytest.mark.anyio
async def test_warehouse_with_requests_cannot_be_deleted():
    wh = Warehouse(id=new_id(), name="Central Depot")
    db = StubSession(wh, scalar=True)

    with pytest.raises(ConflictError, match="has visitor requests"):
        await WarehouseService(db).delete_warehouse(wh.id)
    assert db.deleted == []


@pytest.mark.anyio
async def test_unused_warehouse_is_deleted():
    wh = Warehouse(id=new_id(), name="Central Depot")
    db = StubSession(wh, scalar=False)

    await WarehouseService(db).delete_warehouse(wh.id)
    assert db.deleted == [wh]
    assert db.commits == 1


@pytest.mark.anyio
async def test_time_slot_with_requests_cannot_be_deleted():
    wh = Warehouse(id=new_id(), name="Central Depot")
    slot = WarehouseTimeSlot(
        id=new_id(), warehouse_id=wh.id, name="Morning", from_time=dt.time(9, 0), to_time=dt.time(11, 0)
    )
    db = StubSession(wh, slot, scalar=True)

    with pytest.raises(ConflictError, match="Time slot has visitor requests"):
        await WarehouseService(db).delete_time_slot(wh.id, slot.id)
    assert db.deleted == []


@pytest.mark.parametrize(
    "from_time, to_time",
    [(dt.time(11, 0), dt.time(9, 0)), (dt.time(9, 0), dt.time(9, 0))],
)
def test_time_slot_window_must_run_forwards(from_time, to_time):
    with pytest.raises(pydantic.ValidationError, match="from_time must be earlier than to_time"):
        TimeSlotIn(name="Morning", from_time=from_time, to_time=to_time)


# ---------- visitor types ----------
@pytest.mark.anyio
async def test_visitor_type_in_use_cannot_be_deleted():
    vt = VisitorType(id=new_id(), name="Auditor")
    db = StubSession(vt, scalar=True)

    with pytest.raises(ConflictError, match="referenced by workflows or requests"):
        await VisitorTypeService(db).delete_type(vt.id)
    assert db.deleted == []


# ---------- users ----------
@pytest.mark.anyio
async def test_duplicate_email_is_a_conflict():
    db = StubSession(scalar=new_id())
    body = UserCreate(name="Priya Nair", email="Priya@GatePass.com", password="s3cret-pass", role="Approver")

    with pytest.raises(ConflictError, match="email already exists"):
        await UserService(db).create_user(body)


@pytest.mark.anyio
async def test_admin_cannot_deactivate_themselves():
    admin = _user()
    db = StubSession(admin)

    with pytest.raises(ConflictError, match="your own account"):
        await UserService(db).deactivate_user(admin.id, actor_id=admin.id)
    assert admin.is_active is True


@pytest.mark.anyio
async def test_admin_cannot_switch_off_their_own_account_via_update():
    admin = _user()
    db = StubSession(admin)

    with pytest.raises(ConflictError, match="your own account"):
        await UserService(db).update_user(admin.id, UserUpdate(is_active=False), actor_id=admin.id)
    assert admin.is_active is True
    assert db.commits == 0


@pytest.mark.anyio
async def test_admin_can_deactivate_someone_else_via_update():
    admin = _user()
    other = _user(email="ravi@gatepass.com", name="Ravi Kumar", role="Approver")
    db = StubSession(admin, other)

    out = await UserService(db).update_user(other.id, UserUpdate(is_active=False), actor_id=admin.id)
    assert out.is_active is False
    assert db.commits == 1
