# gatepass/core/db/repo/models.py
from __future__ import annotations
from enum import Enum
from typing import Optional, List, Literal
import datetime as dt
from sqlalchemy import (
    String, Boolean, ForeignKey, UniqueConstraint, Text, Integer, Index,
    Date, Time, func, text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID, ENUM as PGEnum
from sqlalchemy.types import DateTime

from gatepass.core.db.session import Base

SCHEMA = "gatepass"

# --- Postgres ENUMs (already created by migrations) ---
UserRoleEnum       = PGEnum("Admin", "Receptionist", "Approver", name="user_role", schema="user", create_type=False)
RequestStatusEnum  = PGEnum("pending", "approved", "rejected", name="request_status", schema=SCHEMA, create_type=False)
VisitStatusEnum    = PGEnum("pending", "visited", "no_show", name="visit_status", schema=SCHEMA, create_type=False)
PunctualityEnum    = PGEnum("early", "on_time", "late", name="punctuality", schema=SCHEMA, create_type=False)
ApprovalStatusEnum = PGEnum("pending", "approved", "rejected", name="approval_status", schema=SCHEMA, create_type=False)
Role = Literal["Admin", "Receptionist", "Approver"]

def _uuid_pk() -> Mapped[str]:
    return mapped_column(PGUUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))

class ERole(str, Enum):
    ADMIN = "Admin"
    RECEPTIONIST = "Receptionist"
    APPROVER = "Approver"

class ERequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class EApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class EVisitStatus(str, Enum):
    PENDING = "pending"
    VISITED = "visited"
    NO_SHOW = "no_show"

class EPunctuality(str, Enum):
    EARLY = "early"
    ON_TIME = "on_time"
    LATE = "late"

class EOrderBy(str, Enum):
    ASC = "asc"
    DESC = "desc"

# =========================
# Master tables
# =========================

class Warehouse(Base):
    __tablename__ = "warehouses"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = {"schema": SCHEMA}

    id: Mapped[str] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    location: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    time_slots: Mapped[List["WarehouseTimeSlot"]] = relationship(
        back_populates="warehouse", cascade="all, delete-orphan", passive_deletes=True
    )


class WarehouseTimeSlot(Base):
    __tablename__ = "warehouse_time_slots"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = {"schema": SCHEMA}

    id: Mapped[str] = _uuid_pk()
    warehouse_id: Mapped[str] = mapped_column(
        ForeignKey(f"{SCHEMA}.warehouses.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    from_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    to_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    created_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    warehouse: Mapped["Warehouse"] = relationship(back_populates="time_slots")


class VisitorType(Base):
    __tablename__ = "visitor_types"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = {"schema": SCHEMA}

    id: Mapped[str] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class User(Base):
    __tablename__ = "users"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = {"schema": "user"}

    id: Mapped[str] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(150), unique=True, index=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    password: Mapped[str] = mapped_column(Text, nullable=False)
    designation: Mapped[Optional[str]] = mapped_column(String(100))
    role: Mapped[str] = mapped_column(UserRoleEnum, nullable=False)
    warehouse_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey(f"{SCHEMA}.warehouses.id", ondelete="SET NULL")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# =========================
# Workflow template
# =========================

class WarehouseWorkflowStep(Base):
    __tablename__ = "warehouse_workflow_steps"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        UniqueConstraint("warehouse_id", "visitor_type_id", "step_no", name="uq_workflow_step_slot"),
        {"schema": SCHEMA},
    )

    id: Mapped[str] = _uuid_pk()
    warehouse_id: Mapped[str] = mapped_column(
        ForeignKey(f"{SCHEMA}.warehouses.id", ondelete="CASCADE"), nullable=False
    )
    visitor_type_id: Mapped[str] = mapped_column(ForeignKey(f"{SCHEMA}.visitor_types.id"), nullable=False)
    step_no: Mapped[int] = mapped_column(Integer, nullable=False)
    approver_id: Mapped[str] = mapped_column(ForeignKey("user.users.id"), nullable=False)
    created_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# =========================
# Visitor requests + approval ledger
# =========================

class VisitorRequest(Base):
    __tablename__ = "visitor_requests"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = {"schema": SCHEMA}

    id: Mapped[str] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    email: Mapped[Optional[str]] = mapped_column(String(150))
    visitor_type_id: Mapped[str] = mapped_column(ForeignKey(f"{SCHEMA}.visitor_types.id"), nullable=False)
    warehouse_id: Mapped[str] = mapped_column(ForeignKey(f"{SCHEMA}.warehouses.id"), nullable=False)
    warehouse_time_slot_id: Mapped[str] = mapped_column(
        ForeignKey(f"{SCHEMA}.warehouse_time_slots.id"), nullable=False
    )
    accompanying: Mapped[Optional[list]] = mapped_column(JSONB, server_default=text("'[]'::jsonb"))
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    # written by the status aggregator only
    status: Mapped[str] = mapped_column(RequestStatusEnum, nullable=False, default="pending")
    tracking_code: Mapped[str] = mapped_column(String(8), unique=True, nullable=False)

    visit_status: Mapped[str] = mapped_column(VisitStatusEnum, nullable=False, default="pending")
    arrived_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True))
    checked_out_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True))
    punctuality: Mapped[Optional[str]] = mapped_column(PunctualityEnum)

    created_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    approvals: Mapped[List["Approval"]] = relationship(
        back_populates="request", cascade="all, delete-orphan", passive_deletes=True
    )

# at most one approved booking per slot; mirrors the partial index in the migration
Index(
    "uq_visitor_requests_approved_slot",
    VisitorRequest.warehouse_id, VisitorRequest.date, VisitorRequest.warehouse_time_slot_id,
    unique=True,
    postgresql_where=VisitorRequest.status == "approved",
)
Index("ix_visitor_requests_slot", VisitorRequest.warehouse_id, VisitorRequest.date, VisitorRequest.warehouse_time_slot_id)


class Approval(Base):
    __tablename__ = "approvals"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        UniqueConstraint("visitor_request_id", "step_no", "approver_id", name="uq_approval_request_step_approver"),
        {"schema": SCHEMA},
    )

    id: Mapped[str] = _uuid_pk()
    visitor_request_id: Mapped[str] = mapped_column(
        ForeignKey(f"{SCHEMA}.visitor_requests.id", ondelete="CASCADE"), nullable=False
    )
    step_no: Mapped[int] = mapped_column(Integer, nullable=False)
    approver_id: Mapped[str] = mapped_column(ForeignKey("user.users.id"), nullable=False)
    status: Mapped[str] = mapped_column(ApprovalStatusEnum, nullable=False, default="pending")
    reason: Mapped[Optional[str]] = mapped_column(Text)
    decided_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    request: Mapped["VisitorRequest"] = relationship(back_populates="approvals")

Index("ix_approvals_approver_status", Approval.approver_id, Approval.status)


class VisitorRequestSortField(str, Enum):
    date = "date"
    name = "name"
    status = "status"
    created_at = "created_at"
