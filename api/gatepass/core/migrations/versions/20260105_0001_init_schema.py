"""init schema: master data, workflow template, visitor requests, approval ledger

Revision ID: 20260105_0001
Revises:
Create Date: 2026-01-05 00:00:00
"""
from alembic import op

revision = '20260105_0001'
down_revision = None
branch_labels = None
depends_on = None

ddl = r"""
  CREATE EXTENSION IF NOT EXISTS pgcrypto;

  -- ===== SCHEMAS =====
  CREATE SCHEMA IF NOT EXISTS "user";
  CREATE SCHEMA IF NOT EXISTS gatepass;

  -- ===== ENUMS =====
  DO $$ BEGIN
    CREATE TYPE "user".user_role AS ENUM ('Admin','Receptionist','Approver');
  EXCEPTION WHEN duplicate_object THEN NULL; END $$;

  DO $$ BEGIN
    CREATE TYPE gatepass.request_status AS ENUM ('pending','approved','rejected');
  EXCEPTION WHEN duplicate_object THEN NULL; END $$;

  DO $$ BEGIN
    CREATE TYPE gatepass.visit_status AS ENUM ('pending','visited','no_show');
  EXCEPTION WHEN duplicate_object THEN NULL; END $$;

  DO $$ BEGIN
    CREATE TYPE gatepass.punctuality AS ENUM ('early','on_time','late');
  EXCEPTION WHEN duplicate_object THEN NULL; END $$;

  DO $$ BEGIN
    CREATE TYPE gatepass.approval_status AS ENUM ('pending','approved','rejected');
  EXCEPTION WHEN duplicate_object THEN NULL; END $$;

  -- ===== UTIL =====
  CREATE OR REPLACE FUNCTION gatepass.set_updated_at()
  RETURNS TRIGGER LANGUAGE plpgsql AS $$
  BEGIN
    NEW.updated_at := now();
    RETURN NEW;
  END $$;

  -- ===== MASTER: WAREHOUSES =====
  CREATE TABLE IF NOT EXISTS gatepass.warehouses (
    id         UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name       VARCHAR(100) UNIQUE NOT NULL,
    location   TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
  );
  DROP TRIGGER IF EXISTS trg_warehouses_updated ON gatepass.warehouses;
  CREATE TRIGGER trg_warehouses_updated
  BEFORE UPDATE ON gatepass.warehouses
  FOR EACH ROW EXECUTE FUNCTION gatepass.set_updated_at();

  CREATE TABLE IF NOT EXISTS gatepass.warehouse_time_slots (
    id           UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    warehouse_id UUID NOT NULL REFERENCES gatepass.warehouses(id) ON DELETE CASCADE,
    name         VARCHAR(100) NOT NULL,
    from_time    TIME NOT NULL,
    to_time      TIME NOT NULL,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at   TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT ck_time_slot_window CHECK (from_time < to_time)
  );
  CREATE INDEX IF NOT EXISTS idx_time_slots_warehouse ON gatepass.warehouse_time_slots(warehouse_id);

  -- ===== MASTER: VISITOR TYPES =====
  CREATE TABLE IF NOT EXISTS gatepass.visitor_types (
    id          UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name        VARCHAR(100) UNIQUE NOT NULL,
    description TEXT,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT now()
  );

  -- ===== USERS =====
  CREATE TABLE IF NOT EXISTS "user".users (
    id           UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name         VARCHAR(100) NOT NULL,
    email        VARCHAR(150) UNIQUE NOT NULL,
    phone        VARCHAR(20),
    password     TEXT NOT NULL,
    designation  VARCHAR(100),
    role         "user".user_role NOT NULL,
    warehouse_id UUID REFERENCES gatepass.warehouses(id) ON DELETE SET NULL,
    is_active    BOOLEAN NOT NULL DEFAULT TRUE,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at   TIMESTAMPTZ NOT NULL DEFAULT now()
  );
  CREATE INDEX IF NOT EXISTS ix_user_users_email ON "user".users(email);
  DROP TRIGGER IF EXISTS trg_users_updated ON "user".users;
  CREATE TRIGGER trg_users_updated
  BEFORE UPDATE ON "user".users
  FOR EACH ROW EXECUTE FUNCTION gatepass.set_updated_at();

  -- ===== WORKFLOW TEMPLATE =====
  CREATE TABLE IF NOT EXISTS gatepass.warehouse_workflow_steps (
    id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    warehouse_id    UUID NOT NULL REFERENCES gatepass.warehouses(id) ON DELETE CASCADE,
    visitor_type_id UUID NOT NULL REFERENCES gatepass.visitor_types(id),
    step_no         INTEGER NOT NULL CHECK (step_no > 0),
    approver_id     UUID NOT NULL REFERENCES "user".users(id),
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT uq_workflow_step_slot UNIQUE (warehouse_id, visitor_type_id, step_no)
  );
  DROP TRIGGER IF EXISTS trg_workflow_steps_updated ON gatepass.warehouse_workflow_steps;
  CREATE TRIGGER trg_workflow_steps_updated
  BEFORE UPDATE ON gatepass.warehouse_workflow_steps
  FOR EACH ROW EXECUTE FUNCTION gatepass.set_updated_at();

  -- ===== VISITOR REQUESTS =====
  CREATE TABLE IF NOT EXISTS gatepass.visitor_requests (
    id                     UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name                   VARCHAR(100) NOT NULL,
    phone                  VARCHAR(20),
    email                  VARCHAR(150),
    visitor_type_id        UUID NOT NULL REFERENCES gatepass.visitor_types(id),
    warehouse_id           UUID NOT NULL REFERENCES gatepass.warehouses(id),
    warehouse_time_slot_id UUID NOT NULL REFERENCES gatepass.warehouse_time_slots(id),
    accompanying           JSONB DEFAULT '[]'::jsonb,
    date                   DATE NOT NULL,
    status                 gatepass.request_status NOT NULL DEFAULT 'pending',
    tracking_code          VARCHAR(8) UNIQUE NOT NULL CHECK (tracking_code ~ '^[A-Z0-9]{8}$'),
    visit_status           gatepass.visit_status NOT NULL DEFAULT 'pending',
    arrived_at             TIMESTAMPTZ,
    checked_out_at         TIMESTAMPTZ,
    punctuality            gatepass.punctuality,
    created_at             TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at             TIMESTAMPTZ NOT NULL DEFAULT now()
  );
  CREATE INDEX IF NOT EXISTS ix_visitor_requests_slot
    ON gatepass.visitor_requests(warehouse_id, date, warehouse_time_slot_id);
  -- one approved booking per (warehouse, date, slot)
  CREATE UNIQUE INDEX IF NOT EXISTS uq_visitor_requests_approved_slot
    ON gatepass.visitor_requests(warehouse_id, date, warehouse_time_slot_id)
    WHERE status = 'approved';
  DROP TRIGGER IF EXISTS trg_visitor_requests_updated ON gatepass.visitor_requests;
  CREATE TRIGGER trg_visitor_requests_updated
  BEFORE UPDATE ON gatepass.visitor_requests
  FOR EACH ROW EXECUTE FUNCTION gatepass.set_updated_at();

  -- ===== APPROVAL LEDGER =====
  -- snapshot of the template at submission time; no FK to workflow steps
  CREATE TABLE IF NOT EXISTS gatepass.approvals (
    id                 UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    visitor_request_id UUID NOT NULL REFERENCES gatepass.visitor_requests(id) ON DELETE CASCADE,
    step_no            INTEGER NOT NULL CHECK (step_no > 0),
    approver_id        UUID NOT NULL REFERENCES "user".users(id),
    status             gatepass.approval_status NOT NULL DEFAULT 'pending',
    reason             TEXT,
    decided_at         TIMESTAMPTZ,
    created_at         TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at         TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT uq_approval_request_step_approver UNIQUE (visitor_request_id, step_no, approver_id)
  );
  CREATE INDEX IF NOT EXISTS ix_approvals_approver_status ON gatepass.approvals(approver_id, status);
  DROP TRIGGER IF EXISTS trg_approvals_updated ON gatepass.approvals;
  CREATE TRIGGER trg_approvals_updated
  BEFORE UPDATE ON gatepass.approvals
  FOR EACH ROW EXECUTE FUNCTION gatepass.set_updated_at();
"""

def upgrade() -> None:
    op.execute(ddl)

def downgrade() -> None:
    op.execute('DROP TABLE IF EXISTS "user".users CASCADE;')
    op.execute('DROP SCHEMA IF EXISTS gatepass CASCADE;')
    op.execute('DROP SCHEMA IF EXISTS "user" CASCADE;')
