"""
seed base data: admin account, visitor types

Revision ID: 20260105_0002
Revises: 20260105_0001
Create Date: 2026-01-05 00:05:00
"""
from alembic import op

revision = '20260105_0002'
down_revision = '20260105_0001'
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.execute("""
      CREATE EXTENSION IF NOT EXISTS pgcrypto;

      -- Visitor types
      INSERT INTO gatepass.visitor_types (name, description) VALUES
        ('Vendor',         'Supplier or service vendor'),
        ('Auditor',        'Internal or external auditor'),
        ('External Guest', 'Guest without a business contract'),
        ('Contractor',     'On-site contract worker')
      ON CONFLICT (name) DO NOTHING;

      -- Bootstrap admin; change the password after first login
      INSERT INTO "user".users (name, email, password, designation, role, is_active)
      VALUES ('Administrator', 'admin@gatepass.com', crypt('Admin@123', gen_salt('bf', 12)), 'System Admin', 'Admin', TRUE)
      ON CONFLICT (email) DO NOTHING;
    """)

def downgrade() -> None:
    op.execute("""
      DELETE FROM "user".users WHERE email = 'admin@gatepass.com';
      DELETE FROM gatepass.visitor_types
      WHERE name IN ('Vendor','Auditor','External Guest','Contractor');
    """)
