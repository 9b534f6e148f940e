"""initial_schema

Revision ID: 000000000000
Revises:
Create Date: 2026-01-01 00:00:00.000000

Creates the rental portfolio tables and the two finance views the dashboard
reads: vw_lease_arrears_detail and vw_lease_prepayment_status.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '000000000000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


LEASE_ARREARS_VIEW = """
CREATE OR REPLACE VIEW vw_lease_arrears_detail AS
SELECT
    l.organization_id,
    l.id AS lease_id,
    l.tenant_user_id,
    p.full_name AS tenant_name,
    p.phone_number AS tenant_phone,
    l.unit_id,
    u.unit_number,
    SUM(GREATEST(i.amount - COALESCE(i.total_paid, 0), 0)) AS arrears_amount,
    COUNT(i.id) AS open_invoices_count,
    MIN(i.due_date) AS oldest_due_date
FROM leases l
JOIN invoices i ON i.lease_id = l.id
LEFT JOIN apartment_units u ON u.id = l.unit_id
LEFT JOIN user_profiles p ON p.id = l.tenant_user_id
WHERE l.status = 'active'
  AND COALESCE(i.status, false) = false
  AND COALESCE(i.status_text, 'unpaid') NOT IN ('paid', 'void')
  AND i.amount > COALESCE(i.total_paid, 0)
GROUP BY l.organization_id, l.id, l.tenant_user_id, p.full_name, p.phone_number, l.unit_id, u.unit_number
"""

LEASE_PREPAYMENT_VIEW = """
CREATE OR REPLACE VIEW vw_lease_prepayment_status AS
SELECT
    l.organization_id,
    l.id AS lease_id,
    l.tenant_user_id,
    l.unit_id,
    u.unit_number,
    l.rent_paid_until,
    l.next_rent_due_date,
    m.prepaid_months,
    m.prepaid_months > 0 AS is_prepaid
FROM leases l
LEFT JOIN apartment_units u ON u.id = l.unit_id
CROSS JOIN LATERAL (
    SELECT GREATEST(
        date_trunc('month', timezone('utc', now()))::date,
        date_trunc('month', l.next_rent_due_date)::date
    ) AS baseline
) b
CROSS JOIN LATERAL (
    SELECT CASE
        WHEN l.rent_paid_until IS NULL THEN 0
        WHEN date_trunc('month', l.rent_paid_until)::date < b.baseline THEN 0
        ELSE (
            (EXTRACT(YEAR FROM l.rent_paid_until) * 12 + EXTRACT(MONTH FROM l.rent_paid_until))
            - (EXTRACT(YEAR FROM b.baseline) * 12 + EXTRACT(MONTH FROM b.baseline))
            + 1
        )::int
    END AS prepaid_months
) m
WHERE l.status = 'active'
"""


def upgrade() -> None:
    # Create user_profiles table
    op.create_table('user_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('phone_number', sa.String(length=50), nullable=True),
        sa.Column('role', sa.String(length=20), server_default='tenant', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Create apartment_buildings table
    op.create_table('apartment_buildings',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_apartment_buildings_org', 'apartment_buildings', ['organization_id'])

    # Create apartment_units table
    op.create_table('apartment_units',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('building_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('unit_number', sa.String(length=50), nullable=True),
        sa.Column('unit_price_category', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['building_id'], ['apartment_buildings.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_apartment_units_org_building', 'apartment_units', ['organization_id', 'building_id'])

    # Create leases table
    op.create_table('leases',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('unit_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('monthly_rent', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('rent_paid_until', sa.Date(), nullable=True),
        sa.Column('next_rent_due_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_user_id'], ['user_profiles.id']),
        sa.ForeignKeyConstraint(['unit_id'], ['apartment_units.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_leases_org_status', 'leases', ['organization_id', 'status'])

    # Create invoices table
    op.create_table('invoices',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('lease_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('invoice_type', sa.String(length=20), server_default='rent', nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False),
        sa.Column('status', sa.Boolean(), server_default=sa.false(), nullable=True),
        sa.Column('status_text', sa.String(length=30), nullable=True),
        sa.Column('total_paid', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('period_start', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['lease_id'], ['leases.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_invoices_org_type_due', 'invoices', ['organization_id', 'invoice_type', 'due_date'])
    op.create_index('ix_invoices_period_start', 'invoices', ['period_start'])

    # Create payments table
    op.create_table('payments',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('invoice_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('tenant_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('amount_paid', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False),
        sa.Column('verified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('months_paid', sa.Integer(), nullable=True),
        sa.Column('mpesa_response_code', sa.String(length=20), nullable=True),
        sa.Column('mpesa_query_status', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_payments_org_invoice', 'payments', ['organization_id', 'invoice_id'])

    # Create expenses table
    op.create_table('expenses',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('property_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('incurred_at', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['property_id'], ['apartment_buildings.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_expenses_org_incurred', 'expenses', ['organization_id', 'incurred_at'])

    # Create maintenance_requests table
    op.create_table('maintenance_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('unit_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=30), server_default='open', nullable=True),
        sa.Column('priority', sa.String(length=20), server_default='medium', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['unit_id'], ['apartment_units.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_maintenance_requests_org_updated', 'maintenance_requests', ['organization_id', 'updated_at'])

    # Finance views
    op.execute(LEASE_ARREARS_VIEW)
    op.execute(LEASE_PREPAYMENT_VIEW)


def downgrade() -> None:
    # Drop views first, then tables in reverse order
    op.execute('DROP VIEW IF EXISTS vw_lease_prepayment_status')
    op.execute('DROP VIEW IF EXISTS vw_lease_arrears_detail')
    op.drop_table('maintenance_requests')
    op.drop_table('expenses')
    op.drop_table('payments')
    op.drop_table('invoices')
    op.drop_table('leases')
    op.drop_table('apartment_units')
    op.drop_table('apartment_buildings')
    op.drop_table('user_profiles')
