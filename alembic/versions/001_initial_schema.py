"""Initial schema - Create all tables

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name: str, *values: str) -> postgresql.ENUM:
    return postgresql.ENUM(*values, name=name, create_type=False)


def upgrade() -> None:
    # Enum types store member names
    op.execute("CREATE TYPE vehicletype AS ENUM ('CAR', 'TRUCK', 'MOTORCYCLE')")
    op.execute("CREATE TYPE verificationstatus AS ENUM ('PENDING', 'APPROVED', 'REJECTED', 'NEEDS_REUPLOAD')")
    op.execute("CREATE TYPE dispatchstatus AS ENUM ('PENDING', 'ACCEPTED', 'PICKED_UP', 'IN_TRANSIT', 'DELIVERED', 'CANCELLED')")
    op.execute("CREATE TYPE servicetype AS ENUM ('STANDARD', 'EXPRESS', 'OVERNIGHT', 'ECONOMY')")
    op.execute("CREATE TYPE assigneetype AS ENUM ('DRIVER', 'COMPANY')")
    op.execute("CREATE TYPE quotestatus AS ENUM ('PENDING', 'APPROVED', 'REJECTED', 'EXPIRED', 'CONVERTED')")

    vehicle_type = _enum('vehicletype', 'CAR', 'TRUCK', 'MOTORCYCLE')
    service_type = _enum('servicetype', 'STANDARD', 'EXPRESS', 'OVERNIGHT', 'ECONOMY')

    # Directory
    op.create_table(
        'drivers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, unique=True, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('license_number', sa.String(50), nullable=False, unique=True),
        sa.Column('vehicle_type', vehicle_type, nullable=False, server_default='CAR'),
        sa.Column('vehicle_model', sa.String(100), nullable=True),
        sa.Column('vehicle_plate', sa.String(20), nullable=True),
        sa.Column('rating', sa.Float(), nullable=False, server_default='0.0'),
        sa.Column('total_deliveries', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_on_duty', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        sa.Column(
            'verification_status',
            _enum('verificationstatus', 'PENDING', 'APPROVED', 'REJECTED', 'NEEDS_REUPLOAD'),
            nullable=False,
            server_default='PENDING',
        ),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('location_updated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'logistics_companies',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, unique=True, index=True),
        sa.Column('company_name', sa.String(255), nullable=False),
        sa.Column('contact_email', sa.String(255), nullable=True),
        sa.Column('rating', sa.Float(), nullable=False, server_default='0.0'),
        sa.Column('total_deliveries', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    # Dispatch requests
    op.create_table(
        'dispatch_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', sa.String(32), nullable=False, unique=True, index=True),
        sa.Column('order_number', sa.String(32), nullable=False, unique=True, index=True),
        sa.Column('requester_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('requester_role', sa.String(32), nullable=False, server_default='user'),
        sa.Column('assignee_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('assignee_type', _enum('assigneetype', 'DRIVER', 'COMPANY'), nullable=True),
        sa.Column('pickup_address', sa.Text(), nullable=False),
        sa.Column('pickup_latitude', sa.Float(), nullable=False),
        sa.Column('pickup_longitude', sa.Float(), nullable=False),
        sa.Column('dropoff_address', sa.Text(), nullable=False),
        sa.Column('dropoff_latitude', sa.Float(), nullable=False),
        sa.Column('dropoff_longitude', sa.Float(), nullable=False),
        sa.Column('package_weight_kg', sa.Float(), nullable=False),
        sa.Column('package_length', sa.Float(), nullable=True),
        sa.Column('package_width', sa.Float(), nullable=True),
        sa.Column('package_height', sa.Float(), nullable=True),
        sa.Column('package_description', sa.Text(), nullable=False),
        sa.Column('service_type', service_type, nullable=False, server_default='STANDARD'),
        sa.Column('required_vehicle_type', vehicle_type, nullable=True),
        sa.Column('distance_km', sa.Float(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('estimated_delivery_time', sa.String(64), nullable=True),
        sa.Column('commission_rate', sa.Float(), nullable=True),
        sa.Column('commission_amount', sa.Float(), nullable=True),
        sa.Column('provider_payout', sa.Float(), nullable=True),
        sa.Column(
            'status',
            _enum('dispatchstatus', 'PENDING', 'ACCEPTED', 'PICKED_UP', 'IN_TRANSIT', 'DELIVERED', 'CANCELLED'),
            nullable=False,
            server_default='PENDING',
            index=True,
        ),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('picked_up_at', sa.DateTime(), nullable=True),
        sa.Column('in_transit_at', sa.DateTime(), nullable=True),
        sa.Column('actual_delivery_time', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_dispatch_requests_requester_status', 'dispatch_requests', ['requester_id', 'status'])
    op.create_index('ix_dispatch_requests_assignee_status', 'dispatch_requests', ['assignee_id', 'status'])

    # Quotes
    op.create_table(
        'quotes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('quote_number', sa.String(32), nullable=False, unique=True, index=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('logistics_companies.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('origin_address', sa.Text(), nullable=False),
        sa.Column('origin_latitude', sa.Float(), nullable=False),
        sa.Column('origin_longitude', sa.Float(), nullable=False),
        sa.Column('destination_address', sa.Text(), nullable=False),
        sa.Column('destination_latitude', sa.Float(), nullable=False),
        sa.Column('destination_longitude', sa.Float(), nullable=False),
        sa.Column('package_weight_kg', sa.Float(), nullable=False),
        sa.Column('package_length', sa.Float(), nullable=True),
        sa.Column('package_width', sa.Float(), nullable=True),
        sa.Column('package_height', sa.Float(), nullable=True),
        sa.Column('package_description', sa.Text(), nullable=False),
        sa.Column('service_type', service_type, nullable=False, server_default='STANDARD'),
        sa.Column('distance_km', sa.Float(), nullable=False, server_default='0.0'),
        sa.Column('calculated_cost', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(8), nullable=False, server_default='USD'),
        sa.Column('estimated_delivery_time', sa.String(64), nullable=True),
        sa.Column('validity_start', sa.DateTime(), nullable=False),
        sa.Column('validity_end', sa.DateTime(), nullable=False),
        sa.Column(
            'status',
            _enum('quotestatus', 'PENDING', 'APPROVED', 'REJECTED', 'EXPIRED', 'CONVERTED'),
            nullable=False,
            server_default='PENDING',
            index=True,
        ),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('converted_request_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('dispatch_requests.id', ondelete='SET NULL'), nullable=True),
        sa.Column('converted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    # Identifier counters
    op.create_table(
        'sequence_counters',
        sa.Column('key', sa.String(200), primary_key=True),
        sa.Column('seq', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table('sequence_counters')
    op.drop_table('quotes')
    op.drop_index('ix_dispatch_requests_assignee_status', table_name='dispatch_requests')
    op.drop_index('ix_dispatch_requests_requester_status', table_name='dispatch_requests')
    op.drop_table('dispatch_requests')
    op.drop_table('logistics_companies')
    op.drop_table('drivers')

    op.execute("DROP TYPE IF EXISTS quotestatus")
    op.execute("DROP TYPE IF EXISTS assigneetype")
    op.execute("DROP TYPE IF EXISTS servicetype")
    op.execute("DROP TYPE IF EXISTS dispatchstatus")
    op.execute("DROP TYPE IF EXISTS verificationstatus")
    op.execute("DROP TYPE IF EXISTS vehicletype")
