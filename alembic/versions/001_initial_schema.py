"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2024-01-19

Creates the tables for the Boat Cruise booking API:
- Users
- Boats
- Bookings, with an exclusion constraint that keeps active bookings of the
  same boat from overlapping
"""

from typing import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""
    # Needed for the (uuid =, tstzrange &&) exclusion constraint
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    # ==================== USERS ====================
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("full_name", sa.String(200)),
        sa.Column("phone_number", sa.String(20)),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("is_email_verified", sa.Boolean, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== BOATS ====================
    op.create_table(
        "boats",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("boat_name", sa.String(200), nullable=False),
        sa.Column("company_name", sa.String(100), nullable=False, index=True),
        sa.Column("boat_type", sa.String(50), nullable=False, index=True),
        sa.Column("description", sa.Text),
        sa.Column("location", sa.String(200)),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("price_per_hour", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), server_default="NGN"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("capacity > 0", name="ck_boats_capacity_positive"),
        sa.CheckConstraint("price_per_hour >= 0", name="ck_boats_price_non_negative"),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("boat_id", sa.Uuid, sa.ForeignKey("boats.id"), nullable=False, index=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("number_of_guests", sa.Integer, nullable=False),
        sa.Column("occasion", sa.String(100)),
        sa.Column("special_request", sa.Text),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), server_default="NGN"),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING", index=True),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="PENDING", index=True),
        sa.Column("payment_reference", sa.String(64), nullable=False),
        sa.Column("payment_method", sa.String(30)),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("refund_amount", sa.Numeric(12, 2)),
        sa.Column("refund_percentage", sa.Integer),
        sa.Column("refund_reference", sa.String(100)),
        sa.Column("refunded_at", sa.DateTime(timezone=True)),
        sa.Column("cancellation_requested_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("end_date > start_date", name="ck_bookings_interval"),
        sa.CheckConstraint("number_of_guests > 0", name="ck_bookings_guests_positive"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'COMPLETED', 'CANCELLED', 'ABANDONED')",
            name="ck_bookings_status",
        ),
        sa.CheckConstraint(
            "payment_status IN ('PENDING', 'SUCCESSFUL', 'FAILED', 'REFUNDED', 'PARTIALLY_REFUNDED')",
            name="ck_bookings_payment_status",
        ),
        # A confirmed booking is always paid
        sa.CheckConstraint(
            "status <> 'CONFIRMED' OR payment_status = 'SUCCESSFUL'",
            name="ck_bookings_confirmed_is_paid",
        ),
    )
    op.create_index(
        "ix_bookings_payment_reference", "bookings", ["payment_reference"], unique=True
    )
    op.create_index(
        "ix_bookings_boat_interval", "bookings", ["boat_id", "start_date", "end_date"]
    )

    # Active bookings of one boat may not overlap; intervals are half-open
    op.execute(
        """
        ALTER TABLE bookings
        ADD CONSTRAINT ex_bookings_no_overlap
        EXCLUDE USING gist (
            boat_id WITH =,
            tstzrange(start_date, end_date, '[)') WITH &&
        )
        WHERE (status IN ('PENDING', 'CONFIRMED'))
        """
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("bookings")
    op.drop_table("boats")
    op.drop_table("users")
