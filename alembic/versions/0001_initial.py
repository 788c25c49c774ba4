"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _listing_columns():
    return [
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("provider_id", sa.String(length=40), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
        sa.Column("available_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("available_to", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=30), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    op.create_table(
        "saved_cards",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("card_number", sa.String(length=512), nullable=False),
        sa.Column("holder_name", sa.String(length=100), nullable=False),
        sa.Column("expiry_date", sa.String(length=5), nullable=False),
        sa.Column("last4", sa.String(length=4), nullable=False),
        sa.Column("zip_code", sa.String(length=10), nullable=True),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_saved_cards_user_id", "saved_cards", ["user_id"])

    op.create_table(
        "flights",
        *_listing_columns(),
        sa.Column("flight_number", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("departure_airport", sa.String(length=3), nullable=False),
        sa.Column("arrival_airport", sa.String(length=3), nullable=False),
        sa.Column("departure_time", sa.String(length=5), nullable=False),
        sa.Column("arrival_time", sa.String(length=5), nullable=False),
        sa.Column("operating_days", sa.JSON(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("seat_classes", sa.JSON(), nullable=False),
    )

    op.create_table(
        "hotels",
        *_listing_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("address", sa.String(length=300), nullable=False, server_default=""),
        sa.Column("city", sa.String(length=120), nullable=False),
        sa.Column("state", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("zip_code", sa.String(length=10), nullable=False, server_default=""),
        sa.Column("country", sa.String(length=60), nullable=False, server_default="USA"),
        sa.Column("star_rating", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("amenities", sa.JSON(), nullable=False),
        sa.Column("room_types", sa.JSON(), nullable=False),
    )
    op.create_index("ix_hotels_city", "hotels", ["city"])

    op.create_table(
        "cars",
        *_listing_columns(),
        sa.Column("make", sa.String(length=60), nullable=False),
        sa.Column("model", sa.String(length=60), nullable=False),
        sa.Column("car_type", sa.String(length=30), nullable=False),
        sa.Column("transmission", sa.String(length=20), nullable=False, server_default="Automatic"),
        sa.Column("seats", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("daily_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=False, server_default=""),
    )

    for table in ("flights", "hotels", "cars"):
        op.create_index(f"ix_{table}_provider_id", table, ["provider_id"])
        op.create_index(f"ix_{table}_status", table, ["status"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("user_id", sa.String(length=40), nullable=False),
        sa.Column("listing_id", sa.String(length=40), nullable=False),
        sa.Column("listing_type", sa.String(length=10), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("sub_type", sa.String(length=20), nullable=True),
        sa.Column("travel_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_in", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
        sa.Column("billing_id", sa.String(length=40), nullable=True),
        sa.Column("checkout_id", sa.String(length=40), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_bookings_availability",
        "bookings",
        ["listing_id", "listing_type", "sub_type", "check_in", "check_out", "status"],
    )
    op.create_index("ix_bookings_user_status", "bookings", ["user_id", "status"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_listing_id", "bookings", ["listing_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_billing_id", "bookings", ["billing_id"])
    op.create_index("ix_bookings_checkout_id", "bookings", ["checkout_id"])
    op.create_index("ix_bookings_created_at", "bookings", ["created_at"])

    op.create_table(
        "bills",
        sa.Column("billing_id", sa.String(length=40), nullable=False),
        sa.Column("booking_id", sa.String(length=40), nullable=False),
        sa.Column("user_id", sa.String(length=40), nullable=False),
        sa.Column("booking_type", sa.String(length=10), nullable=False),
        sa.Column("checkout_id", sa.String(length=40), nullable=False),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_method", sa.String(length=50), nullable=False, server_default="Credit Card"),
        sa.Column("transaction_status", sa.String(length=20), nullable=False, server_default="Completed"),
        sa.Column("invoice_details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("billing_id", "booking_id"),
    )
    op.create_index("ix_bills_billing_id", "bills", ["billing_id"])
    op.create_index("ix_bills_booking_id", "bills", ["booking_id"])
    op.create_index("ix_bills_user_id", "bills", ["user_id"])
    op.create_index("ix_bills_checkout_id", "bills", ["checkout_id"])
    op.create_index("ix_bills_transaction_date", "bills", ["transaction_date"])
    op.create_index("ix_bills_transaction_status", "bills", ["transaction_status"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("actor_user_id", sa.String(length=40), nullable=False),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=40), nullable=False),
        sa.Column("entity_id", sa.String(length=40), nullable=False),
        sa.Column("details_json", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    for col in ("actor_user_id", "action", "entity_type", "entity_id"):
        op.create_index(f"ix_audit_logs_{col}", "audit_logs", [col])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("bills")
    op.drop_table("bookings")
    op.drop_table("cars")
    op.drop_table("hotels")
    op.drop_table("flights")
    op.drop_table("saved_cards")
    op.drop_table("users")
