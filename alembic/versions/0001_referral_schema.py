"""menu, affiliates, orders and referral reporting

Revision ID: 0001
Revises:
Create Date: 2025-07-21 10:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


UUID_DEFAULT = sa.text("gen_random_uuid()::text")

REFERRAL_ANALYTICS_VIEW = """
CREATE OR REPLACE VIEW referral_analytics AS
SELECT
    a.id AS affiliate_id,
    a.name AS affiliate_name,
    a.referral_code,
    COUNT(o.id) AS total_referrals,
    COALESCE(SUM(o.total), 0) AS total_sales,
    MAX(o.created_at) AS last_referral_date,
    COUNT(o.id) FILTER (
        WHERE o.created_at >= date_trunc('week', now() AT TIME ZONE 'Asia/Manila') AT TIME ZONE 'Asia/Manila'
    ) AS referrals_this_week,
    COUNT(o.id) FILTER (
        WHERE o.created_at >= date_trunc('month', now() AT TIME ZONE 'Asia/Manila') AT TIME ZONE 'Asia/Manila'
    ) AS referrals_this_month
FROM affiliates a
LEFT JOIN orders o ON o.affiliate_id = a.id
GROUP BY a.id, a.name, a.referral_code
ORDER BY total_sales DESC;
"""

REFERRAL_STATS_FUNCTION = """
CREATE OR REPLACE FUNCTION get_referral_stats()
RETURNS TABLE (
    total_affiliates bigint,
    active_affiliates bigint,
    total_referrals bigint,
    total_sales numeric,
    avg_order_value numeric,
    top_affiliate_name text,
    top_affiliate_sales numeric
)
LANGUAGE sql STABLE AS $$
    WITH referred AS (
        SELECT affiliate_id, total FROM orders WHERE affiliate_id IS NOT NULL
    ),
    top AS (
        SELECT a.name, SUM(r.total) AS sales
        FROM referred r JOIN affiliates a ON a.id = r.affiliate_id
        GROUP BY a.id, a.name
        ORDER BY sales DESC
        LIMIT 1
    )
    SELECT
        (SELECT COUNT(*) FROM affiliates),
        (SELECT COUNT(*) FROM affiliates WHERE status = 'active'),
        (SELECT COUNT(*) FROM referred),
        (SELECT COALESCE(SUM(total), 0) FROM referred),
        (SELECT COALESCE(AVG(total), 0) FROM referred),
        (SELECT name FROM top),
        COALESCE((SELECT sales FROM top), 0);
$$;
"""


def upgrade() -> None:
    op.create_table(
        "affiliates",
        sa.Column("id", sa.String(length=36), server_default=UUID_DEFAULT, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("referral_code", sa.String(), nullable=False),
        sa.Column("status", sa.String(), server_default="active", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("status IN ('active', 'inactive', 'suspended')", name="affiliates_status_check"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_affiliates_referral_code"), "affiliates", ["referral_code"], unique=True)

    op.create_table(
        "orders",
        sa.Column("id", sa.String(length=36), server_default=UUID_DEFAULT, nullable=False),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("contact_number", sa.String(), nullable=False),
        sa.Column("service_type", sa.String(), nullable=False),
        sa.Column("total", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_method", sa.String(), nullable=False),
        sa.Column("reference_number", sa.String(), nullable=True),
        sa.Column("status", sa.String(), server_default="pending", nullable=False),
        sa.Column("referred_by", sa.String(), nullable=True),
        sa.Column("referral_code", sa.String(), nullable=True),
        sa.Column("affiliate_id", sa.String(length=36), nullable=True),
        sa.Column("delivery_address", sa.Text(), nullable=True),
        sa.Column("pickup_time", sa.String(), nullable=True),
        sa.Column("party_size", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("service_type IN ('dine-in', 'pickup', 'delivery')", name="orders_service_type_check"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'preparing', 'ready', 'delivered', 'cancelled')",
            name="orders_status_check",
        ),
        sa.CheckConstraint("total >= 0", name="orders_total_check"),
        sa.ForeignKeyConstraint(["affiliate_id"], ["affiliates.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_orders_affiliate_id"), "orders", ["affiliate_id"], unique=False)
    op.create_index(op.f("ix_orders_created_at"), "orders", ["created_at"], unique=False)

    op.create_table(
        "menu_items",
        sa.Column("id", sa.String(length=36), server_default=UUID_DEFAULT, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("image", sa.String(), nullable=True),
        sa.Column("popular", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("available", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("discount_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("discount_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("discount_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("discount_active", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_menu_items_category"), "menu_items", ["category"], unique=False)

    for table in ("variations", "add_ons"):
        extra = [sa.Column("category", sa.String(), server_default="", nullable=False)] if table == "add_ons" else []
        op.create_table(
            table,
            sa.Column("id", sa.String(length=36), server_default=UUID_DEFAULT, nullable=False),
            sa.Column("menu_item_id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("price", sa.Numeric(10, 2), server_default="0", nullable=False),
            *extra,
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
            sa.ForeignKeyConstraint(["menu_item_id"], ["menu_items.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f(f"ix_{table}_menu_item_id"), table, ["menu_item_id"], unique=False)

    op.create_table(
        "payment_methods",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("account_number", sa.String(), server_default="", nullable=False),
        sa.Column("account_name", sa.String(), server_default="", nullable=False),
        sa.Column("qr_code_url", sa.String(), nullable=True),
        sa.Column("active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("sort_order", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.execute(REFERRAL_ANALYTICS_VIEW)
    op.execute(REFERRAL_STATS_FUNCTION)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS get_referral_stats()")
    op.execute("DROP VIEW IF EXISTS referral_analytics")
    op.drop_table("payment_methods")
    op.drop_index(op.f("ix_add_ons_menu_item_id"), table_name="add_ons")
    op.drop_table("add_ons")
    op.drop_index(op.f("ix_variations_menu_item_id"), table_name="variations")
    op.drop_table("variations")
    op.drop_index(op.f("ix_menu_items_category"), table_name="menu_items")
    op.drop_table("menu_items")
    op.drop_index(op.f("ix_orders_created_at"), table_name="orders")
    op.drop_index(op.f("ix_orders_affiliate_id"), table_name="orders")
    op.drop_table("orders")
    op.drop_index(op.f("ix_affiliates_referral_code"), table_name="affiliates")
    op.drop_table("affiliates")
