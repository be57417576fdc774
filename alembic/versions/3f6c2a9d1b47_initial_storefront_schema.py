"""initial storefront schema

Revision ID: 3f6c2a9d1b47
Revises:
Create Date: 2026-10-18 09:14:03.512207

Creates products, orders, order_items, reviews and admin_users. Tables that
Base.metadata.create_all() already made are skipped, so this is safe to run
against a database that predates Alembic.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '3f6c2a9d1b47'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLAlchemy Enum columns store member names
CURRENCY = sa.Enum("NIS", "USD", "EUR", name="currency")
ORDER_STATUS = sa.Enum(
    "PENDING", "CONFIRMED", "PROCESSING", "READY", "SHIPPED", "DELIVERED", "CANCELLED", "REFUNDED",
    name="orderstatus",
)


def _table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    if not _table_exists("products"):
        op.create_table(
            "products",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("product_id", sa.String(), nullable=False),
            sa.Column("name", sa.JSON(), nullable=False),
            sa.Column("description", sa.JSON(), nullable=False),
            sa.Column("category", sa.Enum("BOOKSHELF", "STAIRS", "FURNITURE", "OUTDOOR", "PET",
                                          name="productcategory"), nullable=False),
            sa.Column("base_price", sa.Float(), nullable=False),
            sa.Column("currency", CURRENCY, nullable=True),
            sa.Column("dimensions", sa.JSON(), nullable=True),
            sa.Column("options", sa.JSON(), nullable=True),
            sa.Column("tags", sa.JSON(), nullable=True),
            sa.Column("images", sa.JSON(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("in_stock", sa.Boolean(), nullable=True),
            sa.Column("stock_level", sa.Integer(), nullable=True),
            sa.Column("low_stock_threshold", sa.Integer(), nullable=True),
            sa.Column("rating_average", sa.Float(), nullable=True),
            sa.Column("rating_count", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_products_id", "products", ["id"])
        op.create_index("ix_products_product_id", "products", ["product_id"], unique=True)

    if not _table_exists("orders"):
        op.create_table(
            "orders",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("order_number", sa.String(), nullable=False),
            sa.Column("customer_name", sa.String(), nullable=False),
            sa.Column("customer_email", sa.String(), nullable=False),
            sa.Column("customer_phone", sa.String(), nullable=False),
            sa.Column("customer_address", sa.JSON(), nullable=False),
            sa.Column("subtotal", sa.Float(), nullable=True),
            sa.Column("tax_rate", sa.Float(), nullable=True),
            sa.Column("tax", sa.Float(), nullable=True),
            sa.Column("shipping_cost", sa.Float(), nullable=True),
            sa.Column("discount", sa.Float(), nullable=True),
            sa.Column("total", sa.Float(), nullable=True),
            sa.Column("currency", CURRENCY, nullable=True),
            sa.Column("status", ORDER_STATUS, nullable=True),
            sa.Column("payment_status", sa.Enum("PENDING", "PAID", "FAILED", "REFUNDED",
                                                name="paymentstatus"), nullable=True),
            sa.Column("payment_method", sa.Enum("CREDIT_CARD", "BANK_TRANSFER", "CASH", "PAYPAL",
                                                name="paymentmethod"), nullable=True),
            sa.Column("transaction_id", sa.String(), nullable=True),
            sa.Column("payment_provider", sa.String(), nullable=True),
            sa.Column("payment_date", sa.DateTime(), nullable=True),
            sa.Column("customer_notes", sa.Text(), nullable=True),
            sa.Column("admin_notes", sa.Text(), nullable=True),
            sa.Column("shipping_method", sa.Enum("PICKUP", "DELIVERY", "COURIER",
                                                 name="shippingmethod"), nullable=True),
            sa.Column("shipping_address", sa.String(), nullable=True),
            sa.Column("estimated_delivery", sa.DateTime(), nullable=True),
            sa.Column("tracking_number", sa.String(), nullable=True),
            sa.Column("timeline", sa.JSON(), nullable=True),
            sa.Column("source", sa.String(), nullable=True),
            sa.Column("user_agent", sa.String(), nullable=True),
            sa.Column("ip_address", sa.String(), nullable=True),
            sa.Column("language", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_orders_id", "orders", ["id"])
        op.create_index("ix_orders_order_number", "orders", ["order_number"], unique=True)
        op.create_index("ix_orders_customer_email", "orders", ["customer_email"])
        op.create_index("ix_orders_status", "orders", ["status"])
        op.create_index("ix_orders_payment_status", "orders", ["payment_status"])
        op.create_index("ix_orders_created_at", "orders", ["created_at"])

    if not _table_exists("order_items"):
        op.create_table(
            "order_items",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
            sa.Column("product_pk", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
            sa.Column("product_code", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("configuration", sa.JSON(), nullable=True),
            sa.Column("base_price", sa.Float(), nullable=False),
            sa.Column("size_adjustment", sa.Float(), nullable=True),
            sa.Column("options_cost", sa.Float(), nullable=True),
            sa.Column("unit_price", sa.Float(), nullable=False),
            sa.Column("quantity", sa.Integer(), nullable=True),
            sa.Column("total_price", sa.Float(), nullable=False),
        )
        op.create_index("ix_order_items_id", "order_items", ["id"])

    if not _table_exists("reviews"):
        op.create_table(
            "reviews",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("product_pk", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
            sa.Column("customer_name", sa.String(), nullable=False),
            sa.Column("customer_email", sa.String(), nullable=True),
            sa.Column("customer_verified", sa.Boolean(), nullable=True),
            sa.Column("rating", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(), nullable=True),
            sa.Column("text", sa.Text(), nullable=False),
            sa.Column("images", sa.JSON(), nullable=True),
            sa.Column("helpful_count", sa.Integer(), nullable=True),
            sa.Column("helpful_users", sa.JSON(), nullable=True),
            sa.Column("status", sa.Enum("PENDING", "APPROVED", "REJECTED", "SPAM",
                                        name="reviewstatus"), nullable=True),
            sa.Column("language", sa.String(), nullable=True),
            sa.Column("source", sa.String(), nullable=True),
            sa.Column("user_agent", sa.String(), nullable=True),
            sa.Column("ip_address", sa.String(), nullable=True),
            sa.Column("order_reference", sa.String(), nullable=True),
            sa.Column("moderation_notes", sa.String(), nullable=True),
            sa.Column("moderated_at", sa.DateTime(), nullable=True),
            sa.Column("replies", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_reviews_id", "reviews", ["id"])
        op.create_index("ix_reviews_product_pk", "reviews", ["product_pk"])
        op.create_index("ix_reviews_customer_email", "reviews", ["customer_email"])
        op.create_index("ix_reviews_status", "reviews", ["status"])
        op.create_index("ix_reviews_created_at", "reviews", ["created_at"])

    if not _table_exists("admin_users"):
        op.create_table(
            "admin_users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("username", sa.String(), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(), nullable=False),
            sa.Column("last_login_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_admin_users_id", "admin_users", ["id"])


def downgrade() -> None:
    for table in ("admin_users", "reviews", "order_items", "orders", "products"):
        if _table_exists(table):
            op.drop_table(table)
