# laundry/db/schema.py

from sqlalchemy import (
    MetaData, Table, Column, Integer, String,
    Numeric, DateTime, ForeignKey, CheckConstraint, Text, Index
)

metadata = MetaData()

branches = Table(
    "branches",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String, nullable=False, unique=True),
    Column("address", Text),
    Column("phone", String),
)

customers = Table(
    "customers",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String, nullable=False),
    Column("email", String, nullable=True, unique=True),
    Column("phone", String, nullable=True),
    Column("address", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

service_types = Table(
    "service_types",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String, nullable=False, unique=True),
    Column("description", Text),
)

laundry_categories = Table(
    "laundry_categories",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String, nullable=False, unique=True),
    Column("description", Text),
)

orders = Table(
    "orders",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("invoice_number", Text, unique=True, nullable=False),
    Column("customer_id", String(36), ForeignKey("customers.id"), nullable=False),
    Column("branch_id", String(36), ForeignKey("branches.id"), nullable=True),
    Column("notes", Text),
    Column("total_amount", Numeric(18, 2), nullable=False),
    Column("amount_paid", Numeric(18, 2), nullable=False),
    # amount_due goes negative when an order is overpaid
    Column("amount_due", Numeric(18, 2), nullable=False),
    Column("discount", Numeric(18, 2), nullable=False),
    Column("status", String(20), nullable=False),
    Column("payment_status", String(20), nullable=False),
    Column("order_date", DateTime(timezone=True), nullable=False),
    Column("expected_delivery_date", DateTime(timezone=True)),
    Column("version", Integer, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("amount_paid >= 0", name="ck_orders_amount_paid_nonneg"),
    CheckConstraint("discount >= 0", name="ck_orders_discount_nonneg"),
    Index("ix_orders_customer_id", "customer_id"),
    Index("ix_orders_created_at", "created_at"),
)

order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
    Column("service_type_id", String(36), ForeignKey("service_types.id"), nullable=False),
    Column("category_id", String(36), ForeignKey("laundry_categories.id"), nullable=True),
    Column("quantity", Integer, nullable=False),
    Column("price", Numeric(18, 2), nullable=False),
    Column("subtotal", Numeric(18, 2), nullable=False),
    Column("notes", Text),
    Column("size", String),
    CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
    CheckConstraint("price >= 0", name="ck_order_items_price_nonneg"),
    CheckConstraint("subtotal >= 0", name="ck_order_items_subtotal_nonneg"),
    Index("ix_order_items_order_id", "order_id"),
)

payments = Table(
    "payments",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("order_id", String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
    Column("amount", Numeric(18, 2), nullable=False),
    Column("payment_method", String(20), nullable=False),
    Column("transaction_id", String),
    Column("status", String(20), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("amount >= 0", name="ck_payments_amount_nonneg"),
    Index("ix_payments_order_id", "order_id"),
)

order_status_history = Table(
    "order_status_history",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
    Column("from_status", String(20)),
    Column("to_status", String(20), nullable=False),
    Column("changed_at", DateTime(timezone=True), nullable=False),
)

invoice_settings = Table(
    "invoice_settings",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("prefix", String, nullable=False),
    Column("counter_digits", Integer, nullable=False),
    # Next number to hand out; custom invoice numbers never move it
    Column("current_counter", Integer, nullable=False),
    CheckConstraint("current_counter >= 1", name="ck_invoice_settings_counter_positive"),
)
