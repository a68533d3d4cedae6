"""SQLAlchemy models for the storefront profit system.

Remote entities (products, variations, orders) are mirrored locally and keyed
by their external ids scoped per website. Costs form an append-only ledger;
order items carry a cost snapshot resolved from that ledger at order time.

All timestamps are stored as naive UTC.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

MONEY = Numeric(12, 2)


class Base(DeclarativeBase):
    """Base class for all models."""


# =============================================================================
# Enums
# =============================================================================


class SyncType(str, PyEnum):
    """Reconciliation phases of a website sync."""

    PRODUCTS = "products"
    ORDERS = "orders"


class SyncRunStatus(str, PyEnum):
    """Sync run lifecycle: running -> completed | failed."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ProductType(str, PyEnum):
    """Remote product types that get local variants."""

    SIMPLE = "simple"
    VARIABLE = "variable"


# =============================================================================
# Websites
# =============================================================================


class Website(Base):
    """A connected WooCommerce store."""

    __tablename__ = "websites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    base_url: Mapped[str] = mapped_column(String(500), nullable=False)
    consumer_key: Mapped[str] = mapped_column(String(255), nullable=False)
    consumer_secret: Mapped[str] = mapped_column(String(255), nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default="USD", nullable=False)

    last_sync_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    sync_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )


# =============================================================================
# Catalog
# =============================================================================


class Product(Base):
    """Local mirror of a remote catalog product."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    website_id: Mapped[int] = mapped_column(
        ForeignKey("websites.id"), nullable=False, index=True
    )
    external_product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(50), default="simple", nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="publish", nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "website_id", "external_product_id", name="uq_products_website_external"
        ),
    )


class Variant(Base):
    """A sellable SKU under a product.

    Simple products own exactly one variant with a null external_variation_id;
    each variation of a variable product maps to one variant.
    """

    __tablename__ = "variants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id"), nullable=False, index=True
    )
    website_id: Mapped[int] = mapped_column(ForeignKey("websites.id"), nullable=False)
    external_variation_id: Mapped[Optional[int]] = mapped_column(Integer)
    sku: Mapped[Optional[str]] = mapped_column(String(255))
    attributes: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    price_regular: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    price_sale: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    sale_date_from: Mapped[Optional[datetime]] = mapped_column(DateTime)
    sale_date_to: Mapped[Optional[datetime]] = mapped_column(DateTime)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "product_id", "external_variation_id", name="uq_variants_product_variation"
        ),
        Index("ix_variants_website_variation", "website_id", "external_variation_id"),
    )


# =============================================================================
# Cost Ledger
# =============================================================================


class Cost(Base):
    """Append-only cost fact for a variant, effective from a point in time."""

    __tablename__ = "costs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    variant_id: Mapped[int] = mapped_column(ForeignKey("variants.id"), nullable=False)
    cost_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    effective_from: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_costs_variant_effective", "variant_id", "effective_from"),
    )


# =============================================================================
# Orders
# =============================================================================


class Order(Base):
    """Local mirror of a remote order."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    website_id: Mapped[int] = mapped_column(
        ForeignKey("websites.id"), nullable=False, index=True
    )
    external_order_id: Mapped[int] = mapped_column(Integer, nullable=False)
    order_number: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default="USD", nullable=False)
    country: Mapped[Optional[str]] = mapped_column(String(10))
    customer_email: Mapped[Optional[str]] = mapped_column(String(255))

    total_amount: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    total_tax: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    total_shipping: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    total_discount: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)

    # Authoritative timestamp for cost resolution
    order_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "website_id", "external_order_id", name="uq_orders_website_external"
        ),
    )


class OrderItem(Base):
    """One line item of an order, with its write-once cost snapshot."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id"), nullable=False, index=True
    )
    variant_id: Mapped[Optional[int]] = mapped_column(ForeignKey("variants.id"))
    product_id: Mapped[Optional[int]] = mapped_column(ForeignKey("products.id"))
    website_id: Mapped[int] = mapped_column(
        ForeignKey("websites.id"), nullable=False, index=True
    )
    external_item_id: Mapped[int] = mapped_column(Integer, nullable=False)

    product_name: Mapped[str] = mapped_column(String(500), nullable=False)
    variant_name: Mapped[Optional[str]] = mapped_column(String(500))
    sku: Mapped[Optional[str]] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    price_per_item: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    total: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)

    # Derived financials
    net_revenue: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    cost_snapshot: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    profit: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    profit_margin: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )


# =============================================================================
# Sync Logs
# =============================================================================


class SyncLog(Base):
    """One sync run per website per sync type."""

    __tablename__ = "sync_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    website_id: Mapped[int] = mapped_column(ForeignKey("websites.id"), nullable=False)
    sync_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=SyncRunStatus.RUNNING.value, nullable=False
    )
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    records_processed: Mapped[Optional[int]] = mapped_column(Integer)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    error_details: Mapped[Optional[dict]] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_sync_logs_website_type_started", "website_id", "sync_type", "started_at"),
    )


# =============================================================================
# Audit Logs
# =============================================================================


class AuditLog(Base):
    """Record of user-initiated changes such as cost updates."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_id: Mapped[Optional[str]] = mapped_column(String(100))
    old_values: Mapped[Optional[dict]] = mapped_column(JSON)
    new_values: Mapped[Optional[dict]] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
