"""SQLAlchemy models for the destination catalog.

These tables are stored in the 'catalog' schema and mirror the commerce
platform's data model: stores, hierarchical product categories, products
with variants, and the batch jobs that drive imports.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Schema for all catalog tables
SCHEMA = "catalog"


def generate_id(prefix: str) -> str:
    """Generate a prefixed opaque identifier (e.g. ``pcat_3f2a...``)."""
    return f"{prefix}_{uuid4().hex}"


class Base(DeclarativeBase):
    """Base class for all models."""

    __table_args__ = {"schema": SCHEMA}


# =============================================================================
# Enums
# =============================================================================


class BatchJobStatus(str, PyEnum):
    """Lifecycle states of a batch job."""

    CREATED = "created"
    PRE_PROCESSED = "pre_processed"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ProductStatus(str, PyEnum):
    """Publication state of a product."""

    DRAFT = "draft"
    PUBLISHED = "published"


# =============================================================================
# Store
# =============================================================================


class Store(Base):
    """Destination store configuration.

    ``metadata`` carries the last-sync watermark used for incremental imports.
    """

    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: generate_id("store")
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    default_currency_code: Mapped[str] = mapped_column(String(3), default="usd")
    # "metadata" is reserved on declarative classes
    metadata_: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = ({"schema": SCHEMA},)


# =============================================================================
# Product Categories
# =============================================================================


class ProductCategory(Base):
    """Hierarchical product category.

    ``handle`` is the cross-system join key. Identity-less categories
    (no ``url_key`` on the source) are stored with a NULL handle.
    """

    __tablename__ = "product_categories"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: generate_id("pcat")
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    handle: Mapped[Optional[str]] = mapped_column(String(255), unique=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    parent_category_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        ForeignKey(f"{SCHEMA}.product_categories.id", ondelete="SET NULL"),
        index=True,
    )
    rank: Mapped[Optional[int]] = mapped_column(Integer)
    metadata_: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    parent_category: Mapped[Optional["ProductCategory"]] = relationship(
        remote_side="ProductCategory.id", lazy="raise"
    )

    __table_args__ = (
        Index("ix_product_categories_parent_rank", "parent_category_id", "rank"),
        {"schema": SCHEMA},
    )


# =============================================================================
# Products
# =============================================================================


class Product(Base):
    """Sellable product, identified across systems by ``handle``."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: generate_id("prod")
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    handle: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[ProductStatus] = mapped_column(
        Enum(ProductStatus), default=ProductStatus.DRAFT, nullable=False
    )
    external_id: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    metadata_: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    variants: Mapped[list["ProductVariant"]] = relationship(
        back_populates="product", lazy="raise"
    )

    __table_args__ = ({"schema": SCHEMA},)


class ProductVariant(Base):
    """Purchasable variant of a product, identified by ``sku``."""

    __tablename__ = "product_variants"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: generate_id("variant")
    )
    product_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey(f"{SCHEMA}.products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    sku: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    # Option title -> value label, e.g. {"Color": "Black", "Size": "M"}
    options: Mapped[dict[str, str]] = mapped_column(JSON, default=dict)
    # [{"currency_code": "usd", "amount": 1999}] in minor units
    prices: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    inventory_quantity: Mapped[int] = mapped_column(Integer, default=0)
    metadata_: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    product: Mapped[Product] = relationship(back_populates="variants", lazy="raise")

    __table_args__ = ({"schema": SCHEMA},)


# =============================================================================
# Batch Jobs
# =============================================================================


class BatchJob(Base):
    """Unit of background work such as one Magento import pass."""

    __tablename__ = "batch_jobs"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: generate_id("batch")
    )
    type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    status: Mapped[BatchJobStatus] = mapped_column(
        Enum(BatchJobStatus), default=BatchJobStatus.CREATED, nullable=False, index=True
    )
    context: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    result: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)

    pre_processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    processing_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    failed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = ({"schema": SCHEMA},)
