"""
SQLAlchemy ORM models shared by the tableside services.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from .constants import (
    CUSTOMER_TOKEN_MAX_LENGTH,
    PRODUCT_ID_MAX_LENGTH,
    OrderStatus,
    TableStatus,
)

CENTS = Decimal("0.01")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class Restaurant(Base):
    __tablename__ = "tableside_restaurants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    areas: Mapped[list[Area]] = relationship("Area", back_populates="restaurant")
    tables: Mapped[list[Table]] = relationship("Table", back_populates="restaurant")


class Area(Base):
    """
    Represents areas/zones in the restaurant (e.g., Terrace, Indoor, Bar).
    Each area can contain multiple tables.
    """

    __tablename__ = "tableside_areas"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "prefix", name="uq_area_restaurant_prefix"),
        Index("ix_area_restaurant", "restaurant_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("tableside_restaurants.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    prefix: Mapped[str] = mapped_column(String(10), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    restaurant: Mapped[Restaurant] = relationship("Restaurant", back_populates="areas")
    tables: Mapped[list[Table]] = relationship("Table", back_populates="area")


class Table(Base):
    """
    Physical table with a QR code.

    ``session_id`` is the opaque token carried by the table's QR link; rotating
    it invalidates every link handed out before.
    """

    __tablename__ = "tableside_tables"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "label", name="uq_table_restaurant_label"),
        Index("ix_table_session_id", "session_id", unique=True),
        Index("ix_table_status", "status"),
        Index("ix_table_area", "area_id"),
        CheckConstraint(
            "status IN ('available', 'occupied', 'cleaning', 'out_of_service')",
            name="ck_table_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("tableside_restaurants.id"), nullable=False
    )
    area_id: Mapped[int] = mapped_column(ForeignKey("tableside_areas.id"), nullable=False)
    label: Mapped[str] = mapped_column(String(50), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=TableStatus.AVAILABLE.value
    )
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)
    session_rotated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    restaurant: Mapped[Restaurant] = relationship("Restaurant", back_populates="tables")
    area: Mapped[Area] = relationship("Area", back_populates="tables")
    orders: Mapped[list[TableOrder]] = relationship("TableOrder", back_populates="table")


class TableOrder(Base):
    """
    The shared order of one physical table.

    Only one row per table may be outside the ``closed`` status at a time; the
    partial unique index enforces it at the storage layer. ``version`` is
    checked on every UPDATE so concurrent writers cannot overwrite each other.
    """

    __tablename__ = "tableside_table_orders"
    __table_args__ = (
        Index(
            "uq_table_order_active_table",
            "table_id",
            unique=True,
            postgresql_where=text("order_status <> 'closed'"),
            sqlite_where=text("order_status <> 'closed'"),
        ),
        Index("ix_table_order_table_closed", "table_id", "closed_at"),
        Index("ix_table_order_restaurant_status", "restaurant_id", "order_status"),
        CheckConstraint(
            "order_status IN ('pending', 'processed', 'closed')",
            name="ck_table_order_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("tableside_restaurants.id"), nullable=False
    )
    table_id: Mapped[int] = mapped_column(ForeignKey("tableside_tables.id"), nullable=False)
    area_id: Mapped[int | None] = mapped_column(ForeignKey("tableside_areas.id"), nullable=True)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)
    order_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=OrderStatus.PENDING.value
    )
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    placed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    lines_changed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    table: Mapped[Table] = relationship("Table", back_populates="orders")
    lines: Mapped[list[TableOrderLine]] = relationship(
        "TableOrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="TableOrderLine.position",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def status(self) -> OrderStatus:
        return OrderStatus(self.order_status)

    @property
    def customer_tokens(self) -> list[str]:
        """Distinct tokens with at least one line, in first-contribution order."""
        seen: dict[str, None] = {}
        for line in self.lines:
            seen.setdefault(line.customer_token, None)
        return list(seen)

    def recompute_totals(self) -> None:
        subtotal = sum((line.line_total for line in self.lines), Decimal("0")).quantize(
            CENTS, ROUND_HALF_UP
        )
        self.subtotal = subtotal
        self.total = subtotal


class TableOrderLine(Base):
    """One customer's line for one product inside a table order."""

    __tablename__ = "tableside_table_order_lines"
    __table_args__ = (
        UniqueConstraint(
            "order_id", "product_id", "customer_token", name="uq_order_line_product_customer"
        ),
        Index("ix_order_line_order_id", "order_id"),
        CheckConstraint("quantity > 0", name="ck_order_line_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("tableside_table_orders.id"), nullable=False
    )
    product_id: Mapped[str] = mapped_column(String(PRODUCT_ID_MAX_LENGTH), nullable=False)
    customer_token: Mapped[str] = mapped_column(String(CUSTOMER_TOKEN_MAX_LENGTH), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    order: Mapped[TableOrder] = relationship("TableOrder", back_populates="lines")

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.unit_price) * self.quantity
