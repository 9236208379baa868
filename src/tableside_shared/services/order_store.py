"""
Reads and writes of table orders inside a unit of work.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from tableside_shared.constants import ACTIVE_ORDER_STATUSES, OrderStatus
from tableside_shared.errors import DomainError, table_closed
from tableside_shared.models import Table, TableOrder
from tableside_shared.table_utils import session_matches

_ACTIVE_VALUES = [status.value for status in ACTIVE_ORDER_STATUSES]


def load_active_order(
    db_session: Session, table_id: int, *, for_update: bool = False
) -> TableOrder | None:
    """
    Fetch the table's pending/processed order with its lines.

    With ``for_update`` the order row is locked until the transaction ends and
    the identity map is refreshed so the caller never merges onto stale lines.
    """
    stmt = (
        select(TableOrder)
        .where(TableOrder.table_id == table_id, TableOrder.order_status.in_(_ACTIVE_VALUES))
        .options(selectinload(TableOrder.lines))
    )
    if for_update:
        stmt = stmt.with_for_update(of=TableOrder).execution_options(populate_existing=True)
    return db_session.execute(stmt).scalars().one_or_none()


def load_latest_order(db_session: Session, table_id: int) -> TableOrder | None:
    """Most recent order of the table, whatever its status."""
    return (
        db_session.execute(
            select(TableOrder)
            .where(TableOrder.table_id == table_id)
            .order_by(TableOrder.id.desc())
            .limit(1)
        )
        .scalars()
        .first()
    )


def list_unarchived_closed_orders(db_session: Session, table_id: int) -> list[TableOrder]:
    return list(
        db_session.execute(
            select(TableOrder).where(
                TableOrder.table_id == table_id,
                TableOrder.order_status == OrderStatus.CLOSED.value,
                TableOrder.archived_at.is_(None),
            )
        )
        .scalars()
        .all()
    )


def new_order(table: Table, now: datetime) -> TableOrder:
    return TableOrder(
        restaurant_id=table.restaurant_id,
        table_id=table.id,
        area_id=table.area_id,
        session_id=table.session_id,
        order_status=OrderStatus.PENDING.value,
        subtotal=0,
        total=0,
        created_at=now,
        updated_at=now,
    )


def guard_not_closed(
    db_session: Session, table: Table, presented_session_id: str | None
) -> DomainError | None:
    """
    Refuse devices that hold a stale QR session, and refuse to reopen a table
    whose last order is closed but was never archived by a session rotation.
    """
    restaurant_name = table.restaurant.name if table.restaurant else None
    if not session_matches(table.session_id, presented_session_id):
        return table_closed(restaurant_name, table.label)

    latest = load_latest_order(db_session, table.id)
    if (
        latest is not None
        and latest.order_status == OrderStatus.CLOSED.value
        and latest.archived_at is None
    ):
        return table_closed(restaurant_name, table.label)
    return None
