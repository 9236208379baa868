"""
Table Registry - physical table state and QR sessions.

A table's status is its own state machine, independent of the order
lifecycle. The two meet only when a placement occupies the table and when a
close clears it (which also rotates the QR session).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from tableside_shared.constants import (
    STAFF_OVERRIDE_STATUSES,
    TABLE_TRANSITIONS,
    TableActor,
    TableStatus,
)
from tableside_shared.errors import DomainError, conflict, not_found
from tableside_shared.logging_config import table_logger
from tableside_shared.models import Area, Table
from tableside_shared.services import order_store
from tableside_shared.table_utils import generate_session_id, normalize_table_label
from tableside_shared.validation import ValidationError


def get_table(db_session: Session, table_id: int, *, for_update: bool = False) -> Table | DomainError:
    """Resolve a table, optionally row-locking it for a status transition."""
    stmt = select(Table).where(Table.id == table_id).options(joinedload(Table.restaurant))
    if for_update:
        stmt = stmt.with_for_update(of=Table).execution_options(populate_existing=True)
    table = db_session.execute(stmt).scalars().one_or_none()
    if table is None:
        return not_found("Table", table_id=table_id)
    return table


def list_tables(
    db_session: Session,
    restaurant_id: int | None = None,
    area_id: int | None = None,
    status: TableStatus | None = None,
) -> list[Table]:
    query = select(Table).where(Table.is_active).order_by(Table.area_id, Table.label)
    if restaurant_id:
        query = query.where(Table.restaurant_id == restaurant_id)
    if area_id:
        query = query.where(Table.area_id == area_id)
    if status:
        query = query.where(Table.status == status.value)
    return list(db_session.execute(query).scalars().all())


def create_table(
    db_session: Session, *, restaurant_id: int, area_id: int, label: str, capacity: int = 4
) -> Table:
    """
    Create a table with a fresh QR session.

    Raises:
        ValidationError: if the area does not belong to the restaurant or the label is invalid
    """
    area = db_session.get(Area, area_id)
    if area is None or area.restaurant_id != restaurant_id:
        raise ValidationError("area_id does not belong to this restaurant")

    table = Table(
        restaurant_id=restaurant_id,
        area_id=area_id,
        label=normalize_table_label(label),
        capacity=capacity,
        status=TableStatus.AVAILABLE.value,
        session_id=generate_session_id(),
        session_rotated_at=datetime.utcnow(),
    )
    db_session.add(table)
    db_session.flush()
    table_logger(__name__, table.id).info(f"Table {table.label} created in area {area_id}")
    return table


def rotate_session(db_session: Session, table: Table, now: datetime | None = None) -> str:
    """
    Issue a new QR session for a locked table.

    Every link handed out under the old session becomes stale, and closed
    orders of the table are archived so a fresh order may be opened.
    """
    now = now or datetime.utcnow()
    db_session.flush()
    for closed in order_store.list_unarchived_closed_orders(db_session, table.id):
        closed.archived_at = now

    table.session_id = generate_session_id()
    table.session_rotated_at = now
    table.updated_at = now
    table_logger(__name__, table.id).info("QR session rotated")
    return table.session_id


def transition_status(
    db_session: Session,
    table: Table,
    new_status: TableStatus,
    actor: TableActor,
    now: datetime | None = None,
) -> Table | DomainError:
    """
    Apply a status change to a locked table.

    Allowed:
    - any -> cleaning / out_of_service (staff override)
    - available -> occupied (lifecycle, first placement)
    - occupied / cleaning / out_of_service -> available (staff "table cleared",
      rotates the session; refused while the table still has an active order)
    """
    now = now or datetime.utcnow()
    current = TableStatus(table.status)
    log = table_logger(__name__, table.id, actor=actor.value)

    if new_status in STAFF_OVERRIDE_STATUSES:
        if actor != TableActor.STAFF:
            return conflict(
                f"Only staff can set a table to {new_status.value}",
                current_status=current.value,
                requested_status=new_status.value,
            )
        if current != new_status:
            table.status = new_status.value
            table.updated_at = now
            log.info(f"Table status {current.value} -> {new_status.value}")
        return table

    if new_status == TableStatus.AVAILABLE:
        return clear_table(db_session, table, actor, now)

    if current == new_status:
        return table

    allowed = TABLE_TRANSITIONS.get((current, new_status))
    if not allowed or actor not in allowed:
        return conflict(
            f"Table cannot move from {current.value} to {new_status.value}",
            current_status=current.value,
            requested_status=new_status.value,
        )

    table.status = new_status.value
    table.updated_at = now
    log.info(f"Table status {current.value} -> {new_status.value}")
    return table


def clear_table(
    db_session: Session, table: Table, actor: TableActor, now: datetime | None = None
) -> Table | DomainError:
    """Staff "table cleared": back to available with a brand-new QR session."""
    now = now or datetime.utcnow()
    current = TableStatus(table.status)

    if current != TableStatus.AVAILABLE:
        allowed = TABLE_TRANSITIONS.get((current, TableStatus.AVAILABLE))
        if not allowed or actor not in allowed:
            return conflict(
                f"Table cannot move from {current.value} to available",
                current_status=current.value,
                requested_status=TableStatus.AVAILABLE.value,
            )

    db_session.flush()
    if order_store.load_active_order(db_session, table.id) is not None:
        return conflict(
            "Close the table's active order before clearing the table",
            current_status=current.value,
            requested_status=TableStatus.AVAILABLE.value,
        )

    table.status = TableStatus.AVAILABLE.value
    rotate_session(db_session, table, now)
    table_logger(__name__, table.id).info(f"Table cleared ({current.value} -> available)")
    return table
