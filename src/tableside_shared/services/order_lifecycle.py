"""
Order Lifecycle Controller.

Drives a table order through pending -> processed -> closed and couples it to
the Table Registry at exactly two points: placement occupies the table, and
closing clears it (back to available with a rotated QR session).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy.orm import Session

from tableside_shared.constants import (
    UNAVAILABLE_TABLE_STATUSES,
    OrderStatus,
    TableActor,
    TableStatus,
)
from tableside_shared.errors import (
    DomainError,
    empty_order,
    invalid_transition,
    not_found,
    table_unavailable,
)
from tableside_shared.logging_config import table_logger
from tableside_shared.models import Table, TableOrder
from tableside_shared.services import order_store, table_registry


class OrderEvent(str, Enum):
    """Staff events that move an order between statuses."""

    PROCESS = "process"
    CLOSE = "close"


ORDER_TRANSITIONS: dict[tuple[OrderStatus, OrderEvent], OrderStatus] = {
    (OrderStatus.PENDING, OrderEvent.PROCESS): OrderStatus.PROCESSED,
    (OrderStatus.PENDING, OrderEvent.CLOSE): OrderStatus.CLOSED,
    (OrderStatus.PROCESSED, OrderEvent.CLOSE): OrderStatus.CLOSED,
}


@dataclass
class LifecycleOutcome:
    """Order (and table, when it changed) after a lifecycle step."""

    order: TableOrder
    table: Table | None = None


class OrderLifecycle:
    """
    State machine for table orders.

    Responsibilities:
    - Validate transitions against ORDER_TRANSITIONS
    - Apply side effects (timestamps, processed batch, table coupling)
    - Staff line mutations on the active order
    """

    def __init__(self):
        self._handlers: dict[OrderEvent, Callable[[Session, TableOrder, datetime], DomainError | Table | None]] = {
            OrderEvent.PROCESS: self._handle_process,
            OrderEvent.CLOSE: self._handle_close,
        }

    def can_transition(self, current: OrderStatus, event: OrderEvent) -> bool:
        return (current, event) in ORDER_TRANSITIONS

    def place(
        self,
        db_session: Session,
        table_id: int,
        *,
        session_id: str | None = None,
        now: datetime | None = None,
    ) -> LifecycleOutcome | DomainError:
        """
        Mark the current cart as finalized for this round and occupy the table.

        Placement does not change order_status. Re-placing re-stamps placed_at
        only when lines changed after the previous placement.
        """
        now = now or datetime.utcnow()
        log = table_logger(__name__, table_id)

        order = order_store.load_active_order(db_session, table_id, for_update=True)
        table = table_registry.get_table(db_session, table_id, for_update=True)
        if isinstance(table, DomainError):
            return table
        current = TableStatus(table.status)
        if current in UNAVAILABLE_TABLE_STATUSES:
            return table_unavailable(table.status)
        closed = order_store.guard_not_closed(db_session, table, session_id)
        if closed is not None:
            return closed

        if order is None or not order.lines:
            log.info("Place rejected, nothing to place")
            return empty_order() if order is None else empty_order("Order is empty")
        if order.status != OrderStatus.PENDING:
            return invalid_transition(order.order_status, "place")

        if order.placed_at is None or (
            order.lines_changed_at is not None and order.lines_changed_at > order.placed_at
        ):
            order.placed_at = now
            order.updated_at = now
            log.info(f"Order {order.id} placed with {len(order.lines)} lines")

        if current == TableStatus.AVAILABLE:
            moved = table_registry.transition_status(
                db_session, table, TableStatus.OCCUPIED, TableActor.LIFECYCLE, now
            )
            if isinstance(moved, DomainError):
                return moved

        db_session.flush()
        return LifecycleOutcome(order=order, table=table)

    def process(
        self, db_session: Session, table_id: int, now: datetime | None = None
    ) -> LifecycleOutcome | DomainError:
        return self._apply(db_session, table_id, OrderEvent.PROCESS, now or datetime.utcnow())

    def close(
        self, db_session: Session, table_id: int, now: datetime | None = None
    ) -> LifecycleOutcome | DomainError:
        return self._apply(db_session, table_id, OrderEvent.CLOSE, now or datetime.utcnow())

    def _apply(
        self, db_session: Session, table_id: int, event: OrderEvent, now: datetime
    ) -> LifecycleOutcome | DomainError:
        order = self._locked_active_order(db_session, table_id, event.value)
        if isinstance(order, DomainError):
            return order

        current = order.status
        if not self.can_transition(current, event):
            return invalid_transition(current.value, event.value)

        order.order_status = ORDER_TRANSITIONS[(current, event)].value
        table = self._handlers[event](db_session, order, now)
        if isinstance(table, DomainError):
            return table

        db_session.flush()
        table_logger(__name__, table_id).info(
            f"Order {order.id} {current.value} -> {order.order_status}"
        )
        return LifecycleOutcome(order=order, table=table)

    def _locked_active_order(
        self, db_session: Session, table_id: int, action: str
    ) -> TableOrder | DomainError:
        table = table_registry.get_table(db_session, table_id)
        if isinstance(table, DomainError):
            return table
        order = order_store.load_active_order(db_session, table_id, for_update=True)
        if order is not None:
            return order
        latest = order_store.load_latest_order(db_session, table_id)
        if latest is not None and latest.order_status == OrderStatus.CLOSED.value:
            return invalid_transition(latest.order_status, action)
        return not_found("Active order", table_id=table_id)

    def _handle_process(self, db_session: Session, order: TableOrder, now: datetime) -> None:
        """Every line present now belongs to the processed batch."""
        order.processed_at = now
        order.updated_at = now
        for line in order.lines:
            line.processed = True

    def _handle_close(
        self, db_session: Session, order: TableOrder, now: datetime
    ) -> Table | DomainError:
        order.closed_at = now
        order.updated_at = now
        db_session.flush()

        table = table_registry.get_table(db_session, order.table_id, for_update=True)
        if isinstance(table, DomainError):
            return table
        return table_registry.clear_table(db_session, table, TableActor.STAFF, now)

    def mark_line_processed(
        self,
        db_session: Session,
        table_id: int,
        product_id: str,
        customer_token: str | None = None,
        now: datetime | None = None,
    ) -> TableOrder | DomainError:
        """Staff flags matching lines as handled by the kitchen/floor."""
        now = now or datetime.utcnow()
        order = self._locked_active_order(db_session, table_id, "mark_processed")
        if isinstance(order, DomainError):
            return order

        matched = [
            line
            for line in order.lines
            if line.product_id == product_id
            and (customer_token is None or line.customer_token == customer_token)
        ]
        if not matched:
            return not_found("Order line", table_id=table_id, product_id=product_id)

        for line in matched:
            line.processed = True
        order.updated_at = now
        db_session.flush()
        return order

    def remove_staff_line(
        self, db_session: Session, table_id: int, product_id: str, now: datetime | None = None
    ) -> TableOrder | DomainError:
        """
        Strike a product from the order on staff request.

        Only unprocessed lines are removed; processed ones stay on the order.
        """
        now = now or datetime.utcnow()
        order = self._locked_active_order(db_session, table_id, "remove_item")
        if isinstance(order, DomainError):
            return order

        matched = [line for line in order.lines if line.product_id == product_id]
        if not matched:
            return not_found("Order line", table_id=table_id, product_id=product_id)
        removable = [line for line in matched if not line.processed]
        if not removable:
            return invalid_transition("processed", "remove_item")

        for line in removable:
            order.lines.remove(line)
        order.recompute_totals()
        order.lines_changed_at = now
        order.updated_at = now
        db_session.flush()
        table_logger(__name__, table_id).info(
            f"Staff removed {len(removable)} line(s) of product {product_id} from order {order.id}"
        )
        return order


order_lifecycle = OrderLifecycle()
