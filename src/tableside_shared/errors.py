"""
Typed domain errors for the table order subsystem.

Services hand these back as values next to the HTTP status, the same way the
order workflow returns ``(payload, HTTPStatus)`` pairs. Only storage faults
travel as exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Any


class ErrorCode(str, Enum):
    NOT_FOUND = "not_found"
    TABLE_UNAVAILABLE = "table_unavailable"
    TABLE_CLOSED = "table_closed"
    EMPTY_ORDER = "empty_order"
    INVALID_TRANSITION = "invalid_transition"
    CONFLICT = "conflict"


ERROR_CATALOG: dict[ErrorCode, dict[str, Any]] = {
    ErrorCode.NOT_FOUND: {
        "title": "Not Found",
        "description": "The table or order referenced does not exist.",
        "http_code": HTTPStatus.NOT_FOUND,
        "retryable": False,
    },
    ErrorCode.TABLE_UNAVAILABLE: {
        "title": "Table Unavailable",
        "description": "The table is being cleaned or is out of service.",
        "http_code": HTTPStatus.FORBIDDEN,
        "retryable": False,
        "message": "This table is currently unavailable. Please contact staff if you need assistance.",
    },
    ErrorCode.TABLE_CLOSED: {
        "title": "Table Order Closed",
        "description": "The order for this table was closed or the QR session is stale.",
        "http_code": HTTPStatus.FORBIDDEN,
        "retryable": False,
        "message": "In order to start a new order, you need to scan the QR code on the table.",
    },
    ErrorCode.EMPTY_ORDER: {
        "title": "Empty Order",
        "description": "There is no active order with items for this table.",
        "http_code": HTTPStatus.BAD_REQUEST,
        "retryable": False,
    },
    ErrorCode.INVALID_TRANSITION: {
        "title": "Invalid Transition",
        "description": "The order is not in a status that allows this action.",
        "http_code": HTTPStatus.CONFLICT,
        "retryable": False,
    },
    ErrorCode.CONFLICT: {
        "title": "Concurrent Update",
        "description": "Another device updated this table at the same time. Retry from a fresh read.",
        "http_code": HTTPStatus.CONFLICT,
        "retryable": True,
    },
}


@dataclass(frozen=True)
class DomainError:
    """A non-exceptional failure of a table order operation."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def http_status(self) -> HTTPStatus:
        return ERROR_CATALOG[self.code]["http_code"]

    @property
    def retryable(self) -> bool:
        return ERROR_CATALOG[self.code]["retryable"]

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": "error",
            "data": None,
            "error": self.message,
            "code": self.code.value,
            "retryable": self.retryable,
        }
        if self.details:
            payload["details"] = dict(self.details)
        return payload


def not_found(what: str, **details: Any) -> DomainError:
    return DomainError(ErrorCode.NOT_FOUND, f"{what} not found", details)


def table_unavailable(table_status: str) -> DomainError:
    return DomainError(
        ErrorCode.TABLE_UNAVAILABLE,
        ERROR_CATALOG[ErrorCode.TABLE_UNAVAILABLE]["message"],
        {"table_status": table_status},
    )


def table_closed(restaurant_name: str | None, table_label: str | None) -> DomainError:
    return DomainError(
        ErrorCode.TABLE_CLOSED,
        "This table order has been closed.",
        {
            "message": ERROR_CATALOG[ErrorCode.TABLE_CLOSED]["message"],
            "restaurant_name": restaurant_name or "The restaurant",
            "table_label": table_label,
        },
    )


def empty_order(message: str = "No active order found. Please add items to your cart first.") -> DomainError:
    return DomainError(ErrorCode.EMPTY_ORDER, message)


def invalid_transition(current: str, action: str) -> DomainError:
    return DomainError(
        ErrorCode.INVALID_TRANSITION,
        f"Invalid transition: cannot {action} an order in status '{current}'",
        {"current_status": current, "action": action},
    )


def conflict(reason: str, **details: Any) -> DomainError:
    return DomainError(ErrorCode.CONFLICT, reason, details)
