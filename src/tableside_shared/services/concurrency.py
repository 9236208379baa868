"""
Per-table units of work.

Every read -> compute -> write sequence on a table order runs inside one
transaction that (a) row-locks the order with a bounded lock wait and (b) is
version-checked on UPDATE. Any sign of a concurrent writer rolls the whole
transaction back and the unit is re-run from a fresh read, with exponential
backoff, until the attempts run out and a retryable Conflict is returned.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from tableside_shared.config import AppConfig
from tableside_shared.db import apply_lock_timeout, get_session
from tableside_shared.errors import DomainError, conflict
from tableside_shared.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# PostgreSQL SQLSTATEs meaning "someone else holds the row", not "database down".
_RETRYABLE_PGCODES = {
    "55P03",  # lock_not_available (lock_timeout)
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
}


@dataclass
class RetryPolicy:
    attempts: int = 3
    base_delay_ms: int = 25
    max_delay_ms: int = 500

    def delay_for(self, attempt: int) -> float:
        delay = min(self.base_delay_ms * (2 ** (attempt - 1)), self.max_delay_ms) / 1000
        jitter = random.uniform(0, delay * 0.1)
        return delay + jitter


_policy = RetryPolicy()


def configure_retry_policy(config: AppConfig) -> RetryPolicy:
    global _policy
    _policy = RetryPolicy(
        attempts=max(1, config.merge_retry_attempts),
        base_delay_ms=max(0, config.merge_retry_base_delay_ms),
    )
    return _policy


def get_retry_policy() -> RetryPolicy:
    return _policy


def is_lock_contention(exc: OperationalError) -> bool:
    """True when an OperationalError is a lock wait/serialization failure."""
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode in _RETRYABLE_PGCODES:
        return True
    return "database is locked" in str(exc.orig).lower()


def _as_conflict(exc: Exception, operation: str, table_id: int) -> DomainError | None:
    if isinstance(exc, StaleDataError):
        return conflict(
            "The order was changed by another device. Please retry.",
            operation=operation,
            table_id=table_id,
        )
    if isinstance(exc, IntegrityError):
        return conflict(
            "Another device opened an order for this table at the same time. Please retry.",
            operation=operation,
            table_id=table_id,
        )
    if isinstance(exc, OperationalError) and is_lock_contention(exc):
        return conflict(
            "Timed out waiting for the table order lock. Please retry.",
            operation=operation,
            table_id=table_id,
        )
    return None


def run_table_unit(
    table_id: int,
    operation: str,
    work: Callable[[Session], T],
    policy: RetryPolicy | None = None,
) -> T | DomainError:
    """
    Execute ``work`` as a serializable unit for ``table_id``.

    ``work`` receives a session bound to a fresh transaction and returns either
    a result or a DomainError. A returned DomainError rolls the transaction back
    so no partial state is committed. Concurrency failures are retried; storage
    faults propagate to the caller.
    """
    policy = policy or _policy
    attempt = 0

    while True:
        attempt += 1
        try:
            with get_session() as db_session:
                apply_lock_timeout(db_session)
                result = work(db_session)
                if isinstance(result, DomainError):
                    db_session.rollback()
                    return result
                db_session.flush()
            return result
        except (StaleDataError, IntegrityError, OperationalError) as exc:
            mapped = _as_conflict(exc, operation, table_id)
            if mapped is None:
                logger.error(
                    f"Storage failure during {operation} on table {table_id}: {exc}",
                    exc_info=True,
                )
                raise
            logger.warning(
                f"Conflict during {operation} on table {table_id} "
                f"(attempt {attempt}/{policy.attempts}): {exc}"
            )
            if attempt >= policy.attempts:
                return DomainError(mapped.code, mapped.message, {**mapped.details, "attempts": attempt})
            time.sleep(policy.delay_for(attempt))
