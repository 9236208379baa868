from decimal import Decimal
from types import SimpleNamespace

import pytest

from tableside_shared.config import AppConfig
from tableside_shared.db import dispose_engine, get_session, init_db, init_engine
from tableside_shared.models import Area, Base, Restaurant, Table
from tableside_shared.services.cart_merge import CartLine
from tableside_shared.services.concurrency import configure_retry_policy

SESSION_ID = "session-1"

BURGER = CartLine("burger", 1, Decimal("12.50"), "Burger")
SALAD = CartLine("salad", 2, Decimal("8.00"), "Salad")


def line(base: CartLine, quantity: int) -> CartLine:
    return CartLine(base.product_id, quantity, base.unit_price, base.display_name)


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(
        app_name="tableside-test",
        db_host="",
        db_port=0,
        db_user="",
        db_password="",
        db_name="",
        db_sslmode="",
        database_url=f"sqlite:///{tmp_path / 'tableside.db'}",
        secret_key="x" * 32,
        log_level="WARNING",
        restaurant_name="Casa Test",
        restaurant_slug="casa-test",
        public_base_url="http://tables.test",
        debug_mode=True,
        flask_debug=False,
        cors_allowed_origins="",
        order_lock_timeout_ms=0,
        merge_retry_attempts=3,
        merge_retry_base_delay_ms=0,
        max_cart_lines=5,
    )


@pytest.fixture
def db(app_config):
    dispose_engine()
    engine = init_engine(app_config)
    init_db(Base.metadata)
    configure_retry_policy(app_config)
    yield engine
    dispose_engine()


@pytest.fixture
def seeded(db):
    """One restaurant, one area and one available table with a known QR session."""
    with get_session() as session:
        restaurant = Restaurant(name="Casa Test", slug="casa-test")
        session.add(restaurant)
        session.flush()
        area = Area(restaurant_id=restaurant.id, name="Terrace", prefix="T")
        session.add(area)
        session.flush()
        table = Table(
            restaurant_id=restaurant.id,
            area_id=area.id,
            label="T1",
            capacity=4,
            status="available",
            session_id=SESSION_ID,
        )
        session.add(table)
        session.flush()
        ids = SimpleNamespace(restaurant_id=restaurant.id, area_id=area.id, table_id=table.id)
    return ids


@pytest.fixture
def table_id(seeded) -> int:
    return seeded.table_id
