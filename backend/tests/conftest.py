"""Pytest configuration and fixtures."""

import os

# The app module builds its engine at import time; keep it off the dev database
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import datetime
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stockflow.core.alerting import alert_manager
from stockflow.db.base import Base
from stockflow.db.session import configure_sqlite_engine, get_db
from stockflow.main import app
# Import all models to ensure they're registered with Base.metadata
from stockflow.models import *
from stockflow.models.inventory import InventoryItem
from stockflow.models.pos import SaleTransaction, SaleTransactionItem
from stockflow.models.product import ProductCatalog
from stockflow.models.recipe import Recipe, RecipeIngredient
from stockflow.models.store import Store

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite_engine(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiting during tests to avoid flaky failures
    from stockflow.core.rate_limit import limiter
    limiter.enabled = False
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clear_alerts():
    alert_manager.clear()
    yield
    alert_manager.clear()


# ==================== STORES / INVENTORY / RECIPES ====================


@pytest.fixture
def store(db_session: Session) -> Store:
    """Store S."""
    s = Store(name="Store S", code="S", timezone="Asia/Manila")
    db_session.add(s)
    db_session.commit()
    db_session.refresh(s)
    return s


@pytest.fixture
def other_store(db_session: Session) -> Store:
    s = Store(name="Store T", code="T", timezone="Asia/Manila")
    db_session.add(s)
    db_session.commit()
    db_session.refresh(s)
    return s


@pytest.fixture
def make_item(db_session: Session):
    """Factory: make_item(store, "Cup", 10, "pcs")."""
    def _make(store: Store, name: str, qty, unit: str = "pcs", is_active: bool = True) -> InventoryItem:
        item = InventoryItem(
            store_id=store.id,
            item_name=name,
            unit=unit,
            stock_quantity=Decimal(str(qty)),
            is_active=is_active,
        )
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item
    return _make


@pytest.fixture
def make_product(db_session: Session):
    """Factory: make_product(store, "Latte", [(cup, 1, "pcs"), (syrup, 50, "ml")]).

    Pass ingredients=None for a direct (recipe-less) product.
    """
    def _make(store: Store, name: str, ingredients=None, recipe_store: Store = None) -> ProductCatalog:
        recipe = None
        if ingredients is not None:
            recipe = Recipe(store_id=(recipe_store or store).id, name=name)
            for position, (item, qty, unit) in enumerate(ingredients):
                recipe.ingredients.append(RecipeIngredient(
                    ingredient_name=item.item_name,
                    quantity_per_unit=Decimal(str(qty)),
                    unit=unit,
                    inventory_item_id=item.id,
                    position=position,
                ))
            db_session.add(recipe)
            db_session.flush()

        product = ProductCatalog(
            store_id=store.id,
            product_name=name,
            recipe_id=recipe.id if recipe else None,
            is_direct=ingredients is None,
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product
    return _make


@pytest.fixture
def latte_setup(store, make_item, make_product):
    """Store S with {Cup: 10, Syrup: 500ml} and Latte = {Cup: 1, Syrup: 50ml}."""
    cup = make_item(store, "Cup", 10, "pcs")
    syrup = make_item(store, "Syrup", 500, "ml")
    latte = make_product(store, "Latte", [(cup, 1, "pcs"), (syrup, 50, "ml")])
    return {"store": store, "cup": cup, "syrup": syrup, "latte": latte}


@pytest.fixture
def make_sale(db_session: Session):
    """Factory for POS ledger rows."""
    def _make(
        store: Store,
        receipt_number: str,
        created_at: datetime,
        subtotal="0",
        total=None,
        vat_amount="0",
        discount="0",
        discount_type=None,
        payment_method="cash",
        status="completed",
        items=None,
        **amounts,
    ) -> SaleTransaction:
        txn = SaleTransaction(
            store_id=store.id,
            receipt_number=receipt_number,
            status=status,
            subtotal=Decimal(str(subtotal)),
            total=Decimal(str(total if total is not None else subtotal)),
            vat_amount=Decimal(str(vat_amount)),
            discount=Decimal(str(discount)),
            discount_type=discount_type,
            payment_method=payment_method,
            created_at=created_at,
            **{k: Decimal(str(v)) for k, v in amounts.items()},
        )
        for product, qty in items or []:
            txn.items.append(SaleTransactionItem(
                product_id=product.id,
                product_name=product.product_name,
                quantity=Decimal(str(qty)),
            ))
        db_session.add(txn)
        db_session.commit()
        db_session.refresh(txn)
        return txn
    return _make
