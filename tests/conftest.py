import os

# Point the app at an in-memory database before anything imports it.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOTIFIER"] = "log"
os.environ.pop("PAYMENT_SERVICE_URL", None)

import pytest

from shop_service.app.database import Base, SessionLocal, engine
from shop_service.app.models import InventoryRecord
from shop_service.app.storage import SqlAlchemyStorage

from tests.fakes import FakePayments, FakeStorage, RecordingNotifier


@pytest.fixture
def fake_storage():
    return FakeStorage(inventory={5: 3, 7: 0})


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(tables):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def sql_storage(db_session):
    return SqlAlchemyStorage(db_session)


@pytest.fixture
def seed_inventory(tables):
    def seed(product_id, quantity):
        db = SessionLocal()
        try:
            db.merge(InventoryRecord(product_id=product_id, quantity=quantity))
            db.commit()
        finally:
            db.close()
    return seed


@pytest.fixture
def inventory_quantity():
    def read(product_id):
        db = SessionLocal()
        try:
            record = db.get(InventoryRecord, product_id)
            return record.quantity if record else None
        finally:
            db.close()
    return read
