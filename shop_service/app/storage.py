"""
Storage gateway used by the services.

Services only talk to the ``Storage`` interface; the SQLAlchemy
implementation below is the production one and tests substitute an
in-memory fake.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StorageError
from .models import InventoryRecord, Order, User

logger = logging.getLogger(__name__)


class Storage(ABC):

    @abstractmethod
    def get_inventory_quantity(self, product_id: int) -> Optional[int]:
        """Return the stock of ``product_id``, or None when the product is unknown."""

    @abstractmethod
    def insert_user(self, data: Dict[str, Any]) -> int:
        """Insert a user row and return its id."""

    @abstractmethod
    def insert_order(self, data: Dict[str, Any]) -> int:
        """Insert an order row and return its id."""

    @abstractmethod
    def decrement_inventory(self, product_id: int, amount: int = 1) -> bool:
        """Take ``amount`` units of stock; False if the row does not have them."""

    @abstractmethod
    def find_order_id_by_idempotency_key(self, key: str) -> Optional[int]:
        ...

    @abstractmethod
    def transaction(self):
        """Context manager: commit on success, roll back and re-raise on error."""


def _driver_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


@contextmanager
def _storage_errors() -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        raise StorageError(_driver_message(e)) from e


class SqlAlchemyStorage(Storage):
    def __init__(self, db: Session):
        self.db = db

    def get_inventory_quantity(self, product_id):
        with _storage_errors():
            # Lock the row until the workflow's transaction ends (no-op on SQLite).
            record = (
                self.db.query(InventoryRecord)
                .filter(InventoryRecord.product_id == product_id)
                .with_for_update()
                .first()
            )
        if record is None:
            return None
        return record.quantity

    def insert_user(self, data):
        with _storage_errors():
            user = User(**data)
            self.db.add(user)
            self.db.flush()
        return user.id

    def insert_order(self, data):
        with _storage_errors():
            order = Order(**data)
            self.db.add(order)
            self.db.flush()
        return order.id

    def decrement_inventory(self, product_id, amount=1):
        with _storage_errors():
            matched = (
                self.db.query(InventoryRecord)
                .filter(
                    InventoryRecord.product_id == product_id,
                    InventoryRecord.quantity >= amount,
                )
                .update(
                    {InventoryRecord.quantity: InventoryRecord.quantity - amount},
                    synchronize_session=False,
                )
            )
        return matched > 0

    def find_order_id_by_idempotency_key(self, key):
        with _storage_errors():
            order = self.db.query(Order).filter(Order.idempotency_key == key).first()
        return order.id if order else None

    @contextmanager
    def transaction(self):
        try:
            yield self
            with _storage_errors():
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
