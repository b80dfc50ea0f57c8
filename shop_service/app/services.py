"""
User and order workflows.

Both services are stateless: they hold only the gateways they were built
with, so a fresh instance per request costs nothing.
"""
import logging
from typing import Any, Dict

from .errors import OutOfStock, PaymentFailed, ProductNotFound, StorageError
from .notifications import ORDER_CONFIRMATION, WELCOME, Notifier, send_quietly
from .payments import PaymentGateway
from .storage import Storage

logger = logging.getLogger(__name__)

# Every order takes exactly one unit of stock.
ORDER_UNIT = 1


class UserService:
    def __init__(self, storage: Storage, notifier: Notifier):
        self.storage = storage
        self.notifier = notifier

    def create_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        with self.storage.transaction():
            user_id = self.storage.insert_user(user_data)
        logger.info("Created user %s", user_id)

        # Only reached once the row is committed.
        send_quietly(self.notifier, user_data.get("email"), WELCOME)
        return {"id": user_id}


class OrderService:
    def __init__(self, storage: Storage, payments: PaymentGateway, notifier: Notifier):
        self.storage = storage
        self.payments = payments
        self.notifier = notifier

    def create_order(self, order_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run the order workflow and return ``{"id": order_id}``.

        Inventory check, payment, order insert and inventory decrement share
        one storage transaction. If anything after a successful charge
        fails, the transaction is rolled back and the charge is refunded
        before the original error propagates. The confirmation is sent only
        after commit.

        Raises:
            OutOfStock: the product is missing (ProductNotFound) or has no stock.
            PaymentFailed: the payment gateway declined or was unreachable.
            StorageError: any database failure.
        """
        product_id = order_data["product_id"]
        idempotency_key = order_data.get("idempotency_key")

        if idempotency_key:
            existing_id = self.storage.find_order_id_by_idempotency_key(idempotency_key)
            if existing_id is not None:
                logger.info("Order %s already placed for key %s", existing_id, idempotency_key)
                return {"id": existing_id}

        charged = None
        try:
            with self.storage.transaction():
                # 1. Inventory check
                quantity = self.storage.get_inventory_quantity(product_id)
                if quantity is None:
                    logger.info("Product %s not found", product_id)
                    raise ProductNotFound(product_id)
                if quantity <= 0:
                    logger.info("Product %s out of stock", product_id)
                    raise OutOfStock()

                # 2. Payment
                payment = self.payments.charge(order_data.get("payment_details") or {})
                if not payment.success:
                    logger.info("Payment declined for product %s", product_id)
                    raise PaymentFailed()
                charged = payment

                # 3. Order persistence
                order_id = self.storage.insert_order({
                    "product_id": product_id,
                    "quantity": ORDER_UNIT,
                    "email": order_data.get("email"),
                    "payment_details": order_data.get("payment_details"),
                    "payment_reference": payment.transaction_id,
                    "idempotency_key": idempotency_key,
                })

                # 4. Inventory decrement
                if not self.storage.decrement_inventory(product_id, ORDER_UNIT):
                    # Stock was drained by a concurrent order since the check.
                    raise OutOfStock()
        except StorageError:
            if charged is not None:
                self._refund(charged.transaction_id)
            # A concurrent request with the same key may have committed first.
            existing_id = self._placed_order_id(idempotency_key)
            if existing_id is not None:
                logger.info("Order %s was placed concurrently for key %s", existing_id, idempotency_key)
                return {"id": existing_id}
            raise
        except Exception:
            if charged is not None:
                self._refund(charged.transaction_id)
            raise

        logger.info("Created order %s for product %s", order_id, product_id)
        send_quietly(self.notifier, order_data.get("email"), ORDER_CONFIRMATION)
        return {"id": order_id}

    def _placed_order_id(self, idempotency_key):
        if not idempotency_key:
            return None
        try:
            return self.storage.find_order_id_by_idempotency_key(idempotency_key)
        except StorageError:
            logger.exception("Lookup of idempotency key %s failed", idempotency_key)
            return None

    def _refund(self, transaction_id):
        logger.warning("Order workflow failed after payment, refunding %s", transaction_id)
        try:
            self.payments.refund(transaction_id)
        except Exception:
            # The original failure is what the caller sees.
            logger.exception("Refund of %s failed", transaction_id)
