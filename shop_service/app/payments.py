"""
Payment gateways.

``SimulatedPaymentGateway`` approves in-process; ``HttpPaymentGateway``
authorizes and refunds against a remote payment service.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    success: bool
    transaction_id: Optional[str] = None


class PaymentGateway(ABC):

    @abstractmethod
    def charge(self, payment_details: Dict[str, Any]) -> PaymentResult:
        ...

    @abstractmethod
    def refund(self, transaction_id: str) -> None:
        """Undo a successful charge. Raises when the refund could not be issued."""


def _amount(payment_details: Dict[str, Any]) -> float:
    return float(payment_details.get("amount") or 0)


class SimulatedPaymentGateway(PaymentGateway):
    """
    Simulates payment authorization.
    - Approves if amount < decline_amount.
    - Declines if amount >= decline_amount, or if amount is not a number.
    """

    def __init__(self, decline_amount: Optional[float] = 1000.0):
        self.decline_amount = decline_amount

    def charge(self, payment_details):
        # Card data stays out of the log.
        logger.info("Processing payment of %s", payment_details.get("amount"))
        try:
            amount = _amount(payment_details)
        except (TypeError, ValueError):
            logger.info("Declining payment with invalid amount %r", payment_details.get("amount"))
            return PaymentResult(success=False)

        if self.decline_amount is not None and amount >= self.decline_amount:
            return PaymentResult(success=False)
        return PaymentResult(success=True, transaction_id=str(uuid.uuid4()))

    def refund(self, transaction_id):
        logger.info("Refunding payment %s", transaction_id)


class HttpPaymentGateway(PaymentGateway):
    """Calls a payment service exposing ``/authorize`` and ``/refund``."""

    def __init__(self, base_url: str, timeout: float = 8, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def charge(self, payment_details):
        try:
            response = self.session.post(
                f"{self.base_url}/authorize",
                json={"amount": payment_details.get("amount"), "details": payment_details},
                timeout=self.timeout,
            )
            response.raise_for_status()  # Raises an exception for 4xx/5xx status codes
            payment_data = response.json()
        except requests.exceptions.RequestException as e:
            # An unreachable payment service counts as a declined payment.
            logger.warning("Payment service communication error: %s", e)
            return PaymentResult(success=False)

        if not payment_data.get("authorized", False):
            return PaymentResult(success=False)
        return PaymentResult(success=True, transaction_id=payment_data.get("transaction_id"))

    def refund(self, transaction_id):
        response = self.session.post(
            f"{self.base_url}/refund",
            json={"transaction_id": transaction_id},
            timeout=self.timeout,
        )
        response.raise_for_status()
