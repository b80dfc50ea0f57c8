"""Notifiers: the one capability services use to reach a customer."""
import logging
from abc import ABC, abstractmethod

from .messaging.producer import RabbitMQProducer

logger = logging.getLogger(__name__)

WELCOME = "welcome"
ORDER_CONFIRMATION = "order_confirmation"

# Human-readable subject per notification kind.
SUBJECTS = {
    WELCOME: "welcome email",
    ORDER_CONFIRMATION: "order confirmation",
}


class Notifier(ABC):

    @abstractmethod
    def notify(self, recipient: str, kind: str) -> None:
        """Send a ``kind`` notification to ``recipient``. May raise."""


def describe(recipient, kind):
    return f"Sending {SUBJECTS.get(kind, kind)} to {recipient}"


class LoggingNotifier(Notifier):
    """Writes the notification to the log instead of sending it."""

    def notify(self, recipient, kind):
        logger.info(describe(recipient, kind))


class RabbitMQNotifier(Notifier):
    """Publishes ``notification.<kind>`` events for the notification consumer."""

    def __init__(self, producer: RabbitMQProducer):
        self.producer = producer

    def notify(self, recipient, kind):
        self.producer.publish(
            routing_key=f"notification.{kind}",
            message={"recipient": recipient, "kind": kind},
        )


def send_quietly(notifier: Notifier, recipient, kind) -> bool:
    """Notify, logging failures instead of raising. Returns whether it was sent."""
    if not recipient:
        logger.warning("No recipient for %s notification, skipping", kind)
        return False
    try:
        notifier.notify(recipient, kind)
    except Exception:
        logger.warning("Failed to send %s notification to %s", kind, recipient, exc_info=True)
        return False
    return True
