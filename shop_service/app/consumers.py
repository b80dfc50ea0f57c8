import json
import logging
import threading
import time

import pika

from .messaging.producer import connection_parameters
from .notifications import describe

logger = logging.getLogger(__name__)

QUEUE_NAME = "notifications"
ROUTING_KEY = "notification.*"


class NotificationConsumer:
    """Delivers notification events published by RabbitMQNotifier."""

    def __init__(self, host, exchange_name="events", connection_factory=None):
        self.host = host
        self.exchange_name = exchange_name
        self.connection_factory = connection_factory or pika.BlockingConnection
        self.connection = None
        self.channel = None

    def connect(self, retry_delay=5):
        """Connects to RabbitMQ and sets up the queue, waiting until the broker is up."""
        while True:
            try:
                self.connection = self.connection_factory(connection_parameters(self.host))
                self.channel = self.connection.channel()
                self.channel.exchange_declare(exchange=self.exchange_name, exchange_type='topic', durable=True)
                self.channel.queue_declare(queue=QUEUE_NAME, durable=True)
                self.channel.queue_bind(exchange=self.exchange_name, queue=QUEUE_NAME, routing_key=ROUTING_KEY)
                logger.info("Notification consumer connected to RabbitMQ")
                break
            except pika.exceptions.AMQPConnectionError:
                logger.warning("RabbitMQ not ready, retrying in %s seconds...", retry_delay)
                time.sleep(retry_delay)

    def process_notification(self, ch, method, properties, body):
        """
        Received 'notification.<kind>'.
        Action: send the email (logged; email content is not rendered here).
        """
        try:
            event = json.loads(body)
            logger.info(describe(event["recipient"], event.get("kind", method.routing_key.split(".", 1)[-1])))
        except (ValueError, KeyError, TypeError):
            logger.error("Dropping malformed notification event: %r", body)
        finally:
            # Acknowledge the message so RabbitMQ removes it from queue
            ch.basic_ack(delivery_tag=method.delivery_tag)

    def start_listening(self):
        """Starts the consuming loop."""
        if not self.connection:
            self.connect()

        self.channel.basic_consume(queue=QUEUE_NAME, on_message_callback=self.process_notification)
        logger.info("Notification consumer waiting for events...")
        self.channel.start_consuming()


def start_consumer_thread(host, exchange_name="events"):
    """Helper to run the consumer in a background thread."""
    consumer = NotificationConsumer(host, exchange_name)
    thread = threading.Thread(target=consumer.start_listening, daemon=True)
    thread.start()
    return thread
