import json
import logging
import threading
import time

import pika

logger = logging.getLogger(__name__)


def connection_parameters(host):
    credentials = pika.PlainCredentials('guest', 'guest')
    return pika.ConnectionParameters(
        host=host, credentials=credentials, heartbeat=600, blocked_connection_timeout=300
    )


class RabbitMQProducer:
    """
    Publishes JSON events to a topic exchange.

    The connection is opened on first publish and reopened if it was lost.
    A publish that fails raises the pika error to the caller.
    """

    def __init__(self, host, exchange_name="events", exchange_type="topic", connection_factory=None):
        self.host = host
        self.exchange_name = exchange_name
        self.exchange_type = exchange_type
        self.connection_factory = connection_factory or pika.BlockingConnection
        self.connection = None
        self.channel = None
        # BlockingConnection is not thread-safe; requests publish from worker threads.
        self._lock = threading.Lock()

    def connect(self, attempts=1, retry_delay=5):
        """Connect and declare the exchange, trying up to ``attempts`` times."""
        for attempt in range(1, attempts + 1):
            try:
                self.connection = self.connection_factory(connection_parameters(self.host))
                self.channel = self.connection.channel()
                # Durable so the exchange survives broker restarts.
                self.channel.exchange_declare(
                    exchange=self.exchange_name,
                    exchange_type=self.exchange_type,
                    durable=True,
                )
                logger.info("Connected to RabbitMQ exchange %s", self.exchange_name)
                return
            except pika.exceptions.AMQPConnectionError:
                if attempt == attempts:
                    raise
                logger.warning("RabbitMQ not ready, retrying in %s seconds...", retry_delay)
                time.sleep(retry_delay)

    def publish(self, routing_key, message):
        """
        Publishes a message to the exchange with a specific routing key.

        Args:
            routing_key (str): The topic key (e.g., 'notification.welcome').
            message (dict): The data payload to send.
        """
        with self._lock:
            if not self.connection or self.connection.is_closed:
                self.connect()

            self.channel.basic_publish(
                exchange=self.exchange_name,
                routing_key=routing_key,
                body=json.dumps(message),
                properties=pika.BasicProperties(
                    delivery_mode=2,  # Make message persistent
                    content_type="application/json",
                ),
            )
        logger.debug("Sent event '%s': %s", routing_key, message)

    def close(self):
        """Closes the connection cleanly, after any publish in flight."""
        with self._lock:
            if self.connection and not self.connection.is_closed:
                self.connection.close()
