"""Errors raised by the services. Each one surfaces as HTTP 500 ``{"error": message}``."""


class ServiceError(Exception):
    message = "Internal error"

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class StorageError(ServiceError):
    """Any database failure. The driver message is passed through verbatim."""


class OutOfStock(ServiceError):
    message = "Product out of stock"


class ProductNotFound(OutOfStock):
    # Same public message as OutOfStock; kept distinct for logs and callers.
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__()


class PaymentFailed(ServiceError):
    message = "Payment failed"
