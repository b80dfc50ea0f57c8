from sqlalchemy import JSON, Column, DateTime, Integer, String, func

from .database import Base  # Import the Base class from our database setup


# A customer account created through POST /api/users.
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    email = Column(String, index=True)
    password = Column(String)
    created_at = Column(DateTime, server_default=func.now())


# An order is only written once the inventory check and the payment succeeded.
class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, index=True)  # Implicit link to inventory.product_id.
    quantity = Column(Integer, default=1)  # Orders are always for a single unit.
    email = Column(String)
    payment_details = Column(JSON)
    payment_reference = Column(String)  # Transaction id returned by the payment gateway.
    idempotency_key = Column(String, unique=True, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


# Stock counter per product.
class InventoryRecord(Base):
    __tablename__ = "inventory"

    product_id = Column(Integer, primary_key=True)
    quantity = Column(Integer, nullable=False, default=0)
