"""
Request and response bodies.

Field names follow the public JSON contract (camelCase); snake_case names
are accepted as well. Unknown fields are ignored.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    """Defines the data model for an incoming user."""
    model_config = ConfigDict(extra="ignore")

    # Stored as given; the database decides what it accepts.
    name: Any = None
    email: Any = None
    password: Any = None


class OrderCreate(BaseModel):
    """Defines the data model for an incoming order request."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    product_id: int = Field(..., alias="productId")
    payment_details: Dict[str, Any] = Field(default_factory=dict, alias="paymentDetails")
    email: Optional[str] = None
    idempotency_key: Optional[str] = Field(None, alias="idempotencyKey")


class InsertResult(BaseModel):
    id: int


class ErrorResponse(BaseModel):
    error: str
