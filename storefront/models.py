"""
SQLAlchemy Database Models

The SQL document store keeps every collection in a single table: one row
per document, keyed by (collection, id), with the document body in a JSON
column.

Also defines the status enums shared by the services and schemas.
"""

import enum

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.sql import func

from storefront.database import Base


class Collection(str, enum.Enum):
    """Document collections."""
    USERS = "users"
    PRODUCTS = "products"
    ORDERS = "orders"
    PROMOTIONS = "promotions"
    TICKETS = "tickets"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TicketStatus(str, enum.Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class OptionType(str, enum.Enum):
    """Selection type of a product option group."""
    SINGLE = "single"
    MULTIPLE = "multiple"


class PaymentMethod(str, enum.Enum):
    CASH_ON_DELIVERY = "cod"


class DocumentRecord(Base):
    """
    Document table - stores all collections.

    ``data`` never contains the document id; readers get it from ``id``.
    """
    __tablename__ = "documents"

    collection = Column(String(50), primary_key=True)
    id = Column(String(64), primary_key=True)

    data = Column(JSON, nullable=False, default=dict)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<DocumentRecord {self.collection}/{self.id}>"
