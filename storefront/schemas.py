"""
Pydantic Schemas for Documents and API Responses

Document schemas mirror the field names stored in the collections
(camelCase, e.g. ``linkedProductIds``) through aliases, while Python code
uses snake_case attributes. Dump with ``by_alias=True`` before writing.
"""

from datetime import date, datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.models import OptionType, OrderStatus, PaymentMethod, TicketStatus


class DocumentModel(BaseModel):
    """Base for schemas read from / written to the document store."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None

    @classmethod
    def from_document(cls, document) -> "DocumentModel":
        return cls.model_validate(document.to_dict())

    def to_data(self) -> dict[str, Any]:
        """Body to store: aliased field names, no id."""
        return self.model_dump(by_alias=True, exclude={"id"})


# =============================================================================
# CATALOG
# =============================================================================

class OptionChoice(BaseModel):
    """A selectable variant with its price delta."""
    label: str
    price: float = 0.0

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> float:
        try:
            return float(v)
        except (TypeError, ValueError):
            return 0.0


class OptionGroup(BaseModel):
    """Named set of choices, e.g. size or extras."""
    name: str
    type: OptionType = OptionType.SINGLE
    required: bool = False
    choices: List[OptionChoice] = Field(default_factory=list)

    def find_choice(self, label: str) -> Optional[OptionChoice]:
        for choice in self.choices:
            if choice.label == label:
                return choice
        return None


class Product(DocumentModel):
    name: str = Field(..., min_length=1, examples=["Panadol Extra"])
    category: str = ""
    price: float = Field(default=0.0, ge=0)
    stock: int = 0
    description: str = ""
    ingredients: str = ""
    allergies: str = ""
    image: str = ""
    options: List[OptionGroup] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class Promotion(DocumentModel):
    title: str
    description: str = ""
    price: float = Field(default=0.0, ge=0)
    original_price: Optional[float] = Field(default=None, alias="originalPrice")
    image: str = ""
    linked_product_ids: List[str] = Field(default_factory=list, alias="linkedProductIds")
    active: bool = True
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> float:
        if v is None or v == "":
            return 0.0
        return float(v)

    @field_validator("original_price", mode="before")
    @classmethod
    def coerce_original_price(cls, v: Any) -> Optional[float]:
        if v is None or v == "":
            return None
        return float(v)

    @property
    def savings(self) -> float:
        if self.original_price is None:
            return 0.0
        return round(max(self.original_price - self.price, 0.0), 2)


# =============================================================================
# CART / ORDERS
# =============================================================================

SelectionValue = Union[str, List[str]]


class CartLine(BaseModel):
    """
    Snapshot of a product (or promotion bundle) in the cart.

    ``price`` is the resolved unit price, option surcharges included.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str
    price: float
    quantity: int = Field(default=1, ge=1)
    image: str = ""
    selected_options: dict[str, SelectionValue] = Field(
        default_factory=dict, alias="selectedOptions"
    )
    is_promotion: bool = Field(default=False, alias="isPromotion")

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)

    def identity(self) -> tuple:
        """Lines with the same identity merge in the cart."""
        options = tuple(
            sorted(
                (name, tuple(sorted(value)) if isinstance(value, list) else value)
                for name, value in self.selected_options.items()
            )
        )
        return (self.id, options)


class AddressDetails(BaseModel):
    street: str
    house: str
    directions: str = ""


class CheckoutForm(BaseModel):
    """Fields collected on the checkout screen."""
    name: str = ""
    email: str = ""
    phone: str = ""
    street: str = ""
    house: str = ""
    directions: str = ""


class Order(DocumentModel):
    user_id: str = Field(..., alias="userId")
    user_name: str = Field(..., alias="userName")
    user_email: str = Field(default="", alias="userEmail")
    user_phone: str = Field(default="", alias="userPhone")
    location: str = ""
    address_details: Optional[AddressDetails] = Field(default=None, alias="addressDetails")
    items: List[CartLine] = Field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    payment_method: PaymentMethod = Field(
        default=PaymentMethod.CASH_ON_DELIVERY, alias="paymentMethod"
    )
    total: float = 0.0
    timestamp: Optional[datetime] = None


class OrderSummary(BaseModel):
    """Returned to the customer after placing an order."""
    order_id: str
    user_name: str
    user_phone: str
    location: str
    items: List[CartLine]
    total: float


# =============================================================================
# SUPPORT / USERS
# =============================================================================

class Ticket(DocumentModel):
    subject: str
    message: str
    user_id: str = Field(..., alias="userId")
    user_email: Optional[str] = Field(default=None, alias="userEmail")
    user_name: Optional[str] = Field(default=None, alias="userName")
    status: TicketStatus = TicketStatus.OPEN
    timestamp: Optional[datetime] = None


class UserProfile(DocumentModel):
    email: Optional[str] = None
    full_name: Optional[str] = Field(default=None, alias="fullName")
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    phone: Optional[str] = None
    address_street: Optional[str] = None
    address_house: Optional[str] = None
    address_directions: Optional[str] = None
    role: str = "user"
    admin: bool = False
    platform: str = "app"
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @property
    def display_name(self) -> str:
        if self.first_name or self.last_name:
            return f"{self.first_name or ''} {self.last_name or ''}".strip()
        return self.full_name or ""


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class StatusResponse(BaseModel):
    status: str


class DailyRevenue(BaseModel):
    day: date
    total: float


class LowStockItem(BaseModel):
    id: str
    name: str
    stock: int


class DashboardStats(BaseModel):
    """Aggregated admin dashboard statistics."""
    live_orders: int
    total_products: int
    revenue_today: float
    revenue_last_7_days: List[DailyRevenue]
    low_stock: List[LowStockItem] = Field(default_factory=list)
    open_tickets: int = 0
    currency: str = "LYD"


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    store: str
    provider: str
    timestamp: datetime
