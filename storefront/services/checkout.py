"""
Checkout Service

Validates the checkout form, optionally saves the delivery details back to
the customer's profile, and writes the order document.

Rules, in the order they are checked:
    1. A signed-in user is required
    2. The cart must not be empty
    3. The phone must be a Libyan mobile number: 09[1-5] + 7 digits
    4. Name, email, street and house are required

Placing an order does not touch product stock.
"""

import logging
import re
from typing import Optional

from storefront.core.config import get_settings
from storefront.models import Collection, OrderStatus
from storefront.schemas import CheckoutForm, OrderSummary
from storefront.services.cart import Cart
from storefront.services.store import SERVER_TIMESTAMP, BaseDocumentStore
from storefront.services.users import AuthUser, ensure_user_profile, get_profile

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"09[1-5][0-9]{7}")

REQUIRED_FIELDS = ("name", "email", "street", "house")


# =============================================================================
# ERRORS
# =============================================================================

class CheckoutError(Exception):
    """Checkout rule failure; ``str(error)`` is safe to show the customer."""


class LoginRequiredError(CheckoutError):
    def __init__(self):
        super().__init__("Please sign in to place an order")


class EmptyCartError(CheckoutError):
    def __init__(self):
        super().__init__("Your cart is empty")


class InvalidPhoneError(CheckoutError):
    def __init__(self, phone: str):
        self.phone = phone
        super().__init__(
            "Please enter a valid phone number (e.g. 0912345678)"
        )


class MissingFieldsError(CheckoutError):
    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Please fill in all fields: {', '.join(fields)}")


class UnsupportedPaymentMethodError(CheckoutError):
    def __init__(self, method: str, accepted: list[str]):
        self.method = method
        super().__init__(f"Payment method '{method}' is not available. Options: {accepted}")


# =============================================================================
# HELPERS
# =============================================================================

def validate_phone(phone: str) -> bool:
    """Check a Libyan mobile number: 091-095 followed by 7 digits."""
    return PHONE_PATTERN.fullmatch(phone or "") is not None


def compose_location(street: str, house: str, directions: str = "") -> str:
    location = f"{street}, {house}"
    if directions:
        location += f", {directions}"
    return location


def split_name(name: str) -> tuple[str, str]:
    parts = name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def validate_form(form: CheckoutForm) -> None:
    """
    Raises:
        InvalidPhoneError: Phone does not match the mobile pattern
        MissingFieldsError: A required field is blank
    """
    if not validate_phone(form.phone):
        raise InvalidPhoneError(form.phone)

    missing = [name for name in REQUIRED_FIELDS if not getattr(form, name).strip()]
    if missing:
        raise MissingFieldsError(missing)


# =============================================================================
# OPERATIONS
# =============================================================================

async def load_checkout_defaults(store: BaseDocumentStore, user: AuthUser) -> CheckoutForm:
    """Prefill the checkout form from the account and saved profile."""
    form = CheckoutForm(name=user.display_name or "", email=user.email or "")

    profile = await get_profile(store, user.uid)
    if profile is None:
        return form

    if profile.phone:
        form.phone = profile.phone
    if profile.address_street:
        form.street = profile.address_street
    if profile.address_house:
        form.house = profile.address_house
    if profile.address_directions:
        form.directions = profile.address_directions
    if profile.first_name or profile.last_name:
        form.name = profile.display_name
    if profile.email:
        form.email = profile.email
    return form


async def place_order(
    store: BaseDocumentStore,
    user: Optional[AuthUser],
    cart: Cart,
    form: CheckoutForm,
    save_info: bool = True,
    payment_method: str = "cod",
) -> OrderSummary:
    """
    Validate the checkout and write the order.

    The cart is cleared once the order document exists.

    Raises:
        CheckoutError: Any rule failure (see module docstring)
        StoreError: The order or profile write failed
    """
    if user is None or user.is_anonymous:
        raise LoginRequiredError()
    if cart.is_empty():
        raise EmptyCartError()

    validate_form(form)

    accepted = get_settings().payment_methods_list
    if payment_method not in accepted:
        raise UnsupportedPaymentMethodError(payment_method, accepted)

    if save_info:
        first_name, last_name = split_name(form.name)
        await ensure_user_profile(store, user)
        await store.update(
            Collection.USERS.value,
            user.uid,
            {
                "firstName": first_name,
                "lastName": last_name,
                "phone": form.phone,
                "address_street": form.street,
                "address_house": form.house,
                "address_directions": form.directions,
                "email": form.email,
            },
        )

    location = compose_location(form.street, form.house, form.directions)
    items = cart.lines
    total = cart.total()

    order_id = await store.add(
        Collection.ORDERS.value,
        {
            "userId": user.uid,
            "userName": form.name,
            "userEmail": form.email,
            "userPhone": form.phone,
            "location": location,
            "items": cart.snapshot(),
            "status": OrderStatus.PENDING.value,
            "paymentMethod": payment_method,
            "timestamp": SERVER_TIMESTAMP,
            "total": total,
            "addressDetails": {
                "street": form.street,
                "house": form.house,
                "directions": form.directions,
            },
        },
    )

    cart.clear()
    logger.info(f"Order {order_id} placed by {user.uid}: {len(items)} line(s), total {total:.2f}")

    return OrderSummary(
        order_id=order_id,
        user_name=form.name,
        user_phone=form.phone,
        location=location,
        items=items,
        total=total,
    )
