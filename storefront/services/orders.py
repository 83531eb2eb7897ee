"""
Order Tracking and Management

Customer side: the user's own orders and the "active order" banner.
Admin side: status changes, status filters and dashboard statistics.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Union

from storefront.core.config import get_settings
from storefront.models import Collection, OrderStatus, TicketStatus
from storefront.schemas import DailyRevenue, DashboardStats, LowStockItem, Order, Product
from storefront.services.store import BaseDocumentStore, Query

logger = logging.getLogger(__name__)

FINISHED = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


def user_orders_query(uid: str) -> Query:
    """Newest-first orders of one customer."""
    return Query(
        collection=Collection.ORDERS.value,
        where=(("userId", "==", uid),),
        order_by="timestamp",
        descending=True,
    )


def all_orders_query() -> Query:
    return Query(collection=Collection.ORDERS.value, order_by="timestamp", descending=True)


async def user_orders(store: BaseDocumentStore, uid: str) -> list[Order]:
    documents = await store.query_documents(user_orders_query(uid))
    return [Order.from_document(doc) for doc in documents]


def active_order(orders: list[Order]) -> Optional[Order]:
    """First order still in progress, else the newest one, else None."""
    for order in orders:
        if order.status not in FINISHED:
            return order
    return orders[0] if orders else None


def parse_status(status: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(status.lower() if isinstance(status, str) else status)
    except ValueError:
        raise ValueError(
            f"Invalid status. Options: {[s.value for s in OrderStatus]}"
        )


async def update_status(
    store: BaseDocumentStore,
    order_id: str,
    status: Union[str, OrderStatus],
) -> OrderStatus:
    """
    Set an order's status.

    Raises:
        ValueError: Unknown status
        DocumentNotFoundError: No such order
    """
    new_status = parse_status(status)
    await store.update(Collection.ORDERS.value, order_id, {"status": new_status.value})
    logger.info(f"Order {order_id} -> {new_status.value}")
    return new_status


def filter_orders(orders: Iterable[Order], status: str = "all") -> list[Order]:
    if status == "all":
        return list(orders)
    wanted = parse_status(status)
    return [order for order in orders if order.status == wanted]


# =============================================================================
# DASHBOARD
# =============================================================================

def _order_day(order: Order) -> Optional[date]:
    if order.timestamp is None:
        return None
    stamp = order.timestamp
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp.astimezone(timezone.utc).date()


def completed_revenue_by_day(orders: Iterable[Order]) -> dict[date, float]:
    """Revenue of completed orders grouped by UTC day."""
    totals: dict[date, float] = {}
    for order in orders:
        day = _order_day(order)
        if day is None or order.status != OrderStatus.COMPLETED:
            continue
        totals[day] = totals.get(day, 0.0) + order.total
    return totals


def dashboard_stats(
    orders: list[Order],
    products: list[Product],
    open_tickets: int = 0,
    today: Optional[date] = None,
) -> DashboardStats:
    """
    Aggregate the admin dashboard cards.

    Revenue only counts completed orders; the series covers the 7 days
    ending today, oldest first.
    """
    settings = get_settings()
    today = today or datetime.now(timezone.utc).date()
    by_day = completed_revenue_by_day(orders)

    series = [
        DailyRevenue(day=day, total=round(by_day.get(day, 0.0), 2))
        for day in (today - timedelta(days=offset) for offset in range(6, -1, -1))
    ]

    return DashboardStats(
        live_orders=sum(1 for o in orders if o.status == OrderStatus.PENDING),
        total_products=len(products),
        revenue_today=round(by_day.get(today, 0.0), 2),
        revenue_last_7_days=series,
        low_stock=[
            LowStockItem(id=p.id or "", name=p.name, stock=p.stock)
            for p in products
            if p.stock < settings.low_stock_threshold
        ],
        open_tickets=open_tickets,
        currency=settings.currency,
    )


async def load_dashboard_stats(store: BaseDocumentStore) -> DashboardStats:
    orders = [Order.from_document(d) for d in await store.query(Collection.ORDERS.value)]
    products = [Product.from_document(d) for d in await store.query(Collection.PRODUCTS.value)]
    tickets = await store.query(
        Collection.TICKETS.value,
        where=[("status", "==", TicketStatus.OPEN.value)],
    )
    return dashboard_stats(orders, products, open_tickets=len(tickets))
