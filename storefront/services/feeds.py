"""
Live Feeds

Screens keep a live query open and replace their local list wholesale on
every snapshot. If a sorted feed fails it is re-opened once without the
sort; a second failure is only logged.

Also contains the admin backend's order watcher, which logs every order
as it arrives.
"""

import logging
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import ValidationError

from storefront.core.config import get_settings
from storefront.models import Collection
from storefront.schemas import Order, Product, Promotion, Ticket
from storefront.services.orders import all_orders_query, user_orders_query
from storefront.services.store import (
    BaseDocumentStore,
    Document,
    Query,
    Snapshot,
    StoreError,
    Subscription,
)
from storefront.services.tickets import tickets_query

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LiveFeed(Generic[T]):
    """
    Local mirror of a live query.

    Attributes:
        items: Parsed documents from the latest snapshot
        loaded: True once the first snapshot arrived
        retried: True once the sort fallback has been used
        last_error: Most recent listener error, if any
    """

    def __init__(
        self,
        store: BaseDocumentStore,
        query: Query,
        parse: Callable[[Document], T] = Document.to_dict,
        name: Optional[str] = None,
    ):
        self.store = store
        self.query = query
        self.parse = parse
        self.name = name or query.collection
        self.items: list[T] = []
        self.loaded = False
        self.retried = False
        self.last_error: Optional[StoreError] = None
        self.subscription: Optional[Subscription] = None

    async def start(self) -> "LiveFeed[T]":
        self.subscription = None
        subscription = await self.store.listen(self.query, self._on_snapshot, self._on_error)
        # A failed first snapshot may already have re-opened the feed
        if self.subscription is None:
            self.subscription = subscription
        return self

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        items = []
        for doc in snapshot.documents:
            try:
                items.append(self.parse(doc))
            except ValidationError as e:
                logger.warning(f"{self.name}: skipping malformed document {doc.id}: {e}")
        self.items = items
        self.loaded = True

    async def _on_error(self, error: StoreError) -> None:
        self.last_error = error
        logger.error(f"{self.name} sync error: {error}")

        if self.query.is_sorted and not self.retried:
            self.retried = True
            logger.info(f"{self.name}: retrying without sort...")
            self.query = self.query.without_sort()
            await self.start()

    @property
    def active(self) -> bool:
        return self.subscription is not None and self.subscription.active

    def close(self) -> None:
        if self.subscription is not None:
            self.subscription.unsubscribe()


# =============================================================================
# FEED FACTORIES
# =============================================================================

async def order_feed(store: BaseDocumentStore) -> LiveFeed[Order]:
    return await LiveFeed(store, all_orders_query(), Order.from_document, "Orders").start()


async def user_order_feed(store: BaseDocumentStore, uid: str) -> LiveFeed[Order]:
    return await LiveFeed(store, user_orders_query(uid), Order.from_document, "My orders").start()


async def product_feed(store: BaseDocumentStore) -> LiveFeed[Product]:
    query = Query(collection=Collection.PRODUCTS.value)
    return await LiveFeed(store, query, Product.from_document, "Products").start()


async def promotion_feed(store: BaseDocumentStore) -> LiveFeed[Promotion]:
    query = Query(collection=Collection.PROMOTIONS.value)
    return await LiveFeed(store, query, Promotion.from_document, "Promotions").start()


async def ticket_feed(store: BaseDocumentStore) -> LiveFeed[Ticket]:
    return await LiveFeed(store, tickets_query(), Ticket.from_document, "Tickets").start()


class AdminFeeds:
    """The four feeds behind the admin dashboard, opened and closed together."""

    def __init__(self, store: BaseDocumentStore):
        self.store = store
        self.orders: Optional[LiveFeed[Order]] = None
        self.products: Optional[LiveFeed[Product]] = None
        self.promotions: Optional[LiveFeed[Promotion]] = None
        self.tickets: Optional[LiveFeed[Ticket]] = None

    async def start(self) -> "AdminFeeds":
        self.orders = await order_feed(self.store)
        self.products = await product_feed(self.store)
        self.promotions = await promotion_feed(self.store)
        self.tickets = await ticket_feed(self.store)
        return self

    def close(self) -> None:
        for feed in (self.orders, self.products, self.promotions, self.tickets):
            if feed is not None:
                feed.close()


# =============================================================================
# ORDER WATCHER
# =============================================================================

def _log_order_snapshot(snapshot: Snapshot) -> None:
    currency = get_settings().currency
    logger.info("--- NEW ORDER UPDATE ---")
    logger.info(f"Total Orders: {snapshot.size}")
    for doc in snapshot.added():
        items: Any = doc.get("items") or []
        logger.info(f"New Order #{doc.id[-6:]} from {doc.get('userName')}")
        logger.info(f"Items: {len(items)} items | Total: {doc.get('total')} {currency}")


def _log_order_error(error: StoreError) -> None:
    logger.error(f"Backend order listener error: {error.code}")
    logger.error(f"Message: {error}")
    if error.code == "permission-denied":
        logger.error("FIX: grant the admin backend read access to the 'orders' collection.")


async def watch_new_orders(store: BaseDocumentStore) -> Subscription:
    """Log the order count and each new order as it is written."""
    logger.info("Starting backend order listener...")
    return await store.listen(all_orders_query(), _log_order_snapshot, _log_order_error)
