from datetime import datetime, timezone

from storefront.services.feeds import (
    AdminFeeds,
    LiveFeed,
    product_feed,
    user_order_feed,
    watch_new_orders,
)
from storefront.services.orders import all_orders_query
from storefront.services.store import MemoryDocumentStore, PermissionDeniedError, QueryError

STAMP = datetime(2025, 5, 1, 9, 30, tzinfo=timezone.utc)


async def test_feed_replaces_items_on_every_snapshot(store):
    feed = await product_feed(store)
    assert feed.loaded
    assert feed.items == []

    tea_id = await store.add("products", {"name": "Tea", "price": 3})
    await store.add("products", {"name": "Coffee", "price": 5})
    assert sorted(p.name for p in feed.items) == ["Coffee", "Tea"]

    await store.delete("products", tea_id)
    assert [p.name for p in feed.items] == ["Coffee"]


async def test_user_order_feed_only_sees_own_orders(store):
    await store.add("orders", {"userId": "u1", "userName": "A", "timestamp": STAMP})
    await store.add("orders", {"userId": "u2", "userName": "B", "timestamp": STAMP})

    feed = await user_order_feed(store, "u1")

    assert [o.user_name for o in feed.items] == ["A"]


async def test_malformed_documents_are_skipped(store, caplog):
    await store.add("orders", {"userId": "u1", "userName": "A", "timestamp": STAMP})
    broken = await store.add("orders", {"userId": "u1", "timestamp": STAMP})

    feed = await user_order_feed(store, "u1")

    assert feed.loaded
    assert feed.active
    assert [o.user_name for o in feed.items] == ["A"]
    assert f"skipping malformed document {broken}" in caplog.text


async def test_unsortable_feed_reopens_without_sort(store):
    await store.add("orders", {"userName": "A", "timestamp": STAMP})
    await store.add("orders", {"userName": "B", "timestamp": "yesterday"})

    feed = await LiveFeed(store, all_orders_query(), name="Orders").start()

    assert feed.retried
    assert isinstance(feed.last_error, QueryError)
    assert not feed.query.is_sorted
    assert feed.active
    assert sorted(item["userName"] for item in feed.items) == ["A", "B"]

    await store.add("orders", {"userName": "C", "timestamp": STAMP})
    assert len(feed.items) == 3


async def test_feed_falls_back_after_a_later_failure(store):
    await store.add("orders", {"userName": "A", "timestamp": STAMP})
    feed = await LiveFeed(store, all_orders_query()).start()
    assert not feed.retried

    await store.add("orders", {"userName": "B", "timestamp": "yesterday"})

    assert feed.retried
    assert feed.active
    assert len(feed.items) == 2


async def test_fallback_is_used_only_once():
    store = MemoryDocumentStore(denied_collections={"orders"})

    feed = await LiveFeed(store, all_orders_query()).start()

    assert feed.retried
    assert isinstance(feed.last_error, PermissionDeniedError)
    assert not feed.loaded
    assert not feed.active


async def test_closed_feed_stops_updating(store):
    feed = await product_feed(store)
    feed.close()

    await store.add("products", {"name": "Tea"})

    assert not feed.active
    assert feed.items == []


async def test_admin_feeds(store):
    await store.add("products", {"name": "Tea"})
    await store.add("tickets", {"subject": "Hi", "message": "x", "userId": "u1", "timestamp": STAMP})

    feeds = await AdminFeeds(store).start()

    assert [p.name for p in feeds.products.items] == ["Tea"]
    assert [t.subject for t in feeds.tickets.items] == ["Hi"]
    assert feeds.orders.items == []
    assert feeds.promotions.items == []

    feeds.close()
    assert not any(f.active for f in (feeds.orders, feeds.products, feeds.promotions, feeds.tickets))


async def test_order_watcher_logs_new_orders(store, caplog):
    caplog.set_level("INFO", logger="storefront.services.feeds")

    subscription = await watch_new_orders(store)
    assert "Total Orders: 0" in caplog.text

    order_id = await store.add(
        "orders",
        {"userName": "Sara", "items": [{"id": "a"}, {"id": "b"}], "total": 12.5, "timestamp": STAMP},
    )

    assert "Total Orders: 1" in caplog.text
    assert f"New Order #{order_id[-6:]} from Sara" in caplog.text
    assert "Items: 2 items | Total: 12.5 LYD" in caplog.text
    subscription.unsubscribe()


async def test_order_watcher_reports_permission_errors(caplog):
    store = MemoryDocumentStore(denied_collections={"orders"})

    subscription = await watch_new_orders(store)

    assert not subscription.active
    assert "permission-denied" in caplog.text
    assert "FIX:" in caplog.text
