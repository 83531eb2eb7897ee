from datetime import datetime, timezone

import pytest

from storefront.services.store import (
    SERVER_TIMESTAMP,
    DocumentNotFoundError,
    MemoryDocumentStore,
    PermissionDeniedError,
    Query,
    QueryError,
)


async def test_add_and_get_strips_id_and_resolves_timestamp(store):
    doc_id = await store.add("tickets", {"id": "ignored", "subject": "Late", "timestamp": SERVER_TIMESTAMP})

    doc = await store.get("tickets", doc_id)
    assert doc.id == doc_id
    assert "id" not in doc.data
    assert isinstance(doc.data["timestamp"], datetime)
    assert doc.data["timestamp"].tzinfo is not None
    assert doc.to_dict()["id"] == doc_id


async def test_get_missing_returns_none(store):
    assert await store.get("products", "nope") is None


async def test_update_merges_fields(store):
    await store.set("users", "u1", {"email": "a@b.c", "admin": False})
    await store.update("users", "u1", {"admin": True})

    doc = await store.get("users", "u1")
    assert doc.data == {"email": "a@b.c", "admin": True}


async def test_update_missing_raises(store):
    with pytest.raises(DocumentNotFoundError):
        await store.update("orders", "missing", {"status": "completed"})


async def test_delete_is_idempotent(store):
    doc_id = await store.add("products", {"name": "Tea"})
    await store.delete("products", doc_id)
    await store.delete("products", doc_id)
    assert await store.get("products", doc_id) is None


async def test_returned_documents_do_not_alias_store(store):
    doc_id = await store.add("products", {"name": "Tea", "options": []})
    doc = await store.get("products", doc_id)
    doc.data["options"].append("mutated")

    again = await store.get("products", doc_id)
    assert again.data["options"] == []


async def test_query_filters_orders_and_limits(store):
    await store.add("orders", {"userId": "a", "total": 10})
    await store.add("orders", {"userId": "b", "total": 30})
    await store.add("orders", {"userId": "a", "total": 20})
    await store.add("orders", {"userId": "a"})

    docs = await store.query("orders", where=[("userId", "==", "a")], order_by="total", descending=True)
    assert [d.data["total"] for d in docs] == [20, 10]

    limited = await store.query("orders", order_by="total", limit=1)
    assert [d.data["total"] for d in limited] == [10]

    docs = await store.query("orders", where=[("userId", "in", ["b"])])
    assert len(docs) == 1


async def test_unsupported_operator(store):
    await store.add("orders", {"total": 1})
    with pytest.raises(QueryError):
        await store.query("orders", where=[("total", ">", 0)])


async def test_sorting_incomparable_values_raises_query_error(store):
    await store.add("orders", {"timestamp": datetime.now(timezone.utc)})
    await store.add("orders", {"timestamp": "yesterday"})

    with pytest.raises(QueryError):
        await store.query("orders", order_by="timestamp")


async def test_listen_delivers_initial_snapshot_and_changes(store):
    existing = await store.add("products", {"name": "Tea", "stock": 3})
    snapshots = []

    sub = await store.listen("products", snapshots.append)
    assert snapshots[0].size == 1
    assert [c.type for c in snapshots[0].changes] == ["added"]

    new_id = await store.add("products", {"name": "Coffee", "stock": 1})
    assert snapshots[-1].size == 2
    assert [(c.type, c.document.id) for c in snapshots[-1].changes] == [("added", new_id)]

    await store.update("products", existing, {"stock": 2})
    assert [(c.type, c.document.id) for c in snapshots[-1].changes] == [("modified", existing)]

    await store.delete("products", new_id)
    assert [(c.type, c.document.id) for c in snapshots[-1].changes] == [("removed", new_id)]

    sub.unsubscribe()
    count = len(snapshots)
    await store.add("products", {"name": "Juice"})
    assert len(snapshots) == count
    assert not sub.active


async def test_listen_ignores_other_collections(store):
    snapshots = []
    await store.listen("orders", snapshots.append)
    await store.add("tickets", {"subject": "x"})
    assert len(snapshots) == 1


async def test_listener_error_goes_to_on_error_and_closes():
    store = MemoryDocumentStore(denied_collections={"orders"})
    errors = []

    sub = await store.listen(Query("orders"), lambda s: None, errors.append)

    assert len(errors) == 1
    assert isinstance(errors[0], PermissionDeniedError)
    assert errors[0].code == "permission-denied"
    assert not sub.active


async def test_failing_listener_does_not_fail_the_write(store):
    calls = []

    def explode(snapshot):
        calls.append(snapshot)
        if len(calls) > 1:
            raise RuntimeError("listener bug")

    await store.listen("products", explode)
    doc_id = await store.add("products", {"name": "Tea"})

    assert await store.get("products", doc_id) is not None
    assert len(calls) == 2


async def test_close_drops_subscriptions(store):
    sub = await store.listen("orders", lambda s: None)
    await store.close()
    assert not sub.active
    assert await store.health_check()
