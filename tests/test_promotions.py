from datetime import datetime, timedelta, timezone

import pytest

from storefront.schemas import Promotion
from storefront.services.cart import Cart
from storefront.services.promotions import (
    MissingOptionError,
    PromotionSelector,
    active_promotions,
    delete_promotion,
    latest_unseen_promotion,
    load_linked_products,
    save_promotion,
)


@pytest.fixture
def selector(combo, burger, juice):
    return PromotionSelector(combo, {burger.id: burger, juice.id: juice})


def test_required_option_without_selection_blocks_add(selector):
    with pytest.raises(MissingOptionError) as exc:
        selector.to_cart_line()

    assert exc.value.product_name == "Classic Burger"
    assert exc.value.option_name == "Size"


def test_emptied_multiple_selection_counts_as_missing(combo, burger):
    burger.options[1].required = True
    selector = PromotionSelector(combo, {burger.id: burger})
    selector.select("burger", "Size", "Regular")
    selector.select("burger", "Extras", "Cheese")
    selector.select("burger", "Extras", "Cheese")

    assert selector.selections["burger"]["Extras"] == []
    with pytest.raises(MissingOptionError):
        selector.validate()


def test_single_selection_replaces(selector):
    selector.select("burger", "Size", "Regular")
    selector.select("burger", "Size", "Double")

    assert selector.selections["burger"]["Size"] == "Double"


def test_bundle_line(selector):
    selector.select("burger", "Size", "Double")
    selector.select("burger", "Extras", "Cheese")
    selector.select("burger", "Extras", "Bacon")

    line = selector.to_cart_line()

    assert line.id == "combo"
    assert line.name == "Burger Combo"
    assert line.price == 22
    assert line.quantity == 1
    assert line.is_promotion
    assert line.selected_options == {
        "Classic Burger - Size": "Double",
        "Classic Burger - Extras": "Cheese, Bacon",
    }

    cart = Cart()
    cart.add(line)
    assert cart.total() == 22


def test_missing_linked_product_is_skipped(combo, juice):
    selector = PromotionSelector(combo, {juice.id: juice})
    selector.validate()


def test_select_unknown_product_or_option(selector):
    with pytest.raises(KeyError):
        selector.select("pizza", "Size", "Large")
    with pytest.raises(KeyError):
        selector.select("burger", "Sauce", "BBQ")


async def test_load_linked_products(store, combo):
    await store.set("products", "burger", {"name": "Classic Burger", "price": 18})

    products = await load_linked_products(store, combo)

    assert list(products) == ["burger"]
    assert products["burger"].price == 18


def test_latest_unseen_promotion():
    now = datetime.now(timezone.utc)
    old = Promotion(id="old", title="Old", price=5, created_at=now - timedelta(days=3))
    new = Promotion(id="new", title="New", price=5, created_at=now)
    undated = Promotion(id="undated", title="Undated", price=5)

    assert latest_unseen_promotion([old, undated, new], seen_ids=[]).id == "new"
    assert latest_unseen_promotion([old, new], seen_ids=["new"]) is None
    assert latest_unseen_promotion([], seen_ids=[]) is None

    new.active = False
    assert latest_unseen_promotion([old, new], seen_ids=[]) is None


def test_savings(combo):
    assert combo.savings == 3


async def test_save_update_and_delete_promotion(store):
    promo_id = await save_promotion(
        store,
        {"title": "Weekend", "price": "30", "originalPrice": "36", "linkedProductIds": ["a", "b"]},
    )

    doc = await store.get("promotions", promo_id)
    assert doc.data["active"] is True
    assert doc.data["price"] == 30.0
    assert isinstance(doc.data["createdAt"], datetime)

    await save_promotion(store, {"id": promo_id, "active": False}, promotion_id=promo_id)
    assert await active_promotions(store) == []

    await delete_promotion(store, promo_id)
    assert await store.get("promotions", promo_id) is None
