"""Shared fixtures: development settings, a fresh in-memory store, sample catalog."""

import pytest

from storefront.core.config import get_settings
from storefront.schemas import Product, Promotion
from storefront.services.store import MemoryDocumentStore, reset_document_store
from storefront.services.users import AuthUser


@pytest.fixture(autouse=True)
def development_settings(monkeypatch):
    monkeypatch.setenv("ENV_MODE", "development")
    get_settings.cache_clear()
    reset_document_store()
    yield
    get_settings.cache_clear()
    reset_document_store()


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def user():
    return AuthUser(uid="user-1", email="sara@example.com", display_name="Sara Ali")


@pytest.fixture
def burger():
    return Product.model_validate({
        "id": "burger",
        "name": "Classic Burger",
        "category": "Burgers",
        "price": 18,
        "stock": 50,
        "options": [
            {
                "name": "Size",
                "type": "single",
                "required": True,
                "choices": [
                    {"label": "Regular", "price": 0},
                    {"label": "Double", "price": 6},
                ],
            },
            {
                "name": "Extras",
                "type": "multiple",
                "required": False,
                "choices": [
                    {"label": "Cheese", "price": 2},
                    {"label": "Bacon", "price": 3.5},
                ],
            },
        ],
    })


@pytest.fixture
def juice():
    return Product.model_validate({
        "id": "juice",
        "name": "Orange Juice",
        "category": "Drinks",
        "price": 7,
        "stock": 4,
    })


@pytest.fixture
def combo(burger, juice):
    return Promotion.model_validate({
        "id": "combo",
        "title": "Burger Combo",
        "price": 22,
        "originalPrice": 25,
        "linkedProductIds": [burger.id, juice.id],
    })
