"""
                        Services Module

Business rules and the data layer the customer app and admin dashboard
call into.

Services:
    - store: Document store (in-memory for development, SQL otherwise)
    - feeds: Live query mirrors with sort fallback, new-order watcher
    - pricing / cart: Option surcharges and cart aggregation
    - promotions: Bundle option selection and validation
    - checkout: Phone/field validation and order placement
    - orders / catalog / tickets / users: Collection-specific operations
"""

from storefront.services.store import get_document_store

__all__ = ["get_document_store"]
