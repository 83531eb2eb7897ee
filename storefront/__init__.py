"""
                Storefront Ordering Backend

Data layer and business rules for a restaurant/pharmacy ordering
platform: product catalog, cart, checkout, order tracking, promotions
and support tickets, plus a read-only admin HTTP surface.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
