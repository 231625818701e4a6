"""Marketplace domain API package."""

from marketplace.api.routes import order_router, seller_router, settlement_router, sub_order_router

__all__ = ["order_router", "sub_order_router", "settlement_router", "seller_router"]
