"""Delivery domain API package."""

from delivery.api.routes import (
    cashout_router,
    credit_router,
    dashboard_router,
    driver_router,
    order_router,
    procurement_router,
)

ROUTERS = [
    order_router,
    driver_router,
    cashout_router,
    procurement_router,
    credit_router,
    dashboard_router,
]

__all__ = [
    "ROUTERS",
    "cashout_router",
    "credit_router",
    "dashboard_router",
    "driver_router",
    "order_router",
    "procurement_router",
]
