# storefront/api/__init__.py
from fastapi import FastAPI

from storefront.api.routers import (
    admin,
    carts,
    catalogue,
    customers,
    health,
    inventory,
    orders,
    payments,
    webhooks,
)


def include_routers(app: FastAPI) -> None:
    app.include_router(health.router)
    app.include_router(customers.router)
    app.include_router(catalogue.router)
    app.include_router(inventory.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(payments.router)
    app.include_router(admin.router)
    app.include_router(webhooks.router)
