# app/api/__init__.py
from fastapi import FastAPI

from app.api.routers import auth, carts, categories, health, orders, products, wishlist


def include_routers(app: FastAPI) -> None:
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(products.router)
    app.include_router(products.admin_router)
    app.include_router(categories.router)
    app.include_router(categories.admin_router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(wishlist.router)
