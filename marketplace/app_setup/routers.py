"""
Registre central des routers.
- API v1: payments (sessions, intentions, webhook), coupons, orders
- Health: health_router
"""
from fastapi import FastAPI
from marketplace.payments import views as payments_views
from marketplace.coupons import views as coupons_views
from marketplace.orders import views as orders_views
from marketplace.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(payments_views.router)
    app.include_router(coupons_views.router)
    app.include_router(orders_views.router)
    # Health & monitoring
    app.include_router(health_router)
