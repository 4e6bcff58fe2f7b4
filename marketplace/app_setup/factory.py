"""
Factory d'application pour les entrypoints (ex: marketplace.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from fastapi import FastAPI
from marketplace.config import PLATFORM_NAME
from .lifespan import lifespan
from .logging_config import configure_logging
from .middlewares import register_basic_middlewares, register_security_headers_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - logs, middlewares de base et en-têtes de sécurité
      - gestionnaires d'exceptions (AppError, HTTPException)
      - tous les routers (payments, coupons, orders, health)
    """
    configure_logging()
    app = FastAPI(title=f"{PLATFORM_NAME} Checkout API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_headers_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
