"""
Factory d'application utilisée par les entrypoints (damda.app, damda.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from typing import Optional
from fastapi import FastAPI

from damda.reservations.policy import ReservationPolicyService
from .lifespan import lifespan
from .middlewares import (
    register_basic_middlewares,
    register_security_middleware,
    register_no_cache_middleware,
    register_force_https_middleware,
)
from .exception_handlers import register_exception_handlers
from .routers import register_routers

def create_app(reservation_policy: Optional[ReservationPolicyService] = None) -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base, sécurité, no-cache
      - gestionnaires d'exceptions
      - routers (payment, reservations, health)
      - middleware HTTPS en dernier pour qu'il s'exécute en premier
    reservation_policy: service de politique injecté (tests); sinon créé au démarrage.
    """
    app = FastAPI(title="Damda Checkout API", lifespan=lifespan)
    app.state.reservation_policy = reservation_policy
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    register_force_https_middleware(app)
    return app
