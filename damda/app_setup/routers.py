"""
Registre central des routers.
- API: payment (approve, callback), reservations (settings)
- Health: health_router
"""
from fastapi import FastAPI
from damda.payments import views as payments_views
from damda.reservations import views as reservations_views
from damda.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API
    app.include_router(payments_views.router)
    app.include_router(reservations_views.router)
    # Health & monitoring
    app.include_router(health_router)
