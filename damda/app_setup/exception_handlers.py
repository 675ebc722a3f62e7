"""
Gestionnaires d'exceptions.
- DamdaError: corps JSON {success: false, error, code} avec le statut porté par l'exception.
- HTTPException: corps JSON FastAPI standard ({"detail": ...}).
- Erreur imprévue sur /api/payment/*: 500 avec message générique (aucun détail interne exposé).
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from damda.errors import DamdaError

logger = logging.getLogger(__name__)

GENERIC_PAYMENT_ERROR = "Une erreur est survenue lors du traitement du paiement."

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DamdaError)
    async def damda_error_handler(request: Request, exc: DamdaError):
        logger.info("damda.error path=%s code=%s status=%s", request.url.path, exc.code, exc.status_code)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message, "code": exc.code},
        )

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Erreur imprévue path=%s", request.url.path)
        if request.url.path.startswith("/api/payment"):
            return JSONResponse(status_code=500, content={"success": False, "error": GENERIC_PAYMENT_ERROR})
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
