import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.status import HTTP_303_SEE_OTHER

from damda.errors import ApprovalRequestError
from damda.utils.rate_limit import optional_rate_limit
from damda.payments import callback as payments_callback
from damda.payments import service as payments_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/payment", tags=["Payment API"])

# module damda.payments.views
@router.post("/approve", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def approve_payment(request: Request):
    """
    Approbation serveur d'une transaction NICEPAY.
    - Entrée JSON: { "tid": "<transaction>", "amount": <int> }
    - 400 si paramètres manquants, 500 si configuration absente (handlers DamdaError)
    - 200 {success: true, data} ou 200 {success: false, error, code} si refus prestataire
    """
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        raise ApprovalRequestError()

    result = await run_in_threadpool(payments_service.approve, body.get("tid"), body.get("amount"))
    return JSONResponse(result.to_response())

@router.post("/callback", include_in_schema=False)
async def payment_callback(request: Request):
    """
    Retour NICEPAY (POST formulaire): redirige en 303 vers la page de retour client.
    - Champs transmis: authResultCode, authResultMsg, tid, orderId, amount, signature, authToken
    - Toute erreur de traitement redirige avec authResultCode=ERROR (jamais de 500)
    """
    try:
        form = await request.form()
        params = payments_callback.normalize_callback_params(form)
        logger.info(
            "payments.callback code=%s order=%s tid=%s",
            params.get("authResultCode"), params.get("orderId"), params.get("tid"),
        )
        url = payments_callback.callback_redirect_url(params)
    except Exception:
        logger.exception("Erreur payment_callback")
        url = payments_callback.error_redirect_url()
    return RedirectResponse(url=url, status_code=HTTP_303_SEE_OTHER)

@router.get("/callback", include_in_schema=False)
async def payment_callback_get(request: Request):
    """Variante GET (tests manuels): même normalisation à partir de la query string."""
    try:
        params = payments_callback.normalize_callback_params(request.query_params)
        url = payments_callback.callback_redirect_url(params)
    except Exception:
        logger.exception("Erreur payment_callback_get")
        url = payments_callback.error_redirect_url()
    return RedirectResponse(url=url, status_code=HTTP_303_SEE_OTHER)
