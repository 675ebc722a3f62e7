from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool

from .policy import ReservationPolicyService

router = APIRouter(prefix="/api/reservations", tags=["Reservations API"])

def _policy(request: Request) -> ReservationPolicyService:
    policy = getattr(request.app.state, "reservation_policy", None)
    if policy is None:
        policy = ReservationPolicyService()
        request.app.state.reservation_policy = policy
    return policy

@router.get("/settings")
async def reservation_settings(request: Request):
    """
    Politique de réservation courante: {"advanceDays": int, "minNoticeHours": int}.
    Toujours 200: les valeurs par défaut remplacent une source illisible ou injoignable.
    """
    settings = await run_in_threadpool(_policy(request).get_settings)
    return settings.to_response()
