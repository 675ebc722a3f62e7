"""
Cas d'usage 'payments': approbation serveur d'une transaction NICEPAY.
"""
from collections import OrderedDict
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
import logging
import threading
import time

import httpx

from damda import config
from damda.errors import ApprovalRequestError
from . import nicepay_client
from .models import PaymentApprovalResult

logger = logging.getLogger(__name__)

SUCCESS_CODE = "0000"
NETWORK_ERROR_CODE = "NETWORK_ERROR"
GENERIC_DECLINE_MSG = "L'approbation du paiement a échoué."
GENERIC_NETWORK_MSG = "Une erreur est survenue pendant le traitement du paiement. Veuillez réessayer."

# module damda.payments.service
class ApprovalLedger:
    """
    Registre des approbations réussies, clé (tid, montant).
    - Un verrou par tid sérialise les appels concurrents pour une même transaction
    - Un doublon renvoie le résultat enregistré sans rappeler le prestataire
    - Les résultats expirent après ttl_seconds; un verrou disparaît dès que plus personne ne l'attend
    """

    def __init__(self, ttl_seconds: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = config.APPROVAL_LEDGER_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._results: "OrderedDict[Tuple[str, int], Tuple[float, PaymentApprovalResult]]" = OrderedDict()
        self._locks: Dict[str, List[Any]] = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, tid: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(tid, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0 and self._locks.get(tid) is entry:
                    del self._locks[tid]

    def _evict(self, now: float) -> None:
        while self._results:
            recorded_at, _ = next(iter(self._results.values()))
            if now - recorded_at < self.ttl:
                break
            self._results.popitem(last=False)

    def get(self, tid: str, amount: int) -> Optional[PaymentApprovalResult]:
        with self._guard:
            self._evict(self._clock())
            entry = self._results.get((tid, amount))
        return entry[1] if entry else None

    def record(self, tid: str, amount: int, result: PaymentApprovalResult) -> None:
        if not result.success:
            return
        with self._guard:
            now = self._clock()
            self._evict(now)
            self._results.pop((tid, amount), None)
            self._results[(tid, amount)] = (now, result)

    def stats(self) -> Dict[str, int]:
        with self._guard:
            return {"results": len(self._results), "locks": len(self._locks)}

    def clear(self) -> None:
        with self._guard:
            self._results.clear()
            self._locks.clear()

ledger = ApprovalLedger()

def parse_approval_params(tid: Any, amount: Any) -> Tuple[str, int]:
    """
    Valide les paramètres client.
    - tid non vide, amount entier strictement positif (int ou chaîne numérique)
    - Soulève ApprovalRequestError sinon (jamais transmis au prestataire)
    """
    tid = str(tid or "").strip()
    if not tid or amount in (None, "", 0, "0"):
        raise ApprovalRequestError()
    if isinstance(amount, bool):
        raise ApprovalRequestError("Montant invalide.")
    try:
        value = int(str(amount).strip())
    except (TypeError, ValueError):
        raise ApprovalRequestError("Montant invalide.")
    if value <= 0:
        raise ApprovalRequestError("Montant invalide.")
    return tid, value

def _classify(payload: Dict[str, Any]) -> PaymentApprovalResult:
    if payload.get("resultCode") == SUCCESS_CODE:
        return PaymentApprovalResult.approved(payload)
    logger.error("payments.approve refus prestataire payload=%s", payload)
    return PaymentApprovalResult.declined(
        payload.get("resultMsg") or GENERIC_DECLINE_MSG,
        payload.get("resultCode"),
    )

def approve(tid: Any, amount: Any, *, registry: Optional[ApprovalLedger] = None) -> PaymentApprovalResult:
    """
    Approuve une transaction autorisée pour le montant figé de la commande.
    - ApprovalRequestError si tid/amount manquants
    - PaymentConfigurationError si les clés serveur manquent (aucun appel)
    - Refus prestataire: success=False avec message et code du prestataire
    - Erreur réseau: success=False générique (code NETWORK_ERROR), pas de relance serveur
    """
    tid, value = parse_approval_params(tid, amount)
    nicepay_client.require_nicepay()
    registry = registry or ledger

    with registry.hold(tid):
        previous = registry.get(tid, value)
        if previous is not None:
            logger.info("payments.approve doublon tid=%s amount=%s (résultat enregistré)", tid, value)
            return previous
        try:
            payload = nicepay_client.approve_payment(tid, value)
        except (httpx.HTTPError, ValueError):
            logger.exception("payments.approve erreur de transport tid=%s amount=%s", tid, value)
            return PaymentApprovalResult.declined(GENERIC_NETWORK_MSG, NETWORK_ERROR_CODE)
        result = _classify(payload)
        registry.record(tid, value, result)
        if result.success:
            logger.info("payments.approve ok tid=%s order=%s amount=%s", tid, result.order_id, result.amount)
        return result
