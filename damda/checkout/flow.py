"""
Tunnel de paiement côté client, modélisé comme une machine à états explicite:

    AWAITING_REDIRECT -> CALLBACK_RECEIVED -> APPROVED | DECLINED
    CALLBACK_RECEIVED -> CALLBACK_RECEIVED (erreur réseau à l'approbation, settle() rappelable)
    AWAITING_REDIRECT -> EXPIRED (aucun retour du prestataire avant expiration)

Règles:
- le callback ne déclenche aucun mouvement d'argent: seul settle() appelle l'approbation
- seul le tid du callback est réutilisé; le montant transmis est toujours celui de la commande figée
- un paiement approuvé n'est jamais ré-approuvé: seule la création des réservations est relancée
- le panier n'est vidé qu'après création des réservations
- le réservant (nom, téléphone) est exigé dès start() et porté jusqu'aux réservations
"""
from datetime import datetime, timezone
from typing import Callable, Mapping, Any, Optional, Protocol
import logging

import httpx

from damda import config
from damda.cart import repository as cart_repository
from damda.cart.store import CartStore
from damda.errors import CheckoutStateError, DamdaError, ReservationMaterializationError
from damda.payments.models import PaymentApprovalResult
from damda.payments.service import GENERIC_NETWORK_MSG, NETWORK_ERROR_CODE
from damda.reservations.models import MaterializationResult, ReserverInfo
from .builder import CheckoutSessionBuilder, require_reserver
from .models import CheckoutOrder, CheckoutOutcome, CheckoutState, PaymentAuthorization

logger = logging.getLogger(__name__)

# module damda.checkout.flow
class Approver(Protocol):
    def __call__(self, tid: str, amount: int) -> PaymentApprovalResult: ...

class Materializer(Protocol):
    def confirm_order(
        self, order: CheckoutOrder, approval: PaymentApprovalResult, reserver: ReserverInfo,
        payment_method: str = "card",
    ) -> MaterializationResult: ...

class HttpApprovalClient:
    """Appelle POST /api/payment/approve comme le ferait la page de retour du navigateur."""

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.Client] = None, timeout: float = 30.0):
        self.base_url = (base_url or config.BASE_URL).rstrip("/")
        self.client = client
        self.timeout = timeout

    def __call__(self, tid: str, amount: int) -> PaymentApprovalResult:
        url = f"{self.base_url}/api/payment/approve"
        try:
            if self.client is not None:
                resp = self.client.post(url, json={"tid": tid, "amount": amount})
            else:
                resp = httpx.post(url, json={"tid": tid, "amount": amount}, timeout=self.timeout)
            body = resp.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("checkout.flow approbation injoignable tid=%s", tid)
            return PaymentApprovalResult.declined("Erreur de communication avec le serveur de paiement.", NETWORK_ERROR_CODE)
        if not isinstance(body, dict):
            return PaymentApprovalResult.declined("Réponse d'approbation invalide.", "INVALID_RESPONSE")
        return PaymentApprovalResult.from_response(body)

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class CheckoutFlow:
    def __init__(
        self,
        cart: CartStore,
        builder: CheckoutSessionBuilder,
        retry_attempts: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
        daycare_id: Optional[str] = None,
    ):
        self.cart = cart
        self.builder = builder
        self.retry_attempts = max(1, config.RESERVATION_RETRY_ATTEMPTS if retry_attempts is None else retry_attempts)
        self.clock = clock
        self.daycare_id = daycare_id
        self.state: Optional[CheckoutState] = None
        self.reserver: Optional[ReserverInfo] = None
        self.order: Optional[CheckoutOrder] = None
        self.authorization: Optional[PaymentAuthorization] = None
        self.approval: Optional[PaymentApprovalResult] = None
        self.outcome: Optional[CheckoutOutcome] = None

    def start(self, reserver: Optional[ReserverInfo]) -> CheckoutOrder:
        """Fige la commande (CheckoutValidationError si le panier ou le réservant est refusé)."""
        if self.state is not None and not self.state.is_terminal:
            raise CheckoutStateError("Un paiement est déjà en cours.")
        if self.outcome is not None and self.outcome.code == "RESERVATION_PENDING":
            raise CheckoutStateError("Un paiement approuvé attend la création de ses réservations.")
        reserver = require_reserver(reserver)
        self.order = self.builder.build_order(self.cart)
        self.reserver = reserver
        self.authorization = None
        self.approval = None
        self.outcome = None
        self.state = CheckoutState.AWAITING_REDIRECT
        return self.order

    def _finish(self, state: CheckoutState, message: str, code: Optional[str] = None, reservation_ids=None) -> CheckoutOutcome:
        self.state = state
        self.outcome = CheckoutOutcome(
            state=state,
            message=message,
            order_id=self.order.order_id if self.order else None,
            code=code,
            reservation_ids=list(reservation_ids or []),
        )
        logger.info("checkout.flow order=%s state=%s code=%s", self.outcome.order_id, state.value, code)
        return self.outcome

    def expire_if_abandoned(self, now: Optional[datetime] = None) -> bool:
        """Passe en EXPIRED une commande restée sans retour au-delà de son échéance."""
        if self.state is CheckoutState.AWAITING_REDIRECT and self.order and self.order.is_expired(now or self.clock()):
            self._finish(CheckoutState.EXPIRED, "Le délai de paiement est dépassé.", "EXPIRED")
            return True
        return False

    def receive_callback(self, params: Mapping[str, Any]) -> CheckoutState:
        """
        Enregistre les paramètres de retour (non fiables) et décide s'il y a lieu d'approuver.
        - commande expirée -> EXPIRED
        - orderId différent de la commande figée, code != 0000, tid absent -> DECLINED
        - sinon -> CALLBACK_RECEIVED
        """
        if self.state is not CheckoutState.AWAITING_REDIRECT or self.order is None:
            raise CheckoutStateError("Aucun paiement en attente de retour.")
        if self.expire_if_abandoned():
            return self.state

        auth = PaymentAuthorization.from_params(params)
        self.authorization = auth
        if not auth.is_authenticated:
            self._finish(CheckoutState.DECLINED, auth.auth_result_msg or "L'authentification du paiement a échoué.",
                         auth.auth_result_code or None)
        elif auth.order_id != self.order.order_id:
            logger.warning("checkout.flow orderId inattendu reçu=%s attendu=%s", auth.order_id, self.order.order_id)
            self._finish(CheckoutState.DECLINED, "Les informations de paiement sont incorrectes.", "ORDER_MISMATCH")
        elif not auth.tid:
            self._finish(CheckoutState.DECLINED, "Les informations de paiement sont incorrectes.", "MISSING_TID")
        else:
            self.state = CheckoutState.CALLBACK_RECEIVED
        return self.state

    def _materialize(self, materializer: Materializer, payment_method: str) -> MaterializationResult:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return materializer.confirm_order(self.order, self.approval, self.reserver, payment_method)
            except ReservationMaterializationError:
                raise
            except Exception as e:
                last_error = e
                logger.warning("checkout.flow création réservation échouée order=%s tentative=%s/%s",
                               self.order.order_id, attempt, self.retry_attempts, exc_info=True)
        raise last_error

    def settle(self, approver: Approver, materializer: Materializer, payment_method: str = "card") -> CheckoutOutcome:
        """
        Approuve (tid + montant figé) puis crée les réservations.
        - Refus: DECLINED, panier conservé
        - Erreur réseau: reste en CALLBACK_RECEIVED, settle() peut être rappelé (même tid, même montant)
        - Montant approuvé absent ou différent du montant figé: DECLINED (AMOUNT_MISMATCH), aucune réservation
        - Approuvé mais réservations impossibles après relances: APPROVED avec code RESERVATION_PENDING,
          panier conservé, la création pourra être relancée via retry_materialization()
        """
        if self.state is not CheckoutState.CALLBACK_RECEIVED:
            raise CheckoutStateError("Le paiement n'est pas prêt à être approuvé.")

        self.approval = approver(self.authorization.tid, self.order.amount)
        if not self.approval.success:
            if self.approval.code == NETWORK_ERROR_CODE:
                self.outcome = CheckoutOutcome(
                    state=CheckoutState.CALLBACK_RECEIVED,
                    message=self.approval.error or GENERIC_NETWORK_MSG,
                    order_id=self.order.order_id,
                    code=NETWORK_ERROR_CODE,
                )
                logger.warning("checkout.flow approbation à relancer order=%s tid=%s",
                               self.order.order_id, self.authorization.tid)
                return self.outcome
            return self._finish(CheckoutState.DECLINED, self.approval.error or "Le paiement a été refusé.", self.approval.code)
        if self.approval.amount is None or self.approval.amount != self.order.amount:
            logger.error(
                "checkout.flow montant approuvé incohérent order=%s tid=%s attendu=%s approuvé=%s",
                self.order.order_id, self.authorization.tid, self.order.amount, self.approval.amount,
            )
            return self._finish(CheckoutState.DECLINED, "Le montant approuvé ne correspond pas à la commande.",
                                "AMOUNT_MISMATCH")
        return self._complete(materializer, payment_method)

    def retry_materialization(self, materializer: Materializer, payment_method: str = "card") -> CheckoutOutcome:
        """Relance la seule création des réservations d'un paiement déjà approuvé."""
        if self.state is not CheckoutState.APPROVED or self.approval is None or not self.approval.success:
            raise CheckoutStateError("Aucun paiement approuvé à finaliser.")
        if self.outcome and self.outcome.code is None:
            return self.outcome
        return self._complete(materializer, payment_method)

    def _complete(self, materializer: Materializer, payment_method: str) -> CheckoutOutcome:
        try:
            result = self._materialize(materializer, payment_method)
        except DamdaError as e:
            return self._finish(CheckoutState.APPROVED, e.message, "RESERVATION_PENDING")
        except Exception:
            logger.exception("checkout.flow réservations non créées order=%s", self.order.order_id)
            return self._finish(CheckoutState.APPROVED, "Paiement reçu, création de la réservation en attente.",
                                "RESERVATION_PENDING")

        self.cart.clear()
        if self.daycare_id:
            cart_repository.clear_cart(self.daycare_id)
        return self._finish(CheckoutState.APPROVED, "Le paiement est terminé.", reservation_ids=result.reservation_ids)
