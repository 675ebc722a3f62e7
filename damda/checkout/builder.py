"""
Construction de la commande de paiement à partir du panier.
Aucune écriture en base: la commande figée est remise au widget de paiement.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, Optional
import logging
import secrets
import string
import time

from damda import config
from damda.cart.store import CartStore
from damda.errors import CatalogUnavailableError, CheckoutValidationError
from damda.products import repository as products_repo
from damda.reservations.models import ReserverInfo
from damda.reservations.policy import ReservationPolicyService, check_date
from .models import CheckoutOrder

logger = logging.getLogger(__name__)

_ORDER_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase

DATE_ERRORS = {
    "too_soon": "La date de réservation est trop proche.",
    "too_far": "La date de réservation est trop lointaine.",
    "time_passed": "L'heure de réservation est dépassée.",
}

# module damda.checkout.builder
def generate_order_id(now_ms: Optional[int] = None) -> str:
    """ORD + horodatage (ms) + 4 caractères aléatoires; jamais dérivé du contenu du panier."""
    ts = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(4))
    return f"ORD{ts}{suffix}"

def goods_name_for(names: list[str]) -> str:
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    return f"{names[0]} et {len(names) - 1} autre(s)"

def require_reserver(reserver: Optional[ReserverInfo]) -> ReserverInfo:
    """Nom et téléphone du réservant obligatoires avant tout paiement."""
    if reserver is None or not reserver.name.strip() or not reserver.phone.strip():
        raise CheckoutValidationError(
            "Veuillez saisir le nom et le téléphone du réservant.", code="RESERVER_REQUIRED"
        )
    return reserver

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class CheckoutSessionBuilder:
    def __init__(
        self,
        policy: ReservationPolicyService,
        products_lookup: Callable[[Iterable[str]], Dict[str, Dict[str, Any]]] = products_repo.get_products_map,
        return_url: Optional[str] = None,
        ttl_minutes: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.policy = policy
        self.products_lookup = products_lookup
        self.return_url = return_url or f"{config.BASE_URL.rstrip('/')}{config.CHECKOUT_RETURN_PATH}"
        self.ttl = timedelta(minutes=config.CHECKOUT_ORDER_TTL_MINUTES if ttl_minutes is None else ttl_minutes)
        self.clock = clock

    def validate(self, cart: CartStore, now: datetime) -> None:
        """
        Vérifie le panier avant paiement:
        - panier non vide
        - date de chaque ligne dans la fenêtre de la politique
        - produit existant, non épuisé, participants dans [min, max]
        """
        items = cart.items
        if not items:
            raise CheckoutValidationError("Le panier est vide.", code="EMPTY_CART")

        settings = self.policy.get_settings()
        try:
            products = self.products_lookup([i.product_id for i in items])
        except Exception:
            logger.warning("checkout.builder catalogue injoignable products=%s", [i.product_id for i in items])
            raise CatalogUnavailableError()

        for item in items:
            name = item.product.name or item.product_id
            reason = check_date(item.reservation_date, item.reservation_time, settings, now)
            if reason:
                raise CheckoutValidationError(
                    f'"{name}" - {DATE_ERRORS[reason]}', code=reason.upper(), product_id=item.product_id
                )

            product = products.get(item.product_id)
            if not product:
                raise CheckoutValidationError(
                    f'"{name}" - Produit introuvable.', code="PRODUCT_NOT_FOUND", product_id=item.product_id
                )
            if product.get("is_sold_out"):
                raise CheckoutValidationError(
                    f'"{name}" - Produit épuisé.', code="SOLD_OUT", product_id=item.product_id
                )
            low = int(product.get("min_participants") or 1)
            high = product.get("max_participants")
            if item.participants < low or (high is not None and item.participants > int(high)):
                raise CheckoutValidationError(
                    f'"{name}" - Nombre de participants hors limites ({low}-{high if high is not None else "∞"}).',
                    code="PARTICIPANTS_OUT_OF_RANGE",
                    product_id=item.product_id,
                )

    def build_order(self, cart: CartStore) -> CheckoutOrder:
        now = self.clock()
        self.validate(cart, now)
        items = cart.items
        amount = cart.compute_total()
        if amount <= 0:
            raise CheckoutValidationError("Le montant à payer est invalide.", code="INVALID_AMOUNT")
        order = CheckoutOrder(
            order_id=generate_order_id(int(now.timestamp() * 1000)),
            amount=amount,
            goods_name=goods_name_for([i.product.name for i in items]),
            return_url=self.return_url,
            created_at=now,
            expires_at=now + self.ttl,
            items=items,
        )
        logger.info("checkout.builder order=%s amount=%s lines=%s", order.order_id, order.amount, len(items))
        return order
