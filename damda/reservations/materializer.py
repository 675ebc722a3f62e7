"""
Création des réservations après un paiement approuvé.
Idempotent par order_id: une commande déjà matérialisée n'est jamais recréée.
"""
from typing import Any, Dict, List
import logging

from damda.checkout.models import CheckoutOrder
from damda.errors import ReservationMaterializationError
from damda.payments.models import PaymentApprovalResult
from . import repository
from .models import MaterializationResult, ReservationStatus, ReserverInfo

logger = logging.getLogger(__name__)

# module damda.reservations.materializer
def build_rows(
    order: CheckoutOrder,
    approval: PaymentApprovalResult,
    reserver: ReserverInfo,
    payment_method: str = "card",
) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for item in order.items:
        rows.append({
            "order_id": order.order_id,
            "product_id": item.product_id,
            "daycare_id": reserver.daycare_id,
            "reserved_date": item.reservation_date.isoformat(),
            "reserved_time": item.reservation_time,
            "participants": item.participants,
            "options": [o.model_dump() for o in item.options],
            "total_amount": item.line_total(),
            "status": ReservationStatus.CONFIRMED.value,
            "payment_method": payment_method,
            "payment_tid": approval.tid,
            "reserver_name": reserver.name,
            "reserver_phone": reserver.phone,
            "reserver_email": reserver.email,
            "daycare_name": reserver.daycare_name,
        })
    return rows

class ReservationMaterializer:
    """Adaptateur vers la table 'reservations' (clé d'unicité: order_id)."""

    def __init__(self, repo=repository):
        self.repo = repo

    def confirm_order(
        self,
        order: CheckoutOrder,
        approval: PaymentApprovalResult,
        reserver: ReserverInfo,
        payment_method: str = "card",
    ) -> MaterializationResult:
        """
        Crée les réservations confirmées d'une commande payée.
        - Refuse sans approbation réussie, ou si le montant approuvé est absent ou diffère du montant figé
        - Commande déjà présente (lecture ou violation d'unicité): no-op, created=False
        """
        if not approval.success:
            raise ReservationMaterializationError("Aucune réservation sans paiement approuvé.")
        if approval.amount is None or approval.amount != order.amount:
            logger.error(
                "reservations.materializer montant incohérent order=%s attendu=%s approuvé=%s",
                order.order_id, order.amount, approval.amount,
            )
            raise ReservationMaterializationError("Le montant approuvé ne correspond pas à la commande.")

        existing = self.repo.fetch_reservations_by_order(order.order_id)
        if existing:
            logger.info("reservations.materializer commande déjà matérialisée order=%s", order.order_id)
            return MaterializationResult(
                created=False, order_id=order.order_id, reservation_ids=[str(r.get("id")) for r in existing]
            )

        rows = build_rows(order, approval, reserver, payment_method)
        try:
            inserted = self.repo.insert_reservations(rows)
        except repository.DuplicateOrderError:
            logger.info("reservations.materializer insertion concurrente ignorée order=%s", order.order_id)
            existing = self.repo.fetch_reservations_by_order(order.order_id)
            return MaterializationResult(
                created=False, order_id=order.order_id, reservation_ids=[str(r.get("id")) for r in existing]
            )
        logger.info("reservations.materializer created order=%s rows=%s", order.order_id, len(inserted))
        return MaterializationResult(
            created=True, order_id=order.order_id, reservation_ids=[str(r.get("id")) for r in inserted]
        )
