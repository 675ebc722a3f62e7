"""
Accès données pour les réservations (table 'reservations').

Contrainte attendue côté base (unicité par commande et produit):
    create unique index reservations_order_product_key
        on reservations (order_id, product_id);
Une seconde insertion pour la même commande échoue avec le code Postgres 23505.
"""
from typing import Any, Dict, List
import logging

from postgrest.exceptions import APIError

import damda.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

# module damda.reservations.repository
class DuplicateOrderError(Exception):
    """Insertion refusée: des réservations existent déjà pour cette commande."""

def fetch_reservations_by_order(order_id: str) -> List[dict]:
    """Réservations déjà créées pour une commande. Laisse remonter les erreurs d'accès."""
    res = (
        supabase_client.get_service_supabase()
        .table("reservations")
        .select("id, order_id, product_id, status")
        .eq("order_id", order_id)
        .execute()
    )
    return res.data or []

def insert_reservations(rows: List[Dict[str, Any]]) -> List[dict]:
    """
    Insère les lignes de réservation d'une commande en un seul appel.
    - DuplicateOrderError si la contrainte d'unicité (order_id, product_id) est violée
    - Les autres erreurs remontent telles quelles
    """
    try:
        res = supabase_client.get_service_supabase().table("reservations").insert(rows).execute()
    except APIError as e:
        if str(getattr(e, "code", "")) == UNIQUE_VIOLATION:
            raise DuplicateOrderError(str(e)) from e
        logger.exception("reservations.repository.insert_reservations failed orders=%s", {r.get("order_id") for r in rows})
        raise
    return res.data or []
