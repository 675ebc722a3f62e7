"""
Accès catalogue pour le tunnel de paiement (table 'products').
Seuls les champs utiles à la validation du panier sont lus.
"""
from typing import Any, Dict, Iterable, List
import logging

import damda.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = "id, name, sale_price, min_participants, max_participants, is_sold_out"

# module damda.products.repository
def fetch_products_by_ids(ids: List[str]) -> List[dict]:
    """
    Récupère les produits par leurs IDs.
    - Retourne [] si ids vide.
    - Laisse remonter les erreurs Supabase (catalogue injoignable != produit absent).
    """
    if not ids:
        return []
    try:
        res = (
            supabase_client.get_supabase()
            .table("products")
            .select(PRODUCT_FIELDS)
            .in_("id", [str(i) for i in ids])
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("products.repository.fetch_products_by_ids failed ids=%s", ids)
        raise

def get_products_map(ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """Retourne un dict {id: produit} à partir d'une liste d'IDs."""
    products = fetch_products_by_ids(list(ids))
    return {str(p.get("id")): p for p in products}
