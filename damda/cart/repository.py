"""
Miroir serveur du panier (table 'carts', une ligne par produit et par crèche).
Accès direct Supabase, sans logique métier.
"""
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from pydantic import ValidationError

import damda.infra.supabase_client as supabase_client
from .models import CartItem

logger = logging.getLogger(__name__)

CART_SELECT = (
    "*, product:products (id, name, thumbnail, original_price, sale_price, region, is_sold_out, "
    "business_owner:business_owners (name))"
)

# module damda.cart.repository
def fetch_cart(daycare_id: str) -> List[dict]:
    """Lignes du panier d'une crèche (produit joint), plus récentes d'abord. [] en cas d'erreur."""
    if not daycare_id:
        return []
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .select(CART_SELECT)
            .eq("daycare_id", daycare_id)
            .order("created_at", desc=True)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("cart.repository.fetch_cart failed daycare_id=%s", daycare_id)
        return []

def _row_payload(daycare_id: str, item: CartItem) -> Dict[str, Any]:
    return {
        "daycare_id": daycare_id,
        "product_id": item.product_id,
        "reserved_date": item.reservation_date.isoformat(),
        "reserved_time": item.reservation_time,
        "options": {
            "participant_count": item.participants,
            "options": [o.model_dump() for o in item.options],
        },
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }

def upsert_cart_item(daycare_id: str, item: CartItem) -> bool:
    """Met à jour la ligne existante du produit, sinon l'insère."""
    try:
        client = supabase_client.get_service_supabase()
        existing = (
            client.table("carts")
            .select("id")
            .eq("daycare_id", daycare_id)
            .eq("product_id", item.product_id)
            .limit(1)
            .execute()
        )
        payload = _row_payload(daycare_id, item)
        rows = existing.data or []
        if rows:
            client.table("carts").update(payload).eq("id", rows[0]["id"]).execute()
        else:
            client.table("carts").insert(payload).execute()
        return True
    except Exception:
        logger.exception("cart.repository.upsert_cart_item failed daycare_id=%s product_id=%s", daycare_id, item.product_id)
        return False

def remove_cart_item(daycare_id: str, product_id: str) -> bool:
    try:
        (
            supabase_client.get_service_supabase()
            .table("carts")
            .delete()
            .eq("product_id", product_id)
            .eq("daycare_id", daycare_id)
            .execute()
        )
        return True
    except Exception:
        logger.exception("cart.repository.remove_cart_item failed daycare_id=%s product_id=%s", daycare_id, product_id)
        return False

def clear_cart(daycare_id: str) -> bool:
    try:
        supabase_client.get_service_supabase().table("carts").delete().eq("daycare_id", daycare_id).execute()
        return True
    except Exception:
        logger.exception("cart.repository.clear_cart failed daycare_id=%s", daycare_id)
        return False

def count_cart(daycare_id: str) -> int:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .select("id", count="exact")
            .eq("daycare_id", daycare_id)
            .execute()
        )
        return int(res.count or 0)
    except Exception:
        logger.exception("cart.repository.count_cart failed daycare_id=%s", daycare_id)
        return 0

def rows_to_items(rows: List[dict], today: Optional[date] = None) -> List[CartItem]:
    """
    Convertit les lignes 'carts' en CartItem.
    - Ignore les lignes sans produit joint ou invalides
    - participants par défaut: 1; date par défaut: aujourd'hui
    """
    today = today or date.today()
    items: List[CartItem] = []
    for row in rows or []:
        product = row.get("product")
        if not product:
            continue
        opts = row.get("options") or {}
        owner = product.get("business_owner") or {}
        try:
            items.append(CartItem.model_validate({
                "product": {
                    "id": str(product.get("id")),
                    "name": product.get("name") or "",
                    "thumbnail": product.get("thumbnail") or "",
                    "vendor_name": owner.get("name") or "",
                    "sale_price": int(product.get("sale_price") or 0),
                    "original_price": product.get("original_price"),
                },
                "participants": opts.get("participant_count") or 1,
                "reservation_date": row.get("reserved_date") or today,
                "reservation_time": row.get("reserved_time"),
                "options": opts.get("options") or [],
            }))
        except (ValidationError, TypeError, ValueError):
            logger.warning("cart.repository ligne ignorée id=%s", row.get("id"))
    return items
