"""
Panier côté client: conteneur d'état explicite avec persistance injectée.
Une instance par processus client, transmise par le contexte applicatif.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .models import CartItem
from .storage import CartStorage

logger = logging.getLogger(__name__)

# module damda.cart.store
class CartStore:
    def __init__(self, storage: CartStorage):
        self._storage = storage
        self._items: List[CartItem] = self._restore()

    def _restore(self) -> List[CartItem]:
        """
        Recharge les lignes persistées.
        - Ignore les lignes invalides (schéma incompatible) sans perdre les autres
        - Dédoublonne par produit (la dernière occurrence l'emporte)
        """
        restored: Dict[str, CartItem] = {}
        for raw in self._storage.load():
            try:
                item = CartItem.model_validate(raw)
            except ValidationError:
                logger.warning("cart.store ligne persistée ignorée: %s", raw)
                continue
            restored[item.product_id] = item
        return list(restored.values())

    def _persist(self) -> None:
        self._storage.save([i.model_dump(mode="json") for i in self._items])

    def _index(self, product_id: str) -> int:
        for idx, item in enumerate(self._items):
            if item.product_id == product_id:
                return idx
        return -1

    @property
    def items(self) -> List[CartItem]:
        return [i.model_copy(deep=True) for i in self._items]

    def get(self, product_id: str) -> Optional[CartItem]:
        idx = self._index(product_id)
        return self._items[idx].model_copy(deep=True) if idx > -1 else None

    def add_or_replace(self, item: CartItem) -> None:
        """Remplace intégralement la ligne du même produit (même position), sinon ajoute."""
        item = item.model_copy(deep=True)
        idx = self._index(item.product_id)
        if idx > -1:
            self._items[idx] = item
        else:
            self._items.append(item)
        self._persist()

    def remove(self, product_id: str) -> None:
        idx = self._index(product_id)
        if idx == -1:
            return
        del self._items[idx]
        self._persist()

    def update(self, product_id: str, **fields: Any) -> None:
        """
        Fusionne uniquement les champs fournis dans la ligne existante.
        - Produit absent: no-op
        - Le produit lui-même n'est pas modifiable (utiliser add_or_replace)
        """
        idx = self._index(product_id)
        if idx == -1:
            return
        fields.pop("product", None)
        if not fields:
            return
        merged = self._items[idx].model_dump()
        merged.update(fields)
        self._items[idx] = CartItem.model_validate(merged)
        self._persist()

    def clear(self) -> None:
        self._items = []
        self._persist()

    def compute_total(self) -> int:
        return sum(item.line_total() for item in self._items)

    def count(self) -> int:
        return len(self._items)

    def is_empty(self) -> bool:
        return not self._items
