"""
Ports de persistance du panier côté client.

Le panier est un document unique (clé fixe, ex: "damda-cart") au format:
    {"state": {"items": [...]}, "version": 0}
Les lignes sont stockées telles que sérialisées par CartItem.model_dump(mode="json").
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Protocol

from damda import config

logger = logging.getLogger(__name__)

STORAGE_VERSION = 0

# module damda.cart.storage
class CartStorage(Protocol):
    def load(self) -> List[Dict[str, Any]]: ...
    def save(self, items: List[Dict[str, Any]]) -> None: ...

class MemoryCartStorage:
    """Stockage volatil (tests, sessions éphémères)."""

    def __init__(self, items: List[Dict[str, Any]] | None = None):
        self._items: List[Dict[str, Any]] = [dict(i) for i in (items or [])]
        self.saves = 0

    def load(self) -> List[Dict[str, Any]]:
        return [dict(i) for i in self._items]

    def save(self, items: List[Dict[str, Any]]) -> None:
        self._items = [dict(i) for i in items]
        self.saves += 1

class JsonFileCartStorage:
    """
    Stockage durable dans un fichier JSON (un enregistrement par clé).
    - Plusieurs clés peuvent cohabiter dans le même fichier
    - Écriture atomique (fichier temporaire + os.replace)
    - Un document illisible est traité comme un panier vide (et journalisé)
    """

    def __init__(self, path: str | Path, key: str | None = None):
        self.path = Path(path)
        self.key = key or config.CART_STORAGE_KEY

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError):
            logger.exception("cart.storage lecture impossible path=%s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> List[Dict[str, Any]]:
        record = self._read_all().get(self.key)
        if isinstance(record, str):
            # Format "localStorage": le document est lui-même une chaîne JSON
            try:
                record = json.loads(record)
            except ValueError:
                logger.warning("cart.storage document corrompu key=%s", self.key)
                return []
        if not isinstance(record, dict):
            return []
        items = (record.get("state") or {}).get("items") or []
        return [i for i in items if isinstance(i, dict)]

    def save(self, items: List[Dict[str, Any]]) -> None:
        data = self._read_all()
        data[self.key] = {"state": {"items": list(items)}, "version": STORAGE_VERSION}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)
