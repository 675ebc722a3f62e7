"""
Module 'cart' (feature-first): point d'entrée public.
Réunit modèles de lignes, conteneur d'état et ports de persistance.
"""

from .models import CartItem, CartProduct, SelectedOption
from .storage import CartStorage, MemoryCartStorage, JsonFileCartStorage
from .store import CartStore

__all__ = [
    "CartItem",
    "CartProduct",
    "SelectedOption",
    "CartStorage",
    "MemoryCartStorage",
    "JsonFileCartStorage",
    "CartStore",
]
