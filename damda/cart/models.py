"""
Modèles du panier (lignes de réservation côté client).
"""
from datetime import date
from typing import List, Optional
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# module damda.cart.models
class SelectedOption(BaseModel):
    """Option payante choisie pour une ligne (prix unitaire × quantité propre)."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    price: int = Field(ge=0)
    quantity: int = Field(default=1, ge=1)

class CartProduct(BaseModel):
    """Champs d'affichage du produit recopiés dans la ligne de panier."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    thumbnail: str = ""
    vendor_name: str = ""
    sale_price: int = Field(ge=0)
    original_price: Optional[int] = Field(default=None, ge=0)

class CartItem(BaseModel):
    """
    Une ligne du panier: un produit et sa configuration de réservation.
    - Identifiée par product.id (au plus une ligne par produit)
    - participants >= 1, reservation_date obligatoire, reservation_time "HH:MM" optionnel
    - Champs inconnus ignorés à la lecture (documents persistés d'une version antérieure)
    """
    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    product: CartProduct
    participants: int = Field(ge=1)
    reservation_date: date
    reservation_time: Optional[str] = None
    options: List[SelectedOption] = Field(default_factory=list)

    @field_validator("reservation_time")
    @classmethod
    def _check_time(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        v = v.strip()
        if not _TIME_RE.match(v):
            raise ValueError("reservation_time doit être au format HH:MM")
        return v

    @property
    def product_id(self) -> str:
        return self.product.id

    def options_total(self) -> int:
        return sum(opt.price * opt.quantity for opt in self.options)

    def line_total(self) -> int:
        """Prix de vente × participants + options (non multipliées par les participants)."""
        return self.product.sale_price * self.participants + self.options_total()
