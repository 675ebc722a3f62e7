from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from damda.cart.models import CartItem

SUCCESS_CODE = "0000"

# module damda.checkout.models
class CheckoutState(str, Enum):
    AWAITING_REDIRECT = "awaiting_redirect"
    CALLBACK_RECEIVED = "callback_received"
    APPROVED = "approved"
    DECLINED = "declined"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in (CheckoutState.APPROVED, CheckoutState.DECLINED, CheckoutState.EXPIRED)

class CheckoutOrder(BaseModel):
    """
    Représentation figée d'une tentative de paiement.
    - amount est calculé une seule fois à la création et n'est plus jamais recalculé
    - items est un instantané du panier (utilisé pour créer les réservations)
    """
    model_config = ConfigDict(frozen=True)

    order_id: str
    amount: int = Field(gt=0)
    goods_name: str
    return_url: str
    created_at: datetime
    expires_at: datetime
    items: List[CartItem]

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def widget_params(self, client_id: str, method: str = "card") -> Dict[str, Any]:
        """Paramètres transmis au widget NICEPAY (AUTHNICE.requestPay)."""
        return {
            "clientId": client_id,
            "method": "card" if method == "card" else "bank",
            "orderId": self.order_id,
            "amount": self.amount,
            "goodsName": self.goods_name,
            "returnUrl": self.return_url,
        }

class PaymentAuthorization(BaseModel):
    """Paramètres renvoyés par le prestataire via le callback: non fiables."""
    auth_result_code: str = ""
    auth_result_msg: str = ""
    tid: str = ""
    order_id: str = ""
    amount: Optional[str] = None
    signature: str = ""
    auth_token: str = ""

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "PaymentAuthorization":
        def _get(*keys: str) -> str:
            for k in keys:
                v = params.get(k)
                if v not in (None, ""):
                    return str(v)
            return ""
        return cls(
            auth_result_code=_get("authResultCode"),
            auth_result_msg=_get("authResultMsg"),
            tid=_get("tid"),
            order_id=_get("orderId"),
            amount=_get("amount", "amt") or None,
            signature=_get("signature"),
            auth_token=_get("authToken"),
        )

    @property
    def is_authenticated(self) -> bool:
        return self.auth_result_code == SUCCESS_CODE

class CheckoutOutcome(BaseModel):
    """Résultat présenté par la page de retour (terminal, sauf erreur réseau à l'approbation)."""
    state: CheckoutState
    message: str
    order_id: Optional[str] = None
    code: Optional[str] = None
    reservation_ids: List[str] = Field(default_factory=list)
