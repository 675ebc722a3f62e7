from typing import Any, Dict, Optional

from pydantic import BaseModel

# module damda.payments.models
class PaymentApprovalResult(BaseModel):
    """
    Résultat normalisé de l'approbation (terminal, jamais relancé automatiquement).
    - succès: tid, order_id, amount, card_name, card_number, approved_at
    - échec: error (message présentable), code (code prestataire tel quel)
    """
    success: bool
    tid: Optional[str] = None
    order_id: Optional[str] = None
    amount: Optional[int] = None
    card_name: Optional[str] = None
    card_number: Optional[str] = None
    approved_at: Optional[str] = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def approved(cls, payload: Dict[str, Any]) -> "PaymentApprovalResult":
        card = payload.get("card")
        if not isinstance(card, dict):
            card = {}
        amount = payload.get("amount")
        try:
            amount = int(amount) if amount is not None else None
        except (TypeError, ValueError):
            amount = None
        return cls(
            success=True,
            tid=payload.get("tid"),
            order_id=payload.get("orderId"),
            amount=amount,
            card_name=card.get("cardName"),
            card_number=card.get("cardNumber"),
            approved_at=payload.get("approvedAt"),
        )

    @classmethod
    def declined(cls, error: str, code: Optional[str] = None) -> "PaymentApprovalResult":
        return cls(success=False, error=error, code=code)

    def to_response(self) -> Dict[str, Any]:
        """Forme JSON exposée: {success, data} ou {success, error, code?}."""
        if self.success:
            return {
                "success": True,
                "data": {
                    "tid": self.tid,
                    "orderId": self.order_id,
                    "amount": self.amount,
                    "cardName": self.card_name,
                    "cardNumber": self.card_number,
                    "approvedAt": self.approved_at,
                },
            }
        body: Dict[str, Any] = {"success": False, "error": self.error}
        if self.code:
            body["code"] = self.code
        return body

    @classmethod
    def from_response(cls, body: Dict[str, Any]) -> "PaymentApprovalResult":
        """Inverse de to_response (utilisé par le client HTTP du tunnel)."""
        if body.get("success"):
            data = body.get("data") or {}
            return cls.approved({
                "tid": data.get("tid"),
                "orderId": data.get("orderId"),
                "amount": data.get("amount"),
                "approvedAt": data.get("approvedAt"),
                "card": {"cardName": data.get("cardName"), "cardNumber": data.get("cardNumber")},
            })
        return cls.declined(body.get("error") or "Le paiement a échoué.", body.get("code"))
