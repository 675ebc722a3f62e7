"""
Module 'payments' (feature-first): point d'entrée public.
Réunit callback NICEPAY, client NICEPAY et service d'approbation.
"""

from .callback import normalize_callback_params, callback_redirect_url, error_redirect_url
from .models import PaymentApprovalResult
from .nicepay_client import require_nicepay, basic_auth_header, approve_payment
from .service import ApprovalLedger, approve, parse_approval_params

__all__ = [
    # callback
    "normalize_callback_params",
    "callback_redirect_url",
    "error_redirect_url",
    # models
    "PaymentApprovalResult",
    # nicepay
    "require_nicepay",
    "basic_auth_header",
    "approve_payment",
    # services
    "ApprovalLedger",
    "approve",
    "parse_approval_params",
]
