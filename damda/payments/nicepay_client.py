"""
Adaptateur NICEPAY: centralise les appels et la configuration du prestataire.
"""
import base64
import logging
from typing import Any, Dict, Tuple

import httpx

from damda import config
from damda.errors import PaymentConfigurationError

logger = logging.getLogger(__name__)

# module damda.payments.nicepay_client
def require_nicepay() -> Tuple[str, str]:
    """
    Retourne (client_key, secret_key) depuis la configuration serveur.
    - Soulève PaymentConfigurationError si l'une des clés manque (aucun appel tenté).
    """
    client_key = config.NICEPAY_CLIENT_KEY
    secret_key = config.NICEPAY_SECRET_KEY
    if not client_key or not secret_key:
        logger.error("payments.nicepay configuration absente (NICEPAY_CLIENT_KEY ou NICEPAY_SECRET_KEY)")
        raise PaymentConfigurationError()
    return client_key, secret_key

def basic_auth_header(client_key: str, secret_key: str) -> str:
    """Authorization: Basic base64(clientKey:secretKey)."""
    token = base64.b64encode(f"{client_key}:{secret_key}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"

def approve_payment(tid: str, amount: int, *, client: httpx.Client | None = None) -> Dict[str, Any]:
    """
    Appel d'approbation (second volet) pour une transaction autorisée.
    - POST {NICEPAY_API_URL}/{tid} avec {"amount": amount}
    - Le prestataire décide seul si le montant correspond à l'autorisation
    Retour: corps JSON du prestataire (resultCode, resultMsg, tid, orderId, amount, card...).
    Les erreurs réseau et JSON invalide remontent à l'appelant (httpx.HTTPError / ValueError).
    """
    client_key, secret_key = require_nicepay()
    headers = {
        "Content-Type": "application/json",
        "Authorization": basic_auth_header(client_key, secret_key),
    }
    url = f"{config.NICEPAY_API_URL}/{tid}"
    if client is not None:
        resp = client.post(url, json={"amount": amount}, headers=headers)
    else:
        resp = httpx.post(url, json={"amount": amount}, headers=headers, timeout=config.NICEPAY_TIMEOUT_SECONDS)
    body = resp.json()
    if not isinstance(body, dict):
        raise ValueError(f"Réponse NICEPAY inattendue (status={resp.status_code})")
    return body
