"""
Callback NICEPAY: adaptateur de transport uniquement.
Normalise les champs reçus et construit l'URL de la page de retour client.
Aucune validation, aucun règlement, aucune écriture.
"""
from typing import Any, Dict, Mapping
from urllib.parse import urlencode

from damda import config

# (champ reçu, champ transmis) dans l'ordre de la query string
CALLBACK_FIELDS = (
    ("authResultCode", "authResultCode"),
    ("authResultMsg", "authResultMsg"),
    ("tid", "tid"),
    ("orderId", "orderId"),
    ("amt", "amount"),
    ("signature", "signature"),
    ("authToken", "authToken"),
)

ERROR_CODE = "ERROR"
ERROR_MSG = "Erreur de traitement du retour de paiement"

# module damda.payments.callback
def normalize_callback_params(form: Mapping[str, Any]) -> Dict[str, str]:
    """
    Extrait les champs connus; les champs vides sont omis.
    NICEPAY transmet le montant sous 'amt', renommé 'amount' (accepte aussi 'amount').
    """
    params: Dict[str, str] = {}
    for source, target in CALLBACK_FIELDS:
        value = form.get(source)
        if value in (None, "") and source == "amt":
            value = form.get("amount")
        if value in (None, ""):
            continue
        params[target] = str(value)
    return params

def callback_redirect_url(params: Mapping[str, str]) -> str:
    query = urlencode(list(params.items()))
    path = config.CHECKOUT_CALLBACK_PATH
    return f"{path}?{query}" if query else path

def error_redirect_url() -> str:
    return callback_redirect_url({"authResultCode": ERROR_CODE, "authResultMsg": ERROR_MSG})
