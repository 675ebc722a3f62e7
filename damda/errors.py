"""Exceptions métier du tunnel de paiement (converties en JSON par les handlers)."""


class DamdaError(Exception):
    """Base: message destiné à l'utilisateur, code stable, statut HTTP."""

    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(self.message)


class CheckoutValidationError(DamdaError):
    """Panier refusé avant tout appel au prestataire (vide, date hors fenêtre, participants...)."""

    def __init__(self, message: str, code: str = "INVALID_CART", product_id: str | None = None):
        super().__init__(message, code=code, status_code=400)
        self.product_id = product_id


class ApprovalRequestError(DamdaError):
    """Paramètres d'approbation manquants ou invalides (erreur client, non relancée)."""

    def __init__(self, message: str = "Paramètres obligatoires manquants."):
        super().__init__(message, code="INVALID_REQUEST", status_code=400)


class PaymentConfigurationError(DamdaError):
    """Clés NICEPAY absentes côté serveur: échec immédiat, message générique."""

    def __init__(self, message: str = "Le paiement est momentanément indisponible."):
        super().__init__(message, code="PAYMENT_UNAVAILABLE", status_code=500)


class CheckoutStateError(DamdaError):
    """Transition interdite dans le tunnel de paiement (ex: callback reçu deux fois)."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_CHECKOUT_STATE", status_code=409)


class ReservationMaterializationError(DamdaError):
    """Création des réservations impossible après un paiement approuvé."""

    def __init__(self, message: str = "La création de la réservation a échoué."):
        super().__init__(message, code="RESERVATION_FAILED", status_code=502)


class CatalogUnavailableError(DamdaError):
    """Catalogue produits injoignable pendant la validation du panier (réessayable)."""

    def __init__(self, message: str = "Le catalogue est momentanément indisponible. Veuillez réessayer."):
        super().__init__(message, code="CATALOG_UNAVAILABLE", status_code=503)
