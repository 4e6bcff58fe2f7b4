# module marketplace.utils.errors
"""
Erreurs applicatives du pipeline checkout.
Chaque erreur porte un code stable et un status HTTP; app_setup.exceptions les
convertit en payload JSON {"success": false, "error": <code>, "detail": <message>}.
"""


class AppError(Exception):
    """Base de toutes les erreurs métier."""

    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Entrée invalide ou manquante (panier vide, champs coupon manquants...)."""

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400)


class UnauthenticatedError(AppError):
    def __init__(self, message: str = "Non authentifié"):
        super().__init__(message, code="UNAUTHENTICATED", status_code=401)


class AuthError(AppError):
    """L'appelant n'a pas accès à la ressource."""

    def __init__(self, message: str = "Accès interdit"):
        super().__init__(message, code="FORBIDDEN", status_code=403)


class WebhookSignatureError(AuthError):
    """Signature Stripe absente ou invalide: rejet avant toute logique métier."""

    def __init__(self, message: str):
        super().__init__(message)
        self.code = "INVALID_SIGNATURE"
        self.status_code = 400


class NotFoundError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="NOT_FOUND", status_code=404)


class ConflictError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="CONFLICT", status_code=409)


class UpstreamError(AppError):
    """Rejet côté passerelle de paiement; la raison Stripe est conservée."""

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message, code="UPSTREAM_ERROR", status_code=502)
        self.reason = reason
