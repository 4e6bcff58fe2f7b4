"""
Cas d'usage 'payments': émission du PaymentIntent Stripe pour une session de paiement.
Aucun état local n'est modifié; les rejets Stripe remontent en UpstreamError.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import stripe

from marketplace import config
from marketplace.utils.errors import UpstreamError, ValidationError
from .models import PaymentSession
from . import cart as cart_logic
from . import metadata as meta
from . import stripe_client

logger = logging.getLogger(__name__)

def platform_fee_cents(amount_cents: int, percent: int | None = None) -> int:
    """Commission plateforme (PLATFORM_FEE_PERCENT, 10% par défaut), arrondie à l'inférieur."""
    percent = config.PLATFORM_FEE_PERCENT if percent is None else percent
    return (amount_cents * percent) // 100

def create_intent(*, session_id: str, user_id: str, amount: Decimal, seller_account_id: str) -> Dict[str, Any]:
    """
    Crée l'intention de paiement et retourne {"client_secret", "payment_intent_id"}.
    - amount: montant décimal (devise PAYMENT_CURRENCY), converti en centimes
    - metadata {sessionId, userId} pour la corrélation webhook
    """
    amount_cents = cart_logic.to_cents(amount)
    if amount_cents <= 0:
        raise ValidationError("Montant invalide")
    if not seller_account_id:
        raise ValidationError("Compte Stripe vendeur manquant")

    try:
        intent = stripe_client.create_payment_intent(
            amount_cents=amount_cents,
            currency=config.PAYMENT_CURRENCY,
            application_fee_cents=platform_fee_cents(amount_cents),
            destination_account=seller_account_id,
            metadata=meta.make_metadata(session_id, user_id),
        )
    except stripe.StripeError as e:
        reason = getattr(e, "user_message", None) or str(e)
        logger.warning("payments.intent rejected session_id=%s reason=%s", session_id, reason)
        raise UpstreamError("Paiement refusé par Stripe", reason=reason)

    logger.info("payments.intent created session_id=%s amount_cents=%s", session_id, amount_cents)
    return {"client_secret": intent.get("client_secret"), "payment_intent_id": intent.get("id")}

def intent_for_session(
    session: PaymentSession,
    *,
    amount: Optional[Decimal] = None,
    seller_account_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Émet l'intention de paiement d'une session en cache.
    - Le montant facturé est toujours session.amount_due; un montant client divergent est refusé.
    - La destination doit être le compte Stripe d'un vendeur de la session
      (déduite si la session ne compte qu'une boutique).
    """
    amount_due = session.amount_due
    if amount is not None and cart_logic.to_cents(amount) != cart_logic.to_cents(amount_due):
        logger.warning(
            "payments.intent amount mismatch session_id=%s requested=%s due=%s",
            session.session_id, amount, amount_due,
        )
        raise ValidationError("Montant différent de la session de paiement")

    accounts = [s.stripe_account_id for s in session.sellers.values() if s.stripe_account_id]
    if seller_account_id is None:
        if len(accounts) != 1:
            raise ValidationError("Compte Stripe vendeur requis")
        seller_account_id = accounts[0]
    elif seller_account_id not in accounts:
        logger.warning(
            "payments.intent unknown destination session_id=%s destination=%s",
            session.session_id, seller_account_id,
        )
        raise ValidationError("Compte Stripe vendeur étranger à la session")

    return create_intent(
        session_id=session.session_id,
        user_id=session.user_id,
        amount=amount_due,
        seller_account_id=seller_account_id,
    )
