"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import json
from typing import Any, Dict

import stripe
from fastapi import Request

from marketplace import config
from marketplace.utils.errors import WebhookSignatureError

# module marketplace.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    if config.STRIPE_SECRET_KEY:
        stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe

def create_payment_intent(
    *,
    amount_cents: int,
    currency: str,
    application_fee_cents: int,
    destination_account: str,
    metadata: Dict[str, str],
) -> Dict[str, Any]:
    """
    Crée un PaymentIntent Stripe Connect (destination charge).
    - application_fee_amount: commission plateforme prélevée sur le versement vendeur
    - transfer_data.destination: compte Stripe du vendeur
    - metadata: ex {"sessionId": "...", "userId": "..."}, renvoyées telles quelles par le webhook
    Retour: dict incluant "id" et "client_secret".
    """
    require_stripe()
    intent = stripe.PaymentIntent.create(
        amount=amount_cents,
        currency=currency,
        payment_method_types=["card"],
        application_fee_amount=application_fee_cents,
        transfer_data={"destination": destination_account},
        metadata=metadata,
    )
    return {"id": intent["id"], "client_secret": intent["client_secret"]}

def verify_event(payload: bytes, sig_header: str | None) -> Dict[str, Any]:
    """
    Vérifie la signature Stripe (en-tête Stripe-Signature + STRIPE_WEBHOOK_SECRET) puis
    décode l'événement. Soulève WebhookSignatureError avant toute logique métier.
    """
    if not sig_header:
        raise WebhookSignatureError("Missing Stripe signature")
    if not config.STRIPE_WEBHOOK_SECRET:
        raise WebhookSignatureError("Webhook secret not configured")
    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"), sig_header, config.STRIPE_WEBHOOK_SECRET,
            tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
        )
        return json.loads(payload)
    except stripe.SignatureVerificationError as e:
        raise WebhookSignatureError(f"Webhook Error: {e}")
    except ValueError as e:
        raise WebhookSignatureError(f"Invalid payload: {e}")

async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    Retour: l'événement (dict) si la signature est valide.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    return verify_event(payload, sig_header)
