"""
Module 'payments' (feature-first): point d'entrée public.
Réunit logique panier, metadata Stripe, client Stripe et émission des intentions de paiement.
"""

from .cart import parse_cart, canonical_cart, fingerprint, cart_total, group_by_shop, to_cents
from .metadata import make_metadata, extract_metadata
from .stripe_client import require_stripe, create_payment_intent, verify_event, parse_event
from .service import platform_fee_cents, create_intent, intent_for_session

__all__ = [
    # cart
    "parse_cart",
    "canonical_cart",
    "fingerprint",
    "cart_total",
    "group_by_shop",
    "to_cents",
    # metadata
    "make_metadata",
    "extract_metadata",
    # stripe
    "require_stripe",
    "create_payment_intent",
    "verify_event",
    "parse_event",
    # services
    "platform_fee_cents",
    "create_intent",
    "intent_for_session",
]
