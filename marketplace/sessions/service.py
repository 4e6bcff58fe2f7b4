"""
Cas d'usage 'sessions de paiement': crée ou réutilise la session de checkout d'un utilisateur.

Règles:
- Un utilisateur n'a qu'une intention de checkout active: une session vivante au panier
  identique (même empreinte, même coupon, même adresse) est réutilisée telle quelle, toute
  autre session vivante de cet utilisateur est évincée.
- Le montant total est recalculé à partir des lignes; le coupon est réévalué côté serveur.
- La création est sérialisée par un verrou consultatif par utilisateur (course lecture/écriture).
"""
import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from marketplace.catalog import repository as catalog_repository
from marketplace.coupons import service as coupons_service
from marketplace.payments import cart as cart_logic
from marketplace.payments.models import CartItem, PaymentSession, SellerAccount
from marketplace.utils.errors import AuthError, NotFoundError, ValidationError
from .store import SessionStore, get_session_store

logger = logging.getLogger(__name__)

def _same_intent(session: PaymentSession, cart_fp: str, coupon_code: Optional[str],
                 shipping_address_id: Optional[str]) -> bool:
    existing_code = session.coupon.code if session.coupon else None
    return (
        cart_logic.fingerprint(session.cart) == cart_fp
        and (existing_code or None) == (coupon_code or None)
        and (session.shipping_address_id or None) == (shipping_address_id or None)
    )

def resolve_sellers(cart: List[CartItem]) -> Dict[str, SellerAccount]:
    """Boutique -> {seller_id, stripe_account_id}; ValidationError si une boutique est inconnue."""
    shop_ids = list(dict.fromkeys(it.shop_id for it in cart))
    shops = catalog_repository.get_shops(shop_ids)
    sellers: Dict[str, SellerAccount] = {}
    for shop in shops:
        shop_id = str(shop.get("id"))
        sellers[shop_id] = SellerAccount(
            shop_id=shop_id,
            seller_id=str(shop.get("seller_id") or ""),
            stripe_account_id=(shop.get("sellers") or {}).get("stripe_id"),
        )
    missing = [s for s in shop_ids if s not in sellers]
    if missing:
        raise ValidationError(f"Boutique introuvable: {', '.join(missing)}")
    return sellers

def create_session(
    *,
    user_id: str,
    cart: List[Dict[str, Any]],
    shipping_address_id: Optional[str] = None,
    coupon_code: Optional[str] = None,
    store: Optional[SessionStore] = None,
) -> Dict[str, Any]:
    """
    Crée (ou réutilise) la session de paiement de `user_id`.
    Retour: {"session_id": <id>, "is_existing": <bool>}
    Erreurs: ValidationError (panier vide/malformé, boutique inconnue, coupon inapplicable).
    """
    if not user_id:
        raise ValidationError("Utilisateur manquant")
    items = cart_logic.parse_cart(cart)
    cart_fp = cart_logic.fingerprint(items)
    coupon_code = (coupon_code or "").strip() or None
    store = store or get_session_store()

    with store.owner_lock(user_id):
        stale: List[PaymentSession] = []
        for existing in store.sessions_for_owner(user_id):
            if _same_intent(existing, cart_fp, coupon_code, shipping_address_id):
                logger.info("sessions.create reused session_id=%s user_id=%s", existing.session_id, user_id)
                return {"session_id": existing.session_id, "is_existing": True}
            stale.append(existing)

        # Évaluation et résolution peuvent échouer: les sessions existantes restent intactes
        coupon_snapshot = None
        if coupon_code:
            evaluation = coupons_service.evaluate(coupon_code, items)
            if not evaluation.valid:
                raise ValidationError(evaluation.message or "Code promo invalide")
            coupon_snapshot = evaluation.to_snapshot()

        session = PaymentSession(
            session_id=str(uuid4()),
            user_id=user_id,
            cart=items,
            sellers=resolve_sellers(items),
            total_amount=cart_logic.cart_total(items),
            shipping_address_id=shipping_address_id or None,
            coupon=coupon_snapshot,
        )
        for existing in stale:
            store.delete(existing.session_id, user_id=user_id)
            logger.info("sessions.create evicted session_id=%s user_id=%s", existing.session_id, user_id)
        store.save(session)

    logger.info(
        "sessions.create created session_id=%s user_id=%s lines=%s total=%s",
        session.session_id, user_id, len(items), session.total_amount,
    )
    return {"session_id": session.session_id, "is_existing": False}

def fetch_session(session_id: str, store: Optional[SessionStore] = None) -> PaymentSession:
    """Lecture simple (TTL inchangé). NotFoundError si absente ou expirée."""
    if not session_id:
        raise ValidationError("Session ID requis")
    store = store or get_session_store()
    session = store.get(session_id)
    if session is None:
        raise NotFoundError("Session introuvable ou expirée")
    return session

def fetch_session_for_user(session_id: str, user_id: str, store: Optional[SessionStore] = None) -> PaymentSession:
    """fetch_session + contrôle de propriété (AuthError si la session appartient à un autre utilisateur)."""
    session = fetch_session(session_id, store=store)
    if session.user_id != user_id:
        raise AuthError("Session appartenant à un autre utilisateur")
    return session
