import logging
from typing import Any, Dict

from fastapi import APIRouter, Request, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from marketplace.utils.security import require_user
from marketplace.utils.rate_limit import optional_rate_limit
from marketplace.utils.logs import send_log
from marketplace.payments import stripe_client
from marketplace.payments import service as payments_service
from marketplace.payments.models import CreateIntentRequest, CreateSessionRequest
from marketplace.sessions import service as sessions_service
from marketplace.orders import materializer

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# module marketplace.payments.views
@router.post("/create-payment-session", status_code=201,
             dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_payment_session(body: CreateSessionRequest, user: dict = Depends(require_user)) -> Dict[str, Any]:
    """
    Crée (ou réutilise) la session de paiement de l'utilisateur authentifié.
    - Entrée JSON: { "cart": [...], "selectedAddressId": "...", "coupon": {"code": ...} | "CODE" }
    - Réponse: { "sessionId": "<uuid>", "isExisting": <bool> }
    - Erreurs: 400 panier vide/malformé, boutique inconnue ou coupon inapplicable
    """
    result = sessions_service.create_session(
        user_id=user.get("id"),
        cart=body.cart,
        shipping_address_id=body.selected_address_id,
        coupon_code=body.coupon_code,
    )
    return {"sessionId": result["session_id"], "isExisting": result["is_existing"]}

@router.get("/verifying-payment-session")
def verifying_payment_session(sessionId: str = "", user: dict = Depends(require_user)) -> Dict[str, Any]:
    """Retourne la session en cache (TTL inchangé); 404 si absente ou expirée, 403 si elle appartient à un autre utilisateur."""
    session = sessions_service.fetch_session_for_user(sessionId, user.get("id"))
    return {"success": True, "session": session.model_dump(mode="json")}

@router.post("/create-payment-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_payment_intent(body: CreateIntentRequest, user: dict = Depends(require_user)) -> Dict[str, Any]:
    """
    Crée le PaymentIntent Stripe (destination charge vers le compte vendeur, commission plateforme).
    - La session doit exister et appartenir à l'appelant.
    - Montant et compte vendeur proviennent de la session; "amount" et "sellerStripeAccountId"
      envoyés par le client sont seulement vérifiés.
    - Réponse: { "clientSecret": "...", "paymentIntentId": "..." }
    - Erreurs: 400 montant ou compte vendeur incohérent, 404 session expirée, 502 rejet Stripe (raison incluse)
    """
    session = sessions_service.fetch_session_for_user(body.session_id, user.get("id"))
    intent = payments_service.intent_for_session(
        session,
        amount=body.amount,
        seller_account_id=body.seller_stripe_account_id,
    )
    return {"clientSecret": intent["client_secret"], "paymentIntentId": intent["payment_intent_id"]}

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe: payment_intent.succeeded -> matérialisation des commandes.
    - Signature: stripe_client.parse_event (400 si invalide, aucun traitement)
    - Une fois la signature valide, l'événement est toujours acquitté (200): les erreurs de
      traitement sont journalisées et rapportées dans le corps, la session reste pour un rejeu.
    """
    event = await stripe_client.parse_event(request)
    logger.info("payments.webhook received type=%s id=%s", event.get("type"), event.get("id"))
    try:
        result = await run_in_threadpool(materializer.handle_event, event)
    except Exception as e:
        logger.exception("Erreur webhook_stripe")
        send_log("error", f"Error in Stripe webhook: {e}")
        result = {"status": materializer.FAILED, "reason": str(e)}
    return JSONResponse({"received": True, **result})
