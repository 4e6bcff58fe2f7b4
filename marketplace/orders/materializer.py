"""
Matérialisation des commandes à partir d'un paiement Stripe confirmé (webhook
payment_intent.succeeded).

Cycle de vie d'une session (par session_id):
    Pending (session en cache) -> Materializing (webhook reçu, session lue)
    -> Completed (commandes créées, session supprimée)
    |  Skipped (session absente: déjà matérialisée ou expirée, livraison dupliquée)

Garanties:
- Une commande par boutique, créée au plus une fois par (session_id, shop_id): l'écriture
  est atomique et ignorée si elle existe déjà.
- Stock, analytique, email et notifications ne sont déclenchés que pour les commandes
  nouvellement créées par cette exécution: un rejeu ne produit aucun effet.
- La suppression de la session est la dernière action (point de commit). Une erreur avant
  elle laisse la session intacte pour une nouvelle livraison.
- Les échecs d'effets de bord (stock, analytique, email, notifications) sont journalisés et
  n'empêchent pas l'acquittement.
"""
import logging
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from marketplace import config
from marketplace.analytics import repository as analytics_repository
from marketplace.catalog import repository as catalog_repository
from marketplace.coupons.service import compute_discount
from marketplace.notifications import service as notifications
from marketplace.payments import cart as cart_logic
from marketplace.payments import metadata as payments_metadata
from marketplace.payments.models import CartItem, PaymentSession
from marketplace.sessions.store import SessionStore, get_session_store
from marketplace.utils.logs import send_log
from . import repository

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
STATUS_PAID = "Paid"

COMPLETED = "completed"
SKIPPED = "skipped"
PARTIAL = "partial"
FAILED = "failed"
IGNORED = "ignored"


@dataclass
class MaterializationResult:
    status: str
    session_id: Optional[str] = None
    reason: Optional[str] = None
    created: List[str] = field(default_factory=list)
    already_created: List[str] = field(default_factory=list)
    failed_shops: List[Dict[str, str]] = field(default_factory=list)
    side_effect_errors: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v not in (None, [])}


def handle_event(event: Dict[str, Any], store: Optional[SessionStore] = None) -> Dict[str, Any]:
    """
    Point d'entrée du webhook (signature déjà vérifiée).
    Seul payment_intent.succeeded déclenche la matérialisation; les autres types sont ignorés.
    """
    if (event or {}).get("type") != PAYMENT_SUCCEEDED:
        return MaterializationResult(status=IGNORED).as_dict()
    session_id, user_id = payments_metadata.extract_metadata(event)
    return materialize(session_id, user_id, store=store).as_dict()


def materialize(session_id: Optional[str], user_id: Optional[str],
                store: Optional[SessionStore] = None) -> MaterializationResult:
    """
    Convertit la session `session_id` en commandes. Ne lève jamais: toute erreur inattendue
    est journalisée et rapportée avec status="failed" (la session reste en cache).
    """
    if not session_id:
        logger.warning("orders.materialize missing sessionId metadata user_id=%s", user_id)
        return MaterializationResult(status=SKIPPED, reason="missing_session_id")

    store = store or get_session_store()
    claim = store.claim_materialization(session_id)
    if claim is None:
        logger.info("orders.materialize already in progress session_id=%s", session_id)
        return MaterializationResult(status=SKIPPED, session_id=session_id, reason="in_progress")

    try:
        session = store.get(session_id)
        if session is None:
            logger.warning("orders.materialize session expired or missing session_id=%s", session_id)
            return MaterializationResult(status=SKIPPED, session_id=session_id, reason="session_not_found")
        if user_id and user_id != session.user_id:
            logger.warning(
                "orders.materialize metadata user mismatch session_id=%s meta_user=%s session_user=%s",
                session_id, user_id, session.user_id,
            )
        result = _materialize_session(session, store)
    except Exception as e:
        logger.exception("orders.materialize failed session_id=%s", session_id)
        send_log("error", f"Error in order materialization: {e}", session_id=session_id)
        return MaterializationResult(status=FAILED, session_id=session_id, reason=str(e))
    finally:
        store.release_materialization(session_id, claim)

    send_log("success", "Stripe webhook processed", session_id=session_id, status=result.status)
    return result


def _materialize_session(session: PaymentSession, store: SessionStore) -> MaterializationResult:
    result = MaterializationResult(status=COMPLETED, session_id=session.session_id)
    buyer = catalog_repository.get_user(session.user_id) or {}
    groups = cart_logic.group_by_shop(session.cart)

    created: List[Tuple[str, List[CartItem], Dict[str, Any]]] = []
    for shop_id, items in groups.items():
        order_row, item_rows = build_order(session, shop_id, items)
        try:
            order = repository.create_order_with_items(order_row, item_rows)
        except Exception as e:
            logger.exception("orders.materialize order write failed session_id=%s shop_id=%s",
                             session.session_id, shop_id)
            result.failed_shops.append({"shop_id": shop_id, "error": str(e)})
            continue
        if order is None:
            logger.info("orders.materialize order already exists session_id=%s shop_id=%s",
                        session.session_id, shop_id)
            result.already_created.append(shop_id)
            continue
        created.append((shop_id, items, order))
        result.created.append(str(order.get("id")))
        _record_sales(session, shop_id, items, result)

    if created:
        _send_confirmation(session, buyer, created, result)
        _notify_sellers(session, created, result)
        _notify_admin(session, buyer, result)

    if result.failed_shops:
        # Rapport de réconciliation: les commandes sœurs déjà créées sont conservées,
        # la session reste en cache pour une nouvelle livraison.
        result.status = PARTIAL
        logger.error(
            "orders.materialize partial session_id=%s created=%s failed_shops=%s",
            session.session_id, result.created, [f["shop_id"] for f in result.failed_shops],
        )
        return result

    store.delete(session.session_id, user_id=session.user_id)
    logger.info(
        "orders.materialize completed session_id=%s created=%s already_created=%s",
        session.session_id, len(result.created), len(result.already_created),
    )
    return result


def discount_for_group(session: PaymentSession, items: List[CartItem]) -> Decimal:
    """
    Remise applicable au groupe: recalculée à partir du type/valeur du coupon figé dans la
    session et du prix de la ligne éligible figé dans la session (le montant réellement payé).
    """
    coupon = session.coupon
    if coupon is None:
        return Decimal("0")
    line = next((it for it in items if it.product_id == coupon.product_id), None)
    if line is None:
        return Decimal("0")
    amount = compute_discount(coupon.discount_type, coupon.discount_value, line.line_total)
    if amount != coupon.discount_amount:
        logger.warning(
            "orders.materialize discount drift session_id=%s cached=%s recomputed=%s",
            session.session_id, coupon.discount_amount, amount,
        )
    return amount


def build_order(session: PaymentSession, shop_id: str,
                items: List[CartItem]) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Ligne 'orders' et lignes 'order_items' pour un groupe boutique."""
    subtotal = cart_logic.cart_total(items)
    discount = discount_for_group(session, items)
    order_row = {
        "user_id": session.user_id,
        "shop_id": shop_id,
        "session_id": session.session_id,
        "total": str(subtotal - discount),
        "status": STATUS_PAID,
        "shipping_address_id": session.shipping_address_id,
        "coupon_code": session.coupon.code if discount > 0 else None,
        "discount_amount": str(discount),
    }
    item_rows = [
        {
            "product_id": it.product_id,
            "quantity": it.quantity,
            "price": str(it.sale_price),
            "selected_options": it.selected_options or {},
        }
        for it in items
    ]
    return order_row, item_rows


def _side_effect(result: MaterializationResult, label: str, fn, *args, **kwargs) -> None:
    try:
        fn(*args, **kwargs)
    except Exception:
        logger.exception("orders.materialize side effect failed step=%s session_id=%s",
                         label, result.session_id)
        result.side_effect_errors.append(label)


def _record_sales(session: PaymentSession, shop_id: str, items: List[CartItem],
                  result: MaterializationResult) -> None:
    for it in items:
        _side_effect(result, f"stock:{it.product_id}",
                     catalog_repository.decrement_stock, it.product_id, it.quantity)
        _side_effect(result, f"product_analytics:{it.product_id}",
                     analytics_repository.record_product_purchase, it.product_id, shop_id, it.quantity)
        _side_effect(result, f"user_action:{it.product_id}",
                     analytics_repository.append_user_action, session.user_id, it.product_id, shop_id)


def _order_link(order_id: Any) -> str:
    return f"{config.FRONTEND_URL}/order/{order_id}"


def _send_confirmation(session: PaymentSession, buyer: Dict[str, Any],
                       created: List[Tuple[str, List[CartItem], Dict[str, Any]]],
                       result: MaterializationResult) -> None:
    email = buyer.get("email")
    if not email:
        logger.warning("orders.materialize buyer without email user_id=%s", session.user_id)
        result.side_effect_errors.append("email:missing_address")
        return
    total = sum((Decimal(str(order.get("total") or 0)) for _, _, order in created), Decimal("0"))
    discount = sum((Decimal(str(order.get("discount_amount") or 0)) for _, _, order in created), Decimal("0"))
    lines = [it for _, items, _ in created for it in items]
    _side_effect(
        result, "email:order-confirmation", notifications.send, email, "order-confirmation",
        {
            "platform": config.PLATFORM_NAME,
            "name": buyer.get("name") or "",
            "cart": [it.model_dump() for it in lines],
            "total_amount": str(total),
            "discount_amount": str(discount) if discount > 0 else None,
            "tracking_urls": [_order_link(order.get("id")) for _, _, order in created],
        },
    )


def _notify_sellers(session: PaymentSession, created: List[Tuple[str, List[CartItem], Dict[str, Any]]],
                    result: MaterializationResult) -> None:
    for shop_id, items, order in created:
        seller = session.sellers.get(shop_id)
        if seller is None or not seller.seller_id:
            result.side_effect_errors.append(f"seller_notification:{shop_id}")
            continue
        product_title = items[0].title or "new item"
        _side_effect(
            result, f"seller_notification:{shop_id}", notifications.notify,
            seller.seller_id,
            "New Order Received",
            f"A customer just ordered {product_title} from your shop.",
            _order_link(order.get("id")),
            creator_id=session.user_id,
        )


def _notify_admin(session: PaymentSession, buyer: Dict[str, Any], result: MaterializationResult) -> None:
    _side_effect(
        result, "admin_notification", notifications.notify,
        config.ADMIN_RECEIVER_ID,
        "Platform Order Alert",
        f"A new order was placed by {buyer.get('name') or session.user_id}",
        f"{config.FRONTEND_URL}/admin/orders?session={session.session_id}",
        creator_id=session.user_id,
    )
