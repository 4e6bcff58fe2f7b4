"""Couche service des commandes (après paiement).
Rôles:
- Détail d'une commande enrichi (produits, adresse de livraison, coupon), lisible par
  l'acheteur, le vendeur de la boutique ou un admin.
- Progression du statut de livraison par le vendeur: uniquement vers l'avant.
- Listings acheteur / vendeur / admin.
"""
from typing import Any, Dict, List
import logging

from marketplace.catalog import repository as catalog_repository
from marketplace.coupons import repository as coupons_repository
from marketplace.utils.errors import AuthError, NotFoundError, ValidationError
from marketplace.utils.logs import send_log
from . import repository

logger = logging.getLogger(__name__)

ORDER_STATUSES = ["Paid", "Packed", "Shipped", "Out for Delivery", "Delivered"]


def _seller_shop_id(user: Dict[str, Any]) -> str | None:
    shop = catalog_repository.get_shop_by_seller(user.get("id"))
    return str(shop.get("id")) if shop else None


def _can_read(order: Dict[str, Any], user: Dict[str, Any]) -> bool:
    if user.get("role") == "admin":
        return True
    if str(order.get("user_id")) == str(user.get("id")):
        return True
    if user.get("role") == "seller":
        return _seller_shop_id(user) == str(order.get("shop_id"))
    return False


def get_order_details(order_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """Commande + lignes hydratées (titre, image), adresse et coupon appliqué.
    - NotFoundError si la commande n'existe pas
    - AuthError si l'appelant n'est ni l'acheteur, ni le vendeur, ni un admin
    """
    order = repository.get_order(order_id)
    if not order:
        raise NotFoundError("Commande introuvable")
    if not _can_read(order, user):
        raise AuthError("Accès interdit à cette commande")

    items = order.get("order_items") or []
    products = {str(p.get("id")): p for p in catalog_repository.get_products(i.get("product_id") for i in items)}
    enriched: List[Dict[str, Any]] = []
    for it in items:
        product = products.get(str(it.get("product_id"))) or {}
        images = product.get("images") or []
        enriched.append({
            **it,
            "product": {
                "id": it.get("product_id"),
                "title": product.get("title") or "Unknown Product",
                "images": images,
            },
        })

    address = catalog_repository.get_address(order.get("shipping_address_id")) if order.get("shipping_address_id") else None
    coupon = None
    if order.get("coupon_code"):
        record = coupons_repository.get_discount_code(order["coupon_code"]) or {}
        coupon = {**record, "code": order["coupon_code"], "discountAmount": order.get("discount_amount")}

    details = {k: v for k, v in order.items() if k != "order_items"}
    details.update({"items": enriched, "shippingAddress": address, "coupon": coupon})
    return details


def update_order_status(order_id: str, status: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """Fait avancer le statut de livraison.
    - Seul le vendeur de la boutique peut modifier la commande.
    - Statut inconnu ou retour en arrière: ValidationError. Même statut: no-op idempotent.
    """
    if status not in ORDER_STATUSES:
        raise ValidationError(f"Statut invalide: {status}")
    order = repository.get_order(order_id)
    if not order:
        raise NotFoundError("Commande introuvable")
    if _seller_shop_id(user) != str(order.get("shop_id")):
        raise AuthError("Seul le vendeur de la boutique peut modifier cette commande")

    current = order.get("status") or ORDER_STATUSES[0]
    current_idx = ORDER_STATUSES.index(current) if current in ORDER_STATUSES else 0
    target_idx = ORDER_STATUSES.index(status)
    if target_idx == current_idx:
        return {"success": True, "order": order, "changed": False}
    if target_idx < current_idx:
        raise ValidationError(f"Transition interdite: {current} -> {status}")

    updated = repository.update_order_status(order_id, status) or {**order, "status": status}
    logger.info("orders.status updated order_id=%s from=%s to=%s", order_id, current, status)
    send_log("info", "Delivery status updated", order_id=order_id, status=status)
    return {"success": True, "order": updated, "changed": True}


def list_user_orders(user_id: str) -> List[Dict[str, Any]]:
    return repository.list_user_orders(user_id)


def list_seller_orders(user: Dict[str, Any]) -> List[Dict[str, Any]]:
    shop_id = _seller_shop_id(user)
    if not shop_id:
        raise NotFoundError("Aucune boutique pour ce vendeur")
    return repository.list_shop_orders(shop_id)


def list_admin_orders(limit: int = 100) -> List[Dict[str, Any]]:
    return repository.list_all_orders(limit=limit)
