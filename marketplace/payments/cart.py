"""
Logique panier pure (pas de Stripe, pas de Redis, pas de DB).
"""
import hashlib
import json
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Union

import pydantic

from marketplace.utils.errors import ValidationError
from .models import CartItem

# module marketplace.payments.cart
def parse_cart(items: List[Dict[str, Any]]) -> List[CartItem]:
    """
    Valide un panier brut [{id, quantity, sale_price, shopId, selectedOptions}, ...].
    - Soulève ValidationError si le panier est vide ou si une ligne est malformée
      (id manquant, quantité <= 0, prix négatif, boutique absente).
    """
    if not items or not isinstance(items, list):
        raise ValidationError("Panier vide ou invalide")
    try:
        return [CartItem.model_validate(it) for it in items]
    except pydantic.ValidationError as e:
        raise ValidationError(f"Ligne de panier invalide: {e.errors()[0].get('msg')}")

def _decimal_str(value: Decimal) -> str:
    # 10, 10.0 et 10.00 doivent produire la même empreinte
    normalized = Decimal(value).normalize()
    return format(normalized, "f")

def _project(item: Union[CartItem, Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(item, CartItem):
        try:
            item = CartItem.model_validate(item)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Ligne de panier invalide: {e.errors()[0].get('msg')}")
    return {
        "productId": item.product_id,
        "quantity": item.quantity,
        "salePrice": _decimal_str(item.sale_price),
        "shopId": item.shop_id,
        "selectedOptions": item.selected_options or {},
    }

def canonical_cart(cart: Iterable[Union[CartItem, Dict[str, Any]]]) -> str:
    """
    Représentation canonique d'un panier, indépendante de l'ordre des lignes.
    - Projection sur {productId, quantity, salePrice, shopId, selectedOptions}
    - Tri par productId (puis par contenu pour départager deux variantes d'un même produit)
    - JSON à clés triées, sans espaces
    """
    projected = [_project(it) for it in cart]
    serialized = [json.dumps(p, sort_keys=True, separators=(",", ":"), default=str) for p in projected]
    ordered = sorted(zip(projected, serialized), key=lambda pair: (pair[0]["productId"], pair[1]))
    return "[" + ",".join(s for _, s in ordered) + "]"

def fingerprint(cart: Iterable[Union[CartItem, Dict[str, Any]]]) -> str:
    """Empreinte SHA-256 de canonical_cart(cart)."""
    return hashlib.sha256(canonical_cart(cart).encode("utf-8")).hexdigest()

def cart_total(cart: Iterable[CartItem]) -> Decimal:
    """Σ quantity × sale_price, recalculé côté serveur."""
    return sum((it.line_total for it in cart), Decimal("0"))

def group_by_shop(cart: Iterable[CartItem]) -> "OrderedDict[str, List[CartItem]]":
    """
    Partitionne le panier par boutique (groupes disjoints, ordre de première apparition).
    Une commande sera créée par groupe.
    """
    groups: "OrderedDict[str, List[CartItem]]" = OrderedDict()
    for it in cart:
        groups.setdefault(it.shop_id, []).append(it)
    return groups

def to_cents(amount: Decimal) -> int:
    """Montant décimal -> centimes Stripe (arrondi au plus proche)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
