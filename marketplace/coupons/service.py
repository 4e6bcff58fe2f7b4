"""
Évaluation des codes promo contre un panier.
Un coupon cible exactement un produit; la remise est plafonnée au prix de la ligne éligible.
Aucun effet de bord: appelable à l'aperçu (UI), à la création de session et au webhook.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional

from marketplace.payments.models import CartItem, CouponSnapshot
from . import repository

PERCENTAGE = "percentage"
FLAT = "flat"
DISCOUNT_TYPES = (PERCENTAGE, FLAT)

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class CouponEvaluation:
    valid: bool
    discount_amount: Decimal = Decimal("0")
    eligible_product_id: Optional[str] = None
    discount_type: Optional[str] = None
    discount_value: Decimal = Decimal("0")
    code: Optional[str] = None
    message: str = ""

    def to_snapshot(self) -> Optional[CouponSnapshot]:
        if not self.valid:
            return None
        return CouponSnapshot(
            code=self.code,
            discount_type=self.discount_type,
            discount_value=self.discount_value,
            product_id=self.eligible_product_id,
            discount_amount=self.discount_amount,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "discount": str(self.discount_value),
            "discountAmount": str(self.discount_amount),
            "discountedProductId": self.eligible_product_id,
            "discountType": self.discount_type,
            "code": self.code,
            "message": self.message,
        }


def compute_discount(discount_type: str, discount_value: Decimal, line_price: Decimal) -> Decimal:
    """
    percentage -> line_price × value / 100 ; flat -> value.
    Résultat borné à [0, line_price], arrondi au centime.
    """
    value = Decimal(discount_value or 0)
    if discount_type == PERCENTAGE:
        amount = line_price * value / Decimal(100)
    elif discount_type == FLAT:
        amount = value
    else:
        amount = Decimal("0")
    amount = max(Decimal("0"), min(amount, line_price))
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def evaluate_against(coupon: Dict[str, Any], cart: Iterable[CartItem]) -> CouponEvaluation:
    """Applique un coupon déjà chargé au panier (sans accès base)."""
    code = coupon.get("discount_code")
    product_id = str(coupon.get("product_id") or "")
    discount_type = coupon.get("discount_type")
    discount_value = Decimal(str(coupon.get("discount_value") or 0))

    matching = next((it for it in cart if it.product_id == product_id), None)
    if matching is None:
        return CouponEvaluation(
            valid=False,
            code=code,
            discount_type=discount_type,
            discount_value=discount_value,
            message="Aucun produit du panier n'est éligible à ce code promo",
        )

    amount = compute_discount(discount_type, discount_value, matching.line_total)
    return CouponEvaluation(
        valid=True,
        discount_amount=amount,
        eligible_product_id=matching.product_id,
        discount_type=discount_type,
        discount_value=discount_value,
        code=code,
        message="Remise appliquée à 1 produit éligible",
    )


def evaluate(code: str, cart: Iterable[CartItem]) -> CouponEvaluation:
    """
    Valide `code` contre `cart`.
    - Code inconnu: valid=False après l'unique lecture en base.
    - Aucune ligne éligible: valid=False avec un message explicatif (cas métier, pas une erreur).
    """
    coupon = repository.get_discount_code(code)
    if not coupon:
        return CouponEvaluation(valid=False, code=code, message="Code promo invalide")
    return evaluate_against(coupon, list(cart))
