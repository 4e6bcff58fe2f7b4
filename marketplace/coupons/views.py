# module marketplace.coupons.views

"""Endpoint de vérification des codes promo (aperçu côté panier).
- /verify-coupon: évalue un code contre le panier courant, sans effet de bord.
Le même évaluateur est rejoué côté serveur à la création de la session de paiement.
"""
from fastapi import APIRouter, Depends
from typing import Any, Dict, List, Optional
import logging

from pydantic import AliasChoices, BaseModel, Field

from marketplace.utils.errors import ValidationError
from marketplace.utils.logs import send_log
from marketplace.utils.rate_limit import optional_rate_limit
from marketplace.utils.security import require_user
from marketplace.payments import cart as cart_logic
from marketplace.coupons import service as coupons_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/coupons", tags=["Coupons API"])


class VerifyCouponRequest(BaseModel):
    coupon_code: Optional[str] = Field(default=None, validation_alias=AliasChoices("coupon_code", "couponCode"))
    cart: List[Dict[str, Any]] = Field(default_factory=list)


@router.put("/verify-coupon", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def verify_coupon(body: VerifyCouponRequest, user: dict = Depends(require_user)) -> Dict[str, Any]:
    """Vérifie un code promo.
    - 400 si le code ou le panier manque.
    - Code inconnu ou sans produit éligible: 200 avec valid=false et un message.
    - Code valide: montant de remise plafonné au prix de la ligne éligible.
    """
    code = (body.coupon_code or "").strip()
    if not code or not body.cart:
        raise ValidationError("Code promo et panier requis")
    items = cart_logic.parse_cart(body.cart)
    evaluation = coupons_service.evaluate(code, items)
    send_log(
        "success" if evaluation.valid else "info",
        "Coupon verified",
        user_id=user.get("id"),
        code=code,
        valid=evaluation.valid,
    )
    return evaluation.as_dict()
