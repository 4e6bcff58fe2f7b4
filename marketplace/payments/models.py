"""
Modèles pydantic du checkout: lignes de panier, session de paiement, snapshot coupon,
et corps des requêtes HTTP.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class CartItem(BaseModel):
    """
    Ligne de panier figée dans une session.
    Accepte les noms du front (id, sale_price, shopId, selectedOptions) et les noms internes.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    product_id: str = Field(min_length=1, validation_alias=AliasChoices("product_id", "productId", "id"))
    quantity: int = Field(gt=0)
    sale_price: Decimal = Field(ge=0, validation_alias=AliasChoices("sale_price", "salePrice"))
    shop_id: str = Field(min_length=1, validation_alias=AliasChoices("shop_id", "shopId"))
    selected_options: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("selected_options", "selectedOptions"),
    )
    title: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.sale_price * self.quantity


class SellerAccount(BaseModel):
    shop_id: str
    seller_id: str
    stripe_account_id: Optional[str] = None


class CouponSnapshot(BaseModel):
    """Coupon évalué côté serveur au moment de la création de session."""
    code: str
    discount_type: str
    discount_value: Decimal
    product_id: str
    discount_amount: Decimal


class PaymentSession(BaseModel):
    session_id: str
    user_id: str
    cart: List[CartItem]
    sellers: Dict[str, SellerAccount]
    total_amount: Decimal
    shipping_address_id: Optional[str] = None
    coupon: Optional[CouponSnapshot] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def amount_due(self) -> Decimal:
        discount = self.coupon.discount_amount if self.coupon else Decimal("0")
        return max(self.total_amount - discount, Decimal("0"))


# --- Corps de requêtes ---

class CreateSessionRequest(BaseModel):
    cart: List[Dict[str, Any]] = Field(default_factory=list)
    selected_address_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("selected_address_id", "selectedAddressId")
    )
    coupon_code: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("coupon_code", "couponCode", "coupon")
    )

    @field_validator("coupon_code", mode="before")
    def coupon_code_from_object(cls, v: Any) -> Any:
        # Le front peut renvoyer l'objet coupon complet reçu de verify-coupon
        if isinstance(v, dict):
            return v.get("code") or v.get("couponCode")
        return v


class CreateIntentRequest(BaseModel):
    session_id: str = Field(min_length=1, validation_alias=AliasChoices("session_id", "sessionId"))
    # Contrôlés contre la session en cache, jamais facturés tels quels
    amount: Optional[Decimal] = Field(default=None, gt=0)
    seller_stripe_account_id: Optional[str] = Field(
        default=None,
        min_length=1,
        validation_alias=AliasChoices("seller_stripe_account_id", "sellerStripeAccountId"),
    )
