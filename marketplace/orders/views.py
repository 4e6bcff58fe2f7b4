# module marketplace.orders.views

"""Endpoints des commandes (après paiement).
- /get-order-details/{order_id}: acheteur, vendeur de la boutique ou admin.
- /update-status/{order_id}: vendeur de la boutique, progression vers l'avant uniquement.
- /get-user-orders, /get-seller-orders, /get-admin-orders: listings par rôle.
"""
from fastapi import APIRouter, Depends
from typing import Any, Dict
import logging

from pydantic import AliasChoices, BaseModel, Field

from marketplace.utils.security import require_admin, require_seller, require_user
from marketplace.orders import service as orders_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


class UpdateStatusRequest(BaseModel):
    status: str = Field(min_length=1, validation_alias=AliasChoices("status", "deliveryStatus"))


@router.get("/get-order-details/{order_id}")
def get_order_details(order_id: str, user: dict = Depends(require_user)) -> Dict[str, Any]:
    return {"success": True, "order": orders_service.get_order_details(order_id, user)}


@router.put("/update-status/{order_id}")
def update_status(order_id: str, body: UpdateStatusRequest, user: dict = Depends(require_seller)) -> Dict[str, Any]:
    return orders_service.update_order_status(order_id, body.status, user)


@router.get("/get-user-orders")
def get_user_orders(user: dict = Depends(require_user)) -> Dict[str, Any]:
    return {"success": True, "orders": orders_service.list_user_orders(user.get("id"))}


@router.get("/get-seller-orders")
def get_seller_orders(user: dict = Depends(require_seller)) -> Dict[str, Any]:
    return {"success": True, "orders": orders_service.list_seller_orders(user)}


@router.get("/get-admin-orders")
def get_admin_orders(limit: int = 100, user: dict = Depends(require_admin)) -> Dict[str, Any]:
    return {"success": True, "orders": orders_service.list_admin_orders(limit=limit)}
