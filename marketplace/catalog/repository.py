"""Couche d'accès aux données (Supabase) pour les collaborateurs catalogue du checkout.
Boutiques/vendeurs (compte Stripe), produits (stock), utilisateurs et adresses.
Les lectures passent par le client anon; les écritures (stock) par la clé de service.
"""
from typing import Any, Dict, Iterable, List, Optional
import logging

import marketplace.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def get_shops(shop_ids: Iterable[str]) -> List[Dict[str, Any]]:
    """Boutiques avec vendeur et compte Stripe du vendeur.
    - Select: id, name, seller_id, sellers(stripe_id)
    """
    ids = [str(i) for i in shop_ids]
    if not ids:
        return []
    res = (
        supabase_client.get_supabase()
        .table("shops")
        .select("id, name, seller_id, sellers(stripe_id)")
        .in_("id", ids)
        .execute()
    )
    return res.data or []

def get_shop_by_seller(seller_id: str) -> Optional[Dict[str, Any]]:
    if not seller_id:
        return None
    res = (
        supabase_client.get_supabase()
        .table("shops")
        .select("id, name, seller_id")
        .eq("seller_id", seller_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def get_user(user_id: str) -> Optional[Dict[str, Any]]:
    """Identité de l'acheteur (nom/email) pour les notifications."""
    if not user_id:
        return None
    res = (
        supabase_client.get_service_supabase()
        .table("users")
        .select("id, name, email")
        .eq("id", user_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def get_address(address_id: str) -> Optional[Dict[str, Any]]:
    if not address_id:
        return None
    res = (
        supabase_client.get_service_supabase()
        .table("addresses")
        .select("*")
        .eq("id", address_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def get_products(product_ids: Iterable[str]) -> List[Dict[str, Any]]:
    """Produits (id, title, images) pour hydrater le détail d'une commande."""
    ids = [str(i) for i in product_ids]
    if not ids:
        return []
    res = (
        supabase_client.get_supabase()
        .table("products")
        .select("id, title, images")
        .in_("id", ids)
        .execute()
    )
    return res.data or []

def decrement_stock(product_id: str, quantity: int) -> None:
    """
    Décrément atomique du stock + incrément des ventes cumulées (fonction Postgres
    decrement_product_stock, UPDATE ... SET stock = stock - n côté base).
    """
    (
        supabase_client.get_service_supabase()
        .rpc("decrement_product_stock", {"p_product_id": product_id, "p_quantity": quantity})
        .execute()
    )
