"""
Accès aux données 'orders' / 'order_items'.
- create_order_with_items: écriture atomique (commande + lignes) via la fonction Postgres
  create_order_with_items; contrainte unique (session_id, shop_id) => None si déjà créée.
- Lectures pour le détail, les listings acheteur/vendeur/admin et la mise à jour de statut.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import marketplace.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module marketplace.orders.repository
def create_order_with_items(order: Dict[str, Any], items: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Insère la commande et ses lignes dans une seule transaction.
    Retour: la commande créée, ou None si (session_id, shop_id) existe déjà (rejeu).
    Les erreurs d'écriture sont propagées.
    """
    res = (
        supabase_client.get_service_supabase()
        .rpc("create_order_with_items", {"p_order": order, "p_items": items})
        .execute()
    )
    return res.data or None

def get_order(order_id: str) -> Optional[Dict[str, Any]]:
    """Commande + lignes (order_items)."""
    if not order_id:
        return None
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .select("*, order_items(*)")
        .eq("id", order_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def update_order_status(order_id: str, status: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .update({"status": status, "updated_at": datetime.now(timezone.utc).isoformat()})
        .eq("id", order_id)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def list_user_orders(user_id: str) -> List[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .select("*, order_items(*)")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .execute()
    )
    return res.data or []

def list_shop_orders(shop_id: str) -> List[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .select("*, users(id, name, email, avatar)")
        .eq("shop_id", shop_id)
        .order("created_at", desc=True)
        .execute()
    )
    return res.data or []

def list_all_orders(limit: int = 100) -> List[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .select("*, users(*), shops(*)")
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return res.data or []
