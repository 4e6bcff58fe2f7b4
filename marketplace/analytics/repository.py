"""
Analytique d'achat.
- product_analytics: agrégat par produit/boutique (achats cumulés, dernière consultation),
  mis à jour par la fonction Postgres record_product_purchase (upsert + incrément atomique).
- user_actions: journal append-only des actions de l'utilisateur, une ligne par action
  (pas de tableau JSON qui grossit indéfiniment dans un seul enregistrement).
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

import marketplace.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

PURCHASE = "purchase"

def record_product_purchase(product_id: str, shop_id: str, quantity: int) -> None:
    (
        supabase_client.get_service_supabase()
        .rpc(
            "record_product_purchase",
            {"p_product_id": product_id, "p_shop_id": shop_id, "p_quantity": quantity},
        )
        .execute()
    )

def append_user_action(user_id: str, product_id: str, shop_id: str, action: str = PURCHASE,
                       at: Optional[datetime] = None) -> Dict[str, Any]:
    """Ajoute une action horodatée au journal de l'utilisateur et met à jour last_visited."""
    at = at or datetime.now(timezone.utc)
    row = {
        "user_id": user_id,
        "product_id": product_id,
        "shop_id": shop_id,
        "action": action,
        "created_at": at.isoformat(),
    }
    client = supabase_client.get_service_supabase()
    client.table("user_actions").insert(row).execute()
    client.table("user_analytics").upsert(
        {"user_id": user_id, "last_visited": at.isoformat()}, on_conflict="user_id"
    ).execute()
    return row
