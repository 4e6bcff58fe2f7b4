"""
Accès aux données 'discount_codes' (codes promo, lecture seule pour le checkout).
"""
from typing import Any, Dict, Optional
import logging

import marketplace.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module marketplace.coupons.repository
def get_discount_code(code: str) -> Optional[Dict[str, Any]]:
    """
    Récupère un code promo par sa valeur (colonne discount_code, unique).
    - Colonnes utiles: id, discount_code, discount_type, discount_value, product_id
    - Retourne None si introuvable.
    """
    if not code:
        return None
    res = (
        supabase_client.get_supabase()
        .table("discount_codes")
        .select("id, discount_code, discount_type, discount_value, product_id")
        .eq("discount_code", code)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None
