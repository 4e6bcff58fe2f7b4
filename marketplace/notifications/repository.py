from typing import Any, Dict, Optional
import logging

import marketplace.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def insert_notification(*, title: str, message: str, creator_id: str, receiver_id: str,
                        redirect_link: str) -> Optional[Dict[str, Any]]:
    """Insère une notification (table notifications) via service-role."""
    res = (
        supabase_client.get_service_supabase()
        .table("notifications")
        .insert({
            "title": title,
            "message": message,
            "creator_id": creator_id,
            "receiver_id": receiver_id,
            "redirect_link": redirect_link,
        })
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None
