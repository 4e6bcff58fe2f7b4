"""
Sérialisation/désérialisation des métadonnées Stripe (sessionId, userId).
Ces métadonnées sont le seul lien entre le webhook et la session de paiement.
"""
from typing import Any, Dict, Tuple

# module marketplace.payments.metadata
def make_metadata(session_id: str, user_id: str) -> Dict[str, str]:
    return {"sessionId": str(session_id), "userId": str(user_id)}

def extract_metadata(event: Dict[str, Any]) -> Tuple[str | None, str | None]:
    """
    Extrait (session_id, user_id) depuis un événement Stripe payment_intent.*
    - Attend event.data.object.metadata.{sessionId, userId}
    - Tolérant: retourne (None, None) si la structure est inattendue.
    """
    data_obj = (event or {}).get("data", {}).get("object", {}) if isinstance(event, dict) else {}
    meta = (data_obj or {}).get("metadata") or {}
    return meta.get("sessionId"), meta.get("userId")
