import logging
from typing import Any

audit_logger = logging.getLogger("marketplace.audit")

_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

def send_log(type: str, message: str, source: str = "order-service", **context: Any) -> None:
    """
    Journal d'audit du service (événements métier notables).
    - type: success | info | warning | error
    - context: paires clé/valeur ajoutées au message (session_id, user_id...)
    """
    level = _LEVELS.get(type, logging.INFO)
    details = " ".join(f"{k}={v}" for k, v in context.items())
    audit_logger.log(level, "[%s] %s %s", source, message, details)
