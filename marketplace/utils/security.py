from fastapi import Request, Depends
from typing import Optional, Dict, Any
import logging

import marketplace.infra.supabase_client as supabase_client
from marketplace.utils.errors import AuthError, UnauthenticatedError

COOKIE_NAME = "sb_access"
ROLES = ("admin", "seller", "user")

logger = logging.getLogger(__name__)

def determine_role(metadata: Dict[str, Any] | None) -> str:
    role_lower = str((metadata or {}).get("role", "")).lower()
    return role_lower if role_lower in ROLES else "user"

def token_from_request(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME)

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise user issu de supabase.auth.get_user(access_token): {id, email, metadata, role, token}."""
    res = supabase_client.get_supabase().auth.get_user(access_token)
    raw = getattr(res, "user", None)
    if raw is None:
        return {}
    metadata = getattr(raw, "user_metadata", None) or {}
    return {
        "id": getattr(raw, "id", None),
        "email": getattr(raw, "email", None),
        "metadata": metadata,
        "role": determine_role(metadata),
        "token": access_token,
    }

def get_current_user(request: Request) -> Dict[str, Any]:
    token = token_from_request(request)
    if not token:
        raise UnauthenticatedError("Non authentifié")
    try:
        user = get_user_from_token(token)
    except Exception as e:
        logger.info("auth.token rejected reason=%s", e)
        raise UnauthenticatedError("Session expirée, veuillez vous connecter")
    if not user.get("id"):
        raise UnauthenticatedError("Session expirée, veuillez vous connecter")
    return user

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def require_seller(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") not in ("seller", "admin"):
        raise AuthError("Accès réservé aux vendeurs")
    return user

def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise AuthError("Accès interdit")
    return user
