from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from marketplace.health import service as health_service
from marketplace.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/dependencies")
def health_dependencies(request: Request):
    redis_info = health_service.health_redis_info()
    supabase_info = health_service.health_supabase_info()
    body = {
        "ok": bool(redis_info.get("ok")) and bool(supabase_info.get("connect_ok")),
        "redis": redis_info,
        "supabase": supabase_info,
        "rate_limit": rate_limit_health_info(request),
    }
    return JSONResponse(body, status_code=200 if body["ok"] else 503)
