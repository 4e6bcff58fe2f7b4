"""
Gestionnaires d'exceptions utilisés par la factory.
- AppError (erreurs métier): {"success": false, "error": <code>, "detail": <message>}
  avec le status porté par l'erreur; la raison Stripe est ajoutée pour UpstreamError.
- HTTPException: JSON FastAPI standard ({"detail": ...}).
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from marketplace.utils.errors import AppError, UpstreamError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.warning("app.error path=%s code=%s detail=%s", request.url.path, exc.code, exc.message)
        content = {"success": False, "error": exc.code, "detail": exc.message}
        if isinstance(exc, UpstreamError) and exc.reason:
            content["reason"] = exc.reason
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
