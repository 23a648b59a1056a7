"""FastAPI service for the Noah AI gateway."""
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import ALLOWED_ORIGINS, get_settings
from api.routers import ai_router
from noah_ai.errors import GatewayError, InvalidArgument
from noah_ai.usage.files import force_file_fallback

logger = logging.getLogger(__name__)


app = FastAPI(
    title="Noah AI Gateway",
    version="0.1.0",
    description="Metered AI actions for the AI Todo apps.",
)

origins = [origin for origin in ALLOWED_ORIGINS if origin]

if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(GatewayError)
async def handle_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=exc.to_api_dict())


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Rejected request body on {request.url.path}: {exc.errors()}")
    error = InvalidArgument("Request must be {action, context, language}")
    return JSONResponse(status_code=error.http_status, content=error.to_api_dict())


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint with service configuration status."""
    settings = get_settings()

    services = {
        "gemini": "configured" if settings.gemini_api_key else "not_configured",
        "usage_store": "file" if force_file_fallback() else "firestore",
    }

    return {
        "status": "ok",
        "time": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "model": settings.gemini_model,
        "services": services,
    }


app.include_router(ai_router, prefix="/ai", tags=["ai"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8080")))
