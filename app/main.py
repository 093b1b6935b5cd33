"""
ctrl+v License Service - Main Application Entry Point

This module assembles the licensing API consumed by the ctrl+v desktop
app: passwordless login with emailed codes, bearer-session entitlement
checks, and Paddle Billing webhook ingestion.

Every endpoint is a stateless request handler. Configuration is loaded
once into a frozen Settings object and injected per request; all
cross-request consistency lives in the database's unique constraints.
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.auth import router as auth_router
from app.billing import router as billing_router
from app.core.config import get_settings
from app.core.errors import (
    database_error_handler,
    http_exception_handler,
    request_validation_handler,
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.value,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="ctrl+v License Service")

CORS_ALLOW_METHODS = ["GET", "POST", "OPTIONS"]
CORS_ALLOW_HEADERS = [
    "authorization",
    "x-client-info",
    "apikey",
    "content-type",
    "paddle-signature",
]


@app.middleware("http")
async def answer_options(request: Request, call_next):
    """Answer every OPTIONS request, including ones that are not CORS preflights."""
    if request.method != "OPTIONS":
        return await call_next(request)
    return PlainTextResponse(
        "ok",
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
            "Access-Control-Allow-Methods": ",".join(CORS_ALLOW_METHODS),
        },
    )


# The desktop client and any web tooling may call from any origin.
# Added last so it wraps answer_options and handles real preflights itself.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=CORS_ALLOW_METHODS,
    allow_headers=CORS_ALLOW_HEADERS,
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(SQLAlchemyError, database_error_handler)


@app.get("/health", tags=["meta"])
def health_check():
    """Simple health check endpoint returning application status."""
    return {
        "status": "ok",
        "environment": settings.environment.value,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


app.include_router(auth_router, tags=["auth"])

app.include_router(billing_router, tags=["billing"])
