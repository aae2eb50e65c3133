"""LocalMart FastAPI application.

Order lifecycle, inventory, notifications and ratings for a local-shop
marketplace, served under ``/api``. Commands are processed synchronously
within the request.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

import time
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.api import notification_router, order_router, product_router, shop_router
from marketplace.api.errors import install_error_handlers
from marketplace.domain import marketplace
from marketplace.utils.logging import add_context, clear_context, current_env

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the domain.toml overlay:
#   - "test"       → in-memory provider
#   - (unset)      → sqlite file
#   - "production" → postgresql at DATABASE_URL, JSON logs
marketplace.init()

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="LocalMart API",
    description="Local-shop marketplace: orders, inventory, notifications and ratings",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=marketplace.config["custom"]["CORS_ORIGINS"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the marketplace domain context for each request."""
    with marketplace.domain_context():
        response = await call_next(request)
    return response


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Bind a request id to every log line emitted while serving the request."""
    clear_context()
    request_id = request.headers.get("X-Request-Id") or str(uuid4())
    add_context(request_id=request_id)
    started = time.perf_counter()
    try:
        response = await call_next(request)
    finally:
        clear_context()
    response.headers["X-Request-Id"] = request_id
    logger.info(
        "Request served",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
        request_id=request_id,
    )
    return response


install_error_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(order_router, prefix="/api")
app.include_router(notification_router, prefix="/api")
app.include_router(product_router, prefix="/api")
app.include_router(shop_router, prefix="/api")


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/api/health")
async def health():
    return JSONResponse(content={"success": True, "status": "ok", "environment": current_env()})
