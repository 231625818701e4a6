"""Marketplace FastAPI application.

Serves the order, sub-order, settlement and seller endpoints, plus the
order-tracking WebSocket. Commands are processed synchronously inside the
request; every request runs inside the marketplace domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

import os
import uuid

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from domain.toml.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.domain import marketplace
from marketplace.realtime import install_gateway
from marketplace.realtime.rooms import RoomGateway
from marketplace.utils.logging import bind_request_context, clear_request_context, configure_logging

configure_logging()
marketplace.init()

# ---------------------------------------------------------------------------
# Realtime transport
# ---------------------------------------------------------------------------
# "memory" fans out to WebSocket clients connected to this process.
# "none" leaves the no-op gateway in place.
if os.getenv("REALTIME_TRANSPORT", "memory").lower() == "memory":
    install_gateway(RoomGateway())


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Marketplace Orders API",
    description="Multi-seller order lifecycle, commission splitting and earnings settlement",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the marketplace domain context and bind request log context."""
    clear_request_context()
    bind_request_context(
        request_id=request.headers.get("x-request-id") or uuid.uuid4().hex,
        user_id=request.headers.get("x-user-id"),
    )
    with marketplace.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers and error handling
# ---------------------------------------------------------------------------
from marketplace.api import order_router, seller_router, settlement_router, sub_order_router  # noqa: E402
from marketplace.api.errors import register_error_handlers  # noqa: E402
from marketplace.realtime.websocket import tracking_router  # noqa: E402

app.include_router(order_router)
app.include_router(sub_order_router)
app.include_router(settlement_router)
app.include_router(seller_router)
app.include_router(tracking_router)

register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": marketplace.name,
        }
    )
