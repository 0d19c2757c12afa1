# src/faucet_gate/main.py
"""Main entry point for the Faucet Gate application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from faucet_gate.api.v1 import (
    admin_router,
    attestations_router,
    claims_router,
    eligibility_router,
    history_router,
    system_router,
    transactions_router,
)
from faucet_gate.core.settings import settings
from faucet_gate.services.ledger import get_ledger_client

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize FastAPI app
app = FastAPI(
    title="Faucet Gate API",
    description="Rate-limited, attestation-gated ledger faucet",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(attestations_router, prefix="/api/v1")
app.include_router(claims_router, prefix="/api/v1")
app.include_router(eligibility_router, prefix="/api/v1")
app.include_router(history_router, prefix="/api/v1")
app.include_router(transactions_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_ledger_client().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Rate-limited, attestation-gated ledger faucet",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("faucet_gate.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
