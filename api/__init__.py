"""REST API module for the escrow contract.

This module provides HTTP endpoints for:
- Registering accounts, depositing and withdrawing
- Listing, buying and looking up assets
- Contract version, statistics, receipts and state reset
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from contract import EscrowContract, create_contract

logger = logging.getLogger(__name__)

def create_app(contract: Optional[EscrowContract] = None) -> FastAPI:
    """Create the API application.

    Args:
        contract: Contract to serve, defaults to one built from settings.conf

    Returns:
        The FastAPI application. The contract's store is opened on startup
        and closed on shutdown, after in-flight promises have settled.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle startup and shutdown events."""
        logger.info("Initializing API...")
        served = contract or create_contract()
        await served.runtime.store.open()
        app.state.contract = served
        logger.info(f"Serving escrow contract {served.contract_id}")

        yield

        logger.info("Shutting down API...")
        await served.runtime.drain()
        await served.runtime.store.close()
        app.state.contract = None

    app = FastAPI(
        title="NFT Escrow API",
        description="REST API for the NFT escrow contract",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        """Health check."""
        served = getattr(app.state, 'contract', None)
        return {
            "status": "ok" if served is not None else "starting",
            "contract": served.contract_id if served is not None else None
        }

    from .accounts import router as accounts_router
    from .assets import router as assets_router
    from .admin import router as admin_router

    app.include_router(accounts_router)
    app.include_router(assets_router)
    app.include_router(admin_router)

    return app

app = create_app()

__all__ = ['app', 'create_app']
