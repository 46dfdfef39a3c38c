"""
Back-office Transaction Engine API - Main Application.

FastAPI application exposing purchase orders, sales, refunds, the stock
movement ledger and role navigation for a single tenant branch per request.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from config.settings import get_settings

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI application
app = FastAPI(
    title="Back-office Transaction Engine API",
    description="Purchase orders, sales, refunds and stock reconciliation for tenant branches",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS - Allow all origins for development
# TODO: Restrict origins to the back-office frontend once its production domain is fixed
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "transaction-engine-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Back-office Transaction Engine API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import navigation, purchases, refunds, sales, stock

app.include_router(purchases.router, prefix="/api/v1", tags=["Purchases"])
app.include_router(sales.router, prefix="/api/v1", tags=["Sales"])
app.include_router(refunds.router, prefix="/api/v1", tags=["Refunds"])
app.include_router(stock.router, prefix="/api/v1", tags=["Stock"])
app.include_router(navigation.router, prefix="/api/v1", tags=["Navigation"])
