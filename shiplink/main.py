"""
ShipLink Dispatch - FastAPI Application
Main entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shiplink.api import dispatch_router, directory_router, events_router, quotes_router
from shiplink.config import get_settings

settings = get_settings()

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    configure_logging()
    logger.info("Starting %s v%s", settings.app_title, settings.app_version)

    # Alembic owns the schema outside development
    if settings.app_env == "development":
        from shiplink.database import init_db
        await init_db()
        logger.info("Database tables initialized")

    yield
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.app_title,
    version=settings.app_version,
    description="""
    ## ShipLink Dispatch API

    Delivery requests and freight quotes for the ShipLink marketplace.

    ### Features
    - **Pricing**: Great-circle distance, tiered price and ETA
    - **Identifiers**: Collision-free order ids and order/quote numbers
    - **Dispatch lifecycle**: pending → accepted → picked_up → in_transit → delivered
    - **Matching**: Directed assignment or open pull, nearest driver first
    - **Quotes**: Company offers with validity windows, convertible into requests

    ### Main Endpoints
    - `POST /api/v1/dispatch-requests` - Create a dispatch request
    - `PATCH /api/v1/dispatch-requests/{id}/status` - Move a request along
    - `POST /api/v1/quotes/calculate` - Price a route
    - `POST /api/v1/quotes/{id}/convert` - Turn a quote into a request
    - `GET /api/v1/events/stream` - SSE stream of status changes
    """,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(dispatch_router, prefix=settings.api_prefix)
app.include_router(quotes_router, prefix=settings.api_prefix)
app.include_router(directory_router, prefix=settings.api_prefix)
app.include_router(events_router, prefix=settings.api_prefix)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - health check."""
    return {
        "status": "healthy",
        "service": settings.app_title,
        "version": settings.app_version,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
