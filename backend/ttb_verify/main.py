"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import router
from .services.lookups import get_lookup_tables
from .config import get_settings
from . import __version__

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    # Startup
    logger.info("Starting Label Verification API...")

    # Warm lookup tables; a missing or invalid file fails startup
    get_lookup_tables()
    logger.info("Lookup tables loaded")

    logger.info(f"API ready - Version {__version__}")

    yield

    # Shutdown
    logger.info("Shutting down Label Verification API...")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="""
## TTB Label Field Verification API

Compares fields read from alcohol beverage labels against COLA application data.

### Features
- **Field Comparison**: Fuzzy, address, ABV/proof, volume and strict strategies
- **Government Warning**: Presence, header caps, header bold and text accuracy checks
- **Multi-Image Merge**: Consensus across front/back/neck photos with conflict detection
- **Agent Workflow**: Conflict resolution and override-aware overall status

### Quick Start
1. Use `/health` to check API status
2. Use `/compare` to test one field
3. Use `/verify` to verify extracted fields against application data
4. Use `/merge` then `/verify/merged` for several photos of one label
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Configure CORS - restrict to allowed frontend origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Include routes
    app.include_router(router, prefix="/api/v1")

    # Root redirect to docs
    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "TTB Label Verification API",
            "version": __version__,
            "docs": "/docs"
        }

    return app


# Create app instance
app = create_app()
