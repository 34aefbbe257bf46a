"""
Trade Compliance FastAPI Application Entry Point
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api.v1 import compliance
from .core.config import settings
from .middleware.rate_limit import setup_rate_limiting
from .services.cache_service import cache_service, get_cache_service
from .services.knowledge_store import knowledge_store

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.is_development else settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the knowledge base on startup and release the cache on shutdown"""
    knowledge_store.load()
    yield
    await cache_service.close()


app = FastAPI(
    title=settings.APP_NAME,
    description="HS code lookup and export compliance checks over ingested rules documents",
    version=__version__,
    debug=settings.DEBUG,
    docs_url=None if settings.is_production else "/api/docs",
    redoc_url=None if settings.is_production else "/api/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_rate_limiting(app)

# API routes
app.include_router(compliance.router, prefix="/api", tags=["compliance"])


@app.get("/")
async def root():
    """Root endpoint for health check"""
    return {"message": "Export Compliance API is running!", "version": __version__}


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    cache = await get_cache_service()
    return {
        "status": "healthy",
        "service": "trade-compliance-api",
        "knowledge_base_loaded": knowledge_store.loaded,
        **knowledge_store.stats(),
        "explanation_cache": await cache.get_cache_statistics()
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "compliance_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development
    )
