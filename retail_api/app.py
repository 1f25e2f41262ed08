"""FastAPI application setup module."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from retail_api.settings import settings
from retail_api.endpoints.reports import router as reports_router
from retail_api.endpoints.sales import router as sales_router
from retail_api.exceptions.api_exception import BackingStoreError
from retail_api.services.cache import clear_cache as _clear_cache, get_cache_stats

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Retail Sales Report API",
    description="Loads, cleans and reports on retail sales transactions",
    version="1.0.0",
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sales_router)
app.include_router(reports_router)


@app.exception_handler(SQLAlchemyError)
async def backing_store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Report store failures as 503; nothing is retried."""
    logger.error("Backing store error on %s %s: %s", request.method, request.url.path, exc)
    error = BackingStoreError(detail=f"Backing store error: {exc.__class__.__name__}")
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.post("/cache/clear", tags=["admin"])
async def clear_cache():
    """Clear all cached report results."""
    count = _clear_cache()
    return {"cleared": count, "message": f"Cleared {count} cached entries"}


@app.get("/cache/stats", tags=["admin"])
async def cache_stats():
    """Get cache statistics for debugging."""
    return get_cache_stats()
