"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from estimator.config import settings
from estimator.middleware.error_handler import ErrorHandlerMiddleware
from estimator.api.dependencies import get_calculation_cache, get_rate_table
from estimator.api.v1.routers import cache, factors, geometry, pricing, scores

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_requests}/minute"],
    enabled=settings.rate_limit_enabled,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Loads the rate table up front so a broken rate table file fails at
    startup rather than on the first pricing request.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}, debug: {settings.debug}")
    logger.info(f"Scoring config: default_formula={settings.default_score_formula}")
    rate_table = get_rate_table()
    logger.info(f"Pricing config: base_points_per_hour={rate_table.base_points_per_hour}, "
                f"per_person_wage={rate_table.per_person_wage}, "
                f"rate_table={settings.rate_table_path or 'built-in'}")
    logger.info(f"Cache config: ttl={settings.cache_ttl_seconds}s, "
                f"max_entries={settings.cache_max_entries}")
    logger.info(f"Rate limit: {settings.rate_limit_requests} requests/minute")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    cache_stats = get_calculation_cache().stats
    logger.info(f"Cache at shutdown: {cache_stats.size} entries, "
                f"{cache_stats.hits} hits, {cache_stats.misses} misses")
    get_calculation_cache().clear()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    description="""
    Measurement, scoring and pricing API for tree-service estimates

    This API turns field measurements of trees, stumps and work areas into
    work-complexity scores, hours and prices.

    ## Features

    - **Tree Scoring**: Versioned base-score formulas adjusted by a selectable
      hazard model (hazard percentage, site flags or assessment factors)
    - **Stump Scoring**: Diameter and grind volume with an optional linked
      tree hazard
    - **Pricing**: Crew and equipment production rates, service and urgency
      multipliers, and bundle discounts for multi-item properties
    - **Geometry**: Geodesic distances, work-area acreage and polygon exports
    - **Assessment Factors**: Searchable catalog, suggestions from a site
      description and presets for common sites
    - **Calculation Cache**: Results reused for identical inputs within a
      configurable TTL
    - **Rate Limiting**: Protects the API from abuse
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(factors.router, prefix="/api/v1")
app.include_router(scores.router, prefix="/api/v1")
app.include_router(pricing.router, prefix="/api/v1")
app.include_router(geometry.router, prefix="/api/v1")
app.include_router(cache.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
@limiter.exempt
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
    }
