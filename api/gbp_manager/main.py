from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from gbp_manager import __version__
from gbp_manager.config import get_settings
from gbp_manager.exceptions import GBPManagerError
from gbp_manager.log_config import configure_logging
from gbp_manager.routers import analytics, business_profiles, listings, posts, reviews

settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("GBP Manager API starting", environment=settings.ENVIRONMENT)
    yield
    logger.info("GBP Manager API shutting down")


app = FastAPI(
    title=settings.APP_NAME,
    description="Google Business Profile listing sync and analytics",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GBPManagerError)
async def gbp_manager_error_handler(request: Request, exc: GBPManagerError):
    level = logger.error if exc.status_code >= 500 else logger.warning
    level("request failed", path=request.url.path, error_type=type(exc).__name__, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "detail": exc.details, "retryable": exc.retryable},
    )


# Include routers
app.include_router(analytics.router, prefix=settings.API_V1_PREFIX)
app.include_router(listings.router, prefix=settings.API_V1_PREFIX)
app.include_router(reviews.router, prefix=settings.API_V1_PREFIX)
app.include_router(posts.router, prefix=settings.API_V1_PREFIX)
app.include_router(business_profiles.router, prefix=settings.API_V1_PREFIX)


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "gbp-manager-api", "version": __version__}


@app.get("/")
async def root():
    return {"message": "GBP Manager API", "docs": "/docs"}
