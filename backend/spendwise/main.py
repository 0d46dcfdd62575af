from fastapi import FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
from spendwise.config import settings
from spendwise.errors import register_error_handlers
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from spendwise.api import (
    profiles,
    categories,
    transactions,
    reports,
    trends,
    other,
    financial,
    goals,
    otp,
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting SpendWise API")
    from spendwise.database.postgres_db import init_db
    init_db(settings.DATABASE_URL)
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")
    from spendwise.database.postgres_db import close_db
    close_db()


app = FastAPI(
    title="SpendWise API",
    description="API for tracking personal income, expenses, investments and financial goals",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiter shared with the OTP endpoints
app.state.limiter = otp.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_error_handlers(app)

api_router = APIRouter(prefix="/api")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api_router.include_router(profiles.router)
api_router.include_router(categories.router)
api_router.include_router(transactions.router)
api_router.include_router(reports.router)
api_router.include_router(trends.router)
api_router.include_router(other.router)
api_router.include_router(financial.router)
api_router.include_router(goals.router)
api_router.include_router(otp.router)

app.include_router(api_router)
app.include_router(otp.pages_router)

# Initialize Prometheus metrics instrumentation
Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    return {
        "message": "SpendWise API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "spendwise.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.is_development
    )
