from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api_routers.v1 import api_router
from app.features.auth import models  # noqa: F401  (register tables on Base.metadata)
from app.features.health.routes.health import router as health_router
from app.platform.config import settings
from app.platform.db.base import Base
from app.platform.db.session import engine
from app.platform.exceptions import add_exception_handlers
from app.platform.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ENVIRONMENT == "local":
        # Local/dev convenience; staging and production run alembic migrations
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    yield
    await engine.dispose()


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Identity, OTP verification and session management for the department portal",
    version="1.0.0",
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    lifespan=lifespan,
)


# Root endpoint for basic info
@app.get("/", tags=["Info"])
def root():
    return {
        "app_name": f"{settings.APP_NAME} API",
        "version": "1.0.0",
        "api_base": settings.API_PREFIX,
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router, prefix=settings.API_PREFIX)
