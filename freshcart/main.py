# freshcart/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from freshcart.core.config import get_settings
from freshcart.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from freshcart.models import user as _user_models  # noqa: F401
from freshcart.models import delivery as _delivery_models  # noqa: F401
from freshcart.models import order as _order_models  # noqa: F401
from freshcart.models import rider as _rider_models  # noqa: F401

# Routers
from freshcart.routers.users import router as users_router
from freshcart.routers.service_area import router as service_area_router
from freshcart.routers.delivery_slots import router as delivery_slots_router
from freshcart.routers.orders import router as orders_router
from freshcart.routers.rider import router as rider_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      - Verify DB connectivity and create tables.
    """
    logger.info("🔄 Startup: Connecting to database...")
    try:
        create_db_and_tables()
        logger.info("✅ Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"❌ Startup: DB connection FAILED: {e}")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME or "FreshCart API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(users_router, prefix=settings.API_V1_STR)
app.include_router(service_area_router, prefix=settings.API_V1_STR)
app.include_router(delivery_slots_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)
app.include_router(rider_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "freshcart-backend"}
