import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from order_tracking.core.config import CORS_ORIGINS, ENV, IS_DEV, IS_TEST
from order_tracking.core.database import Base, engine
from order_tracking.core.logging_setup import configure_logging
from order_tracking.core.startup_checks import ensure_migrations_applied, validate_database_environment
from order_tracking.middleware.observability import ObservabilityMiddleware
import order_tracking.models  # garante que os models são importados antes do create_all
import order_tracking.services.event_handlers  # registra handlers do event bus

from order_tracking.routers.orders import router as orders_router
from order_tracking.routers.receipts import router as receipts_router
from order_tracking.routers.settings import router as settings_router
from order_tracking.routers.tracking import router as tracking_router
from order_tracking.routers.internal_metrics import router as internal_metrics_router

configure_logging()

logger = logging.getLogger(__name__)
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


def _startup_tasks() -> None:
    logger.info("startup env=%s", ENV)
    validate_database_environment()
    if IS_DEV or IS_TEST:
        # dev/test sem alembic: cria as tabelas direto
        Base.metadata.create_all(bind=engine)
    ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Order Tracking API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)

# Routers
app.include_router(orders_router)
app.include_router(receipts_router)
app.include_router(settings_router)
app.include_router(tracking_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
