from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from app.core.config import Settings, settings as default_settings
from app.core.errors import StoreError, register_exception_handlers
from app.db import dynamo
from app.models.ledger import LedgerKind
from app.routers import auth, dashboard, health, ledger
from app.services.auth import AuthService
from app.services.dashboard import DashboardAggregator
from app.services.ledger import LedgerService
from app.utils.image_storage import ImageStorage

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: connect to DynamoDB and wire the services. A store that cannot
    # be reached aborts startup.
    settings = app.state.settings
    logger.info("Connecting to DynamoDB...")
    dynamodb = dynamo.connect(settings)
    try:
        if settings.DYNAMO_CREATE_TABLES:
            dynamo.create_tables(dynamodb, settings)
        dynamo.verify_tables(dynamodb, settings)
    except StoreError as e:
        logger.critical(f"DynamoDB connection failed: {e.cause}")
        raise

    ledger_store = dynamo.LedgerStore(dynamodb, settings.DYNAMO_LEDGER_TABLE)
    image_storage = ImageStorage(settings)

    app.state.dynamodb = dynamodb
    app.state.image_storage = image_storage
    app.state.auth_service = AuthService(
        dynamo.UserStore(dynamodb, settings.DYNAMO_USERS_TABLE),
        settings,
        image_storage,
    )
    app.state.ledger_services = {kind: LedgerService(ledger_store, kind) for kind in LedgerKind}
    app.state.dashboard = DashboardAggregator(ledger_store)
    logger.info("DynamoDB connected")
    yield
    logger.info("Shutting down...")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan
    )
    app.state.settings = settings

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )
    register_exception_handlers(app)

    # Root endpoint
    @app.get("/")
    def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

    # Register routers
    app.include_router(health.router, prefix=f"{settings.API_PREFIX}", tags=["Health"])  # /api/health
    app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["Auth"])
    app.include_router(ledger.build_router(LedgerKind.INCOME), prefix=f"{settings.API_PREFIX}/income", tags=["Income"])
    app.include_router(ledger.build_router(LedgerKind.EXPENSE), prefix=f"{settings.API_PREFIX}/expense", tags=["Expense"])
    app.include_router(dashboard.router, prefix=f"{settings.API_PREFIX}/dashboard", tags=["Dashboard"])

    return app


app = create_app()
