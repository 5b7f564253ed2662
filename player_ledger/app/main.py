import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.exceptions import register_exception_handlers
from .api.routes import ledger_router, router as players_router
from .core.clock import LedgerClock
from .core.config import Settings, get_settings
from .core.db import create_engine_for_url, init_db
from .services import InMemoryLedgerStore, LedgerService, LedgerStore, SqlLedgerStore


logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> LedgerStore:
    clock = LedgerClock()
    if settings.storage_backend == "sql":
        engine = create_engine_for_url(settings.database_url)
        init_db(engine)
        return SqlLedgerStore(
            engine,
            clock,
            initial_balance=settings.initial_balance,
            history_retention=settings.history_retention,
        )
    return InMemoryLedgerStore(
        clock,
        initial_balance=settings.initial_balance,
        history_retention=settings.history_retention,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = build_store(settings)
        app.state.ledger = LedgerService(store, settings=settings)
        logger.info(
            "ledger.started",
            extra={
                "storage_backend": settings.storage_backend,
                "initial_balance": settings.initial_balance,
            },
        )
        yield
        engine = getattr(store, "engine", None)
        if engine is not None:
            engine.dispose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(players_router)
    app.include_router(ledger_router)
    register_exception_handlers(app)

    @app.get("/health")
    def read_health() -> dict[str, str]:
        return {"status": "OK"}

    return app


app = create_app()
