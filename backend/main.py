import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.clock import Clock, SystemClock
from core.config import Settings, settings as default_settings
from core.engine import BusinessEngine
from core.log_config import configure_logging
from core.reminders import ReminderScheduler
from db.database import create_db_and_tables, make_engine
from db.persistence import DocumentStore
from routers.billing import router as billing_router
from routers.customers import router as customers_router
from routers.dashboard import router as dashboard_router
from routers.inventory import router as inventory_router
from routers.reminders import router as reminders_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        db_engine = make_engine(settings.database_url, settings.database_echo)
        try:
            await create_db_and_tables(db_engine)
            store = DocumentStore(db_engine)
            # A malformed document stops startup here (LoadError).
            state = await store.load_state()

            engine = BusinessEngine(
                state,
                clock=clock or SystemClock(),
                invoice_prefix=settings.invoice_prefix,
                low_stock_threshold=settings.low_stock_threshold,
            )
            store.attach(engine)
            scheduler = ReminderScheduler(engine, interval=settings.reminder_interval_seconds)

            app.state.settings = settings
            app.state.engine = engine
            app.state.document_store = store
            app.state.scheduler = scheduler

            try:
                async with scheduler:
                    yield
            finally:
                scheduler.close()
                store.detach()
                if not await store.flush():
                    logger.error("Shutting down with unsaved documents: %s", ", ".join(store.unsaved_keys))
        finally:
            await db_engine.dispose()

    app = FastAPI(
        title="Dr. Aqua Business API",
        description="Inventory, customers, billing and sales analytics",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
    app.include_router(customers_router, prefix="/customers", tags=["customers"])
    app.include_router(billing_router, prefix="/billing", tags=["billing"])
    app.include_router(reminders_router, prefix="/reminders", tags=["reminders"])
    app.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
