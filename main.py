import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.application.scheduler import NotificationScheduler
from app.config import get_settings
from app.infrastructure.database import engine, initialize_database
from app.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Inicializa la base de datos y el planificador; los detiene al cerrar."""

    initialize_database()
    scheduler: NotificationScheduler | None = None
    if get_settings().scheduler_enabled:
        scheduler = NotificationScheduler()
        scheduler.start()
    app.state.notification_scheduler = scheduler
    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.shutdown()
        engine.dispose()


def create_app() -> FastAPI:
    """Crea y configura la aplicación principal de FastAPI."""

    app = FastAPI(title="Notification Delivery Service", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_settings().cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
