from fastapi import FastAPI

from .device_tokens import router as device_tokens_router
from .notification_preferences import router as notification_preferences_router
from .notifications import router as notifications_router


def register_routes(app: FastAPI) -> None:
    """Registra todos los routers de la API en la aplicación FastAPI."""

    app.include_router(notifications_router)
    app.include_router(notification_preferences_router)
    app.include_router(device_tokens_router)
