"""FastAPI dependency utilities."""

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.application.use_cases.notifications import NotificationOrchestrator
from app.domain.entities import User
from app.infrastructure.database import get_db
from app.infrastructure.repositories import UserRepository


def get_notification_orchestrator(db: Session = Depends(get_db)) -> NotificationOrchestrator:
    """Return an orchestrator wired to the production channel senders."""

    return NotificationOrchestrator(db)


def get_existing_user(user_id: int, db: Session = Depends(get_db)) -> User:
    """Resolve the ``user_id`` path parameter or fail with 404."""

    user = UserRepository(db).get(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuario no encontrado")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Usuario inactivo")
    return user
