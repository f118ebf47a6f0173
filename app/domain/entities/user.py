"""Domain entity representing a user."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """Attributes of an application user relevant to notification delivery."""

    id: int | None
    name: str
    email: str | None
    is_active: bool = True
    created_at: datetime | None = None

    def has_email(self) -> bool:
        """Return ``True`` when the user can receive email."""

        return bool(self.email and self.email.strip())
