"""Helper utilities shared across API route handlers."""

from fastapi import HTTPException, status

from app.domain.exceptions import NotificationNotFoundError, NotificationStateError


def http_error_from(exc: ValueError) -> HTTPException:
    """Translate a domain error into the matching HTTP error."""

    if isinstance(exc, NotificationNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, NotificationStateError):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=status_code, detail=str(exc))
