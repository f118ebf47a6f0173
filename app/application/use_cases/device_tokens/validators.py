"""Validation helpers for device token registration."""

from __future__ import annotations

from collections.abc import Mapping

from app.config import get_settings
from app.domain.entities import DevicePlatform
from app.domain.exceptions import InvalidDeviceTokenError

_PLATFORM_LABELS = {
    DevicePlatform.IOS: "iOS",
    DevicePlatform.ANDROID: "Android/FCM",
    DevicePlatform.WEB: "web push",
}


def ensure_platform(platform: DevicePlatform | str) -> DevicePlatform:
    """Return ``platform`` as a :class:`DevicePlatform` or raise."""

    try:
        return DevicePlatform(platform)
    except ValueError as exc:
        raise InvalidDeviceTokenError(f"Plataforma no soportada: {platform}") from exc


def ensure_valid_token(
    token: str,
    platform: DevicePlatform | str,
    *,
    min_lengths: Mapping[str, int] | None = None,
) -> str:
    """Return the stripped ``token`` or raise :class:`InvalidDeviceTokenError`.

    Minimum lengths are a heuristic, configured per platform through the
    ``DEVICE_TOKEN_MIN_LENGTH_*`` settings.
    """

    normalized = (token or "").strip()
    if not normalized:
        raise InvalidDeviceTokenError("El token del dispositivo no puede estar vacío")

    resolved_platform = ensure_platform(platform)
    thresholds = min_lengths or get_settings().device_token_min_lengths()
    minimum = thresholds.get(resolved_platform.value, 1)
    if len(normalized) < minimum:
        label = _PLATFORM_LABELS[resolved_platform]
        raise InvalidDeviceTokenError(f"Formato de token {label} inválido")
    return normalized


__all__ = ["ensure_platform", "ensure_valid_token"]
