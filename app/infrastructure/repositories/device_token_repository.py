"""Persistence layer for push device tokens."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.domain.entities import DevicePlatform, DeviceToken, DeviceTokenStatistics
from app.infrastructure.models import DeviceTokenModel
from app.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class DeviceTokenRepository:
    """Provide CRUD and bulk state changes for :class:`DeviceToken` rows.

    Every mutating method is a single statement followed by a commit so the
    registry never depends on multi-step transactions.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_for_user(self, user_id: int, token: str) -> DeviceToken | None:
        model = (
            self.session.query(DeviceTokenModel)
            .filter(DeviceTokenModel.user_id == user_id)
            .filter(DeviceTokenModel.token == token)
            .first()
        )
        return self._to_entity(model) if model else None

    def list_by_token(self, token: str) -> Sequence[DeviceToken]:
        query = self.session.query(DeviceTokenModel).filter(DeviceTokenModel.token == token)
        return [self._to_entity(model) for model in query.all()]

    def list_active(
        self, user_id: int, *, platform: DevicePlatform | None = None
    ) -> Sequence[DeviceToken]:
        query = (
            self.session.query(DeviceTokenModel)
            .filter(DeviceTokenModel.user_id == user_id)
            .filter(DeviceTokenModel.is_active.is_(True))
        )
        if platform is not None:
            query = query.filter(DeviceTokenModel.platform == platform.value)
        query = query.order_by(
            DeviceTokenModel.last_used_at.desc(), DeviceTokenModel.id.desc()
        )
        return [self._to_entity(model) for model in query.all()]

    def list_active_for_users(self, user_ids: Iterable[int]) -> Sequence[DeviceToken]:
        unique_ids = {int(user_id) for user_id in user_ids}
        if not unique_ids:
            return []
        query = (
            self.session.query(DeviceTokenModel)
            .filter(DeviceTokenModel.user_id.in_(unique_ids))
            .filter(DeviceTokenModel.is_active.is_(True))
            .order_by(DeviceTokenModel.last_used_at.desc(), DeviceTokenModel.id.desc())
        )
        return [self._to_entity(model) for model in query.all()]

    def list_active_token_values(self) -> list[str]:
        """Return the distinct token strings of every active row."""

        query = (
            self.session.query(DeviceTokenModel.token)
            .filter(DeviceTokenModel.is_active.is_(True))
            .distinct()
            .order_by(DeviceTokenModel.token)
        )
        return [token for (token,) in query.all()]

    def create(self, device_token: DeviceToken) -> DeviceToken:
        model = DeviceTokenModel()
        self._apply_entity_to_model(model, device_token, include_creation_fields=True)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def update(self, device_token: DeviceToken) -> DeviceToken:
        model = (
            self.session.get(DeviceTokenModel, device_token.id)
            if device_token.id is not None
            else None
        )
        if model is None:
            msg = f"Device token with id {device_token.id} not found"
            raise ValueError(msg)
        self._apply_entity_to_model(model, device_token, include_creation_fields=False)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def deactivate_device(
        self, user_id: int, device_id: str, *, except_token: str | None = None
    ) -> int:
        """Deactivate the active tokens registered for ``(user_id, device_id)``."""

        query = (
            self.session.query(DeviceTokenModel)
            .filter(DeviceTokenModel.user_id == user_id)
            .filter(DeviceTokenModel.device_id == device_id)
            .filter(DeviceTokenModel.is_active.is_(True))
        )
        if except_token is not None:
            query = query.filter(DeviceTokenModel.token != except_token)
        return self._deactivate(query)

    def deactivate_tokens(self, tokens: Iterable[str]) -> int:
        unique_tokens = {token for token in tokens if token}
        if not unique_tokens:
            return 0
        query = (
            self.session.query(DeviceTokenModel)
            .filter(DeviceTokenModel.token.in_(unique_tokens))
            .filter(DeviceTokenModel.is_active.is_(True))
        )
        return self._deactivate(query)

    def deactivate_for_user(
        self, user_id: int, *, platform: DevicePlatform | None = None
    ) -> int:
        query = (
            self.session.query(DeviceTokenModel)
            .filter(DeviceTokenModel.user_id == user_id)
            .filter(DeviceTokenModel.is_active.is_(True))
        )
        if platform is not None:
            query = query.filter(DeviceTokenModel.platform == platform.value)
        return self._deactivate(query)

    def deactivate_unused_before(self, cutoff: datetime) -> int:
        query = (
            self.session.query(DeviceTokenModel)
            .filter(DeviceTokenModel.is_active.is_(True))
            .filter(DeviceTokenModel.last_used_at < ensure_app_naive_datetime(cutoff))
        )
        return self._deactivate(query)

    def delete_inactive_before(self, cutoff: datetime) -> int:
        deleted = (
            self.session.query(DeviceTokenModel)
            .filter(DeviceTokenModel.is_active.is_(False))
            .filter(DeviceTokenModel.updated_at < ensure_app_naive_datetime(cutoff))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return int(deleted or 0)

    def touch(self, token: str, *, used_at: datetime) -> int:
        stamp = ensure_app_naive_datetime(used_at)
        updated = (
            self.session.query(DeviceTokenModel)
            .filter(DeviceTokenModel.token == token)
            .filter(DeviceTokenModel.is_active.is_(True))
            .update(
                {
                    DeviceTokenModel.last_used_at: stamp,
                    DeviceTokenModel.updated_at: stamp,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return int(updated or 0)

    def statistics(self) -> DeviceTokenStatistics:
        rows = (
            self.session.query(
                DeviceTokenModel.platform,
                DeviceTokenModel.is_active,
                func.count(DeviceTokenModel.id),
            )
            .group_by(DeviceTokenModel.platform, DeviceTokenModel.is_active)
            .all()
        )
        by_platform = {platform.value: 0 for platform in DevicePlatform}
        total_active = 0
        total_inactive = 0
        for platform, is_active, count in rows:
            if is_active:
                total_active += count
                by_platform[platform] = by_platform.get(platform, 0) + count
            else:
                total_inactive += count
        return DeviceTokenStatistics(
            total_active=total_active,
            total_inactive=total_inactive,
            active_by_platform=by_platform,
        )

    def _deactivate(self, query) -> int:
        stamp = ensure_app_naive_datetime(now_in_app_timezone())
        updated = query.update(
            {
                DeviceTokenModel.is_active: False,
                DeviceTokenModel.updated_at: stamp,
            },
            synchronize_session=False,
        )
        self.session.commit()
        return int(updated or 0)

    @staticmethod
    def _apply_entity_to_model(
        model: DeviceTokenModel, device_token: DeviceToken, *, include_creation_fields: bool
    ) -> None:
        now = ensure_app_naive_datetime(now_in_app_timezone())
        if include_creation_fields:
            model.user_id = device_token.user_id
            model.token = device_token.token
            model.created_at = ensure_app_naive_datetime(device_token.created_at) or now
        model.platform = DevicePlatform(device_token.platform).value
        model.device_id = device_token.device_id
        model.is_active = device_token.is_active
        model.last_used_at = ensure_app_naive_datetime(device_token.last_used_at) or now
        model.updated_at = ensure_app_naive_datetime(device_token.updated_at) or now

    @staticmethod
    def _to_entity(model: DeviceTokenModel) -> DeviceToken:
        return DeviceToken(
            id=model.id,
            user_id=model.user_id,
            token=model.token,
            platform=DevicePlatform(model.platform),
            device_id=model.device_id,
            is_active=model.is_active,
            last_used_at=ensure_app_timezone(model.last_used_at),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["DeviceTokenRepository"]
