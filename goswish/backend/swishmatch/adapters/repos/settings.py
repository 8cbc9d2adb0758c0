# swishmatch/adapters/repos/settings.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import Settings, settings as default_settings
from ...domain.types import AppSettingsSnapshot
from ...models import AppSettings

APP_SETTINGS_KEY = "app"


class AppSettingsRepository:
    def __init__(self, session: AsyncSession, cfg: Settings | None = None):
        self.session = session
        self.cfg = cfg or default_settings

    async def get(self) -> AppSettingsSnapshot:
        row = (
            await self.session.execute(select(AppSettings).where(AppSettings.key == APP_SETTINGS_KEY))
        ).scalars().first()

        rate = row.cleaner_earnings_rate if row and row.cleaner_earnings_rate else self.cfg.CLEANER_EARNINGS_RATE
        radius = (
            row.default_service_radius_mi
            if row and row.default_service_radius_mi
            else self.cfg.DEFAULT_SERVICE_RADIUS_MI
        )
        return AppSettingsSnapshot(cleaner_earnings_rate=rate, default_service_radius_mi=radius)

    async def upsert(
        self,
        *,
        cleaner_earnings_rate: float | None = None,
        default_service_radius_mi: float | None = None,
    ) -> AppSettings:
        row = (
            await self.session.execute(select(AppSettings).where(AppSettings.key == APP_SETTINGS_KEY))
        ).scalars().first()
        if row is None:
            row = AppSettings(key=APP_SETTINGS_KEY)
            self.session.add(row)
        if cleaner_earnings_rate is not None:
            row.cleaner_earnings_rate = cleaner_earnings_rate
        if default_service_radius_mi is not None:
            row.default_service_radius_mi = default_service_radius_mi
        row.updated_at = datetime.utcnow()
        await self.session.flush()
        return row
