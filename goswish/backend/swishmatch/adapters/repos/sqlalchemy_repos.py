# swishmatch/adapters/repos/sqlalchemy_repos.py
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ...config import Settings
from .bookings import BookingRepository
from .cleaners import CleanerRepository
from .events import MatchingEventRepository
from .houses import HouseRepository
from .jobs import JobRepository
from .notifications import NotificationRepository
from .settings import AppSettingsRepository


class SqlAlchemyRepos:
    """All repositories bound to one session (one unit of work)."""

    def __init__(self, session: AsyncSession, cfg: Settings | None = None) -> None:
        self.session = session
        self.bookings = BookingRepository(session)
        self.cleaners = CleanerRepository(session)
        self.houses = HouseRepository(session)
        self.jobs = JobRepository(session)
        self.notifications = NotificationRepository(session)
        self.app_settings = AppSettingsRepository(session, cfg)
        self.events = MatchingEventRepository(session)
