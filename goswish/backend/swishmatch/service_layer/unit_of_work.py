# swishmatch/service_layer/unit_of_work.py
from __future__ import annotations

from typing import Callable, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..adapters.repos.sqlalchemy_repos import SqlAlchemyRepos
from ..config import Settings
from ..db import AsyncSessionLocal


class UnitOfWork(Protocol):
    session: AsyncSession
    repos: SqlAlchemyRepos

    async def __aenter__(self) -> "UnitOfWork": ...
    async def __aexit__(self, exc_type, exc, tb) -> None: ...
    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...


UnitOfWorkFactory = Callable[[], UnitOfWork]


class SqlAlchemyUnitOfWork:
    """
    One session, one transaction.
    Commits on clean exit, rolls back on exception, always closes.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        cfg: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory or AsyncSessionLocal
        self.cfg = cfg
        self.session: AsyncSession | None = None
        self.repos: SqlAlchemyRepos | None = None

    async def __aenter__(self) -> "SqlAlchemyUnitOfWork":
        self.session = self.session_factory()
        self.repos = SqlAlchemyRepos(self.session, self.cfg)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc:
                await self.rollback()
            else:
                await self.commit()
        finally:
            if self.session:
                await self.session.close()

    async def commit(self) -> None:
        assert self.session is not None
        await self.session.commit()

    async def rollback(self) -> None:
        assert self.session is not None
        await self.session.rollback()


def uow_factory(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    cfg: Settings | None = None,
) -> UnitOfWorkFactory:
    def _make() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(session_factory, cfg)

    return _make
