# swishmatch/service_layer/use_cases/claim.py
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Awaitable, Callable

from ...config import Settings, settings as default_settings
from ...domain.eligibility import has_slot_conflict
from ...domain.errors import AlreadyClaimed, AlreadyTaken, NotFound, SchedulingConflict
from ...domain.policies import estimate_duration_hours, job_earnings
from ...domain.timeslots import same_day, wall_clock
from ...domain.types import BookingSnapshot, BookingStatus, CleanerProfile, DateOption, JobStatus
from ...integrations.services.outbox import EVENT_BOOKING_CLAIMED, enqueue_event
from ...models import NotificationType
from ..unit_of_work import UnitOfWorkFactory, uow_factory as make_uow_factory

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobDetails:
    date: datetime
    start_time: datetime | None = None
    end_time: datetime | None = None

    def local(self) -> "JobDetails":
        return JobDetails(
            date=wall_clock(self.date),
            start_time=wall_clock(self.start_time) if self.start_time is not None else None,
            end_time=wall_clock(self.end_time) if self.end_time is not None else None,
        )


@dataclass(frozen=True)
class ClaimedJob:
    job_id: int
    booking_id: int
    cleaner_id: int
    customer_id: int
    house_id: int
    service_type: str
    status: JobStatus
    scheduled_date: datetime
    start_time: datetime | None
    end_time: datetime | None
    duration_hours: float | None
    amount: float | None
    earnings: float
    booking_version: int
    customer_notified: bool = False
    offers_purged: int | None = None


def claim_windows(booking: BookingSnapshot, details: JobDetails) -> list[DateOption]:
    """
    The day/slot the cleaner is committing to.
    Explicit start time wins; otherwise the booking's own options on that day.
    """
    if details.start_time is not None:
        return [DateOption(date=details.start_time)]
    on_day = [o for o in booking.date_options if same_day(o.date, details.date)]
    if on_day:
        return on_day
    return [DateOption(date=details.date)]


class ClaimCoordinator:
    """
    accept() is the only code path that assigns a cleaner to a booking.

    Everything before the compare-and-swap is a read, so any number of
    concurrent accepts is safe; exactly one CAS can match the row.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory | None = None, cfg: Settings | None = None) -> None:
        self.cfg = cfg or default_settings
        self.uow_factory = uow_factory or make_uow_factory(cfg=self.cfg)

    async def accept(self, booking_id: int, cleaner_id: int, details: JobDetails) -> ClaimedJob:
        details = details.local()
        try:
            claimed, booking, cleaner = await self._claim(booking_id, cleaner_id, details)
        except AlreadyClaimed:
            await self._best_effort(
                "record_claim_lost",
                booking_id,
                self._record_event,
                booking_id,
                "claim_lost",
                {"cleaner_id": cleaner_id},
            )
            raise

        log.info("booking=%s claimed by cleaner=%s job=%s", booking_id, cleaner_id, claimed.job_id)

        # The claim is committed. Nothing below may undo it.
        notified = await self._best_effort("notify_customer", booking_id, self._notify_customer, booking, cleaner, details)
        purged: list[int] = []
        await self._best_effort("purge_offers", booking_id, self._purge_offers, booking_id, purged)
        await self._best_effort(
            "record_claimed",
            booking_id,
            self._record_event,
            booking_id,
            "claimed",
            {"cleaner_id": cleaner_id, "job_id": claimed.job_id, "earnings": claimed.earnings},
        )

        return replace(claimed, customer_notified=notified, offers_purged=purged[0] if purged else None)

    async def _claim(
        self,
        booking_id: int,
        cleaner_id: int,
        details: JobDetails,
    ) -> tuple[ClaimedJob, BookingSnapshot, CleanerProfile]:
        async with self.uow_factory() as uow:
            repos = uow.repos

            booking = await repos.bookings.get(booking_id)
            if booking is None:
                raise NotFound(booking_id)

            cleaner = await repos.cleaners.get(cleaner_id)
            if cleaner is None:
                raise NotFound(booking_id, f"cleaner {cleaner_id} not found")

            if booking.cleaner_id is not None:
                raise AlreadyTaken(booking_id)

            active = await repos.jobs.active_for_cleaner(cleaner_id)
            if has_slot_conflict(active, claim_windows(booking, details)):
                raise SchedulingConflict(booking_id)

            won = await repos.bookings.compare_and_swap(
                booking_id,
                expected_version=booking.version,
                cleaner_id=cleaner_id,
                new_status=BookingStatus.confirmed,
                require_status=BookingStatus.placed if self.cfg.CLAIM_REQUIRE_PLACED_STATUS else None,
            )
            if not won:
                raise AlreadyClaimed(booking_id)

            house = await repos.houses.get(booking.house_id)
            app = await repos.app_settings.get()
            earnings = job_earnings(booking.pricing, app.cleaner_earnings_rate)

            if details.start_time and details.end_time and details.end_time > details.start_time:
                duration = round((details.end_time - details.start_time).total_seconds() / 3600.0, 2)
            else:
                duration = estimate_duration_hours(
                    booking.service_type,
                    sqft=house.sqft if house else None,
                    bedrooms=house.bedrooms if house else None,
                    bathrooms=house.bathrooms if house else None,
                    add_on_count=len(booking.add_ons),
                )

            job = await repos.jobs.add(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                cleaner_id=cleaner_id,
                house_id=booking.house_id,
                service_type=booking.service_type,
                scheduled_date=details.date,
                start_time=details.start_time,
                end_time=details.end_time,
                duration_hours=duration,
                amount=booking.pricing.total,
                earnings=earnings,
                status=JobStatus.scheduled,
            )

            await enqueue_event(
                uow.session,
                EVENT_BOOKING_CLAIMED,
                {
                    "booking_id": booking.id,
                    "cleaner_id": cleaner_id,
                    "job_id": job.id,
                    "scheduled_date": details.date.isoformat(),
                    "earnings": earnings,
                },
            )

            claimed = ClaimedJob(
                job_id=job.id,
                booking_id=booking.id,
                cleaner_id=cleaner_id,
                customer_id=booking.customer_id,
                house_id=booking.house_id,
                service_type=booking.service_type,
                status=job.status,
                scheduled_date=job.scheduled_date,
                start_time=job.start_time,
                end_time=job.end_time,
                duration_hours=job.duration_hours,
                amount=job.amount,
                earnings=job.earnings,
                booking_version=booking.version + 1,
            )
        return claimed, booking, cleaner

    # -----------------------------
    # best-effort follow-ups (each in its own transaction)
    # -----------------------------
    async def _best_effort(self, step: str, booking_id: int, fn: Callable[..., Awaitable[Any]], *args: Any) -> bool:
        try:
            await fn(*args)
            return True
        except Exception:
            log.warning("follow-up %s failed for booking=%s; claim stands", step, booking_id, exc_info=True)
            return False

    async def _notify_customer(self, booking: BookingSnapshot, cleaner: CleanerProfile, details: JobDetails) -> None:
        name = cleaner.name or "Your cleaner"
        async with self.uow_factory() as uow:
            await uow.repos.notifications.add(
                user_id=booking.customer_id,
                type=NotificationType.booking_accepted,
                title="Booking Confirmed!",
                message=f"{name} has accepted your booking for {details.date.strftime('%b %d, %Y')}.",
                related_id=booking.id,
                cleaner_id=cleaner.id,
            )

    async def _purge_offers(self, booking_id: int, out: list[int]) -> None:
        async with self.uow_factory() as uow:
            n = await uow.repos.notifications.delete_job_offers(booking_id)
        out.append(n)
        log.info("purged %s job offers for booking=%s", n, booking_id)

    async def _record_event(self, booking_id: int, event_type: str, payload: dict[str, Any]) -> None:
        async with self.uow_factory() as uow:
            await uow.repos.events.record(booking_id, event_type, payload)
