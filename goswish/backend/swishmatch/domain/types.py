# swishmatch/domain/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal, Mapping


class BookingStatus(str, Enum):
    placed = "placed"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class JobStatus(str, Enum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


# Jobs that still occupy a cleaner's calendar
ACTIVE_JOB_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.scheduled, JobStatus.in_progress, JobStatus.confirmed}
)


class VerificationStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class AccountStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"


class TimeSlot(str, Enum):
    morning = "morning"
    afternoon = "afternoon"
    evening = "evening"


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(frozen=True)
class DateOption:
    date: datetime
    time_slot: TimeSlot | None = None
    priority: int | None = None


@dataclass(frozen=True)
class Pricing:
    subtotal: float | None = None
    total: float | None = None
    taxes: float | None = None


@dataclass(frozen=True)
class DayAvailability:
    """
    One day of a cleaner's week, decided once at ingestion:
      kind="slots"   -> only the listed slots are open
      kind="all_day" -> every slot is open
    """
    kind: Literal["slots", "all_day"]
    slots: frozenset[TimeSlot] = frozenset()

    def covers(self, slot: TimeSlot) -> bool:
        return self.kind == "all_day" or slot in self.slots


@dataclass(frozen=True)
class WeeklyAvailability:
    days: Mapping[str, DayAvailability] = field(default_factory=dict)

    def is_available(self, day: str, slot: TimeSlot) -> bool:
        d = self.days.get(day)
        return d is not None and d.covers(slot)


@dataclass(frozen=True)
class OnboardingFlags:
    profile_complete: bool = False
    photo_uploaded: bool = False
    location_set: bool = False
    availability_set: bool = False
    background_check_complete: bool = False
    bank_connected: bool = False

    def complete(self) -> bool:
        return all(
            (
                self.profile_complete,
                self.photo_uploaded,
                self.location_set,
                self.availability_set,
                self.background_check_complete,
                self.bank_connected,
            )
        )


@dataclass(frozen=True)
class CleanerStats:
    rating: float | None = None
    total_reviews: int = 0
    acceptance_rate: float | None = None
    reliability_score: float | None = None


@dataclass(frozen=True)
class CleanerProfile:
    id: int
    user_id: int
    name: str
    verification_status: VerificationStatus
    account_status: AccountStatus
    onboarding: OnboardingFlags
    base_location: GeoPoint | None
    service_radius_mi: float | None
    availability: WeeklyAvailability
    service_types: frozenset[str]
    specialties: tuple[str, ...] = ()
    stats: CleanerStats = CleanerStats()
    last_active_at: datetime | None = None
    upcoming_job_count: int = 0


@dataclass(frozen=True)
class HouseSnapshot:
    id: int
    owner_id: int
    location: GeoPoint | None
    street: str | None = None
    city: str | None = None
    state: str | None = None
    sqft: int | None = None
    bedrooms: int | None = None
    bathrooms: float | None = None
    has_pets: bool = False


@dataclass(frozen=True)
class BookingSnapshot:
    id: int
    customer_id: int
    house_id: int
    service_type: str
    date_options: tuple[DateOption, ...]
    pricing: Pricing
    status: BookingStatus
    cleaner_id: int | None
    version: int
    add_ons: tuple[str, ...] = ()


@dataclass(frozen=True)
class JobRecord:
    """A cleaner's existing job, as the matching engine sees it."""
    id: int
    cleaner_id: int
    status: JobStatus
    start: datetime | None
    location: GeoPoint | None = None
    rating: float | None = None


@dataclass(frozen=True)
class AppSettingsSnapshot:
    cleaner_earnings_rate: float
    default_service_radius_mi: float
