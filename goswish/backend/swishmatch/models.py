# swishmatch/models.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .domain.types import AccountStatus, BookingStatus, JobStatus, VerificationStatus


class Base(DeclarativeBase):
    pass


# -----------------------------
# Core enums
# -----------------------------
class NotificationType(str, enum.Enum):
    job_offer = "job_offer"
    booking_accepted = "booking_accepted"


class OutboxStatus(str, enum.Enum):
    pending = "pending"
    delivered = "delivered"
    failed = "failed"


class IntegrationType(str, enum.Enum):
    webhook = "webhook"


class JobRunStatus(str, enum.Enum):
    running = "running"
    success = "success"
    failed = "failed"


# -----------------------------
# Marketplace
# -----------------------------
class House(Base):
    __tablename__ = "houses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(Integer, index=True)

    street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(80), nullable=True)
    state: Mapped[str | None] = mapped_column(String(2), nullable=True)
    zipcode: Mapped[str | None] = mapped_column(String(10), nullable=True)

    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)

    sqft: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bedrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bathrooms: Mapped[float | None] = mapped_column(Float, nullable=True)
    has_pets: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Cleaner(Base):
    __tablename__ = "cleaners"
    __table_args__ = (UniqueConstraint("user_id", name="uq_cleaner_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(120), default="")

    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(VerificationStatus), default=VerificationStatus.pending, index=True
    )
    account_status: Mapped[AccountStatus] = mapped_column(
        Enum(AccountStatus), default=AccountStatus.active, index=True
    )

    # onboarding checklist; all six must be true to receive offers
    profile_complete: Mapped[bool] = mapped_column(Boolean, default=False)
    photo_uploaded: Mapped[bool] = mapped_column(Boolean, default=False)
    location_set: Mapped[bool] = mapped_column(Boolean, default=False)
    availability_set: Mapped[bool] = mapped_column(Boolean, default=False)
    background_check_complete: Mapped[bool] = mapped_column(Boolean, default=False)
    bank_connected: Mapped[bool] = mapped_column(Boolean, default=False)

    base_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    base_lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    service_radius_mi: Mapped[float | None] = mapped_column(Float, nullable=True)

    # {"monday": {"morning": true, ...}} or {"monday": ["9:00 AM", "5:00 PM"]}
    availability_json: Mapped[str] = mapped_column(Text, default="{}")
    # ["regular", "deep", ...]
    service_types_json: Mapped[str] = mapped_column(Text, default="[]")
    specialties_json: Mapped[str] = mapped_column(Text, default="[]")

    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_reviews: Mapped[int] = mapped_column(Integer, default=0)
    acceptance_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    reliability_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    last_active_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    upcoming_job_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_id: Mapped[int] = mapped_column(Integer, index=True)
    house_id: Mapped[int] = mapped_column(Integer, index=True)

    service_type: Mapped[str] = mapped_column(String(40))

    # [{"date": "2026-10-20T09:00:00", "time_slot": "morning", "priority": 1}, ...]
    date_options_json: Mapped[str] = mapped_column(Text, default="[]")
    add_ons_json: Mapped[str] = mapped_column(Text, default="[]")

    subtotal: Mapped[float | None] = mapped_column(Float, nullable=True)
    total: Mapped[float | None] = mapped_column(Float, nullable=True)
    taxes: Mapped[float | None] = mapped_column(Float, nullable=True)

    status: Mapped[BookingStatus] = mapped_column(Enum(BookingStatus), default=BookingStatus.placed, index=True)

    # Claim state. Only ever written through the compare-and-swap in the bookings repo.
    cleaner_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    version: Mapped[int] = mapped_column(Integer, default=0)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (UniqueConstraint("booking_id", name="uq_job_booking"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    booking_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    customer_id: Mapped[int] = mapped_column(Integer, index=True)
    cleaner_id: Mapped[int] = mapped_column(Integer, index=True)
    house_id: Mapped[int] = mapped_column(Integer, index=True)

    service_type: Mapped[str] = mapped_column(String(40))
    status: Mapped[JobStatus] = mapped_column(Enum(JobStatus), default=JobStatus.scheduled, index=True)

    scheduled_date: Mapped[datetime] = mapped_column(DateTime, index=True)
    start_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    duration_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    earnings: Mapped[float] = mapped_column(Float, default=0.0)

    rating: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Notification(Base):
    """
    Inbox rows for both sides of the marketplace.
    Offers are rows with type=job_offer and related_id=<booking id>.
    """
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    cleaner_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    type: Mapped[NotificationType] = mapped_column(Enum(NotificationType), index=True)
    title: Mapped[str] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text)

    related_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    # offer-only fields
    rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    match_tier: Mapped[str | None] = mapped_column(String(40), nullable=True)
    earnings_estimate: Mapped[float | None] = mapped_column(Float, nullable=True)

    read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class AppSettings(Base):
    """Single row keyed "app"; null columns fall back to config defaults."""
    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(40), primary_key=True)
    cleaner_earnings_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    default_service_radius_mi: Mapped[float | None] = mapped_column(Float, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class MatchingEvent(Base):
    __tablename__ = "matching_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    booking_id: Mapped[int] = mapped_column(Integer, index=True)
    event_type: Mapped[str] = mapped_column(String(60), index=True)
    payload_json: Mapped[str] = mapped_column(Text, default="{}")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)


# -----------------------------
# Integrations / ops
# -----------------------------
class Integration(Base):
    __tablename__ = "integrations"
    __table_args__ = (UniqueConstraint("name", name="uq_integration_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(80))
    type: Mapped[IntegrationType] = mapped_column(Enum(IntegrationType))

    # off until someone turns it on
    enabled: Mapped[bool] = mapped_column(Boolean, default=False)

    # {"url": "...", "secret": "..."}
    config_json: Mapped[str] = mapped_column(Text, default="{}")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class OutboxEvent(Base):
    __tablename__ = "outbox_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_type: Mapped[str] = mapped_column(String(120), index=True)
    payload_json: Mapped[str] = mapped_column(Text)

    status: Mapped[OutboxStatus] = mapped_column(Enum(OutboxStatus), default=OutboxStatus.pending, index=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0)

    next_attempt_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class JobRun(Base):
    """Tracks scheduler executions (dispatch, sweep)."""
    __tablename__ = "job_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_name: Mapped[str] = mapped_column(String(80), index=True)

    status: Mapped[JobRunStatus] = mapped_column(Enum(JobRunStatus), default=JobRunStatus.running, index=True)

    started_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary_json: Mapped[str | None] = mapped_column(Text, nullable=True)
