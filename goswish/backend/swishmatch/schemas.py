from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal


class FunnelOut(BaseModel):
    total: int = Field(..., ge=0)
    after_verification: int = Field(..., ge=0)
    after_status: int = Field(..., ge=0)
    after_onboarding: int = Field(..., ge=0)
    after_geography: int = Field(..., ge=0)
    after_availability: int = Field(..., ge=0)
    after_service_type: int = Field(..., ge=0)
    after_conflicts: int = Field(..., ge=0)
    final: int = Field(..., ge=0)


class CandidateOut(BaseModel):
    cleaner_id: int
    name: str
    distance_mi: float
    radius_mi: float


class ExclusionOut(BaseModel):
    cleaner_id: int
    stage: str
    reason: str


class EligibilityOut(BaseModel):
    booking_id: int
    candidates: list[CandidateOut]
    excluded: list[ExclusionOut]
    funnel: FunnelOut
    low_supply: bool
    warnings: list[str] = []


class RankedOut(BaseModel):
    rank: int
    cleaner_id: int
    name: str
    distance_mi: float
    total: float
    breakdown: dict[str, float]


class RankingOut(BaseModel):
    booking_id: int
    ranked: list[RankedOut]
    funnel: FunnelOut
    low_supply: bool


class OfferOut(BaseModel):
    notification_id: int
    cleaner_id: int
    rank: int
    score: float
    match_tier: str
    earnings_estimate: float


class BroadcastOut(BaseModel):
    booking_id: int
    skipped: str | None = None
    offers: list[OfferOut] = []
    funnel: FunnelOut | None = None
    low_supply: bool = False
    search_radius_mi: float | None = None
    eligible_count: int = 0
    replaced_offers: int = 0
    market_condition: str | None = None
    surge_multiplier: float | None = None
    expansions: int = 0


class AcceptIn(BaseModel):
    cleaner_id: int
    date: datetime
    start_time: datetime | None = None
    end_time: datetime | None = None


class JobOut(BaseModel):
    job_id: int
    booking_id: int
    cleaner_id: int
    customer_id: int
    house_id: int
    service_type: str
    status: str
    scheduled_date: datetime
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_hours: float | None = None
    amount: float | None = None
    earnings: float


class EligibilityExplainOut(BaseModel):
    booking_id: int
    cleaner_id: int
    eligible: bool
    distance_mi: float
    radius_mi: float
    reasons: list[str]
    failed_stages: list[str]


class ScoreExplainOut(BaseModel):
    booking_id: int
    cleaner_id: int
    total: float
    breakdown: dict[str, float]
    drivers: dict[str, str]


class IntegrationCreate(BaseModel):
    name: str
    type: Literal["webhook"] = "webhook"
    enabled: bool = True
    url: str
    secret: str | None = None


class IntegrationPatch(BaseModel):
    enabled: bool | None = None
    url: str | None = None
    # empty string clears the secret (unsigned deliveries)
    secret: str | None = None


class IntegrationOut(BaseModel):
    id: int
    name: str
    type: str
    enabled: bool
    url: str | None = None
    signed: bool = False
    created_at: datetime


class DispatchResult(BaseModel):
    delivered: int
    failed: int
    sinks: int | None = None
    events: int | None = None
    skipped_no_sinks: int | None = None


class SweepResult(BaseModel):
    checked: int
    rebroadcast: int
    offers: int
    errors: int
