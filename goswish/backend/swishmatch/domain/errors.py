# swishmatch/domain/errors.py
from __future__ import annotations


class MatchingError(Exception):
    """Base for everything the matching engine raises on purpose."""


class BookingNotFound(MatchingError):
    def __init__(self, booking_id: int) -> None:
        super().__init__(f"booking {booking_id} not found")
        self.booking_id = booking_id


class CleanerNotFound(MatchingError):
    def __init__(self, cleaner_id: int) -> None:
        super().__init__(f"cleaner {cleaner_id} not found")
        self.cleaner_id = cleaner_id


class HouseNotFound(MatchingError):
    def __init__(self, house_id: int) -> None:
        super().__init__(f"house {house_id} not found")
        self.house_id = house_id


class InvalidScoringWeights(MatchingError):
    pass


# -----------------------------
# Claim rejections (booking accept)
# -----------------------------
class ClaimRejected(MatchingError):
    reason: str = "rejected"

    def __init__(self, booking_id: int, message: str | None = None) -> None:
        super().__init__(message or f"booking {booking_id}: {self.reason}")
        self.booking_id = booking_id


class NotFound(ClaimRejected):
    reason = "not_found"


class AlreadyTaken(ClaimRejected):
    """The booking already had a cleaner when we looked."""
    reason = "already_taken"


class AlreadyClaimed(ClaimRejected):
    """We lost the compare-and-swap to a concurrent accept."""
    reason = "already_claimed"


class SchedulingConflict(ClaimRejected):
    reason = "scheduling_conflict"
