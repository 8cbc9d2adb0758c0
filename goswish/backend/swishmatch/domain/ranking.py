# swishmatch/domain/ranking.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .eligibility import EligibleCandidate
from .scoring import MatchScore


@dataclass(frozen=True)
class RankedCandidate:
    rank: int
    candidate: EligibleCandidate
    score: MatchScore

    @property
    def cleaner_id(self) -> int:
        return self.candidate.cleaner.id


class CandidateRanker:
    """
    Stable sort by total, descending. Equal totals keep input order, and the
    pool is always loaded ordered by cleaner id, so ties resolve by id.
    """

    def rank(
        self,
        scored: Iterable[tuple[EligibleCandidate, MatchScore]],
        limit: int | None = None,
    ) -> list[RankedCandidate]:
        ordered = sorted(scored, key=lambda pair: -pair[1].total)
        if limit is not None:
            ordered = ordered[: max(0, limit)]
        return [RankedCandidate(rank=i + 1, candidate=c, score=s) for i, (c, s) in enumerate(ordered)]
