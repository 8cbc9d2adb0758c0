# tests/test_ranking.py
from factories import candidate, cleaner
from swishmatch.domain.ranking import CandidateRanker
from swishmatch.domain.scoring import MatchScore, ScoreBreakdown

ZERO = ScoreBreakdown(0, 0, 0, 0, 0, 0, 0)


def _scored(cleaner_id: int, total: float):
    return candidate(cleaner(cleaner_id), 1.0), MatchScore(cleaner_id=cleaner_id, total=total, breakdown=ZERO)


def test_descending_with_dense_ranks():
    ranked = CandidateRanker().rank([_scored(1, 50.0), _scored(2, 80.0), _scored(3, 65.5)])
    assert [r.cleaner_id for r in ranked] == [2, 3, 1]
    assert [r.rank for r in ranked] == [1, 2, 3]


def test_ties_keep_input_order():
    ranked = CandidateRanker().rank([_scored(4, 70.0), _scored(2, 70.0), _scored(9, 70.0)])
    assert [r.cleaner_id for r in ranked] == [4, 2, 9]


def test_limit_truncates_after_sorting():
    scored = [_scored(i, float(i)) for i in range(1, 21)]
    ranked = CandidateRanker().rank(scored, limit=15)
    assert len(ranked) == 15
    assert ranked[0].cleaner_id == 20
    assert ranked[-1].cleaner_id == 6


def test_empty_input():
    assert CandidateRanker().rank([]) == []
    assert CandidateRanker().rank([_scored(1, 1.0)], limit=0) == []
