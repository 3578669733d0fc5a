"""
Entry Ranking Module
====================
Ranks result rows for a chosen scoring basis.

Features:
- Descending ranking on any score accessor (one judge, the average, ...)
- Deterministic tie-break cascade
- Per-judge and final leaderboards
- Rank statistics

Tie-break cascade, applied only when the primary scores are exactly equal:
1. average_total, descending
2. per-judge totals, each list sorted descending, compared element-wise
   (a missing element counts as 0)
3. entry order, ascending
"""

import logging
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..models import JudgeSource, ResultRow

logger = logging.getLogger(__name__)

ScoreAccessor = Callable[[ResultRow], float]


def _compare_desc(a: float, b: float) -> int:
    if a == b:
        return 0
    return -1 if a > b else 1


def compare_rows(a: ResultRow, b: ResultRow, score_accessor: ScoreAccessor) -> int:
    """Comparator placing the better row first."""
    primary = _compare_desc(score_accessor(a), score_accessor(b))
    if primary:
        return primary

    average = _compare_desc(a.average_total, b.average_total)
    if average:
        return average

    sorted_a = sorted(a.judge_totals, reverse=True)
    sorted_b = sorted(b.judge_totals, reverse=True)
    for i in range(max(len(sorted_a), len(sorted_b))):
        va = sorted_a[i] if i < len(sorted_a) else 0.0
        vb = sorted_b[i] if i < len(sorted_b) else 0.0
        spread = _compare_desc(va, vb)
        if spread:
            return spread

    return (a.entry.order > b.entry.order) - (a.entry.order < b.entry.order)


def rank_rows(rows: Sequence[ResultRow], score_accessor: ScoreAccessor) -> List[ResultRow]:
    """
    Return a new list of rows, best first.

    The input sequence is left untouched; the sort is stable.
    """
    return sorted(rows, key=cmp_to_key(lambda a, b: compare_rows(a, b, score_accessor)))


def judge_total_accessor(judge_index: int) -> ScoreAccessor:
    """Accessor reading one judge's total (0 when the row has no such judge)."""
    def accessor(row: ResultRow) -> float:
        if judge_index < len(row.judge_totals):
            return row.judge_totals[judge_index]
        return 0.0
    return accessor


def average_accessor(row: ResultRow) -> float:
    return row.average_total


@dataclass
class RankingResult:
    """Result of a ranking operation."""
    ranked_rows: List[ResultRow]
    total_count: int
    score_range: Tuple[float, float]  # (min, max)
    score_mean: float
    score_std: float


@dataclass
class Leaderboard:
    """One ranked list with its title."""
    key: str
    title: str
    rows: List[ResultRow]

    def to_dict(self) -> Dict:
        return {
            'key': self.key,
            'title': self.title,
            'entries': [
                {
                    'rank': rank,
                    'entry_id': row.entry.id,
                    'display_name': row.entry.display_name,
                    'average_total': row.average_total,
                    'judge_totals': list(row.judge_totals),
                }
                for rank, row in enumerate(self.rows, 1)
            ],
        }


class EntryRanker:
    """
    Ranks result rows by a score accessor.

    The same cascade serves "rank by one judge", "rank by average" and
    per-judge leaderboards; only the accessor changes.

    Usage:
        ranker = EntryRanker()
        ranked = ranker.rank(rows)
        boards = ranker.leaderboards(rows, judges)
    """

    def __init__(self, score_accessor: Optional[ScoreAccessor] = None):
        """
        Initialize the ranker.

        Args:
            score_accessor: Primary key; defaults to the cross-judge average
        """
        self.score_accessor = score_accessor or average_accessor

    def rank(self, rows: Sequence[ResultRow]) -> List[ResultRow]:
        """Rank rows, best first."""
        return rank_rows(rows, self.score_accessor)

    def top_k(
        self,
        rows: Sequence[ResultRow],
        k: int,
        min_score: Optional[float] = None
    ) -> List[ResultRow]:
        """
        Get the top K rows.

        Args:
            rows: Result rows
            k: Number of rows to return
            min_score: Optional minimum primary score

        Returns:
            Top K rows, ranked
        """
        ranked = self.rank(rows)
        if min_score is not None:
            ranked = [row for row in ranked if self.score_accessor(row) >= min_score]
        return ranked[:k]

    def leaderboards(
        self,
        rows: Sequence[ResultRow],
        judges: Sequence[JudgeSource],
        top_k: Optional[int] = None
    ) -> List[Leaderboard]:
        """
        One leaderboard per judge followed by the final (average) leaderboard.
        """
        boards = []
        for index, judge in enumerate(judges):
            ranked = rank_rows(rows, judge_total_accessor(index))
            boards.append(Leaderboard(
                key=judge.key,
                title=f"Top {judge.judge_name}",
                rows=ranked if top_k is None else ranked[:top_k],
            ))

        final = rank_rows(rows, average_accessor)
        boards.append(Leaderboard(
            key="final",
            title="Top final",
            rows=final if top_k is None else final[:top_k],
        ))
        return boards

    def get_ranking_result(self, rows: Sequence[ResultRow]) -> RankingResult:
        """
        Get detailed ranking statistics.

        Args:
            rows: Result rows to rank

        Returns:
            RankingResult with statistics over the primary score
        """
        ranked = self.rank(rows)

        if not ranked:
            return RankingResult(
                ranked_rows=[],
                total_count=0,
                score_range=(0.0, 0.0),
                score_mean=0.0,
                score_std=0.0
            )

        scores = [self.score_accessor(row) for row in ranked]
        score_mean = sum(scores) / len(scores)
        variance = sum((s - score_mean) ** 2 for s in scores) / len(scores)

        return RankingResult(
            ranked_rows=ranked,
            total_count=len(ranked),
            score_range=(min(scores), max(scores)),
            score_mean=score_mean,
            score_std=variance ** 0.5
        )
