"""
Jury Scoring Module
===================
Computes, aggregates, redistributes and ranks judge scores.

This module implements:
- Per-criterion, per-category and per-entry score computation
- Multi-judge aggregation into result rows
- Redistribution of an edited category total across its criteria
- Ranking with a deterministic tie-break cascade

Usage:
    from jury.scoring import build_judge_sources, build_result_rows, EntryRanker

    judges = build_judge_sources("Alice", notes, imported)
    rows = build_result_rows(rubric, judges, entries)
    boards = EntryRanker().leaderboards(rows, judges)
"""

from .calculator import (
    ValidationResult,
    category_score,
    clamp_criterion_value,
    criterion_score,
    entry_total,
    has_any_criterion_score,
    is_note_complete,
    parse_numeric,
    progress_stats,
    round_half_up,
    validate_criterion_value,
)
from .aggregator import (
    CURRENT_JUDGE_KEY,
    average_total,
    build_category_groups,
    build_judge_sources,
    build_result_row,
    build_result_rows,
    find_judge,
    imported_judge_key,
    resolve_imported_index,
)
from .distribution import (
    DistributionResult,
    DistributionStrategy,
    RoundRobinDistribution,
    LargestRemainderDistribution,
    distribute_category_score,
    get_distribution_strategy,
    group_step,
    solve_distribution,
)
from .ranker import (
    EntryRanker,
    Leaderboard,
    RankingResult,
    average_accessor,
    judge_total_accessor,
    rank_rows,
)

__all__ = [
    # Calculator
    'ValidationResult',
    'category_score',
    'clamp_criterion_value',
    'criterion_score',
    'entry_total',
    'has_any_criterion_score',
    'is_note_complete',
    'parse_numeric',
    'progress_stats',
    'round_half_up',
    'validate_criterion_value',

    # Aggregator
    'CURRENT_JUDGE_KEY',
    'average_total',
    'build_category_groups',
    'build_judge_sources',
    'build_result_row',
    'build_result_rows',
    'find_judge',
    'imported_judge_key',
    'resolve_imported_index',

    # Distribution
    'DistributionResult',
    'DistributionStrategy',
    'RoundRobinDistribution',
    'LargestRemainderDistribution',
    'distribute_category_score',
    'get_distribution_strategy',
    'group_step',
    'solve_distribution',

    # Ranking
    'EntryRanker',
    'Leaderboard',
    'RankingResult',
    'average_accessor',
    'judge_total_accessor',
    'rank_rows',
]
