"""
Judge Aggregator Module
=======================
Builds the uniform list of scorers and the per-entry result rows.

The local judge always comes first with key "current". Imported judges
follow with key "imported-<index>", where index is their position in the
imported list. These keys are positional: a stored judge selection must
be re-resolved by display name (find_judge) after the imported list is
reordered or shortened.

Averages only count judges that have started scoring an entry, so an
unscored entry for one judge does not drag the mean toward zero.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .calculator import category_score, entry_total, has_any_criterion_score, round_half_up
from .ranker import rank_rows
from ..config import get_config
from ..models import (
    CategoryGroup,
    Entry,
    ImportedJudgeData,
    JudgeSource,
    Note,
    ResultRow,
    Rubric,
)

logger = logging.getLogger(__name__)

CURRENT_JUDGE_KEY = "current"
IMPORTED_KEY_PREFIX = "imported-"

CATEGORY_COLOR_PRESETS = (
    "#fb923c",
    "#a78bfa",
    "#34d399",
    "#f59e0b",
    "#38bdf8",
    "#f472b6",
    "#facc15",
    "#4ade80",
)


# =============================================================================
# JUDGES
# =============================================================================

def imported_judge_key(index: int) -> str:
    return f"{IMPORTED_KEY_PREFIX}{index}"


def resolve_imported_index(judge_key: str) -> Optional[int]:
    """Position in the imported list encoded by a judge key, or None."""
    if not judge_key or not judge_key.startswith(IMPORTED_KEY_PREFIX):
        return None
    suffix = judge_key[len(IMPORTED_KEY_PREFIX):]
    if not suffix.isdigit():
        return None
    return int(suffix)


def build_judge_sources(
    local_name: Optional[str],
    local_notes: Dict[str, Note],
    imported_judges: Sequence[ImportedJudgeData],
) -> List[JudgeSource]:
    """
    Build the ordered scorer list for one aggregation run.

    Args:
        local_name: Display name of the local judge (blank uses the placeholder)
        local_notes: Local notes per entry id
        imported_judges: Normalized imported judge files

    Returns:
        Local judge first, then one JudgeSource per imported judge
    """
    config = get_config().scoring
    current = JudgeSource(
        key=CURRENT_JUDGE_KEY,
        judge_name=(local_name or "").strip() or config.local_judge_name,
        is_current_judge=True,
        notes=local_notes if local_notes is not None else {},
    )

    imported = [
        JudgeSource(
            key=imported_judge_key(index),
            judge_name=judge.judge_name,
            is_current_judge=False,
            notes=judge.notes,
        )
        for index, judge in enumerate(imported_judges or ())
    ]

    return [current] + imported


def find_judge(
    judges: Iterable[JudgeSource],
    key: Optional[str] = None,
    name: Optional[str] = None
) -> Optional[JudgeSource]:
    """
    Look a judge up by key, falling back to display name.

    Matching by name lets callers recover a selection made before the
    imported list changed.
    """
    judges = list(judges)
    if key is not None:
        for judge in judges:
            if judge.key == key:
                return judge
    if name is not None:
        wanted = name.strip().lower()
        for judge in judges:
            if judge.judge_name.strip().lower() == wanted:
                return judge
    return None


def average_total(judges: Sequence[JudgeSource], entry_id: str, rubric: Optional[Rubric]) -> float:
    """
    Mean entry total over judges that scored at least one criterion.

    Returns 0 when no judge qualifies.
    """
    if rubric is None:
        return 0.0
    totals = [
        entry_total(judge.notes.get(entry_id), rubric)
        for judge in judges
        if has_any_criterion_score(judge.notes.get(entry_id), rubric.criteria)
    ]
    if not totals:
        return 0.0
    return round_half_up(sum(totals) / len(totals))


# =============================================================================
# CATEGORIES
# =============================================================================

def build_category_groups(rubric: Optional[Rubric]) -> List[CategoryGroup]:
    """Group rubric criteria by category label, in first-seen order."""
    if rubric is None:
        return []

    groups: List[CategoryGroup] = []
    index_by_name: Dict[str, int] = {}

    for criterion in rubric.criteria:
        category = criterion.category_label
        existing = index_by_name.get(category)

        if existing is None:
            idx = len(groups)
            fallback = CATEGORY_COLOR_PRESETS[idx % len(CATEGORY_COLOR_PRESETS)]
            groups.append(CategoryGroup(
                category=category,
                criteria=[criterion],
                total_max=criterion.capacity,
                color=rubric.category_colors.get(category) or fallback,
            ))
            index_by_name[category] = idx
            continue

        groups[existing].criteria.append(criterion)
        groups[existing].total_max += criterion.capacity

    return groups


# =============================================================================
# RESULT ROWS
# =============================================================================

def build_result_row(
    entry: Entry,
    rubric: Rubric,
    groups: Sequence[CategoryGroup],
    judges: Sequence[JudgeSource],
) -> ResultRow:
    """Compute every judge's category scores and totals for one entry."""
    notes = [judge.notes.get(entry.id) for judge in judges]

    category_judge_scores = {
        group.category: [category_score(note, group.criteria) for note in notes]
        for group in groups
    }

    return ResultRow(
        entry=entry,
        category_judge_scores=category_judge_scores,
        judge_totals=[entry_total(note, rubric) for note in notes],
        average_total=average_total(judges, entry.id, rubric),
    )


def folder_order(entries: Sequence[Entry]) -> List[Entry]:
    """Entries by their order field, then by their position in the input."""
    indexed = list(enumerate(entries))
    indexed.sort(key=lambda pair: (pair[1].order, pair[0]))
    return [entry for _, entry in indexed]


def build_result_rows(
    rubric: Optional[Rubric],
    judges: Sequence[JudgeSource],
    entries: Sequence[Entry],
    sort_mode: str = "folder",
    can_sort_by_score: bool = True,
) -> List[ResultRow]:
    """
    Build one result row per entry.

    Args:
        rubric: Active rubric (None yields no rows)
        judges: Scorers from build_judge_sources
        entries: Entries to report on
        sort_mode: "folder" for entry order, "score" for ranking by average
        can_sort_by_score: False when totals are hidden; forces folder order

    Returns:
        Result rows in the requested order
    """
    if rubric is None:
        return []
    if sort_mode not in ("folder", "score"):
        raise ValueError(f"Unknown sort mode: {sort_mode}")

    groups = build_category_groups(rubric)
    rows = [build_result_row(entry, rubric, groups, judges) for entry in folder_order(entries)]

    if sort_mode == "score" and can_sort_by_score:
        return rank_rows(rows, lambda row: row.average_total)
    return rows
