"""
Judging Session Service
=======================
Host-owned store for one judging project.

The session holds the authoritative state (rubric, entries, the local
judge's notes and the imported judges) and routes edits through the
scoring engine:
- direct criterion edits are clamped to the criterion range
- category edits go through the distribution solver
- every edited note gets its final_score recomputed

Reads (judges, rows, leaderboards) are recomputed on every call. Edits
and reads run under one reentrant lock, so concurrent requests see each
edit as a whole read-modify-write cycle.
"""

import functools
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ..config import get_config
from ..logging_config import get_jury_logger, log_entry_score, log_ranking_decision
from ..importing import normalize_imported_judge
from ..models import (
    CategoryGroup,
    CriterionKind,
    Entry,
    ImportedJudgeData,
    JudgeSource,
    Note,
    ResultRow,
    Rubric,
    Score,
)
from ..scoring import (
    CURRENT_JUDGE_KEY,
    DistributionResult,
    EntryRanker,
    Leaderboard,
    build_category_groups,
    build_judge_sources,
    build_result_rows,
    category_score,
    clamp_criterion_value,
    entry_total,
    imported_judge_key,
    is_note_complete,
    parse_numeric,
    progress_stats,
    resolve_imported_index,
    solve_distribution,
)

logger = get_jury_logger("session", log_to_file=False)


def parse_cell_value(value: Any) -> float:
    """
    Parse a value typed into a score cell.

    Accepts numbers and numeric strings with "." or "," as decimal mark.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, str):
        value = value.strip().replace(',', '.')
        if not value:
            raise ValueError("Empty score value")
    number = parse_numeric(value)
    if number is None:
        raise ValueError(f"Not a number: {value!r}")
    return number


def _locked(method):
    """Run a session method while holding the session lock."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class JudgingSession:
    """
    In-memory judging project.

    Usage:
        session = JudgingSession.from_project_dict(project, rubric)
        session.apply_category_value("clip-1", "MONTAGE", "current", 15)
        rows = session.rows(sort_mode="score")
    """

    def __init__(
        self,
        rubric: Optional[Rubric],
        entries: Sequence[Entry] = (),
        judge_name: str = "",
        notes: Optional[Dict[str, Note]] = None,
        imported_judges: Optional[Sequence[ImportedJudgeData]] = None,
        hide_totals: Optional[bool] = None,
        hide_totals_until_all_scored: bool = False,
    ):
        """
        Initialize the session.

        Args:
            rubric: Active rubric (None disables scoring)
            entries: Entries of the project
            judge_name: Local judge display name
            notes: Local notes per entry id
            imported_judges: Judges imported from other files
            hide_totals: Hide totals; defaults to config.results.hide_totals
            hide_totals_until_all_scored: Hide totals while the local judge
                has incomplete entries
        """
        self._lock = threading.RLock()
        self.rubric = rubric
        self.entries: List[Entry] = list(entries)
        self.judge_name = judge_name
        self.notes: Dict[str, Note] = dict(notes or {})
        self.imported_judges: List[ImportedJudgeData] = list(imported_judges or [])
        self.hide_totals = get_config().results.hide_totals if hide_totals is None else hide_totals
        self.hide_totals_until_all_scored = hide_totals_until_all_scored

        for entry_id, note in self.notes.items():
            self._refresh_final_score(entry_id, note, CURRENT_JUDGE_KEY)
        for index, imported in enumerate(self.imported_judges):
            for entry_id, note in imported.notes.items():
                self._refresh_final_score(entry_id, note, imported_judge_key(index))

    # =========================================================================
    # LOADING
    # =========================================================================

    @classmethod
    def from_project_dict(cls, project: Dict[str, Any], rubric: Optional[Rubric]) -> "JudgingSession":
        """
        Build a session from a saved project document.

        Args:
            project: Parsed project file (project, clips, notes, importedJudges)
            rubric: Rubric the project is scored against

        Returns:
            JudgingSession
        """
        if not isinstance(project, dict):
            raise ValueError("Project document must be a JSON object")

        meta = project.get('project') if isinstance(project.get('project'), dict) else {}
        settings = meta.get('settings') if isinstance(meta.get('settings'), dict) else {}

        entries = [
            Entry.from_dict(clip)
            for clip in project.get('clips') or []
            if isinstance(clip, dict) and 'id' in clip
        ]
        notes = {
            str(entry_id): Note.from_dict(note)
            for entry_id, note in (project.get('notes') or {}).items()
            if isinstance(note, dict)
        }
        imported = [
            ImportedJudgeData.from_dict(judge)
            for judge in project.get('importedJudges') or []
            if isinstance(judge, dict)
        ]

        session = cls(
            rubric=rubric,
            entries=entries,
            judge_name=str(meta.get('judgeName') or ''),
            notes=notes,
            imported_judges=imported,
            hide_totals=bool(settings['hideTotals']) if 'hideTotals' in settings else None,
            hide_totals_until_all_scored=bool(settings.get('hideFinalScoreUntilEnd', False)),
        )
        logger.info(
            f"Loaded project with {len(entries)} entries",
            extra={'entries': len(entries), 'imported_judges': len(imported)}
        )
        return session

    @_locked
    def to_project_dict(self) -> Dict[str, Any]:
        """Serialize the scoring state in the project file layout."""
        return {
            'project': {'judgeName': self.judge_name},
            'clips': [
                {
                    'id': entry.id,
                    'displayName': entry.display_name,
                    'fileName': entry.file_name,
                    'author': entry.author,
                    'order': entry.order,
                }
                for entry in self.entries
            ],
            'notes': {entry_id: note.to_dict() for entry_id, note in self.notes.items()},
            'importedJudges': [judge.to_dict() for judge in self.imported_judges],
        }

    # =========================================================================
    # READS
    # =========================================================================

    def judges(self) -> List[JudgeSource]:
        return build_judge_sources(self.judge_name, self.notes, self.imported_judges)

    def category_groups(self) -> List[CategoryGroup]:
        return build_category_groups(self.rubric)

    @property
    def all_scored(self) -> bool:
        return bool(self.entries) and all(
            is_note_complete(self.notes.get(entry.id), self.rubric) for entry in self.entries
        )

    @property
    def totals_hidden(self) -> bool:
        if self.hide_totals:
            return True
        return self.hide_totals_until_all_scored and not self.all_scored

    @property
    def can_sort_by_score(self) -> bool:
        return not self.totals_hidden

    @_locked
    def rows(self, sort_mode: Optional[str] = None) -> List[ResultRow]:
        """Result rows; score order falls back to folder order while totals are hidden."""
        return build_result_rows(
            self.rubric,
            self.judges(),
            self.entries,
            sort_mode=sort_mode or get_config().results.sort_mode,
            can_sort_by_score=self.can_sort_by_score,
        )

    @_locked
    def leaderboards(self, top_k: Optional[int] = None) -> List[Leaderboard]:
        """Per-judge and final leaderboards; empty while totals are hidden."""
        if not self.can_sort_by_score:
            return []
        judges = self.judges()
        rows = build_result_rows(self.rubric, judges, self.entries)
        limit = top_k if top_k is not None else get_config().results.top_k
        boards = EntryRanker().leaderboards(rows, judges, top_k=limit)

        if boards and boards[-1].rows:
            winner = boards[-1].rows[0]
            log_ranking_decision(
                "final_leader",
                {
                    'entry_id': winner.entry.id,
                    'average_total': winner.average_total,
                    'judges': len(judges),
                }
            )
        return boards

    @_locked
    def progress(self) -> Dict[str, int]:
        """Local judge progress over the session entries."""
        return progress_stats([entry.id for entry in self.entries], self.notes, self.rubric)

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def get_entry(self, entry_id: str) -> Entry:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        raise KeyError(f"Unknown entry: {entry_id}")

    def get_judge(self, judge_key: str) -> JudgeSource:
        for judge in self.judges():
            if judge.key == judge_key:
                return judge
        raise KeyError(f"Unknown judge: {judge_key}")

    def _require_rubric(self) -> Rubric:
        if self.rubric is None:
            raise ValueError("No rubric loaded")
        return self.rubric

    def _notes_for(self, judge_key: str) -> Dict[str, Note]:
        if judge_key == CURRENT_JUDGE_KEY:
            return self.notes
        index = resolve_imported_index(judge_key)
        if index is None or index >= len(self.imported_judges):
            raise KeyError(f"Unknown judge: {judge_key}")
        return self.imported_judges[index].notes

    def _imported_index(self, index: int) -> int:
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(self.imported_judges):
            raise KeyError(f"Unknown imported judge: {index}")
        return index

    def _refresh_final_score(self, entry_id: str, note: Note, judge_key: str) -> None:
        if self.rubric is None:
            return
        note.final_score = entry_total(note, self.rubric)
        log_entry_score(
            entry_id,
            judge_key,
            note.final_score,
            category_scores={
                group.category: category_score(note, group.criteria)
                for group in self.category_groups()
            },
        )

    def _store(self, entry_id: str, note: Note, judge_key: str) -> Note:
        note.scored_at = datetime.now().isoformat()
        self._refresh_final_score(entry_id, note, judge_key)
        self._notes_for(judge_key)[entry_id] = note
        return note

    # =========================================================================
    # EDITS
    # =========================================================================

    @_locked
    def update_criterion(
        self,
        entry_id: str,
        criterion_id: str,
        value: Any,
        judge_key: str = CURRENT_JUDGE_KEY,
    ) -> Note:
        """
        Set one criterion value directly.

        Numeric values are clamped to [min, max]; boolean criteria take
        booleans as-is.

        Raises:
            KeyError: Unknown entry, criterion or judge
            ValueError: Value is not a number (or boolean for boolean criteria)
        """
        rubric = self._require_rubric()
        self.get_entry(entry_id)
        criterion = rubric.get_criterion(criterion_id)
        if criterion is None:
            raise KeyError(f"Unknown criterion: {criterion_id}")
        notes = self._notes_for(judge_key)

        if criterion.kind == CriterionKind.BOOLEAN and isinstance(value, bool):
            stored = value
        else:
            stored = clamp_criterion_value(criterion, parse_cell_value(value))

        note = notes[entry_id].copy() if entry_id in notes else Note()
        note.scores[criterion_id] = Score(value=stored, is_valid=True)
        return self._store(entry_id, note, judge_key)

    @_locked
    def apply_category_value(
        self,
        entry_id: str,
        category: str,
        judge_key: str,
        value: Any,
    ) -> DistributionResult:
        """
        Set a category total and redistribute it across its criteria.

        Raises:
            KeyError: Unknown entry, category or judge
            ValueError: Value is not a number
        """
        self._require_rubric()
        self.get_entry(entry_id)
        group = next((g for g in self.category_groups() if g.category == category), None)
        if group is None:
            raise KeyError(f"Unknown category: {category}")
        notes = self._notes_for(judge_key)
        target = parse_cell_value(value)

        previous = notes.get(entry_id)
        result = solve_distribution(group.criteria, previous, target, label=category)

        note = previous.copy() if previous is not None else Note()
        for criterion in group.criteria:
            new_value = result.values.get(criterion.id, 0.0)
            if judge_key == CURRENT_JUDGE_KEY:
                new_value = clamp_criterion_value(criterion, new_value)
            note.scores[criterion.id] = Score(value=new_value, is_valid=True)
        self._store(entry_id, note, judge_key)
        return result

    # =========================================================================
    # IMPORTED JUDGES
    # =========================================================================

    @_locked
    def import_judge(self, raw: Any) -> ImportedJudgeData:
        """
        Normalize and add an imported judge file.

        A judge with the same name (case-insensitive) is replaced; the new
        judge is appended at the end of the list.

        Raises:
            ValueError: The document holds no usable notes for this project
        """
        imported = normalize_imported_judge(raw, self.entries)
        if imported is None:
            raise ValueError("The imported file holds no usable notes for this project")

        wanted = imported.judge_name.lower()
        self.imported_judges = [
            judge for judge in self.imported_judges
            if judge.judge_name.lower() != wanted
        ]
        self.imported_judges.append(imported)

        judge_key = imported_judge_key(len(self.imported_judges) - 1)
        for entry_id, note in imported.notes.items():
            self._refresh_final_score(entry_id, note, judge_key)
        return imported

    @_locked
    def remove_imported_judge(self, index: int) -> ImportedJudgeData:
        """Remove an imported judge; later judges shift down one key."""
        removed = self.imported_judges.pop(self._imported_index(index))
        logger.info(f"Removed imported judge {removed.judge_name}")
        return removed

    @_locked
    def rename_imported_judge(self, index: int, name: str) -> ImportedJudgeData:
        """
        Rename an imported judge.

        Raises:
            KeyError: Unknown index
            ValueError: Blank name
        """
        index = self._imported_index(index)
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValueError("Judge name cannot be empty")
        self.imported_judges[index].judge_name = cleaned
        return self.imported_judges[index]

    @_locked
    def set_rubric(self, rubric: Optional[Rubric]) -> None:
        """Switch rubric and recompute every stored final score."""
        self.rubric = rubric
        for entry_id, note in self.notes.items():
            self._refresh_final_score(entry_id, note, CURRENT_JUDGE_KEY)
        for index, imported in enumerate(self.imported_judges):
            for entry_id, note in imported.notes.items():
                self._refresh_final_score(entry_id, note, imported_judge_key(index))
