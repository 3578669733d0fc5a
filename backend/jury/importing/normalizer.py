"""
Imported Judge Normalizer
=========================
Turns another judge's exported project document into ImportedJudgeData
keyed by local entry ids.

Entry matching, in order:
1. the imported note key is a local entry id
2. the imported clip's file name (case-insensitive)
3. the imported clip's "author|display name" pair (case-insensitive)

Each record is checked on its own; a malformed note or score is skipped
and never aborts the import.
"""

import math
from typing import Any, Dict, Iterable, Optional

from ..config import get_config
from ..logging_config import get_jury_logger
from ..models import Entry, ImportedJudgeData, Note, Score

logger = get_jury_logger("importing", log_to_file=False)


def _as_dict(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _match_key(author: Optional[str], display_name: str) -> str:
    return f"{(author or '').lower()}|{display_name.lower()}"


def read_judge_name(root: Dict[str, Any]) -> str:
    """Judge name from project.judgeName, project.judge_name or judgeName."""
    project = _as_dict(root.get('project')) or {}
    for candidate in (project.get('judgeName'), project.get('judge_name'), root.get('judgeName')):
        if isinstance(candidate, str):
            return candidate.strip()
    return ""


def _imported_clips(root: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    clips = root.get('clips')
    if not isinstance(clips, list):
        return {}

    by_id = {}
    for raw in clips:
        clip = _as_dict(raw)
        if clip is None or not isinstance(clip.get('id'), str):
            continue
        author = clip.get('author')
        by_id[clip['id']] = {
            'file_name': _as_str(clip.get('fileName')),
            'display_name': _as_str(clip.get('displayName')),
            'author': author if isinstance(author, str) else None,
        }
    return by_id


def normalize_score(raw: Any) -> Optional[Score]:
    """Score from a raw record; non-scalar values become 0. None if not an object."""
    record = _as_dict(raw)
    if record is None:
        return None
    value = record.get('value')
    if not isinstance(value, (int, float, str, bool)):
        value = 0
    return Score(value=value, is_valid=record.get('isValid') is not False)


def normalize_note(raw: Any) -> Optional[Note]:
    """Note from a raw record, or None when it has no scores object."""
    record = _as_dict(raw)
    if record is None:
        return None
    scores_raw = _as_dict(record.get('scores'))
    if scores_raw is None:
        return None

    scores = {}
    for criterion_id, score_raw in scores_raw.items():
        score = normalize_score(score_raw)
        if score is None:
            logger.debug(f"Skipping malformed score for criterion {criterion_id}")
            continue
        scores[str(criterion_id)] = score

    final_score = record.get('finalScore')
    if isinstance(final_score, bool) or not isinstance(final_score, (int, float)) \
            or not math.isfinite(final_score):
        final_score = None

    text_notes = record.get('textNotes', record.get('text_notes'))
    criterion_notes = _as_dict(record.get('criterionNotes', record.get('criterion_notes'))) or {}
    category_notes = _as_dict(record.get('categoryNotes', record.get('category_notes'))) or {}

    return Note(
        scores=scores,
        text_notes=text_notes if isinstance(text_notes, str) else "",
        criterion_notes={str(k): v for k, v in criterion_notes.items() if isinstance(v, str)},
        category_notes={str(k): v for k, v in category_notes.items() if isinstance(v, str)},
        final_score=float(final_score) if final_score is not None else None,
    )


def normalize_imported_judge(raw: Any, entries: Iterable[Entry]) -> Optional[ImportedJudgeData]:
    """
    Normalize an exported judge document against the local entries.

    Args:
        raw: Parsed JSON document (any type is accepted)
        entries: Local entries to match against

    Returns:
        ImportedJudgeData, or None when the document is not an object,
        has no notes object, or no note matched a local entry
    """
    root = _as_dict(raw)
    if root is None:
        logger.info("Rejected judge import: document is not an object")
        return None

    notes_raw = _as_dict(root.get('notes'))
    if notes_raw is None:
        logger.info("Rejected judge import: no notes object")
        return None

    entries = list(entries)
    local_ids = {entry.id for entry in entries}
    by_file_name = {}
    by_author_title = {}
    for entry in entries:
        by_file_name[entry.file_name.lower()] = entry.id
        by_author_title[_match_key(entry.author, entry.display_name)] = entry.id

    imported_clips = _imported_clips(root)

    notes: Dict[str, Note] = {}
    skipped = 0
    for source_id, note_raw in notes_raw.items():
        target_id = source_id if source_id in local_ids else None
        if target_id is None:
            clip = imported_clips.get(source_id)
            if clip is not None:
                target_id = (
                    by_file_name.get(clip['file_name'].lower())
                    or by_author_title.get(_match_key(clip['author'], clip['display_name']))
                )
        if target_id is None:
            skipped += 1
            logger.debug(f"No local entry matches imported note {source_id}")
            continue

        note = normalize_note(note_raw)
        if note is None:
            skipped += 1
            logger.debug(f"Skipping malformed imported note {source_id}")
            continue
        notes[target_id] = note

    if not notes:
        logger.info("Rejected judge import: no note matched a local entry")
        return None

    judge_name = read_judge_name(root) or get_config().scoring.imported_judge_name
    logger.info(
        f"Normalized imported judge {judge_name}",
        extra={'judge_name': judge_name, 'matched': len(notes), 'skipped': skipped}
    )
    return ImportedJudgeData(judge_name=judge_name, notes=notes)
