"""
Score Calculator Module
=======================
Turns one judge's recorded values for one entry into numeric scores.

Every function here is pure: it reads the note and rubric it is given,
never mutates them and never raises for malformed individual scores.
Unknown criterion ids in a note are ignored, unparseable values count
as 0, invalid scores count as 0 and a missing rubric yields 0.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..models import Criterion, CriterionKind, Note, Rubric, ScoreKind

SCORE_DECIMALS = 2

_RADIX_PREFIXES = {"0x": 16, "0o": 8, "0b": 2}


def round_half_up(value: float, decimals: int = SCORE_DECIMALS) -> float:
    """Round with halves going up, as displayed totals are rounded."""
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def _parse_numeric_text(text: str) -> Optional[float]:
    # Decimal, exponent and 0x/0o/0b integer literals; no digit separators
    if not text.isascii() or '_' in text:
        return None
    prefix = text[:2].lower()
    if prefix in _RADIX_PREFIXES and text[2:].isalnum():
        try:
            return float(int(text[2:], _RADIX_PREFIXES[prefix]))
        except ValueError:
            return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_numeric(value: Any) -> Optional[float]:
    """
    Parse a recorded score value to a finite number.

    Booleans are not numbers here; the calculator handles them by tag.
    Blank strings parse to 0. Returns None when no finite number results.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        number = _parse_numeric_text(text)
        if number is None:
            return None
    elif isinstance(value, (int, float)):
        number = float(value)
    else:
        return None
    return number if math.isfinite(number) else None


def clamp_criterion_value(criterion: Criterion, value: float) -> float:
    """Clamp a value to the criterion range; no upper bound when max is unset."""
    clamped = max(value, criterion.min)
    if criterion.max is not None:
        clamped = min(clamped, criterion.max)
    return clamped


# =============================================================================
# SCORES
# =============================================================================

def criterion_score(note: Optional[Note], criterion: Criterion) -> float:
    """
    Numeric contribution of one criterion in a note.

    Args:
        note: The judge's note for the entry (may be None)
        criterion: The criterion to read

    Returns:
        0 when absent or invalid; max (or 1) / 0 for booleans;
        otherwise the parsed value clamped to [min, max]
    """
    if note is None or criterion is None:
        return 0.0
    score = note.scores.get(criterion.id)
    if score is None or not score.is_valid:
        return 0.0

    if score.kind == ScoreKind.BOOLEAN:
        if not score.value:
            return 0.0
        return float(criterion.max) if criterion.max is not None else 1.0

    value = parse_numeric(score.value)
    if value is None:
        return 0.0
    return clamp_criterion_value(criterion, value)


def category_score(note: Optional[Note], criteria: Iterable[Criterion]) -> float:
    """Sum of criterion scores over the given criteria, rounded to 2 decimals."""
    total = sum(criterion_score(note, criterion) for criterion in criteria or ())
    return round_half_up(total)


def entry_total(note: Optional[Note], rubric: Optional[Rubric]) -> float:
    """Total of a note over every rubric criterion, rounded to 2 decimals."""
    if rubric is None:
        return 0.0
    return category_score(note, rubric.criteria)


def has_any_criterion_score(note: Optional[Note], criteria: Iterable[Criterion]) -> bool:
    """Whether the note holds at least one present, valid, non-blank score for these criteria."""
    if note is None:
        return False
    for criterion in criteria or ():
        score = note.scores.get(criterion.id)
        if score is None or not score.is_valid:
            continue
        if score.kind == ScoreKind.TEXT and not str(score.value).strip():
            continue
        return True
    return False


# =============================================================================
# COMPLETENESS AND VALIDATION
# =============================================================================

@dataclass
class ValidationResult:
    """Outcome of validating one entered value."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_criterion_value(value: Any, criterion: Criterion) -> ValidationResult:
    """
    Check an entered value against a criterion before it is stored.

    Required criteria reject blank values. Numeric and slider criteria
    check parseability, range and step alignment from min.
    """
    if _is_blank(value):
        if criterion.required:
            return ValidationResult(False, ["This field is required"])
        return ValidationResult(True)

    errors = []
    if criterion.kind in (CriterionKind.NUMERIC, CriterionKind.SLIDER):
        number = parse_numeric(value)
        if number is None:
            errors.append("Value must be a number")
        else:
            if number < criterion.min:
                errors.append(f"Minimum: {criterion.min:g}")
            if criterion.max is not None and number > criterion.max:
                errors.append(f"Maximum: {criterion.max:g}")
            if criterion.step:
                units = (number - criterion.min) / criterion.step
                if abs(units - round(units)) > 1e-6:
                    errors.append(f"Step of {criterion.step:g}")
    elif criterion.kind == CriterionKind.SELECT:
        if criterion.options and str(value) not in criterion.options:
            errors.append("Value must be one of the options")

    return ValidationResult(not errors, errors)


def is_note_complete(note: Optional[Note], rubric: Optional[Rubric]) -> bool:
    """Whether every required criterion holds a valid, non-blank score."""
    if note is None or rubric is None:
        return False
    for criterion in rubric.criteria:
        if not criterion.required:
            continue
        score = note.scores.get(criterion.id)
        if score is None or not score.is_valid or _is_blank(score.value):
            return False
    return True


def progress_stats(
    entry_ids: Iterable[str],
    notes: Dict[str, Note],
    rubric: Optional[Rubric]
) -> Dict[str, int]:
    """
    Scoring progress of one judge over a list of entries.

    Returns:
        Dict with scored, total, remaining and percentage (0-100)
    """
    ids = list(entry_ids)
    scored = sum(1 for entry_id in ids if is_note_complete(notes.get(entry_id), rubric))
    total = len(ids)
    percentage = int(round_half_up(scored * 100 / total, 0)) if total else 0
    return {
        'scored': scored,
        'total': total,
        'remaining': total - scored,
        'percentage': percentage,
    }
