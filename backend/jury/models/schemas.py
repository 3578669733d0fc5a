"""
Data Models and Schemas Module
==============================
Defines the data shapes shared by the scoring engine and its host.

This module provides:
- Immutable rubric records (Criterion, Rubric)
- Per-judge score records (Score, Note) and judge handles (JudgeSource)
- Derived views (CategoryGroup, ResultRow)
- Serialization/deserialization methods accepting the project file format

Derived records are recomputed from notes and the rubric on every read;
stored copies (Note.final_score included) are caches only.

Usage:
    from jury.models.schemas import Criterion, Rubric, Note, Score

    rubric = Rubric.from_dict(json.load(fp))
    note = Note(scores={"rythme-synchro": Score(7.5)})
"""

from dataclasses import dataclass, field, asdict, replace
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple, Union
from enum import Enum
import json
import logging
import math

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Général"
DEFAULT_CRITERION_MAX = 10.0

ScoreValue = Union[float, int, str, bool]


# =============================================================================
# ENUMS
# =============================================================================

class CriterionKind(str, Enum):
    """Input widget family of a criterion, used by value validation."""
    NUMERIC = "numeric"
    SLIDER = "slider"
    BOOLEAN = "boolean"
    SELECT = "select"
    TEXT = "text"


class ScoreKind(str, Enum):
    """Tag of a recorded score value."""
    NUMERIC = "numeric"
    TEXT = "text"
    BOOLEAN = "boolean"


class RubricValidationError(ValueError):
    """Raised when a rubric breaks one of its structural invariants."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


def _finite_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key, accepting camelCase and snake_case spellings."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


# =============================================================================
# BASE CLASSES
# =============================================================================

@dataclass
class BaseModel:
    """Base class for mutable data models with common serialization methods."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary, handling nested objects."""
        def convert(obj):
            if isinstance(obj, BaseModel):
                return obj.to_dict()
            elif isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, datetime):
                return obj.isoformat()
            elif isinstance(obj, (list, tuple)):
                return [convert(item) for item in obj]
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            return obj

        return {k: convert(v) for k, v in asdict(self).items()}

    def to_json(self, indent: int = 2) -> str:
        """Convert model to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BaseModel":
        """Create model from dictionary. Override in subclasses for nested objects."""
        return cls(**data)

    @classmethod
    def from_json(cls, json_str: str) -> "BaseModel":
        """Create model from JSON string."""
        return cls.from_dict(json.loads(json_str))


# =============================================================================
# RUBRIC
# =============================================================================

@dataclass(frozen=True)
class Criterion:
    """
    One scoreable dimension of a rubric.

    Attributes:
        id: Identifier, unique within its rubric
        name: Display name
        min: Lower bound of the score range
        max: Upper bound; None means unbounded for clamping and a
            capacity of 10 points for totals and redistribution
        step: Quantization step (> 0) or None for the group default
        category: Category label; blank labels fall into "Général"
        required: Whether a complete note must score this criterion
        kind: Input widget family (validation only)
        options: Choices of a select criterion
        description: Free text
    """
    id: str
    name: str
    min: float = 0.0
    max: Optional[float] = None
    step: Optional[float] = None
    category: Optional[str] = None
    required: bool = False
    kind: CriterionKind = CriterionKind.NUMERIC
    options: Tuple[str, ...] = ()
    description: Optional[str] = None

    @property
    def capacity(self) -> float:
        """Points this criterion contributes to totals."""
        return self.max if self.max is not None else DEFAULT_CRITERION_MAX

    @property
    def category_label(self) -> str:
        """Category label with blank labels mapped to the implicit category."""
        label = (self.category or "").strip()
        return label or DEFAULT_CATEGORY

    def replace(self, **changes: Any) -> "Criterion":
        """Return a copy with the given fields changed."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'name': self.name,
            'type': self.kind.value,
            'min': self.min,
            'max': self.max,
            'step': self.step,
            'required': self.required,
            'category': self.category,
        }
        if self.options:
            data['options'] = list(self.options)
        if self.description:
            data['description'] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Criterion":
        if not isinstance(data, dict):
            raise RubricValidationError([f"criterion record must be an object, got {type(data).__name__}"])
        if not isinstance(data.get('id'), str) or not data['id'].strip():
            raise RubricValidationError([f"criterion {data.get('name', '?')!r} has no id"])
        min_value = _finite_or_none(data.get('min'))
        kind_raw = _pick(data, 'type', 'kind', default=CriterionKind.NUMERIC.value)
        try:
            kind = CriterionKind(kind_raw)
        except ValueError:
            kind = CriterionKind.NUMERIC
        return cls(
            id=str(data['id']),
            name=str(data.get('name', data['id'])),
            min=min_value if min_value is not None else 0.0,
            max=_finite_or_none(data.get('max')),
            step=_finite_or_none(data.get('step')),
            category=data.get('category'),
            required=bool(data.get('required', False)),
            kind=kind,
            options=tuple(str(o) for o in data.get('options') or ()),
            description=data.get('description'),
        )


def compute_total_points(criteria) -> float:
    """Sum of criterion capacities."""
    return float(sum(criterion.capacity for criterion in criteria))


@dataclass(frozen=True)
class Rubric:
    """
    A named, ordered scoring scheme (barème).

    Criterion order is the display order; categories are derived by
    grouping criteria on their label in first-seen order. total_points
    always equals the sum of criterion capacities.
    """
    id: str
    name: str
    criteria: Tuple[Criterion, ...] = ()
    total_points: float = 0.0
    category_colors: Dict[str, str] = field(default_factory=dict)
    description: Optional[str] = None
    is_official: bool = False
    hide_totals_until_all_scored: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'criteria', tuple(self.criteria))
        expected = compute_total_points(self.criteria)
        if self.total_points != expected:
            if self.total_points:
                logger.warning(
                    f"Rubric {self.id} stored total_points {self.total_points} "
                    f"differs from its criteria ({expected}); using {expected}"
                )
            object.__setattr__(self, 'total_points', expected)

    @property
    def categories(self) -> List[str]:
        """Category labels in first-seen order."""
        seen: List[str] = []
        for criterion in self.criteria:
            if criterion.category_label not in seen:
                seen.append(criterion.category_label)
        return seen

    def get_criterion(self, criterion_id: str) -> Optional[Criterion]:
        for criterion in self.criteria:
            if criterion.id == criterion_id:
                return criterion
        return None

    def criteria_in(self, category: str) -> List[Criterion]:
        return [c for c in self.criteria if c.category_label == category]

    def with_criteria(self, criteria) -> "Rubric":
        """Return a new rubric version holding the given criteria."""
        criteria = tuple(criteria)
        return replace(self, criteria=criteria, total_points=compute_total_points(criteria))

    def validation_errors(self) -> List[str]:
        errors = []
        if not self.criteria:
            errors.append("rubric has no criteria")

        seen_ids = set()
        for criterion in self.criteria:
            if not criterion.id:
                errors.append("criterion with empty id")
            elif criterion.id in seen_ids:
                errors.append(f"duplicate criterion id: {criterion.id}")
            seen_ids.add(criterion.id)

            if criterion.max is not None and criterion.min > criterion.max:
                errors.append(f"{criterion.id}: min {criterion.min} is greater than max {criterion.max}")
            if criterion.step is not None and criterion.step <= 0:
                errors.append(f"{criterion.id}: step must be positive")
            if criterion.kind == CriterionKind.SELECT and not criterion.options:
                errors.append(f"{criterion.id}: select criteria need at least one option")

        if self.criteria and self.total_points <= 0:
            errors.append("total points must be positive")
        return errors

    def validate(self) -> "Rubric":
        """Raise RubricValidationError if any invariant is broken."""
        errors = self.validation_errors()
        if errors:
            raise RubricValidationError(errors)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'isOfficial': self.is_official,
            'hideTotalsUntilAllScored': self.hide_totals_until_all_scored,
            'criteria': [c.to_dict() for c in self.criteria],
            'categoryColors': dict(self.category_colors),
            'totalPoints': self.total_points,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rubric":
        if not isinstance(data, dict):
            raise RubricValidationError(["rubric must be an object"])
        criteria_raw = data.get('criteria') or []
        if not isinstance(criteria_raw, list):
            raise RubricValidationError(["criteria must be a list"])
        criteria = tuple(Criterion.from_dict(c) for c in criteria_raw)
        stored_total = _finite_or_none(_pick(data, 'totalPoints', 'total_points'))
        colors = _pick(data, 'categoryColors', 'category_colors', default={}) or {}
        return cls(
            id=str(data.get('id', '')),
            name=str(data.get('name', '')),
            criteria=criteria,
            total_points=stored_total or 0.0,
            category_colors={str(k): str(v) for k, v in colors.items()},
            description=data.get('description'),
            is_official=bool(_pick(data, 'isOfficial', 'is_official', default=False)),
            hide_totals_until_all_scored=bool(
                _pick(data, 'hideTotalsUntilAllScored', 'hide_totals_until_all_scored', default=False)
            ),
        )

    @classmethod
    def from_json(cls, json_str: str) -> "Rubric":
        return cls.from_dict(json.loads(json_str))


@dataclass
class CategoryGroup(BaseModel):
    """
    Derived grouping of rubric criteria by category label.

    Attributes:
        category: Category label
        criteria: Member criteria in rubric order
        total_max: Sum of member capacities
        color: Display color
    """
    category: str
    criteria: List[Criterion] = field(default_factory=list)
    total_max: float = 0.0
    color: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category,
            'criteria': [c.id for c in self.criteria],
            'total_max': self.total_max,
            'color': self.color,
        }


# =============================================================================
# SCORES AND NOTES
# =============================================================================

@dataclass
class Score(BaseModel):
    """
    The value one judge recorded for one criterion on one entry.

    Attributes:
        value: Number, text or boolean as entered
        is_valid: Invalid scores contribute 0 whatever their value
        validation_errors: Messages from value validation
    """
    value: ScoreValue = 0
    is_valid: bool = True
    validation_errors: List[str] = field(default_factory=list)

    @property
    def kind(self) -> ScoreKind:
        # bool is an int subclass, so it is tested first
        if isinstance(self.value, bool):
            return ScoreKind.BOOLEAN
        if isinstance(self.value, (int, float)):
            return ScoreKind.NUMERIC
        return ScoreKind.TEXT

    def to_dict(self) -> Dict[str, Any]:
        data = {'value': self.value, 'isValid': self.is_valid}
        if self.validation_errors:
            data['validationErrors'] = list(self.validation_errors)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Score":
        value = data.get('value')
        if not isinstance(value, (int, float, str, bool)):
            value = 0
        errors = _pick(data, 'validationErrors', 'validation_errors', default=[]) or []
        return cls(
            value=value,
            is_valid=_pick(data, 'isValid', 'is_valid', default=True) is not False,
            validation_errors=[str(e) for e in errors],
        )


@dataclass
class Note(BaseModel):
    """
    One judge's record for one entry.

    Attributes:
        scores: Score per criterion id
        text_notes: Free text
        criterion_notes: Free text per criterion id
        category_notes: Free text per category label
        final_score: Cached total; recomputed, never trusted
        scored_at: ISO timestamp of the last edit
    """
    scores: Dict[str, Score] = field(default_factory=dict)
    text_notes: str = ""
    criterion_notes: Dict[str, str] = field(default_factory=dict)
    category_notes: Dict[str, str] = field(default_factory=dict)
    final_score: Optional[float] = None
    scored_at: Optional[str] = None

    def copy(self) -> "Note":
        return Note(
            scores={k: replace(v, validation_errors=list(v.validation_errors)) for k, v in self.scores.items()},
            text_notes=self.text_notes,
            criterion_notes=dict(self.criterion_notes),
            category_notes=dict(self.category_notes),
            final_score=self.final_score,
            scored_at=self.scored_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'scores': {k: v.to_dict() for k, v in self.scores.items()},
            'textNotes': self.text_notes,
            'criterionNotes': dict(self.criterion_notes),
            'categoryNotes': dict(self.category_notes),
        }
        if self.final_score is not None:
            data['finalScore'] = self.final_score
        if self.scored_at:
            data['scoredAt'] = self.scored_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Note":
        scores_raw = data.get('scores') or {}
        return cls(
            scores={
                str(k): Score.from_dict(v)
                for k, v in scores_raw.items()
                if isinstance(v, dict)
            },
            text_notes=str(_pick(data, 'textNotes', 'text_notes', default='')),
            criterion_notes=dict(_pick(data, 'criterionNotes', 'criterion_notes', default={}) or {}),
            category_notes=dict(_pick(data, 'categoryNotes', 'category_notes', default={}) or {}),
            final_score=_finite_or_none(_pick(data, 'finalScore', 'final_score')),
            scored_at=_pick(data, 'scoredAt', 'scored_at'),
        )


# =============================================================================
# ENTRIES AND JUDGES
# =============================================================================

@dataclass
class Entry(BaseModel):
    """
    A judged entry (clip).

    Attributes:
        id: Entry identifier
        display_name: Title shown to judges
        file_name: Source file name
        author: Optional author
        order: Stable display order, last tie-break of every ranking
    """
    id: str
    display_name: str = ""
    file_name: str = ""
    author: Optional[str] = None
    order: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entry":
        order = _finite_or_none(data.get('order'))
        return cls(
            id=str(data['id']),
            display_name=str(_pick(data, 'displayName', 'display_name', default='')),
            file_name=str(_pick(data, 'fileName', 'file_name', default='')),
            author=data.get('author'),
            order=int(order) if order is not None else 0,
        )


@dataclass
class ImportedJudgeData(BaseModel):
    """One external judge file, normalized to local entry ids."""
    judge_name: str
    notes: Dict[str, Note] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'judgeName': self.judge_name,
            'notes': {k: v.to_dict() for k, v in self.notes.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportedJudgeData":
        notes_raw = data.get('notes') or {}
        return cls(
            judge_name=str(_pick(data, 'judgeName', 'judge_name', default='')),
            notes={str(k): Note.from_dict(v) for k, v in notes_raw.items() if isinstance(v, dict)},
        )


@dataclass
class JudgeSource(BaseModel):
    """
    Uniform view over one scorer.

    Attributes:
        key: "current" for the local judge, "imported-<index>" otherwise
        judge_name: Display name
        is_current_judge: True for the local, live scorer
        notes: Note per entry id (shared with the host store, not copied)
    """
    key: str
    judge_name: str
    is_current_judge: bool = False
    notes: Dict[str, Note] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'judge_name': self.judge_name,
            'is_current_judge': self.is_current_judge,
        }


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class ResultRow(BaseModel):
    """
    Derived per-entry results across judges.

    Attributes:
        entry: The entry
        category_judge_scores: Per category, one score per judge (judge order)
        judge_totals: One entry total per judge (judge order)
        average_total: Mean total over judges that scored the entry
    """
    entry: Entry
    category_judge_scores: Dict[str, List[float]] = field(default_factory=dict)
    judge_totals: List[float] = field(default_factory=list)
    average_total: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entry': self.entry.to_dict(),
            'category_judge_scores': {k: list(v) for k, v in self.category_judge_scores.items()},
            'judge_totals': list(self.judge_totals),
            'average_total': self.average_total,
        }


# =============================================================================
# PRESETS
# =============================================================================

def _official(criterion_id: str, name: str, max_points: float, category: str) -> Criterion:
    return Criterion(
        id=criterion_id,
        name=name,
        min=0.0,
        max=max_points,
        step=0.5,
        required=True,
        category=category,
    )


OFFICIAL_RUBRIC = Rubric(
    id="official-amv-2026",
    name="Barème Officiel AMV",
    description="Barème standard pour les compétitions AMV",
    is_official=True,
    hide_totals_until_all_scored=True,
    category_colors={
        "MONTAGE": "#fb923c",
        "VFX": "#a78bfa",
        "CHOIX ARTISTIQUE": "#34d399",
        "ENCODAGE": "#f59e0b",
        "MIX AUDIO": "#38bdf8",
    },
    criteria=(
        _official("rythme-synchro", "Rythme / Synchro", 10, "MONTAGE"),
        _official("selection-scene", "Sélection de scène", 10, "MONTAGE"),
        _official("incrustation", "Incrust / Intégration", 5, "VFX"),
        _official("coherence", "Cohérence / Logique", 5, "VFX"),
        _official("complexite", "Complexité technique", 5, "VFX"),
        _official("cc-colorimetrie", "CC / Colorimétrie", 4, "CHOIX ARTISTIQUE"),
        _official("concept-story", "Concept / Story", 4, "CHOIX ARTISTIQUE"),
        _official("choix-jury", "Choix du jury", 3, "CHOIX ARTISTIQUE"),
        _official("encodage", "Encodage", 2, "ENCODAGE"),
        _official("mix-audio", "Mix Audio", 2, "MIX AUDIO"),
    ),
    total_points=50.0,
)
