"""
Data Models Package
===================
Exports all data model classes for the jury scoring engine.

Usage:
    from jury.models import Criterion, Rubric, Note, Score
    from jury.models import JudgeSource, ResultRow, Entry
"""

from .schemas import (
    # Enums
    CriterionKind,
    ScoreKind,

    # Errors
    RubricValidationError,

    # Base
    BaseModel,

    # Rubric
    Criterion,
    Rubric,
    CategoryGroup,
    compute_total_points,
    OFFICIAL_RUBRIC,
    DEFAULT_CATEGORY,
    DEFAULT_CRITERION_MAX,

    # Scores
    Score,
    ScoreValue,
    Note,

    # Entries and judges
    Entry,
    ImportedJudgeData,
    JudgeSource,

    # Results
    ResultRow,
)

__all__ = [
    # Enums
    'CriterionKind',
    'ScoreKind',

    # Errors
    'RubricValidationError',

    # Base
    'BaseModel',

    # Rubric
    'Criterion',
    'Rubric',
    'CategoryGroup',
    'compute_total_points',
    'OFFICIAL_RUBRIC',
    'DEFAULT_CATEGORY',
    'DEFAULT_CRITERION_MAX',

    # Scores
    'Score',
    'ScoreValue',
    'Note',

    # Entries and judges
    'Entry',
    'ImportedJudgeData',
    'JudgeSource',

    # Results
    'ResultRow',
]
