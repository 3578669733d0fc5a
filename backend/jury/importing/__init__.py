"""
Judge Import Module
===================
Reads judge files exported by other jury members.

Usage:
    from jury.importing import normalize_imported_judge

    imported = normalize_imported_judge(json.load(fp), entries)
    if imported is None:
        ...  # nothing usable for this project
"""

from .normalizer import (
    normalize_imported_judge,
    normalize_note,
    normalize_score,
    read_judge_name,
)

__all__ = [
    'normalize_imported_judge',
    'normalize_note',
    'normalize_score',
    'read_judge_name',
]
