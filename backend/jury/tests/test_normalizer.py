"""
Judge Import Tests
==================
Tests for normalizing judge files exported by other jury members.
"""

import os
import sys

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from jury.importing import normalize_imported_judge, normalize_note, read_judge_name
from jury.models import Entry


# =============================================================================
# TEST FIXTURES
# =============================================================================

def create_test_entries():
    """Local entries of the project."""
    return [
        Entry(id="local-1", display_name="Opening", file_name="Opening.mp4", author="Kai"),
        Entry(id="local-2", display_name="Finale", file_name="finale.mkv", author="Mia"),
        Entry(id="local-3", display_name="Interlude", file_name="inter.mp4", author=None),
    ]


def create_test_export(notes, clips=None, judge_name="Bob"):
    """An exported project document as another judge would send it."""
    return {
        'version': '1.0',
        'project': {'judgeName': judge_name},
        'clips': clips or [],
        'notes': notes,
    }


def simple_note(value=5):
    return {'scores': {'a': {'value': value, 'isValid': True}}}


# =============================================================================
# MATCHING TESTS
# =============================================================================

def test_match_by_local_id():
    """Test that notes keyed by a local id are kept as-is."""
    result = normalize_imported_judge(create_test_export({'local-2': simple_note()}), create_test_entries())

    assert result is not None
    assert list(result.notes) == ['local-2']
    assert result.judge_name == "Bob"

    print("[PASS] Local id match test passed")


def test_match_by_file_name():
    """Test case-insensitive file name matching."""
    export = create_test_export(
        {'their-1': simple_note(7)},
        clips=[{'id': 'their-1', 'fileName': 'OPENING.MP4', 'displayName': 'Other title'}],
    )

    result = normalize_imported_judge(export, create_test_entries())

    assert list(result.notes) == ['local-1']
    assert result.notes['local-1'].scores['a'].value == 7

    print("[PASS] File name match test passed")


def test_match_by_author_and_title():
    """Test author|display name matching when file names differ."""
    export = create_test_export(
        {'their-2': simple_note(), 'their-3': simple_note()},
        clips=[
            {'id': 'their-2', 'fileName': 'renamed.mkv', 'displayName': 'FINALE', 'author': 'mia'},
            {'id': 'their-3', 'fileName': 'x.mp4', 'displayName': 'interlude'},
        ],
    )

    result = normalize_imported_judge(export, create_test_entries())

    assert sorted(result.notes) == ['local-2', 'local-3']

    print("[PASS] Author and title match test passed")


def test_unmatched_notes_skipped():
    """Test that notes for unknown clips are dropped."""
    export = create_test_export(
        {'local-1': simple_note(), 'ghost': simple_note(), 'their-9': simple_note()},
        clips=[{'id': 'their-9', 'fileName': 'nothing.mp4', 'displayName': 'Nothing'}],
    )

    result = normalize_imported_judge(export, create_test_entries())

    assert list(result.notes) == ['local-1']

    print("[PASS] Unmatched note test passed")


def test_duplicate_local_keys_match_last_entry():
    """Test that the last local entry wins when file names or titles repeat."""
    entries = create_test_entries() + [
        Entry(id="local-4", display_name="Opening", file_name="opening.MP4", author="Kai"),
    ]
    by_file = create_test_export(
        {'their-1': simple_note()},
        clips=[{'id': 'their-1', 'fileName': 'Opening.mp4', 'displayName': 'x'}],
    )
    by_title = create_test_export(
        {'their-2': simple_note()},
        clips=[{'id': 'their-2', 'fileName': 'renamed.mp4', 'displayName': 'Opening', 'author': 'Kai'}],
    )

    assert list(normalize_imported_judge(by_file, entries).notes) == ['local-4']
    assert list(normalize_imported_judge(by_title, entries).notes) == ['local-4']

    print("[PASS] Duplicate key match test passed")


# =============================================================================
# RECORD SHAPE TESTS
# =============================================================================

def test_malformed_records_skipped():
    """Test that one malformed record does not abort the import."""
    export = create_test_export({
        'local-1': 'not a note',
        'local-2': {'scores': 'nope'},
        'local-3': {
            'scores': {
                'a': {'value': 4},
                'b': 'garbage',
                'c': {'value': {'nested': True}, 'isValid': False},
            },
        },
    })

    result = normalize_imported_judge(export, create_test_entries())

    assert list(result.notes) == ['local-3']
    scores = result.notes['local-3'].scores
    assert sorted(scores) == ['a', 'c']
    assert scores['a'].value == 4
    assert scores['a'].is_valid is True
    assert scores['c'].value == 0
    assert scores['c'].is_valid is False

    print("[PASS] Malformed record test passed")


def test_note_fields():
    """Test final score and free-text fields."""
    note = normalize_note({
        'scores': {},
        'finalScore': 12.5,
        'text_notes': 'good pacing',
        'criterionNotes': {'a': 'sync', 'b': 3},
        'category_notes': {'VFX': 'clean'},
    })

    assert note.final_score == 12.5
    assert note.text_notes == 'good pacing'
    assert note.criterion_notes == {'a': 'sync'}
    assert note.category_notes == {'VFX': 'clean'}

    assert normalize_note({'scores': {}, 'finalScore': 'high'}).final_score is None
    assert normalize_note({'scores': {}, 'finalScore': True}).final_score is None
    assert normalize_note({'textNotes': 'no scores'}) is None

    print("[PASS] Note field test passed")


# =============================================================================
# DOCUMENT TESTS
# =============================================================================

def test_judge_name_sources():
    """Test judge name lookup order and default."""
    assert read_judge_name({'project': {'judgeName': ' Ana '}}) == "Ana"
    assert read_judge_name({'project': {'judge_name': 'Ben'}}) == "Ben"
    assert read_judge_name({'judgeName': 'Cy'}) == "Cy"
    assert read_judge_name({'project': 'x'}) == ""

    export = create_test_export({'local-1': simple_note()}, judge_name="   ")
    assert normalize_imported_judge(export, create_test_entries()).judge_name == "Juge importe"

    print("[PASS] Judge name test passed")


def test_rejected_documents():
    """Test documents that yield no imported judge."""
    entries = create_test_entries()

    assert normalize_imported_judge(None, entries) is None
    assert normalize_imported_judge([1, 2], entries) is None
    assert normalize_imported_judge({'project': {}}, entries) is None
    assert normalize_imported_judge({'notes': []}, entries) is None
    assert normalize_imported_judge(create_test_export({'ghost': simple_note()}), entries) is None
    assert normalize_imported_judge(create_test_export({}), entries) is None

    print("[PASS] Rejected document test passed")


def run_all_tests():
    """Run all import tests."""
    print("\n" + "="*60)
    print("JUDGE IMPORT TESTS")
    print("="*60 + "\n")

    print("\n--- Matching Tests ---")
    test_match_by_local_id()
    test_match_by_file_name()
    test_match_by_author_and_title()
    test_unmatched_notes_skipped()
    test_duplicate_local_keys_match_last_entry()

    print("\n--- Record Shape Tests ---")
    test_malformed_records_skipped()
    test_note_fields()

    print("\n--- Document Tests ---")
    test_judge_name_sources()
    test_rejected_documents()

    print("\n" + "="*60)
    print("ALL IMPORT TESTS PASSED")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_all_tests()
