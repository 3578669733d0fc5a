"""
Judging Session Tests
=====================
Tests for the host session: loading, edits, imports and derived views.
"""

import os
import sys
import threading
import time

import pytest

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from jury.models import Criterion, Entry, ImportedJudgeData, Note, Rubric, Score, OFFICIAL_RUBRIC
from jury.services import judging_session as session_module
from jury.services.judging_session import JudgingSession, parse_cell_value


# =============================================================================
# TEST FIXTURES
# =============================================================================

def create_test_rubric() -> Rubric:
    return Rubric(
        id="test",
        name="Test",
        criteria=(
            Criterion(id="a", name="A", min=0, max=10, step=1, category="MONTAGE", required=True),
            Criterion(id="b", name="B", min=0, max=10, step=1, category="MONTAGE", required=True),
            Criterion(id="c", name="C", min=1, max=5, step=0.5, category="VFX"),
        ),
    )


def create_test_session(**kwargs) -> JudgingSession:
    entries = [
        Entry(id="e1", display_name="One", file_name="one.mp4", order=0),
        Entry(id="e2", display_name="Two", file_name="two.mp4", order=1),
    ]
    return JudgingSession(rubric=create_test_rubric(), entries=entries, judge_name="Alice", **kwargs)


def create_test_export(judge_name="Bob", value=6):
    return {
        'project': {'judgeName': judge_name},
        'clips': [{'id': 'x1', 'fileName': 'ONE.mp4', 'displayName': 'One'}],
        'notes': {'x1': {'scores': {'a': {'value': value, 'isValid': True}}, 'finalScore': 99}},
    }


# =============================================================================
# LOADING TESTS
# =============================================================================

def test_from_project_dict():
    """Test building a session from a saved project file."""
    project = {
        'version': '1.0',
        'project': {'judgeName': 'Alice', 'settings': {'hideTotals': False}},
        'clips': [
            {'id': 'e1', 'fileName': 'one.mp4', 'displayName': 'One', 'order': 1},
            {'id': 'e2', 'fileName': 'two.mp4', 'displayName': 'Two', 'order': 0},
            {'fileName': 'no-id.mp4'},
        ],
        'notes': {
            'e1': {'scores': {'a': {'value': 4, 'isValid': True}}, 'finalScore': 42},
        },
        'importedJudges': [
            {'judgeName': 'Bob', 'notes': {'e2': {'scores': {'b': {'value': 3, 'isValid': True}}}}},
        ],
    }

    session = JudgingSession.from_project_dict(project, create_test_rubric())

    assert [e.id for e in session.entries] == ['e1', 'e2']
    assert session.judge_name == 'Alice'
    assert session.notes['e1'].final_score == 4.0
    assert session.imported_judges[0].notes['e2'].final_score == 3.0
    assert [j.key for j in session.judges()] == ['current', 'imported-0']

    with pytest.raises(ValueError):
        JudgingSession.from_project_dict([], create_test_rubric())

    print("[PASS] Project loading test passed")


def test_to_project_dict_round_trip():
    """Test that exported state loads back into an equivalent session."""
    session = create_test_session()
    session.update_criterion("e1", "a", 7)
    session.import_judge(create_test_export())

    restored = JudgingSession.from_project_dict(session.to_project_dict(), create_test_rubric())

    assert restored.notes['e1'].scores['a'].value == 7
    assert restored.imported_judges[0].judge_name == "Bob"
    assert [e.id for e in restored.entries] == ['e1', 'e2']

    print("[PASS] Project round trip test passed")


# =============================================================================
# EDIT TESTS
# =============================================================================

def test_update_criterion_clamps_and_recomputes():
    """Test direct criterion edits."""
    session = create_test_session()

    note = session.update_criterion("e1", "a", 14)
    assert note.scores['a'].value == 10
    assert note.final_score == 10.0
    assert note.scored_at is not None

    session.update_criterion("e1", "c", "0,5")
    assert session.notes['e1'].scores['c'].value == 1.0
    assert session.notes['e1'].final_score == 11.0

    print("[PASS] Criterion edit test passed")


def test_update_criterion_errors():
    """Test errors raised by direct edits."""
    session = create_test_session()

    with pytest.raises(KeyError):
        session.update_criterion("ghost", "a", 1)
    with pytest.raises(KeyError):
        session.update_criterion("e1", "ghost", 1)
    with pytest.raises(KeyError):
        session.update_criterion("e1", "a", 1, judge_key="imported-0")
    with pytest.raises(ValueError):
        session.update_criterion("e1", "a", "abc")
    with pytest.raises(ValueError):
        session.update_criterion("e1", "a", "")

    assert session.notes == {}

    print("[PASS] Criterion edit error test passed")


def test_apply_category_value_local():
    """Test category edits for the local judge."""
    session = create_test_session()
    session.update_criterion("e1", "a", 4)
    session.update_criterion("e1", "b", 6)

    result = session.apply_category_value("e1", "MONTAGE", "current", 6)

    assert result.values == {'a': 2.0, 'b': 4.0}
    assert result.converged
    assert session.notes['e1'].scores['a'].value == 2.0
    assert session.notes['e1'].scores['b'].value == 4.0
    assert session.notes['e1'].final_score == 6.0

    print("[PASS] Local category edit test passed")


def test_apply_category_value_respects_min():
    """Test that local category edits keep values inside [min, max]."""
    session = create_test_session()

    session.apply_category_value("e1", "VFX", "current", 0)

    assert session.notes['e1'].scores['c'].value == 1.0

    print("[PASS] Category edit minimum test passed")


def test_apply_category_value_imported():
    """Test category edits on an imported judge's note."""
    session = create_test_session()
    session.import_judge(create_test_export())

    session.apply_category_value("e2", "MONTAGE", "imported-0", "10")

    note = session.imported_judges[0].notes['e2']
    assert note.scores['a'].value == 5.0
    assert note.scores['b'].value == 5.0
    assert note.final_score == 10.0
    assert session.notes == {}

    print("[PASS] Imported category edit test passed")


def test_apply_category_value_errors():
    """Test errors raised by category edits."""
    session = create_test_session()

    with pytest.raises(KeyError):
        session.apply_category_value("e1", "AUDIO", "current", 3)
    with pytest.raises(KeyError):
        session.apply_category_value("e1", "MONTAGE", "imported-3", 3)
    with pytest.raises(KeyError):
        session.apply_category_value("ghost", "MONTAGE", "current", 3)
    with pytest.raises(ValueError):
        session.apply_category_value("e1", "MONTAGE", "current", None)

    no_rubric = JudgingSession(rubric=None, entries=[Entry(id="e1")])
    with pytest.raises(ValueError):
        no_rubric.apply_category_value("e1", "MONTAGE", "current", 3)

    print("[PASS] Category edit error test passed")


def test_parse_cell_value():
    """Test cell value parsing."""
    assert parse_cell_value(3) == 3.0
    assert parse_cell_value(" 7,5 ") == 7.5
    assert parse_cell_value("2.25") == 2.25

    for bad in ("", "x", None, True, [1]):
        with pytest.raises(ValueError):
            parse_cell_value(bad)

    print("[PASS] Cell value parsing test passed")


# =============================================================================
# IMPORTED JUDGE TESTS
# =============================================================================

def test_import_judge_recomputes_final_score():
    """Test that stored final scores from files are not trusted."""
    session = create_test_session()

    imported = session.import_judge(create_test_export())

    assert imported.judge_name == "Bob"
    assert list(imported.notes) == ['e1']
    assert imported.notes['e1'].final_score == 6.0

    print("[PASS] Import recompute test passed")


def test_import_judge_replaces_same_name():
    """Test that re-importing a judge replaces the earlier import."""
    session = create_test_session()
    session.import_judge(create_test_export("Bob", 6))
    session.import_judge(create_test_export("Chloe", 3))
    session.import_judge(create_test_export("BOB", 9))

    names = [j.judge_name for j in session.imported_judges]
    assert names == ["Chloe", "BOB"]
    assert session.imported_judges[1].notes['e1'].scores['a'].value == 9

    print("[PASS] Import replacement test passed")


def test_import_judge_rejects_unusable_file():
    """Test that a file without matching notes raises ValueError."""
    session = create_test_session()

    with pytest.raises(ValueError):
        session.import_judge({'notes': {'ghost': {'scores': {}}}})
    with pytest.raises(ValueError):
        session.import_judge("not a document")

    assert session.imported_judges == []

    print("[PASS] Import rejection test passed")


def test_remove_and_rename_imported_judge():
    """Test removal (keys shift) and renaming."""
    session = create_test_session()
    session.import_judge(create_test_export("Bob"))
    session.import_judge(create_test_export("Chloe"))

    renamed = session.rename_imported_judge(1, "  Chloé ")
    assert renamed.judge_name == "Chloé"

    removed = session.remove_imported_judge(0)
    assert removed.judge_name == "Bob"
    assert session.get_judge("imported-0").judge_name == "Chloé"

    with pytest.raises(KeyError):
        session.remove_imported_judge(5)
    with pytest.raises(KeyError):
        session.rename_imported_judge(-1, "X")
    with pytest.raises(ValueError):
        session.rename_imported_judge(0, "   ")

    print("[PASS] Remove and rename test passed")


# =============================================================================
# READ TESTS
# =============================================================================

def test_rows_and_leaderboards():
    """Test result rows and leaderboards across judges."""
    session = create_test_session()
    session.update_criterion("e1", "a", 3)
    session.update_criterion("e2", "a", 8)
    session.import_judge(create_test_export("Bob", 6))

    rows = session.rows(sort_mode="score")
    assert [r.entry.id for r in rows] == ["e2", "e1"]
    assert rows[1].judge_totals == [3.0, 6.0]
    assert rows[1].average_total == 4.5

    boards = session.leaderboards()
    assert [b.key for b in boards] == ["current", "imported-0", "final"]
    assert [r.entry.id for r in boards[1].rows] == ["e1", "e2"]
    assert [r.entry.id for r in boards[2].rows] == ["e2", "e1"]

    print("[PASS] Rows and leaderboards test passed")


def test_hidden_totals():
    """Test that hidden totals disable score ordering and leaderboards."""
    session = create_test_session(hide_totals=True)
    session.update_criterion("e2", "a", 8)

    assert [r.entry.id for r in session.rows(sort_mode="score")] == ["e1", "e2"]
    assert session.leaderboards() == []

    until_done = create_test_session(hide_totals=False, hide_totals_until_all_scored=True)
    until_done.update_criterion("e2", "a", 8)
    assert until_done.totals_hidden

    for entry_id in ("e1", "e2"):
        until_done.update_criterion(entry_id, "a", 5)
        until_done.update_criterion(entry_id, "b", 5)
    assert until_done.all_scored
    assert not until_done.totals_hidden
    assert until_done.progress() == {'scored': 2, 'total': 2, 'remaining': 0, 'percentage': 100}

    print("[PASS] Hidden totals test passed")


def test_set_rubric_recomputes_totals():
    """Test that switching rubric refreshes cached totals."""
    session = create_test_session()
    session.update_criterion("e1", "a", 10)
    session.update_criterion("e1", "c", 4)
    assert session.notes['e1'].final_score == 14.0

    session.set_rubric(OFFICIAL_RUBRIC)

    assert session.notes['e1'].final_score == 0.0
    assert session.category_groups()[0].category == "MONTAGE"

    print("[PASS] Rubric switch test passed")


def test_sessions_share_no_state():
    """Test that notes passed in are copied into the session's own mapping."""
    notes = {'e1': Note(scores={'a': Score(2)})}
    session = create_test_session(notes=notes)
    session.update_criterion("e2", "a", 1)

    assert 'e2' not in notes
    assert session.imported_judges == []
    assert JudgingSession(rubric=None).rows() == []
    assert ImportedJudgeData(judge_name="x").notes == {}

    print("[PASS] State isolation test passed")


def test_concurrent_category_edits_are_not_lost():
    """Test that parallel edits of one entry both survive."""
    session = create_test_session()
    original_solve = session_module.solve_distribution

    def slow_solve(*args, **kwargs):
        result = original_solve(*args, **kwargs)
        time.sleep(0.05)
        return result

    session_module.solve_distribution = slow_solve
    try:
        threads = [
            threading.Thread(target=session.apply_category_value, args=("e1", "MONTAGE", "current", 6)),
            threading.Thread(target=session.apply_category_value, args=("e1", "VFX", "current", 4)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
    finally:
        session_module.solve_distribution = original_solve

    scores = session.notes['e1'].scores
    assert sorted(scores) == ['a', 'b', 'c']
    assert scores['c'].value == 4
    assert session.notes['e1'].final_score == 10.0

    print("[PASS] Concurrent edit test passed")


def run_all_tests():
    """Run all session tests."""
    print("\n" + "="*60)
    print("JUDGING SESSION TESTS")
    print("="*60 + "\n")

    print("\n--- Loading Tests ---")
    test_from_project_dict()
    test_to_project_dict_round_trip()

    print("\n--- Edit Tests ---")
    test_update_criterion_clamps_and_recomputes()
    test_update_criterion_errors()
    test_apply_category_value_local()
    test_apply_category_value_respects_min()
    test_apply_category_value_imported()
    test_apply_category_value_errors()
    test_parse_cell_value()

    print("\n--- Imported Judge Tests ---")
    test_import_judge_recomputes_final_score()
    test_import_judge_replaces_same_name()
    test_import_judge_rejects_unusable_file()
    test_remove_and_rename_imported_judge()

    print("\n--- Read Tests ---")
    test_rows_and_leaderboards()
    test_hidden_totals()
    test_set_rubric_recomputes_totals()
    test_sessions_share_no_state()
    test_concurrent_category_edits_are_not_lost()

    print("\n" + "="*60)
    print("ALL SESSION TESTS PASSED")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_all_tests()
