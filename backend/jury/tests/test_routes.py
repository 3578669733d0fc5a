"""
Results API Tests
=================
Tests for the results blueprint through Flask's test client.
"""

import os
import sys

import pytest

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from jury.app import create_app
from jury.config import AppConfig
from jury.models import Criterion, Entry, Rubric
from jury.services.judging_session import JudgingSession


# =============================================================================
# TEST FIXTURES
# =============================================================================

def create_test_session() -> JudgingSession:
    rubric = Rubric(
        id="test",
        name="Test",
        criteria=(
            Criterion(id="a", name="A", max=10, step=1, category="MONTAGE"),
            Criterion(id="b", name="B", max=10, step=1, category="MONTAGE"),
            Criterion(id="c", name="C", max=5, step=0.5, category="VFX"),
        ),
    )
    entries = [
        Entry(id="e1", display_name="One", file_name="one.mp4", order=0),
        Entry(id="e2", display_name="Two", file_name="two.mp4", order=1),
    ]
    return JudgingSession(rubric=rubric, entries=entries, judge_name="Alice", hide_totals=False)


@pytest.fixture
def client():
    app = create_app(config_override=AppConfig(), session=create_test_session())
    app.config['TESTING'] = True
    with app.test_client() as test_client:
        yield test_client


def create_test_export(judge_name="Bob"):
    return {
        'project': {'judgeName': judge_name},
        'clips': [{'id': 'x', 'fileName': 'TWO.mp4', 'displayName': 'Two'}],
        'notes': {'x': {'scores': {'a': {'value': 7, 'isValid': True}}}},
    }


# =============================================================================
# READ ENDPOINT TESTS
# =============================================================================

def test_health(client):
    """Test the health endpoint."""
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'

    print("[PASS] Health endpoint test passed")


def test_get_results(client):
    """Test the results listing."""
    response = client.get('/api/results/')
    data = response.get_json()

    assert response.status_code == 200
    assert [j['key'] for j in data['judges']] == ['current']
    assert [g['category'] for g in data['groups']] == ['MONTAGE', 'VFX']
    assert [r['entry']['id'] for r in data['rows']] == ['e1', 'e2']
    assert data['can_sort_by_score'] is True
    assert data['progress']['total'] == 2

    print("[PASS] Results listing test passed")


def test_get_results_bad_sort(client):
    """Test that an unknown sort mode is rejected."""
    response = client.get('/api/results/?sort=alpha')

    assert response.status_code == 400
    print("[PASS] Bad sort mode test passed")


def test_get_rubric(client):
    """Test rubric export."""
    response = client.get('/api/results/rubric')
    data = response.get_json()

    assert response.status_code == 200
    assert data['totalPoints'] == 25
    assert [c['id'] for c in data['criteria']] == ['a', 'b', 'c']

    print("[PASS] Rubric endpoint test passed")


def test_unknown_route(client):
    """Test the JSON 404 handler."""
    response = client.get('/api/nothing-here')

    assert response.status_code == 404
    assert response.get_json() == {'error': 'Resource not found'}

    print("[PASS] 404 handler test passed")


# =============================================================================
# EDIT ENDPOINT TESTS
# =============================================================================

def test_set_category_value(client):
    """Test a category edit and the resulting rows."""
    response = client.post('/api/results/category', json={
        'entry_id': 'e2',
        'category': 'MONTAGE',
        'value': '12',
    })
    data = response.get_json()

    assert response.status_code == 200
    assert data['values'] == {'a': 6.0, 'b': 6.0}
    assert data['converged'] is True

    rows = client.get('/api/results/?sort=score').get_json()['rows']
    assert rows[0]['entry']['id'] == 'e2'
    assert rows[0]['judge_totals'] == [12.0]

    print("[PASS] Category edit endpoint test passed")


def test_set_category_value_errors(client):
    """Test validation and lookup errors of category edits."""
    missing = client.post('/api/results/category', json={'entry_id': 'e1', 'category': 'MONTAGE'})
    assert missing.status_code == 400

    unknown = client.post('/api/results/category', json={
        'entry_id': 'e1', 'category': 'AUDIO', 'value': 3
    })
    assert unknown.status_code == 404
    assert unknown.get_json()['error'] == 'Unknown category: AUDIO'

    bad_value = client.post('/api/results/category', json={
        'entry_id': 'e1', 'category': 'MONTAGE', 'value': 'lots'
    })
    assert bad_value.status_code == 400

    print("[PASS] Category edit error test passed")


def test_set_criterion_value(client):
    """Test a direct criterion edit."""
    response = client.post('/api/results/criterion', json={
        'entry_id': 'e1',
        'criterion_id': 'c',
        'value': 9,
    })
    data = response.get_json()

    assert response.status_code == 200
    assert data['note']['scores']['c']['value'] == 5
    assert data['note']['finalScore'] == 5.0

    unknown = client.post('/api/results/criterion', json={
        'entry_id': 'e1', 'criterion_id': 'z', 'value': 1
    })
    assert unknown.status_code == 404

    print("[PASS] Criterion edit endpoint test passed")


# =============================================================================
# JUDGE ENDPOINT TESTS
# =============================================================================

def test_import_rename_remove_judge(client):
    """Test the imported judge lifecycle."""
    imported = client.post('/api/results/judges/import', json=create_test_export())
    data = imported.get_json()

    assert imported.status_code == 200
    assert data['judge_name'] == 'Bob'
    assert data['note_count'] == 1
    assert [j['key'] for j in data['judges']] == ['current', 'imported-0']

    renamed = client.patch('/api/results/judges/0', json={'judge_name': 'Robert'})
    assert renamed.status_code == 200
    assert renamed.get_json()['judge_name'] == 'Robert'

    blank = client.patch('/api/results/judges/0', json={'judge_name': ''})
    assert blank.status_code == 400

    boards = client.get('/api/results/leaderboards').get_json()['leaderboards']
    assert [b['title'] for b in boards] == ['Top Alice', 'Top Robert', 'Top final']
    assert boards[1]['entries'][0]['entry_id'] == 'e2'

    removed = client.delete('/api/results/judges/0')
    assert removed.status_code == 200
    assert removed.get_json()['removed'] == 'Robert'

    missing = client.delete('/api/results/judges/0')
    assert missing.status_code == 404

    print("[PASS] Judge lifecycle test passed")


def test_import_unusable_file(client):
    """Test that unusable imports are rejected with 400."""
    response = client.post('/api/results/judges/import', json={'notes': {'ghost': {'scores': {}}}})

    assert response.status_code == 400
    print("[PASS] Unusable import test passed")


def test_leaderboards_top(client):
    """Test leaderboard length limits."""
    client.post('/api/results/criterion', json={'entry_id': 'e1', 'criterion_id': 'a', 'value': 4})

    boards = client.get('/api/results/leaderboards?top=1').get_json()['leaderboards']

    assert [len(b['entries']) for b in boards] == [1, 1]
    assert boards[-1]['entries'][0]['entry_id'] == 'e1'

    print("[PASS] Leaderboard limit test passed")
