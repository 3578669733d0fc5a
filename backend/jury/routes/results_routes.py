"""
Results Routes Module
=====================
REST API endpoints over the judging session.

Endpoints:
- GET    /api/results/                - Result rows, category groups and judges
- GET    /api/results/leaderboards    - Per-judge and final leaderboards
- POST   /api/results/category        - Set a category total (redistributed)
- POST   /api/results/criterion       - Set one criterion value
- POST   /api/results/judges/import   - Import another judge's file
- DELETE /api/results/judges/<index>  - Remove an imported judge
- PATCH  /api/results/judges/<index>  - Rename an imported judge
- GET    /api/results/rubric          - Active rubric
"""

from flask import Blueprint, request, jsonify, current_app

from ..logging_config import get_jury_logger

# Configure logging
logger = get_jury_logger("routes.results", log_to_file=False)

# Create blueprint
results_bp = Blueprint('results', __name__)


def _session():
    session = getattr(current_app, 'judging_session', None)
    if session is None:
        raise LookupError("No judging session loaded")
    return session


def _error(message, status):
    return jsonify({'error': message}), status


def _message(error: Exception) -> str:
    # KeyError wraps its message in quotes
    return error.args[0] if error.args else str(error)


@results_bp.route('/', methods=['GET'])
def get_results():
    """
    Get result rows for every entry.

    Query:
        sort: "folder" (default from config) or "score"

    Response JSON:
        {
            "judges": [{"key": "current", "judge_name": "...", ...}],
            "groups": [{"category": "MONTAGE", "total_max": 20, ...}],
            "rows": [{"entry": {...}, "judge_totals": [...], ...}],
            "can_sort_by_score": true
        }
    """
    try:
        session = _session()
        rows = session.rows(sort_mode=request.args.get('sort'))
        return jsonify({
            'judges': [judge.to_dict() for judge in session.judges()],
            'groups': [group.to_dict() for group in session.category_groups()],
            'rows': [row.to_dict() for row in rows],
            'can_sort_by_score': session.can_sort_by_score,
            'progress': session.progress(),
        }), 200

    except LookupError as e:
        return _error(str(e), 503)
    except ValueError as e:
        return _error(str(e), 400)


@results_bp.route('/leaderboards', methods=['GET'])
def get_leaderboards():
    """
    Get the per-judge and final leaderboards.

    Query:
        top: Optional number of entries per leaderboard
    """
    try:
        session = _session()
        top = request.args.get('top', type=int)
        boards = session.leaderboards(top_k=top)
        return jsonify({
            'leaderboards': [board.to_dict() for board in boards],
            'hidden': not session.can_sort_by_score,
        }), 200

    except LookupError as e:
        return _error(str(e), 503)


@results_bp.route('/category', methods=['POST'])
def set_category_value():
    """
    Set a category total for one entry and judge.

    Request JSON:
        {
            "entry_id": "clip-1",
            "category": "MONTAGE",
            "judge_key": "current",     # Optional (default: current)
            "value": 15                 # Number or numeric string ("7,5" accepted)
        }

    Response JSON:
        {
            "success": true,
            "values": {"rythme-synchro": 7.5, ...},
            "converged": true,
            "residual": 0.0
        }
    """
    try:
        data = request.get_json(silent=True) or {}
        for field_name in ('entry_id', 'category', 'value'):
            if field_name not in data:
                return _error(f'Missing field: {field_name}', 400)

        session = _session()
        result = session.apply_category_value(
            data['entry_id'],
            data['category'],
            data.get('judge_key', 'current'),
            data['value'],
        )

        return jsonify({
            'success': True,
            'values': result.values,
            'target': result.target,
            'converged': result.converged,
            'residual': result.residual,
            'strategy': result.strategy,
        }), 200

    except LookupError as e:
        status = 404 if isinstance(e, KeyError) else 503
        return _error(_message(e), status)
    except ValueError as e:
        return _error(str(e), 400)


@results_bp.route('/criterion', methods=['POST'])
def set_criterion_value():
    """
    Set one criterion value directly (clamped to the criterion range).

    Request JSON:
        {
            "entry_id": "clip-1",
            "criterion_id": "encodage",
            "judge_key": "current",     # Optional
            "value": 1.5
        }
    """
    try:
        data = request.get_json(silent=True) or {}
        for field_name in ('entry_id', 'criterion_id', 'value'):
            if field_name not in data:
                return _error(f'Missing field: {field_name}', 400)

        session = _session()
        note = session.update_criterion(
            data['entry_id'],
            data['criterion_id'],
            data['value'],
            judge_key=data.get('judge_key', 'current'),
        )

        return jsonify({
            'success': True,
            'note': note.to_dict(),
        }), 200

    except LookupError as e:
        status = 404 if isinstance(e, KeyError) else 503
        return _error(_message(e), status)
    except ValueError as e:
        return _error(str(e), 400)


@results_bp.route('/judges/import', methods=['POST'])
def import_judge():
    """
    Import another judge's exported project file.

    Request JSON:
        The exported document itself ({"project": {...}, "clips": [...], "notes": {...}})
    """
    try:
        session = _session()
        imported = session.import_judge(request.get_json(silent=True))

        logger.info(f"Imported judge {imported.judge_name}", extra={
            'judge_name': imported.judge_name,
            'note_count': len(imported.notes)
        })

        return jsonify({
            'success': True,
            'judge_name': imported.judge_name,
            'note_count': len(imported.notes),
            'judges': [judge.to_dict() for judge in session.judges()],
        }), 200

    except LookupError as e:
        return _error(str(e), 503)
    except ValueError as e:
        return _error(str(e), 400)


@results_bp.route('/judges/<int:index>', methods=['DELETE'])
def remove_judge(index):
    """Remove an imported judge by position."""
    try:
        session = _session()
        removed = session.remove_imported_judge(index)
        return jsonify({
            'success': True,
            'removed': removed.judge_name,
            'judges': [judge.to_dict() for judge in session.judges()],
        }), 200

    except LookupError as e:
        status = 404 if isinstance(e, KeyError) else 503
        return _error(_message(e), status)


@results_bp.route('/judges/<int:index>', methods=['PATCH'])
def rename_judge(index):
    """
    Rename an imported judge.

    Request JSON:
        {"judge_name": "Alice"}
    """
    try:
        data = request.get_json(silent=True) or {}
        session = _session()
        judge = session.rename_imported_judge(index, data.get('judge_name', ''))
        return jsonify({
            'success': True,
            'judge_name': judge.judge_name,
        }), 200

    except LookupError as e:
        status = 404 if isinstance(e, KeyError) else 503
        return _error(_message(e), status)
    except ValueError as e:
        return _error(str(e), 400)


@results_bp.route('/rubric', methods=['GET'])
def get_rubric():
    """Get the active rubric."""
    try:
        session = _session()
        if session.rubric is None:
            return _error('No rubric loaded', 404)
        return jsonify(session.rubric.to_dict()), 200

    except LookupError as e:
        return _error(str(e), 503)
