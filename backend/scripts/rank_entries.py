#!/usr/bin/env python3
"""
Rank Entries Script
===================
Command-line interface for printing jury leaderboards from project files.

Usage:
    python scripts/rank_entries.py --project project.json --rubric bareme.json
    python scripts/rank_entries.py --project project.json --import judge_b.json --top 5
    python scripts/rank_entries.py --project project.json --json
"""

import argparse
import sys
import json
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from jury.config import get_config
from jury.logging_config import get_jury_logger
from jury.models import OFFICIAL_RUBRIC, Rubric, RubricValidationError
from jury.services.judging_session import JudgingSession

logger = get_jury_logger("cli", log_to_file=False)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Print per-judge and final leaderboards for a judging project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Rank with the official rubric
    python scripts/rank_entries.py --project my_project.json

    # Rank with a custom rubric and two imported judges
    python scripts/rank_entries.py --project p.json --rubric r.json --import a.json --import b.json

    # Machine-readable output
    python scripts/rank_entries.py --project p.json --json
        """
    )

    parser.add_argument(
        '--project', '-p',
        type=str,
        required=True,
        help='Path to the project JSON file'
    )

    parser.add_argument(
        '--rubric', '-r',
        type=str,
        default=None,
        help='Path to a rubric JSON file (default: official rubric)'
    )

    parser.add_argument(
        '--import', '-i',
        dest='imports',
        action='append',
        default=[],
        metavar='FILE',
        help='Judge file exported by another jury member (repeatable)'
    )

    parser.add_argument(
        '--top', '-k',
        type=int,
        default=None,
        help='Show only the top K entries of each leaderboard'
    )

    parser.add_argument(
        '--json',
        action='store_true',
        help='Print leaderboards as JSON'
    )

    args = parser.parse_args(argv)

    try:
        rubric = load_rubric(args.rubric)
        session = JudgingSession.from_project_dict(read_json(args.project), rubric)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    for path in args.imports:
        try:
            imported = session.import_judge(read_json(path))
            print(f"Imported judge {imported.judge_name} ({len(imported.notes)} notes)", file=sys.stderr)
        except (OSError, ValueError) as e:
            print(f"Skipping {path}: {e}", file=sys.stderr)

    # Leaderboards are always shown from the command line
    session.hide_totals = False
    session.hide_totals_until_all_scored = False

    top = args.top if args.top is not None else get_config().results.top_k
    boards = session.leaderboards(top_k=top)

    if args.json:
        print(json.dumps([board.to_dict() for board in boards], indent=2, ensure_ascii=False))
        return 0

    print_leaderboards(boards, session)
    return 0


def read_json(path: str):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_rubric(path: str = None) -> Rubric:
    """Load and validate a rubric file; the official rubric when no path is given."""
    if not path:
        return OFFICIAL_RUBRIC
    rubric = Rubric.from_dict(read_json(path))
    try:
        return rubric.validate()
    except RubricValidationError as e:
        logger.error(f"Invalid rubric {path}", extra={'errors': e.errors})
        raise


def print_leaderboards(boards, session: JudgingSession) -> None:
    """Print leaderboards as text tables, final leaderboard first."""
    judge_names = [judge.judge_name for judge in session.judges()]
    total_points = session.rubric.total_points if session.rubric else 0

    print("=" * 60)
    print("JURY RESULTS")
    print("=" * 60)
    print(f"Rubric: {session.rubric.name if session.rubric else '-'} ({total_points:g} pts)")
    print(f"Judges: {', '.join(judge_names)}")
    print(f"Entries: {len(session.entries)}")
    print("=" * 60)

    ordered = boards[-1:] + boards[:-1]
    for board in ordered:
        print()
        print(board.title.upper())
        print("-" * 60)
        for rank, row in enumerate(board.rows, 1):
            name = row.entry.display_name or row.entry.file_name or row.entry.id
            if board.key == "final":
                score = row.average_total
            else:
                index = next(i for i, judge in enumerate(session.judges()) if judge.key == board.key)
                score = row.judge_totals[index] if index < len(row.judge_totals) else 0.0
            print(f"  {rank:>3}. {name:<40} {score:>7.2f}")


if __name__ == '__main__':
    sys.exit(main())
