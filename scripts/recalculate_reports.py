#!/usr/bin/env python
"""
Report Recalculation Job

Wipes the monthly and yearly report rows and rebuilds them from the full
transaction history. Useful after a bulk import or a manual data repair.

Usage:
    python scripts/recalculate_reports.py [--user-id ID]

Options:
    --user-id: Rebuild only this user's reports (default: all users)
"""
import sys
from pathlib import Path
from argparse import ArgumentParser

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from lendbook.db.core import get_db, UserDB
from lendbook.services.ledger import recalculate_reports
from lendbook.exceptions import ReportAggregationError
from lendbook.logging_config import setup_logging


def run_recalculation(user_id: int = None) -> int:
    """
    Rebuild reports for all users (or a specific user). Returns a process exit code.
    """
    print("=" * 60)
    print("Running Report Recalculation Job")
    print("=" * 60)

    db = next(get_db())

    try:
        if user_id:
            user = db.query(UserDB).filter(UserDB.db_id == user_id).first()
            if not user:
                print(f"User {user_id} not found")
                return 1
            print(f"Processing user: {user.username} (ID: {user.db_id})")
        else:
            print(f"Processing {db.query(UserDB).count()} user(s)...")

        try:
            monthly_count, yearly_count = recalculate_reports(db, user_id)
        except ReportAggregationError as e:
            print(f"ERROR: {str(e)}")
            return 1

        print("\n" + "=" * 60)
        print("Job Complete!")
        print(f"  Monthly reports written: {monthly_count}")
        print(f"  Yearly reports written: {yearly_count}")
        print("=" * 60)
        return 0
    finally:
        db.close()


def main():
    parser = ArgumentParser(description="Rebuild monthly and yearly reports from transactions")

    parser.add_argument(
        '--user-id',
        type=int,
        help='Process only specific user ID'
    )

    args = parser.parse_args()

    setup_logging()
    sys.exit(run_recalculation(user_id=args.user_id))


if __name__ == "__main__":
    main()
