"""CLI script to log a study session for an existing user and subject.

Usage: python scripts/log_session.py USERNAME SUBJECT [--minutes N] [--questions N] [--day YYYY-MM-DD] [--notes TEXT]
"""
import sys
import argparse
import pathlib
from typing import Optional
# Ensure `backend/` is on sys.path so `studytrack` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from studytrack import dates, repositories
from studytrack.database import engine, create_db_and_tables
from studytrack.errors import StudyTrackError
from studytrack.ledger import SessionLedger
from studytrack.streaks import StreakEngine


def main(username: str, subject_name: str, minutes: int = 0, questions: int = 0, day: Optional[str] = None, notes: Optional[str] = None, bind=None) -> int:
    """Log the session and print the day's record and the user's streak.

    Returns a process exit code: 0 on success, 1 on any rejected input.
    """
    create_db_and_tables(bind or engine)
    with Session(bind or engine) as session:
        user = repositories.UserRepository(session).get_by_username(username)
        if user is None:
            print(f'User not found: {username}')
            return 1
        subject = repositories.SubjectRepository(session).get_by_name(user.id, subject_name)
        if subject is None:
            print(f'Subject not found for {username}: {subject_name}')
            return 1
        try:
            result = SessionLedger(session).log_session(
                user.id, subject.id, day or dates.today(), minutes, questions, notes=notes
            )
        except StudyTrackError as e:
            print(f'Rejected: {e.message}')
            return 1
        record = result.session
        print(f"{'Created' if result.was_created else 'Updated'} {record.day} {subject.name}: "
              f"{record.duration_minutes} min, {record.questions_solved} questions")
        streak = StreakEngine(session).get_streak(user.id)
        print(f"Streak: {streak['current_streak']} (best {streak['max_streak']})")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Log a study session')
    parser.add_argument('username')
    parser.add_argument('subject')
    parser.add_argument('--minutes', type=int, default=0)
    parser.add_argument('--questions', type=int, default=0)
    parser.add_argument('--day', type=str, default=None, help='YYYY-MM-DD, defaults to today')
    parser.add_argument('--notes', type=str, default=None)
    args = parser.parse_args()
    sys.exit(main(args.username, args.subject, args.minutes, args.questions, args.day, args.notes))
