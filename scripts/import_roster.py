#!/usr/bin/env python3
"""
Import players and coaches from CSV into the record store.

Players CSV columns: first_name, last_name, position (optional)
Coaches CSV columns: email, first_name, last_name, is_admin (optional)

Usage:
    python scripts/import_roster.py --players players.csv --coaches coaches.csv
    python scripts/import_roster.py --init-schema
    python scripts/import_roster.py --players players.csv --dry-run

Requires:
    - .env file with Snowflake credentials (same variables as the API)
"""

import argparse
import csv
import sys
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from coachboard.config.settings import get_settings  # noqa: E402
from coachboard.core.errors import CoachBoardError  # noqa: E402
from coachboard.core.roster import create_coach, create_player, get_coach_by_email  # noqa: E402
from coachboard.core.store import RecordStore  # noqa: E402
from coachboard.infrastructure.factory import create_record_store  # noqa: E402
from coachboard.infrastructure.snowflake import SnowflakeRecordStore  # noqa: E402

TRUE_VALUES = {"1", "true", "yes", "y", "x"}


def parse_players_csv(filepath: str) -> list[dict]:
    """
    Read player rows. Rows missing a first or last name are skipped.
    """
    players = []
    with open(filepath, "r", encoding="utf-8", newline="") as f:
        for line_no, row in enumerate(csv.DictReader(f), start=2):
            first = (row.get("first_name") or "").strip()
            last = (row.get("last_name") or "").strip()
            if not first or not last:
                print(f"[SKIP] {filepath}:{line_no} missing first_name or last_name")
                continue
            players.append({
                "first_name": first,
                "last_name": last,
                "position": (row.get("position") or "").strip() or None,
            })
    return players


def parse_coaches_csv(filepath: str) -> list[dict]:
    """Read coach rows. `is_admin` accepts 1/true/yes/y/x."""
    coaches = []
    with open(filepath, "r", encoding="utf-8", newline="") as f:
        for line_no, row in enumerate(csv.DictReader(f), start=2):
            email = (row.get("email") or "").strip()
            if "@" not in email:
                print(f"[SKIP] {filepath}:{line_no} invalid email {email!r}")
                continue
            coaches.append({
                "email": email,
                "first_name": (row.get("first_name") or "").strip(),
                "last_name": (row.get("last_name") or "").strip(),
                "is_admin": (row.get("is_admin") or "").strip().lower() in TRUE_VALUES,
            })
    return coaches


def import_roster(
    store: RecordStore,
    players: list[dict],
    coaches: list[dict],
) -> tuple[int, int]:
    """
    Insert coaches then players. Returns (inserted, errors).

    Coaches already registered by email are skipped, not duplicated.
    """
    inserted = 0
    errors = 0

    for coach in coaches:
        try:
            if get_coach_by_email(store, coach["email"]) is not None:
                print(f"[SKIP] Coach already registered: {coach['email']}")
                continue
            create_coach(store, **coach)
            inserted += 1
            role = "admin" if coach["is_admin"] else "coach"
            print(f"[OK] Coach: {coach['email']} ({role})")
        except CoachBoardError as e:
            errors += 1
            print(f"[ERR] Error inserting coach {coach['email']}: {e}")

    for player in players:
        try:
            create_player(store, **player)
            inserted += 1
            print(f"[OK] Player: {player['first_name']} {player['last_name']}")
        except CoachBoardError as e:
            errors += 1
            print(f"[ERR] Error inserting player {player['first_name']} {player['last_name']}: {e}")

    return inserted, errors


def main():
    parser = argparse.ArgumentParser(description="Import the coaching roster into Snowflake")
    parser.add_argument("--players", help="Players CSV path")
    parser.add_argument("--coaches", help="Coaches CSV path")
    parser.add_argument("--dry-run", action="store_true", help="Parse only, don't insert")
    parser.add_argument("--init-schema", action="store_true", help="Create tables if missing")
    args = parser.parse_args()

    if not (args.players or args.coaches or args.init_schema):
        parser.error("nothing to do: pass --players, --coaches or --init-schema")

    for path in (args.players, args.coaches):
        if path and not Path(path).exists():
            print(f"ERROR: Cannot find {path}")
            sys.exit(1)

    players = parse_players_csv(args.players) if args.players else []
    coaches = parse_coaches_csv(args.coaches) if args.coaches else []
    print(f"Found {len(players)} players and {len(coaches)} coaches")

    if args.dry_run:
        print("\n=== DRY RUN - No data will be inserted ===\n")
        for coach in coaches:
            print(f"Would insert coach: {coach['email']} (admin={coach['is_admin']})")
        for player in players:
            print(f"Would insert player: {player['first_name']} {player['last_name']}")
        sys.exit(0)

    settings = get_settings()
    if settings.store_mock_mode:
        print("WARNING: STORE_MOCK_MODE is on; rows go to a throwaway in-memory store")
    missing = [f for f in settings.validate_required_fields() if f.startswith("SNOWFLAKE")]
    if missing:
        print(f"ERROR: Missing {', '.join(missing)}")
        sys.exit(1)

    try:
        if not settings.store_mock_mode:
            print(f"Connecting to Snowflake account: {settings.snowflake_account}")
        with create_record_store(settings) as store:
            if args.init_schema and isinstance(store, SnowflakeRecordStore):
                store.create_tables()
                print("Schema ready")

            inserted, errors = import_roster(store, players, coaches)
    except CoachBoardError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print("\n=== Import Complete ===")
    print(f"Inserted: {inserted}")
    print(f"Errors: {errors}")

    sys.exit(0 if errors == 0 else 1)


if __name__ == "__main__":
    main()
