"""Tests for the roster CSV import script."""

import importlib.util
from pathlib import Path

import pytest

from coachboard.core.store import Collections

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "import_roster.py"


@pytest.fixture(scope="module")
def import_roster():
    spec = importlib.util.spec_from_file_location("import_roster", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_parse_players_skips_incomplete_rows(import_roster, tmp_path):
    path = tmp_path / "players.csv"
    path.write_text("first_name,last_name,position\nJane,Doe,Midfield\n,Smith,\nBob,Brown,\n")

    players = import_roster.parse_players_csv(str(path))

    assert players == [
        {"first_name": "Jane", "last_name": "Doe", "position": "Midfield"},
        {"first_name": "Bob", "last_name": "Brown", "position": None},
    ]


def test_parse_coaches_admin_flag(import_roster, tmp_path):
    path = tmp_path / "coaches.csv"
    path.write_text(
        "email,first_name,last_name,is_admin\n"
        "head@example.com,Alex,Head,yes\n"
        "asst@example.com,Sam,Assistant,\n"
        "broken,No,Email,yes\n"
    )

    coaches = import_roster.parse_coaches_csv(str(path))

    assert [(c["email"], c["is_admin"]) for c in coaches] == [
        ("head@example.com", True),
        ("asst@example.com", False),
    ]


def test_import_skips_registered_coaches(import_roster, store, coach1):
    players = [{"first_name": "Jane", "last_name": "Doe", "position": None}]
    coaches = [
        {"email": coach1.email, "first_name": "", "last_name": "", "is_admin": False},
        {"email": "new@example.com", "first_name": "New", "last_name": "Coach", "is_admin": True},
    ]

    inserted, errors = import_roster.import_roster(store, players, coaches)

    assert (inserted, errors) == (2, 0)
    assert store.count(Collections.COACHES) == 2
    assert store.count(Collections.PLAYERS) == 1


def test_import_counts_store_errors(import_roster, store):
    store.fail_on("insert", Collections.PLAYERS)
    players = [
        {"first_name": "A", "last_name": "One", "position": None},
        {"first_name": "B", "last_name": "Two", "position": None},
    ]

    inserted, errors = import_roster.import_roster(store, players, [])

    assert (inserted, errors) == (1, 1)
