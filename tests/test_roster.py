from __future__ import annotations

import json

import pytest

from teamdesk.models import Role, Status
from teamdesk.roster import DEFAULT_ROSTER, load_roster, validate_roster


def test_default_roster_has_one_admin_and_everyone_logged_out():
    assert load_roster(None) is DEFAULT_ROSTER
    assert sum(1 for m in DEFAULT_ROSTER if m.role == Role.ADMIN) == 1
    assert not any(m.is_logged_in for m in DEFAULT_ROSTER)


def test_load_roster_from_json(tmp_path):
    path = tmp_path / "team.json"
    path.write_text(
        json.dumps(
            [
                {"id": "1", "name": "Ana", "position": "Lead", "role": "admin"},
                {"id": "2", "name": "Ben", "status": "field", "is_logged_in": True,
                 "last_updated": "08:15"},
            ]
        ),
        encoding="utf-8",
    )

    roster = load_roster(path)

    assert [m.name for m in roster] == ["Ana", "Ben"]
    assert roster[0].role == Role.ADMIN
    assert roster[1].status == Status.FIELD
    assert roster[1].is_logged_in
    assert roster[1].last_updated == "08:15"
    assert roster[1].avatar


@pytest.mark.parametrize(
    "entries",
    [
        [{"id": "1", "name": "Ana"}],
        [{"id": "1", "name": "Ana", "role": "ADMIN"}, {"id": "2", "name": "Ben", "role": "ADMIN"}],
        [{"id": "1", "name": "Ana", "role": "ADMIN"}, {"id": "1", "name": "Ben"}],
        [{"id": "1", "name": "Ana", "role": "ADMIN", "status": "SLEEPING"}],
        [{"id": "1", "name": "Ana", "role": "ADMIN", "email": "a@example.com"}],
        [{"id": "1", "name": "Ana", "role": "ADMIN", "is_logged_in": "false"}],
        [{"id": "1", "name": "Ana", "role": "ADMIN", "is_logged_in": 1}],
    ],
)
def test_load_roster_rejects_invalid_entries(tmp_path, entries):
    path = tmp_path / "team.json"
    path.write_text(json.dumps(entries), encoding="utf-8")

    with pytest.raises(ValueError):
        load_roster(path)


def test_load_roster_rejects_non_list(tmp_path):
    path = tmp_path / "team.json"
    path.write_text("{}", encoding="utf-8")

    with pytest.raises(ValueError):
        load_roster(path)


def test_validate_roster_rejects_empty():
    with pytest.raises(ValueError):
        validate_roster([])
