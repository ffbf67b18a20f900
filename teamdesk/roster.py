from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import AWAY_STATUS, Member, Role, Status

logger = logging.getLogger(__name__)

ROSTER_FIELDS = (
    "id",
    "name",
    "position",
    "avatar",
    "role",
    "status",
    "is_logged_in",
    "last_updated",
)


def _avatar(member_id: str) -> str:
    return f"https://i.pravatar.cc/150?u=teamdesk-{member_id}"


DEFAULT_ROSTER: Tuple[Member, ...] = (
    Member("1", "Kim Minsu", "Site manager", _avatar("1"), role=Role.ADMIN),
    Member("2", "Lee Jiyoung", "Field engineer", _avatar("2")),
    Member("3", "Park Junho", "Safety officer", _avatar("3")),
    Member("4", "Choi Sora", "Logistics coordinator", _avatar("4")),
    Member("5", "Jung Hyun", "Electrician", _avatar("5")),
    Member("6", "Han Yuna", "Surveyor", _avatar("6")),
)


def validate_roster(members: Iterable[Member]) -> Tuple[Member, ...]:
    """Return ``members`` as a tuple after checking the roster invariants.

    Ids and names must be unique (login looks members up by exact name) and
    exactly one member must hold the ADMIN role.
    """

    roster = tuple(members)
    if not roster:
        raise ValueError("Roster must contain at least one member")
    ids = [m.id for m in roster]
    if len(set(ids)) != len(ids):
        raise ValueError("Roster member ids must be unique")
    names = [m.name for m in roster]
    if len(set(names)) != len(names):
        raise ValueError("Roster member names must be unique")
    admins = [m for m in roster if m.role == Role.ADMIN]
    if len(admins) != 1:
        raise ValueError(f"Roster must have exactly one ADMIN, found {len(admins)}")
    return roster


def member_from_dict(entry: Dict[str, Any]) -> Member:
    if not isinstance(entry, dict):
        raise ValueError(f"Roster entry must be an object, got {type(entry).__name__}")
    unknown = sorted(set(entry) - set(ROSTER_FIELDS))
    if unknown:
        raise ValueError(f"Unrecognized roster fields: {', '.join(unknown)}")
    for key in ("id", "name"):
        if not str(entry.get(key) or "").strip():
            raise ValueError(f"Roster entry is missing '{key}'")
    member_id = str(entry["id"]).strip()
    try:
        role = Role(str(entry.get("role", Role.MEMBER.value)).upper())
        status = Status(str(entry.get("status", AWAY_STATUS.value)).upper())
    except ValueError as exc:
        raise ValueError(f"Roster entry {member_id!r}: {exc}") from exc
    is_logged_in = entry.get("is_logged_in", False)
    if not isinstance(is_logged_in, bool):
        raise ValueError(
            f"Roster entry {member_id!r}: is_logged_in must be true or false, got {is_logged_in!r}"
        )
    return Member(
        id=member_id,
        name=str(entry["name"]).strip(),
        position=str(entry.get("position") or ""),
        avatar=str(entry.get("avatar") or _avatar(member_id)),
        role=role,
        status=status,
        is_logged_in=is_logged_in,
        last_updated=str(entry.get("last_updated") or "--:--"),
    )


def load_roster(path: Optional[Path] = None) -> Tuple[Member, ...]:
    """Load the seed roster from a JSON file, or return :data:`DEFAULT_ROSTER`."""

    if path is None:
        return DEFAULT_ROSTER
    raw = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Roster file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ValueError(f"Roster file {path} must contain a JSON list")
    members: List[Member] = [member_from_dict(entry) for entry in data]
    roster = validate_roster(members)
    logger.info("Loaded %d roster members from %s", len(roster), path)
    return roster


__all__ = [
    "DEFAULT_ROSTER",
    "ROSTER_FIELDS",
    "load_roster",
    "member_from_dict",
    "validate_roster",
]
