from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

from .models import (
    AWAY_STATUS,
    DEFAULT_LOGIN_STATUS,
    Member,
    MemberNotFound,
    PermissionDenied,
    Role,
    Status,
)

Roster = Tuple[Member, ...]


def find_member(roster: Roster, member_id: Optional[str]) -> Optional[Member]:
    if member_id is None:
        return None
    for member in roster:
        if member.id == member_id:
            return member
    return None


def require_member(roster: Roster, member_id: str) -> Member:
    member = find_member(roster, member_id)
    if member is None:
        raise MemberNotFound(f"No team member with id {member_id!r}")
    return member


def find_by_name(roster: Roster, name: str) -> Optional[Member]:
    for member in roster:
        if member.name == name:
            return member
    return None


def admin_of(roster: Roster) -> Optional[Member]:
    for member in roster:
        if member.role == Role.ADMIN:
            return member
    return None


def _replace_member(roster: Roster, updated: Member) -> Roster:
    return tuple(updated if m.id == updated.id else m for m in roster)


def login(roster: Roster, name: str, now: str) -> Tuple[Roster, Member]:
    """Mark the member called ``name`` as logged in at ``now``.

    The lookup is by exact name.  Raises :class:`MemberNotFound` when the name
    is not on the roster, in which case nothing changes.
    """

    member = find_by_name(roster, name)
    if member is None:
        raise MemberNotFound(f"{name!r} is not a registered team member.")
    updated = replace(member, is_logged_in=True, status=DEFAULT_LOGIN_STATUS, last_updated=now)
    return _replace_member(roster, updated), updated


def change_status(roster: Roster, member_id: str, status: Status, now: str) -> Roster:
    status = Status(status)
    if status == AWAY_STATUS:
        raise ValueError("The away status is reserved for members that are logged out")
    member = require_member(roster, member_id)
    return _replace_member(roster, replace(member, status=status, last_updated=now))


def logout(roster: Roster, member_id: str, now: str) -> Roster:
    member = require_member(roster, member_id)
    return _replace_member(roster, replace(member, is_logged_in=False, last_updated=now))


def delegate_admin(roster: Roster, from_id: str, to_id: str) -> Roster:
    """Move the ADMIN role from ``from_id`` to ``to_id`` in one new roster.

    Both role flips land in the same tuple, so no snapshot ever has zero or two
    admins.
    """

    source = require_member(roster, from_id)
    target = require_member(roster, to_id)
    if source.role != Role.ADMIN:
        raise PermissionDenied(f"{source.name} does not hold admin rights.")
    if target.role == Role.ADMIN:
        raise PermissionDenied(f"{target.name} is already an admin.")

    def _flip(member: Member) -> Member:
        if member.id == source.id:
            return replace(member, role=Role.MEMBER)
        if member.id == target.id:
            return replace(member, role=Role.ADMIN)
        return member

    return tuple(_flip(m) for m in roster)


def displayed_status(member: Member) -> Status:
    return member.status if member.is_logged_in else AWAY_STATUS


def logged_in_members(roster: Roster) -> Roster:
    return tuple(m for m in roster if m.is_logged_in)


def active_members(roster: Roster) -> Roster:
    """Logged-in members, or the whole roster when nobody is logged in."""

    active = logged_in_members(roster)
    return active if active else tuple(roster)


__all__ = [
    "Roster",
    "active_members",
    "admin_of",
    "change_status",
    "delegate_admin",
    "displayed_status",
    "find_by_name",
    "find_member",
    "logged_in_members",
    "login",
    "logout",
    "require_member",
]
