from __future__ import annotations

import pytest

from teamdesk import presence
from teamdesk.models import Member, MemberNotFound, PermissionDenied, Role, Status


def test_login_marks_member_online_in_office(alice_bob):
    roster, member = presence.login(alice_bob, "Alice", "09:05")

    assert member.is_logged_in
    assert member.status == Status.OFFICE
    assert member.last_updated == "09:05"
    assert presence.find_member(roster, "a") == member
    # the input roster snapshot is untouched
    assert not alice_bob[0].is_logged_in


def test_login_requires_exact_name(alice_bob):
    with pytest.raises(MemberNotFound):
        presence.login(alice_bob, "alice", "09:05")
    with pytest.raises(MemberNotFound):
        presence.login(alice_bob, "Alice ", "09:05")


def test_change_status_updates_status_and_time(alice_bob):
    roster, _ = presence.login(alice_bob, "Alice", "09:05")

    roster = presence.change_status(roster, "a", Status.FIELD, "10:30")

    alice = presence.find_member(roster, "a")
    assert alice.status == Status.FIELD
    assert alice.last_updated == "10:30"


def test_change_status_rejects_reserved_away(alice_bob):
    with pytest.raises(ValueError):
        presence.change_status(alice_bob, "a", Status.ABSENT, "10:30")


def test_logout_clears_login_flag(alice_bob):
    roster, _ = presence.login(alice_bob, "Alice", "09:05")

    roster = presence.logout(roster, "a", "17:00")

    alice = presence.find_member(roster, "a")
    assert not alice.is_logged_in
    assert alice.last_updated == "17:00"
    assert presence.displayed_status(alice) == Status.ABSENT


def test_displayed_status_is_away_when_logged_out(alice_bob):
    roster = presence.change_status(alice_bob, "a", Status.MEETING, "09:00")
    alice = presence.find_member(roster, "a")

    assert alice.status == Status.MEETING
    assert presence.displayed_status(alice) == Status.ABSENT


def test_delegate_admin_moves_role_atomically(alice_bob):
    roster = presence.delegate_admin(alice_bob, "b", "a")

    admins = [m for m in roster if m.role == Role.ADMIN]
    assert [m.id for m in admins] == ["a"]
    assert presence.find_member(roster, "b").role == Role.MEMBER
    assert presence.admin_of(roster).name == "Alice"


def test_delegate_admin_requires_current_admin(alice_bob):
    with pytest.raises(PermissionDenied):
        presence.delegate_admin(alice_bob, "a", "b")


def test_delegate_admin_rejects_admin_target(alice_bob):
    with pytest.raises(PermissionDenied):
        presence.delegate_admin(alice_bob, "b", "b")


def test_delegation_sequences_keep_single_admin(alice_bob):
    extra = alice_bob + (Member("c", "Cara", "Ops", "cara.png"),)
    roster = extra
    for source, target in [("b", "a"), ("a", "c"), ("c", "b"), ("b", "c")]:
        roster = presence.delegate_admin(roster, source, target)
        assert sum(1 for m in roster if m.role == Role.ADMIN) == 1
        assert len(roster) == 3


def test_active_members_falls_back_to_full_roster(alice_bob):
    assert presence.active_members(alice_bob) == alice_bob

    roster, alice = presence.login(alice_bob, "Alice", "09:05")

    assert presence.active_members(roster) == (alice,)
