"""Typed records shared by the presence store, the message log and the UI.

Every record is a frozen dataclass.  Updates go through
:func:`dataclasses.replace` so that earlier state snapshots stay intact and a
sequence of intents can be replayed deterministically in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

SYSTEM_SENDER_ID = "system"
SYSTEM_SENDER_NAME = "System"


class Role(str, Enum):
    MEMBER = "MEMBER"
    ADMIN = "ADMIN"


class Status(str, Enum):
    OFFICE = "OFFICE"
    FIELD = "FIELD"
    MEETING = "MEETING"
    REMOTE = "REMOTE"
    BREAK = "BREAK"
    ABSENT = "ABSENT"


class EventKind(str, Enum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    ADMIN_REQUEST = "ADMIN_REQUEST"
    INFO_REQUEST = "INFO_REQUEST"


REQUEST_KINDS = (EventKind.ADMIN_REQUEST, EventKind.INFO_REQUEST)

DEFAULT_LOGIN_STATUS = Status.OFFICE
# Shown for members that are not logged in; members cannot pick it themselves.
AWAY_STATUS = Status.ABSENT


@dataclass(frozen=True)
class StatusOption:
    value: Status
    label: str
    icon: str
    color: str


STATUS_OPTIONS: Tuple[StatusOption, ...] = (
    StatusOption(Status.OFFICE, "In office", "🏢", "#3b82f6"),
    StatusOption(Status.FIELD, "On site", "🚧", "#22c55e"),
    StatusOption(Status.MEETING, "In meeting", "👥", "#a855f7"),
    StatusOption(Status.REMOTE, "Remote", "🏠", "#06b6d4"),
    StatusOption(Status.BREAK, "On break", "☕", "#f59e0b"),
    StatusOption(Status.ABSENT, "Away", "🌙", "#9ca3af"),
)


def status_option(status: Status) -> StatusOption:
    for option in STATUS_OPTIONS:
        if option.value == status:
            return option
    raise ValueError(f"Unknown status: {status!r}")


def selectable_statuses() -> Tuple[StatusOption, ...]:
    return tuple(option for option in STATUS_OPTIONS if option.value != AWAY_STATUS)


def format_clock(moment: datetime) -> str:
    """Return ``moment`` as the ``HH:MM`` wall-clock string used everywhere."""

    return moment.strftime("%H:%M")


@dataclass(frozen=True)
class Member:
    id: str
    name: str
    position: str
    avatar: str
    role: Role = Role.MEMBER
    status: Status = AWAY_STATUS
    is_logged_in: bool = False
    last_updated: str = "--:--"

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_summary_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position,
            "status": status_option(self.status).label,
            "isLoggedIn": self.is_logged_in,
        }


@dataclass(frozen=True)
class ChatEvent:
    id: str
    sender_id: str
    sender_name: str
    content: str
    timestamp: str
    kind: EventKind = EventKind.TEXT
    media_ref: Optional[str] = None
    target_member_id: Optional[str] = None

    @property
    def is_system(self) -> bool:
        return self.sender_id == SYSTEM_SENDER_ID


class TeamDeskError(Exception):
    """Base class for failures that abort a single intent."""


class MemberNotFound(TeamDeskError, LookupError):
    """Raised when a login name or member id is not on the roster."""


class PermissionDenied(TeamDeskError, PermissionError):
    """Raised for admin actions by non-admins and refused device access."""


class SummaryUnavailable(TeamDeskError, RuntimeError):
    """Raised when the summary model cannot produce a digest."""


class NoActiveSession(TeamDeskError):
    """Raised when an intent needs a logged-in member and nobody is logged in."""


__all__ = [
    "AWAY_STATUS",
    "ChatEvent",
    "DEFAULT_LOGIN_STATUS",
    "EventKind",
    "Member",
    "MemberNotFound",
    "NoActiveSession",
    "PermissionDenied",
    "REQUEST_KINDS",
    "Role",
    "STATUS_OPTIONS",
    "SYSTEM_SENDER_ID",
    "SYSTEM_SENDER_NAME",
    "Status",
    "StatusOption",
    "SummaryUnavailable",
    "TeamDeskError",
    "format_clock",
    "selectable_statuses",
    "status_option",
]
