"""Application state container and the intent handlers that update it.

``dispatch(state, intent)`` is the single update entry point.  It returns a
:class:`Transition` holding the next immutable :class:`AppState` together
with the side effects the UI has to perform (alerts, confirmation prompts,
summary refreshes).  Handlers check every precondition before they build the
new state, so an intent that fails leaves the previous snapshot untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple, Type, Union

from . import presence
from .message_log import MessageLog
from .models import (
    AWAY_STATUS,
    EventKind,
    Member,
    NoActiveSession,
    PermissionDenied,
    Role,
    Status,
    TeamDeskError,
    format_clock,
    status_option,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

ADMIN_SUPPORT = "SUPPORT"
ADMIN_INFO = "INFO"
ADMIN_DELEGATE = "DELEGATE"
ADMIN_ACTION_KINDS = (ADMIN_SUPPORT, ADMIN_INFO, ADMIN_DELEGATE)

SUPPORT_REQUEST_TEMPLATE = "🚨 [Support request] {name}, please assist in your area immediately."
INFO_REQUEST_TEMPLATE = "📝 [Info request] {name}, please report your progress."


@dataclass(frozen=True)
class AppState:
    roster: Tuple[Member, ...]
    session_id: Optional[str] = None
    log: MessageLog = field(default_factory=MessageLog)
    pending_input: str = ""
    voice_active: bool = False
    camera_active: bool = False

    @property
    def session_member(self) -> Optional[Member]:
        return presence.find_member(self.roster, self.session_id)

    @property
    def is_logged_in(self) -> bool:
        return self.session_member is not None


def initial_state(roster: Tuple[Member, ...]) -> AppState:
    return AppState(roster=tuple(roster))


# Intents


@dataclass(frozen=True)
class Login:
    name: str


@dataclass(frozen=True)
class Logout:
    pass


@dataclass(frozen=True)
class ChangeStatus:
    status: Status


@dataclass(frozen=True)
class SendMessage:
    content: str
    kind: EventKind = EventKind.TEXT
    media_ref: Optional[str] = None


@dataclass(frozen=True)
class AdminAction:
    kind: str
    target_id: str
    confirmed: bool = False


@dataclass(frozen=True)
class ToggleVoice:
    granted: bool = True


@dataclass(frozen=True)
class ToggleCamera:
    granted: bool = True


@dataclass(frozen=True)
class AttachMedia:
    media_ref: str
    caption: str
    from_camera: bool = False


@dataclass(frozen=True)
class UpdateInput:
    text: str


Intent = Union[
    Login,
    Logout,
    ChangeStatus,
    SendMessage,
    AdminAction,
    ToggleVoice,
    ToggleCamera,
    AttachMedia,
    UpdateInput,
]


# Effects


@dataclass(frozen=True)
class Alert:
    message: str


@dataclass(frozen=True)
class ConfirmationRequired:
    prompt: str
    intent: AdminAction


@dataclass(frozen=True)
class RequestSummary:
    members: Tuple[Member, ...]


Effect = Union[Alert, ConfirmationRequired, RequestSummary]


@dataclass(frozen=True)
class Transition:
    state: AppState
    effects: Tuple[Effect, ...] = ()

    @property
    def alerts(self) -> Tuple[str, ...]:
        return tuple(e.message for e in self.effects if isinstance(e, Alert))


def _clock_text(clock: Optional[Clock]) -> str:
    return format_clock((clock or datetime.now)())


def _require_session(state: AppState) -> Member:
    member = state.session_member
    if member is None:
        raise NoActiveSession("Please log in first.")
    return member


def handle_login(state: AppState, name: str, now: str) -> Transition:
    current = state.session_member
    if current is not None:
        raise TeamDeskError(f"Already logged in as {current.name}. Log out first.")
    roster, member = presence.login(state.roster, name, now)
    log, _ = state.log.append_system(f"{member.name} joined.", now)
    new_state = replace(state, roster=roster, session_id=member.id, log=log)
    return Transition(new_state, (RequestSummary(presence.active_members(roster)),))


def handle_logout(state: AppState, now: str) -> Transition:
    member = _require_session(state)
    roster = presence.logout(state.roster, member.id, now)
    log, _ = state.log.append_system(f"{member.name} left.", now)
    new_state = replace(
        state,
        roster=roster,
        session_id=None,
        log=log,
        pending_input="",
        voice_active=False,
        camera_active=False,
    )
    return Transition(new_state)


def handle_change_status(state: AppState, status: Status, now: str) -> Transition:
    member = _require_session(state)
    status = Status(status)
    if status == AWAY_STATUS:
        raise TeamDeskError("Away is shown automatically after you log out.")
    roster = presence.change_status(state.roster, member.id, status, now)
    label = status_option(status).label
    log, _ = state.log.append_system(f"{member.name} changed status to [{label}].", now)
    return Transition(replace(state, roster=roster, log=log))


def handle_send_message(
    state: AppState,
    content: str,
    now: str,
    *,
    kind: EventKind = EventKind.TEXT,
    media_ref: Optional[str] = None,
) -> Transition:
    member = _require_session(state)
    kind = EventKind(kind)
    text = (content or "").strip()
    if kind == EventKind.TEXT and not text:
        return Transition(state)
    if kind == EventKind.IMAGE and not media_ref:
        raise TeamDeskError("An image message needs an attachment.")
    log, _ = state.log.append_user(member, text, now, kind=kind, media_ref=media_ref)
    return Transition(replace(state, log=log, pending_input=""))


def handle_admin_action(
    state: AppState,
    kind: str,
    target_id: str,
    now: str,
    *,
    confirmed: bool = False,
) -> Transition:
    actor = _require_session(state)
    kind = str(kind).upper()
    if kind not in ADMIN_ACTION_KINDS:
        raise TeamDeskError(f"Unknown admin action: {kind}")
    if actor.role != Role.ADMIN:
        raise PermissionDenied("Only the admin can do that.")
    target = presence.require_member(state.roster, target_id)
    if target.role == Role.ADMIN:
        raise PermissionDenied(f"{target.name} is already an admin.")

    if kind == ADMIN_DELEGATE:
        if not confirmed:
            prompt = f"Transfer admin rights to {target.name}?"
            intent = AdminAction(kind, target.id, confirmed=True)
            return Transition(state, (ConfirmationRequired(prompt, intent),))
        roster = presence.delegate_admin(state.roster, actor.id, target.id)
        log, _ = state.log.append_system(
            f"Admin rights transferred from {actor.name} to {target.name}.", now
        )
        return Transition(replace(state, roster=roster, log=log))

    if kind == ADMIN_SUPPORT:
        event_kind, template = EventKind.ADMIN_REQUEST, SUPPORT_REQUEST_TEMPLATE
    else:
        event_kind, template = EventKind.INFO_REQUEST, INFO_REQUEST_TEMPLATE
    log, _ = state.log.append_request(
        event_kind, actor, target, template.format(name=target.name), now
    )
    return Transition(replace(state, log=log))


def handle_toggle_voice(state: AppState, granted: bool, now: str) -> Transition:
    member = _require_session(state)
    if state.voice_active:
        return Transition(replace(state, voice_active=False))
    if not granted:
        raise PermissionDenied("Microphone access is required.")
    log, _ = state.log.append_system(f"{member.name} joined the team voice channel.", now)
    return Transition(replace(state, voice_active=True, log=log))


def handle_toggle_camera(state: AppState, granted: bool) -> Transition:
    _require_session(state)
    if state.camera_active:
        return Transition(replace(state, camera_active=False))
    if not granted:
        raise PermissionDenied("Camera access is required.")
    return Transition(replace(state, camera_active=True))


def handle_attach_media(
    state: AppState, media_ref: str, caption: str, now: str, *, from_camera: bool = False
) -> Transition:
    transition = handle_send_message(
        state, caption, now, kind=EventKind.IMAGE, media_ref=media_ref
    )
    if from_camera:
        return Transition(replace(transition.state, camera_active=False), transition.effects)
    return transition


_Handler = Callable[[AppState, object, str], Transition]

_HANDLERS: Dict[Type, _Handler] = {
    Login: lambda s, i, now: handle_login(s, i.name, now),
    Logout: lambda s, i, now: handle_logout(s, now),
    ChangeStatus: lambda s, i, now: handle_change_status(s, i.status, now),
    SendMessage: lambda s, i, now: handle_send_message(
        s, i.content, now, kind=i.kind, media_ref=i.media_ref
    ),
    AdminAction: lambda s, i, now: handle_admin_action(
        s, i.kind, i.target_id, now, confirmed=i.confirmed
    ),
    ToggleVoice: lambda s, i, now: handle_toggle_voice(s, i.granted, now),
    ToggleCamera: lambda s, i, now: handle_toggle_camera(s, i.granted),
    AttachMedia: lambda s, i, now: handle_attach_media(
        s, i.media_ref, i.caption, now, from_camera=i.from_camera
    ),
    UpdateInput: lambda s, i, now: Transition(replace(s, pending_input=i.text or "")),
}


def dispatch(state: AppState, intent: Intent, *, clock: Optional[Clock] = None) -> Transition:
    """Apply ``intent`` to ``state``.

    Failures of the intent itself (unknown login name, missing admin rights,
    refused device access) come back as an :class:`Alert` effect with the
    state unchanged.
    """

    handler = _HANDLERS.get(type(intent))
    if handler is None:
        raise TypeError(f"Unsupported intent: {intent!r}")
    now = _clock_text(clock)
    try:
        return handler(state, intent, now)
    except TeamDeskError as exc:
        logger.warning("Rejected %s: %s", type(intent).__name__, exc)
        return Transition(state, (Alert(str(exc)),))


__all__ = [
    "ADMIN_ACTION_KINDS",
    "ADMIN_DELEGATE",
    "ADMIN_INFO",
    "ADMIN_SUPPORT",
    "AdminAction",
    "Alert",
    "AppState",
    "AttachMedia",
    "ChangeStatus",
    "Clock",
    "ConfirmationRequired",
    "Effect",
    "INFO_REQUEST_TEMPLATE",
    "Intent",
    "Login",
    "Logout",
    "RequestSummary",
    "SUPPORT_REQUEST_TEMPLATE",
    "SendMessage",
    "ToggleCamera",
    "ToggleVoice",
    "Transition",
    "UpdateInput",
    "dispatch",
    "handle_admin_action",
    "handle_attach_media",
    "handle_change_status",
    "handle_login",
    "handle_logout",
    "handle_send_message",
    "handle_toggle_camera",
    "handle_toggle_voice",
    "initial_state",
]
