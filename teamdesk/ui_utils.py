from __future__ import annotations

import html
from typing import Any, Callable, Dict, List, Optional, Tuple

from .models import ChatEvent, EventKind, Member, Role, status_option
from .presence import displayed_status
from .state import AppState
from .summary import SummaryState


def safe_component(
    factory: Callable[..., Any],
    *args: Any,
    optional_keys: Tuple[str, ...] = ("type",),
    **kwargs: Any,
) -> Any:
    """Instantiate a Gradio component, dropping optional kwargs this version rejects."""

    attempt_kwargs = dict(kwargs)
    while True:
        try:
            return factory(*args, **attempt_kwargs)
        except TypeError as exc:
            message = str(exc)
            dropped = next(
                (key for key in optional_keys if key in attempt_kwargs and f"'{key}'" in message),
                None,
            )
            if dropped is None:
                raise
            attempt_kwargs.pop(dropped)


def render_member_card(member: Member, *, viewer: Optional[Member] = None) -> str:
    status = displayed_status(member)
    option = status_option(status)
    name = html.escape(member.name)
    badge = '<span class="td-badge">ADMIN</span>' if member.role == Role.ADMIN else ""
    me = " td-me" if viewer is not None and viewer.id == member.id else ""
    offline = "" if member.is_logged_in else " td-offline"
    return (
        f'<div class="td-card{offline}{me}" data-member-id="{html.escape(member.id)}">'
        f'<img class="td-avatar" src="{html.escape(member.avatar)}" alt="{name}">'
        f'<div class="td-body"><div class="td-name">{name} {badge}</div>'
        f'<div class="td-position">{html.escape(member.position)}</div>'
        f'<div class="td-status" style="color:{option.color}">{option.icon} {html.escape(option.label)}</div>'
        f'<div class="td-updated">Last update: {html.escape(member.last_updated)}</div>'
        "</div></div>"
    )


def render_roster_html(state: AppState) -> str:
    viewer = state.session_member
    cards = "".join(render_member_card(m, viewer=viewer) for m in state.roster)
    return f'<div class="td-roster">{cards}</div>'


def _event_content(event: ChatEvent) -> str:
    text = html.escape(event.content)
    if event.kind == EventKind.IMAGE and event.media_ref:
        return (
            f'{text}<br><img class="td-attachment" src="{html.escape(event.media_ref)}" '
            f'alt="{text}">'
        )
    if event.kind in (EventKind.ADMIN_REQUEST, EventKind.INFO_REQUEST):
        return f'<span class="td-request td-{event.kind.value.lower()}">{text}</span>'
    return text


def render_chat(state: AppState) -> List[Dict[str, Any]]:
    """Project the message log into ``gr.Chatbot(type="messages")`` entries."""

    me = state.session_id
    messages: List[Dict[str, Any]] = []
    for event in state.log:
        if event.is_system:
            messages.append(
                {
                    "role": "assistant",
                    "content": f"<em>{html.escape(event.content)}</em> · {event.timestamp}",
                }
            )
            continue
        role = "user" if event.sender_id == me else "assistant"
        header = f"<b>{html.escape(event.sender_name)}</b> · {event.timestamp}"
        messages.append({"role": role, "content": f"{header}<br>{_event_content(event)}"})
    return messages


def render_session_banner(state: AppState) -> str:
    member = state.session_member
    if member is None:
        return "### Pick your name to log in"
    option = status_option(member.status)
    role = " · admin" if member.role == Role.ADMIN else ""
    voice = " · 🎙️ in voice channel" if state.voice_active else ""
    return f"### {member.name}{role}\n{option.icon} {option.label} since {member.last_updated}{voice}"


def render_summary(summary: SummaryState) -> str:
    text = summary.text
    if summary.pending:
        return f"⏳ _Refreshing…_\n\n{text}"
    return text


__all__ = [
    "render_chat",
    "render_member_card",
    "render_roster_html",
    "render_session_banner",
    "render_summary",
    "safe_component",
]
