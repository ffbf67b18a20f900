from __future__ import annotations

from dataclasses import replace

import pytest

from teamdesk.state import Login, SendMessage, dispatch, initial_state
from teamdesk.summary import SummaryState
from teamdesk.ui_utils import (
    render_chat,
    render_member_card,
    render_roster_html,
    render_session_banner,
    render_summary,
    safe_component,
)


def test_safe_component_drops_rejected_optional_kwargs():
    calls = []

    def factory(*, label, height=None):
        calls.append((label, height))
        return "component"

    def strict(**kwargs):
        if "type" in kwargs:
            raise TypeError("__init__() got an unexpected keyword argument 'type'")
        return factory(**kwargs)

    assert safe_component(strict, label="Chat", type="messages", optional_keys=("type",)) == "component"
    assert calls == [("Chat", None)]


def test_safe_component_reraises_unrelated_errors():
    def broken(**kwargs):
        raise TypeError("something else")

    with pytest.raises(TypeError):
        safe_component(broken, type="messages")


def test_member_card_shows_away_for_logged_out(alice_bob):
    html_text = render_member_card(alice_bob[0])

    assert "Away" in html_text
    assert "td-offline" in html_text


def test_roster_marks_admin_badge_and_me(alice_bob, clock):
    state = dispatch(initial_state(alice_bob), Login("Alice"), clock=clock).state

    html_text = render_roster_html(state)

    assert html_text.count("ADMIN") == 1
    assert "td-me" in html_text
    assert "In office" in html_text


def test_render_chat_roles_and_escaping(alice_bob, clock):
    state = dispatch(initial_state(alice_bob), Login("Alice"), clock=clock).state
    state = dispatch(state, SendMessage("<b>hi</b>"), clock=clock).state

    messages = render_chat(state)

    assert messages[0]["role"] == "assistant"
    assert "Alice joined." in messages[0]["content"]
    assert messages[1]["role"] == "user"
    assert "&lt;b&gt;hi&lt;/b&gt;" in messages[1]["content"]


def test_session_banner(alice_bob, clock):
    state = initial_state(alice_bob)
    assert "log in" in render_session_banner(state)

    state = dispatch(state, Login("Alice"), clock=clock).state
    state = replace(state, voice_active=True)

    banner = render_session_banner(state)
    assert "Alice" in banner
    assert "voice" in banner


def test_render_summary_marks_pending():
    assert render_summary(SummaryState(text="X")) == "X"
    assert "Refreshing" in render_summary(SummaryState(text="X", in_flight=1))
