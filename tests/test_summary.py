from __future__ import annotations

import json
from typing import Any, Dict, List

import pytest

from teamdesk import presence
from teamdesk.models import SummaryUnavailable
from teamdesk.summary import (
    SummaryState,
    TeamSummarizer,
    begin_summary,
    build_summary_messages,
    complete_summary,
    fail_summary,
    refresh_summary,
    summary_subset,
)


class _StubEngine:
    def __init__(self, result: Any) -> None:
        self.result = result
        self.calls: List[List[Dict[str, str]]] = []

    def chat(self, messages):
        self.calls.append(messages)
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


def test_summary_messages_list_members_in_order(alice_bob):
    messages = build_summary_messages(alice_bob)

    assert messages[0]["role"] == "system"
    payload = json.loads(messages[1]["content"].split("\n", 1)[1])
    assert [entry["name"] for entry in payload] == ["Alice", "Bob"]
    assert set(payload[0]) == {"id", "name", "position", "status", "isLoggedIn"}


def test_summary_subset_prefers_logged_in_members(alice_bob):
    assert summary_subset(alice_bob) == list(alice_bob)

    roster, alice = presence.login(alice_bob, "Alice", "09:00")

    assert summary_subset(roster) == [alice]


def test_request_summary_returns_text(alice_bob):
    engine = _StubEngine({"text": "  Alice is in the office.  ", "meta": {"status": 200}})

    text = TeamSummarizer(engine).request_summary(alice_bob)

    assert text == "Alice is in the office."
    assert len(engine.calls) == 1


@pytest.mark.parametrize(
    "result",
    [
        {"text": "Model request failed", "meta": {"error": "ConnectTimeout: boom"}},
        {"text": "   ", "meta": {"status": 200}},
        RuntimeError("quota exceeded"),
    ],
)
def test_request_summary_failures_raise(alice_bob, result):
    with pytest.raises(SummaryUnavailable):
        TeamSummarizer(_StubEngine(result)).request_summary(alice_bob)


def test_failed_refresh_keeps_previous_text(alice_bob):
    summarizer = TeamSummarizer(_StubEngine(RuntimeError("offline")))
    state = begin_summary(SummaryState(text="X"))
    assert state.pending

    state = refresh_summary(summarizer, state, alice_bob)

    assert state.text == "X"
    assert not state.pending
    assert "offline" in state.last_error


def test_successful_refresh_replaces_text(alice_bob):
    summarizer = TeamSummarizer(_StubEngine({"text": "All quiet.", "meta": {}}))
    state = begin_summary(SummaryState(text="X"))

    state = refresh_summary(summarizer, state, alice_bob)

    assert state.text == "All quiet."
    assert not state.pending
    assert state.last_error is None


def test_racing_requests_last_write_wins():
    state = begin_summary(begin_summary(SummaryState(text="X")))

    state = complete_summary(state, "newer")
    assert state.text == "newer"
    assert state.pending

    state = complete_summary(state, "older")
    assert state.text == "older"
    assert not state.pending


def test_pending_clears_only_when_no_request_remains():
    state = begin_summary(begin_summary(SummaryState(text="X")))
    assert state.in_flight == 2

    state = fail_summary(state, "timeout")
    assert state.pending
    assert state.text == "X"

    state = complete_summary(state, "fresh")
    assert not state.pending
    assert state.text == "fresh"
    assert state.last_error is None


def test_unmatched_resolution_does_not_go_negative():
    state = fail_summary(SummaryState(text="X"), "late")

    assert state.in_flight == 0
    assert not state.pending
    assert state.last_error == "late"
