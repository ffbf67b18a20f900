"""Team status digest produced by the local model host.

The digest lives in its own :class:`SummaryState` slot.  The UI may start a
second request while one is still running; each completion simply overwrites
the text (last write wins).  ``in_flight`` counts the requests that have not
resolved yet and the pending indicator stays on until it drops back to zero.
A failed request keeps whatever text was shown before.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence

from . import config
from .model_engine import LocalModelEngine
from .models import Member, SummaryUnavailable
from .presence import active_members

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SummaryState:
    text: str
    in_flight: int = 0
    last_error: Optional[str] = None

    @property
    def pending(self) -> bool:
        return self.in_flight > 0


def initial_summary_state(text: str | None = None) -> SummaryState:
    return SummaryState(text=config.SUMMARY_PLACEHOLDER if text is None else text)


def begin_summary(state: SummaryState) -> SummaryState:
    return replace(state, in_flight=state.in_flight + 1)


def _settled(state: SummaryState) -> int:
    return max(state.in_flight - 1, 0)


def complete_summary(state: SummaryState, text: str) -> SummaryState:
    return replace(state, text=text, in_flight=_settled(state), last_error=None)


def fail_summary(state: SummaryState, error: BaseException | str) -> SummaryState:
    return replace(state, in_flight=_settled(state), last_error=str(error))


def summary_subset(roster: Sequence[Member]) -> List[Member]:
    return list(active_members(tuple(roster)))


def build_summary_messages(members: Sequence[Member]) -> List[Dict[str, str]]:
    roster_json = json.dumps([m.to_summary_dict() for m in members], ensure_ascii=False)
    return [
        {"role": "system", "content": config.SUMMARY_SYSTEM_PROMPT},
        {"role": "user", "content": f"Current team roster:\n{roster_json}"},
    ]


class TeamSummarizer:
    def __init__(self, engine: LocalModelEngine) -> None:
        self.engine = engine

    def request_summary(self, members: Sequence[Member]) -> str:
        """Return a digest of ``members`` or raise :class:`SummaryUnavailable`."""

        if not members:
            raise SummaryUnavailable("No team members to summarize")
        try:
            result = self.engine.chat(build_summary_messages(members))
        except Exception as exc:
            raise SummaryUnavailable(f"Summary request failed: {exc}") from exc
        meta = result.get("meta") or {}
        if meta.get("error"):
            raise SummaryUnavailable(result.get("text") or str(meta["error"]))
        text = (result.get("text") or "").strip()
        if not text:
            raise SummaryUnavailable("The model returned an empty summary")
        logger.info("Team summary refreshed for %d members", len(members))
        return text


def refresh_summary(
    summarizer: TeamSummarizer,
    state: SummaryState,
    members: Sequence[Member],
) -> SummaryState:
    """Resolve one request started with :func:`begin_summary` against ``state``."""

    try:
        text = summarizer.request_summary(members)
    except SummaryUnavailable as exc:
        logger.warning("Summary unavailable: %s", exc)
        return fail_summary(state, exc)
    return complete_summary(state, text)


__all__ = [
    "SummaryState",
    "TeamSummarizer",
    "begin_summary",
    "build_summary_messages",
    "complete_summary",
    "fail_summary",
    "initial_summary_state",
    "refresh_summary",
    "summary_subset",
]
