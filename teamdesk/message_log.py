"""Append-only chat/system/request log with cheap immutable snapshots.

A :class:`MessageLog` is a view of the first ``n`` events of a backing list.
Appending to the newest view extends the backing list in place and returns a
longer view, so appends stay O(1) amortized while every older view keeps
showing exactly the events it had.  Appending to an older view copies its
prefix first.  That happens on replays and when two Gradio listeners of one
session append from the same snapshot on different worker threads.
"""

from __future__ import annotations

import threading
from typing import Iterator, List, Optional, Sequence, Tuple

from .models import (
    REQUEST_KINDS,
    SYSTEM_SENDER_ID,
    SYSTEM_SENDER_NAME,
    ChatEvent,
    EventKind,
    Member,
)

# Guards the tip check so two appends from one snapshot never share a slot.
_APPEND_LOCK = threading.Lock()


class MessageLog:
    def __init__(self, events: Sequence[ChatEvent] = ()) -> None:
        self._backing: List[ChatEvent] = list(events)
        self._length = len(self._backing)

    @classmethod
    def _view(cls, backing: List[ChatEvent], length: int) -> "MessageLog":
        log = cls.__new__(cls)
        log._backing = backing
        log._length = length
        return log

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[ChatEvent]:
        backing = self._backing
        for index in range(self._length):
            yield backing[index]

    def __getitem__(self, index):
        return self.events[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MessageLog):
            return NotImplemented
        return self.events == other.events

    def __repr__(self) -> str:
        return f"MessageLog(len={self._length})"

    @property
    def events(self) -> Tuple[ChatEvent, ...]:
        return tuple(self._backing[: self._length])

    def last(self) -> Optional[ChatEvent]:
        if not self._length:
            return None
        return self._backing[self._length - 1]

    def _next_id(self) -> str:
        return f"evt-{self._length + 1:06d}"

    def _append(self, event: ChatEvent) -> "MessageLog":
        with _APPEND_LOCK:
            if len(self._backing) == self._length:
                backing = self._backing
            else:
                backing = self._backing[: self._length]
            backing.append(event)
        return MessageLog._view(backing, self._length + 1)

    def append_system(self, text: str, now: str) -> Tuple["MessageLog", ChatEvent]:
        event = ChatEvent(
            id=self._next_id(),
            sender_id=SYSTEM_SENDER_ID,
            sender_name=SYSTEM_SENDER_NAME,
            content=text,
            timestamp=now,
        )
        return self._append(event), event

    def append_user(
        self,
        sender: Member,
        text: str,
        now: str,
        *,
        kind: EventKind = EventKind.TEXT,
        media_ref: Optional[str] = None,
    ) -> Tuple["MessageLog", ChatEvent]:
        kind = EventKind(kind)
        if kind in REQUEST_KINDS:
            raise ValueError("Request events must be appended with append_request")
        event = ChatEvent(
            id=self._next_id(),
            sender_id=sender.id,
            sender_name=sender.name,
            content=text,
            timestamp=now,
            kind=kind,
            media_ref=media_ref,
        )
        return self._append(event), event

    def append_request(
        self,
        kind: EventKind,
        admin: Member,
        target: Member,
        text: str,
        now: str,
    ) -> Tuple["MessageLog", ChatEvent]:
        kind = EventKind(kind)
        if kind not in REQUEST_KINDS:
            raise ValueError(f"{kind.value} is not a request kind")
        event = ChatEvent(
            id=self._next_id(),
            sender_id=admin.id,
            sender_name=f"{admin.name} (admin)",
            content=text,
            timestamp=now,
            kind=kind,
            target_member_id=target.id,
        )
        return self._append(event), event


__all__ = ["MessageLog"]
