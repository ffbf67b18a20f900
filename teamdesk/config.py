from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

MODEL: str
HOST: str
MODEL_TIMEOUT: float
ROSTER_FILE: Optional[Path]
LOG_LEVEL: str
SUMMARY_PLACEHOLDER: str
SUMMARY_SYSTEM_PROMPT: str
ASSISTANT_PERSONA: str


def reload_from_environment() -> None:
    """Refresh configuration values from the current environment."""

    global MODEL, HOST, MODEL_TIMEOUT, ROSTER_FILE, LOG_LEVEL
    global SUMMARY_PLACEHOLDER, SUMMARY_SYSTEM_PROMPT, ASSISTANT_PERSONA

    MODEL = os.getenv("TEAMDESK_MODEL_NAME", "gpt-oss:20b")
    HOST = os.getenv("TEAMDESK_MODEL_HOST", "http://127.0.0.1:11434")
    try:
        MODEL_TIMEOUT = float(os.getenv("TEAMDESK_MODEL_TIMEOUT", "120"))
    except ValueError:
        MODEL_TIMEOUT = 120.0
    if MODEL_TIMEOUT <= 0:
        MODEL_TIMEOUT = 120.0
    roster_file = (os.getenv("TEAMDESK_ROSTER_FILE") or "").strip()
    ROSTER_FILE = Path(roster_file).expanduser() if roster_file else None
    LOG_LEVEL = (os.getenv("TEAMDESK_LOG_LEVEL") or "INFO").strip().upper() or "INFO"
    SUMMARY_PLACEHOLDER = os.getenv(
        "TEAMDESK_SUMMARY_PLACEHOLDER", "Analyzing the team's status..."
    )
    SUMMARY_SYSTEM_PROMPT = (
        "You are the operations assistant for a small field team.\n"
        "• You receive the team roster as JSON: id, name, position, status, isLoggedIn.\n"
        "• Write a short digest (3 sentences at most) of who is available and where.\n"
        "• Mention anyone who is away or offline only briefly.\n"
        "• Plain text only. No lists, no markdown, no greeting."
    )
    ASSISTANT_PERSONA = os.getenv(
        "TEAMDESK_ASSISTANT_PERSONA",
        (
            "You are a helpful, concise assistant for a small team. "
            "Answer questions about scheduling, coordination and field work. "
            "Tone: friendly, direct, practical."
        ),
    )


reload_from_environment()


__all__ = [
    "ASSISTANT_PERSONA",
    "HOST",
    "LOG_LEVEL",
    "MODEL",
    "MODEL_TIMEOUT",
    "ROSTER_FILE",
    "SUMMARY_PLACEHOLDER",
    "SUMMARY_SYSTEM_PROMPT",
    "reload_from_environment",
]
