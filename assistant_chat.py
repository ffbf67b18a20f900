#!/usr/bin/env python3

# Copyright (c) 2025 James Baker VA7ODR
#
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software
# and associated documentation files (the “Software”), to deal in the Software without
# restriction, including without limitation the rights to use, copy, modify, merge, publish,
# distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the
# Software is furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all copies or
# substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL
# THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR
# OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE,
# ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR
# OTHER DEALINGS IN THE SOFTWARE.

"""Standalone chat page that forwards each message to the local model host."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import gradio as gr

import teamdesk.config as teamdesk_config
from teamdesk.model_engine import LocalModelEngine
from teamdesk.ui_utils import safe_component

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20
EMPTY_REPLY = "I didn't receive any text back from the model. Please try again."

engine = LocalModelEngine()


def _history_to_messages(history: List[Any]) -> List[Dict[str, str]]:
    messages: List[Dict[str, str]] = []
    for entry in history or []:
        if isinstance(entry, dict):
            role, content = entry.get("role"), entry.get("content")
            if role in ("user", "assistant") and isinstance(content, str):
                messages.append({"role": role, "content": content})
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            user_text, assistant_text = entry
            if user_text:
                messages.append({"role": "user", "content": str(user_text)})
            if assistant_text:
                messages.append({"role": "assistant", "content": str(assistant_text)})
    return messages[-HISTORY_LIMIT:]


def build_messages(message: str, history: List[Any]) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": teamdesk_config.ASSISTANT_PERSONA},
        *_history_to_messages(history),
        {"role": "user", "content": message},
    ]


def respond(message: str, history: List[Any]) -> str:
    if not (message or "").strip():
        return ""
    result = engine.chat(build_messages(message.strip(), history))
    text = (result.get("text") or "").strip()
    if not text:
        logger.warning("Model returned empty response text: %s", result.get("meta"))
        return EMPTY_REPLY
    return text


demo = safe_component(
    gr.ChatInterface,
    respond,
    type="messages",
    title="TeamDesk assistant",
    optional_keys=("type",),
)


if __name__ == "__main__":
    logging.basicConfig(level=getattr(logging, teamdesk_config.LOG_LEVEL, logging.INFO))
    demo.launch(server_name="0.0.0.0", server_port=7861, show_error=True)
