from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from . import config

logger = logging.getLogger(__name__)


def _extract_text(data: Any) -> str:
    text = ""
    if isinstance(data, dict) and isinstance(data.get("message"), dict):
        text = data["message"].get("content", "") or ""
    if not text and isinstance(data, dict):
        text = data.get("response", "") or ""
    return text


class LocalModelEngine:
    """Client for an Ollama-compatible model host.

    ``chat`` never raises for transport or HTTP problems.  It returns
    ``{"text": ..., "meta": ...}`` and records the failure under
    ``meta["error"]`` so callers decide how loudly to fail.
    """

    def __init__(
        self,
        model: str | None = None,
        host: str | None = None,
        *,
        timeout: float | None = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        selected_model = model or config.MODEL
        selected_host = (host or config.HOST).rstrip("/")
        if not selected_host.startswith("http://") and not selected_host.startswith("https://"):
            selected_host = "http://" + selected_host
        self.model, self.host = selected_model, selected_host
        self.timeout = timeout or config.MODEL_TIMEOUT
        if session is None:
            self._session = requests.Session()
            self._close_session = self._session.close
        else:
            self._session = session
            self._close_session = getattr(session, "close", lambda: None)

    def close(self) -> None:
        self._close_session()

    def __enter__(self) -> "LocalModelEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _prepare_chat_payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        msgs = [{"role": m["role"], "content": m["content"]} for m in messages]
        return {"model": self.model, "messages": msgs, "stream": False}

    def _prepare_generate_payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        prompt = "\n".join([f"{m['role']}: {m['content']}" for m in messages])
        return {"model": self.model, "prompt": prompt, "stream": False}

    def _failure(self, text: str, meta: Dict[str, Any]) -> Dict[str, Any]:
        logger.warning("Model request failed (%s): %s", meta.get("endpoint"), meta.get("error"))
        return {"text": text, "meta": meta}

    def chat(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        payload = self._prepare_chat_payload(messages)
        url = f"{self.host}/api/chat"
        used = "chat"
        t0 = time.perf_counter()

        try:
            response = self._session.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            meta = {
                "endpoint": used,
                "error": f"{exc.__class__.__name__}: {exc}",
                "elapsed_sec": round(time.perf_counter() - t0, 3),
                "request": payload,
            }
            return self._failure(f"Model request failed while calling {url}: {exc}", meta)

        if response.status_code == 404:
            # Older hosts only expose /api/generate.
            payload = self._prepare_generate_payload(messages)
            url = f"{self.host}/api/generate"
            used = "generate"
            try:
                response = self._session.post(url, json=payload, timeout=self.timeout)
            except requests.exceptions.RequestException as exc:
                meta = {
                    "endpoint": used,
                    "error": f"{exc.__class__.__name__}: {exc}",
                    "elapsed_sec": round(time.perf_counter() - t0, 3),
                    "request": payload,
                    "fallback_from": "chat",
                }
                return self._failure(f"Fallback request to {url} failed: {exc}", meta)

        elapsed = round(time.perf_counter() - t0, 3)
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            try:
                preview = json.dumps(response.json(), ensure_ascii=False)[:2000]
            except ValueError:
                preview = (response.text or "")[:2000]
            meta = {
                "endpoint": used,
                "status": response.status_code,
                "elapsed_sec": elapsed,
                "request": payload,
                "error": f"{exc.__class__.__name__}: {exc}",
                "response_text": preview,
            }
            details = preview or getattr(response, "reason", "") or "No response body."
            return self._failure(
                f"Model endpoint {used} returned HTTP {response.status_code}: {details}", meta
            )

        try:
            data = response.json()
        except ValueError:
            data = {"raw": (response.text or "")[:2000]}

        meta = {
            "endpoint": used,
            "status": response.status_code,
            "elapsed_sec": elapsed,
            "request": payload,
            "response": data,
        }
        return {"text": _extract_text(data), "meta": meta}


__all__ = ["LocalModelEngine"]
