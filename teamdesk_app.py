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

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import gradio as gr

import teamdesk.config as teamdesk_config
from teamdesk.capture import (
    BrowserCamera,
    BrowserMicrophone,
    CameraController,
    CameraDevice,
    MicrophoneDevice,
    check_microphone,
    encode_image_file,
    guess_image_mime,
    upload_caption,
)
from teamdesk.model_engine import LocalModelEngine
from teamdesk.models import Member, PermissionDenied, Role, selectable_statuses
from teamdesk.roster import load_roster
from teamdesk.state import (
    ADMIN_DELEGATE,
    ADMIN_INFO,
    ADMIN_SUPPORT,
    AdminAction,
    Alert,
    AppState,
    AttachMedia,
    ChangeStatus,
    ConfirmationRequired,
    Intent,
    Login,
    Logout,
    RequestSummary,
    SendMessage,
    ToggleCamera,
    ToggleVoice,
    Transition,
    dispatch,
    initial_state,
)
from teamdesk.summary import (
    SummaryState,
    TeamSummarizer,
    begin_summary,
    initial_summary_state,
    refresh_summary,
    summary_subset,
)
from teamdesk.ui_utils import (
    render_chat,
    render_roster_html,
    render_session_banner,
    render_summary,
    safe_component,
)


teamdesk_config.reload_from_environment()

logger = logging.getLogger(__name__)


@dataclass
class AppDependencies:
    roster: Tuple[Member, ...]
    engine: LocalModelEngine
    summarizer: TeamSummarizer
    camera: CameraDevice
    microphone: MicrophoneDevice


roster: Tuple[Member, ...]
engine: LocalModelEngine
summarizer: TeamSummarizer
microphone: MicrophoneDevice
_dependencies: AppDependencies | None = None


def build_dependencies(
    *,
    roster_file: Optional[Path] = None,
    engine_factory: Optional[Callable[[], LocalModelEngine]] = None,
    camera: Optional[CameraDevice] = None,
    mic: Optional[MicrophoneDevice] = None,
) -> AppDependencies:
    seed = load_roster(roster_file or teamdesk_config.ROSTER_FILE)
    engine_instance = engine_factory() if engine_factory else LocalModelEngine()
    return AppDependencies(
        roster=seed,
        engine=engine_instance,
        summarizer=TeamSummarizer(engine_instance),
        camera=camera or BrowserCamera(),
        microphone=mic or BrowserMicrophone(),
    )


def get_dependencies() -> AppDependencies:
    if _dependencies is None:
        raise RuntimeError("App dependencies have not been configured")
    return _dependencies


def configure_dependencies(deps: AppDependencies) -> AppDependencies:
    global roster, engine, summarizer, microphone, _dependencies
    _dependencies = deps
    roster = deps.roster
    engine = deps.engine
    summarizer = deps.summarizer
    microphone = deps.microphone
    return deps


configure_dependencies(build_dependencies())


_LOG_MAX_ENTRIES = 200
_LOG_DISPLAY_TAIL = 60


def _append_event_log(state: Dict[str, Any], message: str) -> List[str]:
    log = list(state.get("event_log", []))
    timestamp = time.strftime("%H:%M:%S")
    log.append(f"[{timestamp}] {message}")
    if len(log) > _LOG_MAX_ENTRIES:
        log = log[-_LOG_MAX_ENTRIES:]
    state["event_log"] = log
    return log


def _event_log_text(state: Dict[str, Any]) -> str:
    return "\n".join(state.get("event_log", [])[-_LOG_DISPLAY_TAIL:])


def _initial_state() -> Dict[str, Any]:
    state: Dict[str, Any] = {
        "app": initial_state(roster),
        "event_log": [],
        "notice": "",
        "pending_confirmation": None,
        "camera": None,
    }
    _append_event_log(state, f"Board ready with {len(roster)} team members.")
    return state


def _app(state: Dict[str, Any]) -> AppState:
    return state["app"]


def _camera(state: Dict[str, Any]) -> CameraController:
    controller = state.get("camera")
    if controller is None:
        controller = state["camera"] = CameraController(get_dependencies().camera)
    return controller


def _apply(state: Dict[str, Any], intent: Intent) -> Tuple[Dict[str, Any], Transition]:
    """Dispatch ``intent`` and turn its effects into UI state."""

    state = dict(state or _initial_state())
    transition = dispatch(_app(state), intent)
    state["app"] = transition.state
    state["notice"] = ""
    _append_event_log(state, f"{type(intent).__name__} handled.")
    for effect in transition.effects:
        if isinstance(effect, Alert):
            state["notice"] = f"⚠️ {effect.message}"
            _append_event_log(state, f"Alert: {effect.message}")
        elif isinstance(effect, ConfirmationRequired):
            state["pending_confirmation"] = effect.intent
            state["notice"] = f"❓ {effect.prompt}"
            _append_event_log(state, f"Waiting for confirmation: {effect.prompt}")
        elif isinstance(effect, RequestSummary):
            _append_event_log(state, f"Summary requested for {len(effect.members)} members.")
    return state, transition


def _summary_request(transition: Transition) -> Optional[Tuple[Member, ...]]:
    for effect in transition.effects:
        if isinstance(effect, RequestSummary):
            return effect.members
    return None


def _target_choices(app: AppState) -> List[Tuple[str, str]]:
    # Requests only make sense for members who are on the board right now.
    return [(m.name, m.id) for m in app.roster if m.role != Role.ADMIN and m.is_logged_in]


def _snapshot(state: Dict[str, Any]) -> Tuple[Any, ...]:
    app = _app(state)
    return (
        state,
        render_roster_html(app),
        render_chat(app),
        render_session_banner(app),
        state.get("notice", ""),
        _event_log_text(state),
        gr.update(visible=state.get("pending_confirmation") is not None),
        gr.update(choices=_target_choices(app)),
    )


def on_login(name: Optional[str], state: Dict[str, Any]):
    state, transition = _apply(state, Login(name or ""))
    return (*_snapshot(state), _summary_request(transition))


def on_logout(state: Dict[str, Any]):
    state = dict(state or _initial_state())
    _camera(state).stop()
    state["pending_confirmation"] = None
    state, _ = _apply(state, Logout())
    return (*_snapshot(state), gr.update(visible=False))


def on_status_change(status: Optional[str], state: Dict[str, Any]):
    if not status:
        return _snapshot(dict(state or _initial_state()))
    state, _ = _apply(state, ChangeStatus(status))
    return _snapshot(state)


def on_send(message: str, state: Dict[str, Any]):
    state, _ = _apply(state, SendMessage(message or ""))
    # Keep the draft when the send was rejected.
    draft = message if state["notice"] else ""
    return (*_snapshot(state), draft)


def _admin_handler(kind: str):
    def handler(target_id: Optional[str], state: Dict[str, Any]):
        if not target_id:
            state = dict(state or _initial_state())
            state["notice"] = "⚠️ Pick a team member first."
            return _snapshot(state)
        state, _ = _apply(state, AdminAction(kind, target_id))
        return _snapshot(state)

    handler.__name__ = f"on_admin_{kind.lower()}"
    return handler


on_admin_support = _admin_handler(ADMIN_SUPPORT)
on_admin_info = _admin_handler(ADMIN_INFO)
on_admin_delegate = _admin_handler(ADMIN_DELEGATE)


def on_confirm(state: Dict[str, Any]):
    state = dict(state or _initial_state())
    pending = state.get("pending_confirmation")
    state["pending_confirmation"] = None
    if pending is None:
        return _snapshot(state)
    state, _ = _apply(state, pending)
    return _snapshot(state)


def on_cancel_confirm(state: Dict[str, Any]):
    state = dict(state or _initial_state())
    if state.get("pending_confirmation") is not None:
        _append_event_log(state, "Admin transfer cancelled.")
    state["pending_confirmation"] = None
    state["notice"] = ""
    return _snapshot(state)


def on_toggle_voice(browser_grant: Optional[bool], state: Dict[str, Any]):
    state = dict(state or _initial_state())
    granted = True
    if not _app(state).voice_active:
        granted = check_microphone(microphone, browser_grant)
    state, _ = _apply(state, ToggleVoice(granted))
    return _snapshot(state)


def on_camera_request(state: Dict[str, Any]):
    """First half of the camera toggle: close it, or start an acquisition.

    Returns the acquisition ticket for the browser permission step, or
    ``None`` when there is nothing to wait for.
    """

    state = dict(state or _initial_state())
    controller = _camera(state)
    app = _app(state)
    if app.camera_active:
        controller.stop()
        state, _ = _apply(state, ToggleCamera())
        return (*_snapshot(state), gr.update(visible=False, value=None), None)
    if not app.is_logged_in:
        state, _ = _apply(state, ToggleCamera())
        return (*_snapshot(state), gr.update(), None)
    ticket = controller.begin()
    _append_event_log(state, "Waiting for camera permission.")
    return (*_snapshot(state), gr.update(), ticket)


def on_camera_permission(
    ticket: Optional[float], browser_grant: Optional[bool], state: Dict[str, Any]
):
    state = dict(state or _initial_state())
    if ticket is None:
        return (*_snapshot(state), gr.update())
    controller = _camera(state)
    try:
        installed = controller.acquire(int(ticket), browser_grant)
    except PermissionDenied:
        state, _ = _apply(state, ToggleCamera(False))
        return (*_snapshot(state), gr.update(visible=False, value=None))
    if not installed:
        _append_event_log(state, "Camera request cancelled.")
        return (*_snapshot(state), gr.update(visible=False, value=None))
    state, _ = _apply(state, ToggleCamera(True))
    if not _app(state).camera_active:
        controller.stop()
    return (*_snapshot(state), gr.update(visible=_app(state).camera_active, value=None))


def on_snapshot(image_path: Any, state: Dict[str, Any]):
    state = dict(state or _initial_state())
    controller = _camera(state)
    file_path = getattr(image_path, "name", image_path)
    if not (_app(state).camera_active and controller.active):
        state["notice"] = "⚠️ Open the camera first."
        return (*_snapshot(state), gr.update())
    if not file_path:
        state["notice"] = "⚠️ Nothing to send yet."
        return (*_snapshot(state), gr.update())
    try:
        controller.push_frame(Path(file_path).read_bytes())
        media_ref, caption = controller.take_snapshot(guess_image_mime(file_path))
    except (OSError, ValueError, RuntimeError) as exc:
        logger.warning("Could not capture camera frame: %s", exc)
        controller.stop()
        state, _ = _apply(state, ToggleCamera())
        state["notice"] = f"⚠️ {exc}"
        _append_event_log(state, f"Snapshot failed: {exc}")
        return (*_snapshot(state), gr.update(visible=False, value=None))
    state, _ = _apply(state, AttachMedia(media_ref, caption, from_camera=True))
    return (*_snapshot(state), gr.update(visible=_app(state).camera_active, value=None))


def on_upload(file: Any, state: Dict[str, Any]):
    state = dict(state or _initial_state())
    file_path = getattr(file, "name", file)
    if not file_path:
        state["notice"] = "⚠️ Nothing to send yet."
        return _snapshot(state)
    try:
        media_ref = encode_image_file(file_path)
    except (FileNotFoundError, ValueError) as exc:
        logger.warning("Could not attach %s: %s", file_path, exc)
        state["notice"] = f"⚠️ {exc}"
        _append_event_log(state, f"Attachment rejected: {exc}")
        return _snapshot(state)
    state, _ = _apply(state, AttachMedia(media_ref, upload_caption(file_path)))
    return _snapshot(state)


def on_refresh_summary(state: Dict[str, Any], summary: SummaryState):
    app = _app(state) if state else initial_state(roster)
    yield from _run_summary(summary_subset(app.roster), summary)


def on_summary_request(members: Optional[Tuple[Member, ...]], summary: SummaryState):
    if not members:
        yield summary, render_summary(summary)
        return
    yield from _run_summary(list(members), summary)


def _run_summary(members: List[Member], summary: SummaryState):
    summary = summary or initial_summary_state()
    summary = begin_summary(summary)
    yield summary, render_summary(summary)
    summary = refresh_summary(summarizer, summary, members)
    yield summary, render_summary(summary)


_MIC_PERMISSION_JS = """
async () => {
  try {
    const stream = await navigator.mediaDevices.getUserMedia({ audio: true });
    stream.getTracks().forEach((track) => track.stop());
    return true;
  } catch (err) {
    return false;
  }
}
"""

_CAMERA_PERMISSION_JS = """
async (ticket) => {
  if (ticket === null || ticket === undefined) {
    return false;
  }
  try {
    const stream = await navigator.mediaDevices.getUserMedia({ video: true });
    stream.getTracks().forEach((track) => track.stop());
    return true;
  } catch (err) {
    return false;
  }
}
"""

_BOARD_CSS = """
.td-roster { display: grid; grid-template-columns: repeat(auto-fill, minmax(220px, 1fr)); gap: 0.75rem; }
.td-card { display: flex; gap: 0.75rem; padding: 0.75rem; border: 1px solid var(--border-color-primary); border-radius: var(--radius-lg); }
.td-card.td-offline { opacity: 0.6; filter: grayscale(0.5); }
.td-card.td-me { border-color: var(--color-accent); }
.td-avatar { width: 48px; height: 48px; border-radius: 50%; object-fit: cover; }
.td-name { font-weight: 600; }
.td-badge { background: #e0e7ff; color: #4338ca; font-size: 0.65rem; padding: 0.1rem 0.35rem; border-radius: 4px; }
.td-position, .td-updated { font-size: 0.75rem; opacity: 0.7; }
.td-status { font-size: 0.8rem; margin-top: 0.35rem; }
.td-attachment { max-width: 240px; border-radius: var(--radius-md); }
.td-request { font-weight: 600; }
"""


with gr.Blocks(title="TeamDesk") as demo:
    gr.Markdown("# TeamDesk")
    safe_component(getattr(gr, "HTML", None) or gr.Markdown, f"<style>{_BOARD_CSS}</style>")

    initial = _initial_state()
    state = gr.State(value=initial)
    summary_state = gr.State(value=initial_summary_state())
    summary_request = gr.State(value=None)

    with gr.Row():
        with gr.Column(scale=1):
            banner = gr.Markdown(render_session_banner(_app(initial)))
            with gr.Row():
                login_name = gr.Dropdown(
                    label="Team member",
                    choices=[m.name for m in roster],
                    value=None,
                    interactive=True,
                )
                login_btn = gr.Button("Log in", variant="primary", scale=0)
                logout_btn = gr.Button("Log out", scale=0)
            status_radio = gr.Radio(
                label="My status",
                choices=[(opt.label, opt.value.value) for opt in selectable_statuses()],
                value=None,
            )
            with gr.Row():
                voice_btn = gr.Button("🎙️ Voice channel", scale=0)
                camera_btn = gr.Button("📷 Camera", scale=0)
                upload_btn = gr.UploadButton("🖼️ Upload image", file_types=["image"], scale=0)
            camera_view = safe_component(
                gr.Image,
                label="Camera",
                sources=["webcam"],
                type="filepath",
                visible=False,
                optional_keys=("sources",),
            )
            snapshot_btn = gr.Button("Send photo")
            mic_permission = gr.Checkbox(value=False, visible=False)
            cam_permission = gr.Checkbox(value=False, visible=False)
            camera_ticket = gr.Number(value=None, precision=0, visible=False)
            summary_md = gr.Markdown(render_summary(initial_summary_state()))
            refresh_btn = gr.Button("🔄 Refresh summary")
        with gr.Column(scale=2):
            roster_html = gr.HTML(render_roster_html(_app(initial)))
            chat = safe_component(
                gr.Chatbot,
                value=render_chat(_app(initial)),
                height=420,
                type="messages",
                elem_id="teamdesk-chat",
                optional_keys=("type",),
            )
            notice = gr.Markdown("")
            with gr.Row():
                user_box = gr.Textbox(label="Message", placeholder="Type a message", scale=4)
                send_btn = gr.Button("Send", variant="primary", scale=0)
            with gr.Accordion("Admin actions", open=False):
                target_select = gr.Dropdown(
                    label="Team member",
                    choices=_target_choices(_app(initial)),
                    value=None,
                    interactive=True,
                )
                with gr.Row():
                    support_btn = gr.Button("🚨 Request support")
                    info_btn = gr.Button("📝 Request report")
                    delegate_btn = gr.Button("🛡️ Transfer admin")
                with gr.Row(visible=False) as confirm_row:
                    confirm_btn = gr.Button("Confirm", variant="stop")
                    cancel_btn = gr.Button("Cancel")
            log_box = gr.Textbox(label="Activity log", lines=8, interactive=False)

    board_outputs = [state, roster_html, chat, banner, notice, log_box, confirm_row, target_select]

    login_event = login_btn.click(
        on_login, inputs=[login_name, state], outputs=[*board_outputs, summary_request]
    )
    # Summary listeners share one queue slot so each sees the previous result.
    login_event.then(
        on_summary_request,
        inputs=[summary_request, summary_state],
        outputs=[summary_state, summary_md],
        concurrency_limit=1,
        concurrency_id="summary",
    )
    logout_btn.click(on_logout, inputs=state, outputs=[*board_outputs, camera_view])
    status_radio.input(on_status_change, inputs=[status_radio, state], outputs=board_outputs)

    send_btn.click(on_send, inputs=[user_box, state], outputs=[*board_outputs, user_box])
    user_box.submit(on_send, inputs=[user_box, state], outputs=[*board_outputs, user_box])

    support_btn.click(on_admin_support, inputs=[target_select, state], outputs=board_outputs)
    info_btn.click(on_admin_info, inputs=[target_select, state], outputs=board_outputs)
    delegate_btn.click(on_admin_delegate, inputs=[target_select, state], outputs=board_outputs)
    confirm_btn.click(on_confirm, inputs=state, outputs=board_outputs)
    cancel_btn.click(on_cancel_confirm, inputs=state, outputs=board_outputs)

    voice_btn.click(None, inputs=None, outputs=mic_permission, js=_MIC_PERMISSION_JS).then(
        on_toggle_voice, inputs=[mic_permission, state], outputs=board_outputs
    )
    camera_btn.click(
        on_camera_request, inputs=state, outputs=[*board_outputs, camera_view, camera_ticket]
    ).then(
        None, inputs=camera_ticket, outputs=cam_permission, js=_CAMERA_PERMISSION_JS
    ).then(
        on_camera_permission,
        inputs=[camera_ticket, cam_permission, state],
        outputs=[*board_outputs, camera_view],
    )
    snapshot_btn.click(on_snapshot, inputs=[camera_view, state], outputs=[*board_outputs, camera_view])
    upload_btn.upload(on_upload, inputs=[upload_btn, state], outputs=board_outputs)

    refresh_btn.click(
        on_refresh_summary,
        inputs=[state, summary_state],
        outputs=[summary_state, summary_md],
        concurrency_limit=1,
        concurrency_id="summary",
    )
    demo.load(
        on_refresh_summary,
        inputs=[state, summary_state],
        outputs=[summary_state, summary_md],
        concurrency_limit=1,
        concurrency_id="summary",
    )
    demo.load(_event_log_text, inputs=state, outputs=log_box)


if __name__ == "__main__":
    logging.basicConfig(level=getattr(logging, teamdesk_config.LOG_LEVEL, logging.INFO))
    demo.launch(server_name="0.0.0.0", server_port=7860, show_error=True)
