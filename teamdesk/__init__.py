"""Internal modules that back the TeamDesk Gradio application."""

from . import config as _config
from .capture import BrowserCamera, BrowserMicrophone, CameraController, encode_image_file
from .message_log import MessageLog
from .model_engine import LocalModelEngine
from .models import (
    ChatEvent,
    EventKind,
    Member,
    MemberNotFound,
    NoActiveSession,
    PermissionDenied,
    Role,
    Status,
    SummaryUnavailable,
    TeamDeskError,
)
from .roster import DEFAULT_ROSTER, load_roster
from .state import AppState, Transition, dispatch, initial_state
from .summary import SummaryState, TeamSummarizer
from .ui_utils import safe_component

reload_from_environment = _config.reload_from_environment

__all__ = [
    "AppState",
    "BrowserCamera",
    "BrowserMicrophone",
    "CameraController",
    "ChatEvent",
    "DEFAULT_ROSTER",
    "EventKind",
    "LocalModelEngine",
    "Member",
    "MemberNotFound",
    "MessageLog",
    "NoActiveSession",
    "PermissionDenied",
    "Role",
    "Status",
    "SummaryState",
    "SummaryUnavailable",
    "TeamDeskError",
    "TeamSummarizer",
    "Transition",
    "dispatch",
    "encode_image_file",
    "initial_state",
    "load_roster",
    "reload_from_environment",
    "safe_component",
]


def __getattr__(name: str):
    if hasattr(_config, name):
        return getattr(_config, name)
    raise AttributeError(name)
