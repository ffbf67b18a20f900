"""Camera, microphone and file capture behind small capability contracts.

The board never talks to devices directly.  It only sees the outcome of an
acquisition (a handle, or :class:`PermissionDenied`) and the encoded image
that ends up attached to a chat message as a ``data:`` URL.

In the web app the browser owns the hardware.  A small script asks for the
stream with ``getUserMedia`` and reports whether the user allowed it; that
report is passed to the devices below as ``browser_grant``.
"""

from __future__ import annotations

import base64
import itertools
import logging
import mimetypes
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .models import PermissionDenied

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/png"
MAX_ATTACHMENT_BYTES = 8 * 1024 * 1024


class CameraDevice:
    """Protocol-like helper for camera providers."""

    def acquire(self, browser_grant: Optional[bool] = None) -> Any:  # pragma: no cover - contract
        raise NotImplementedError

    def release(self, handle: Any) -> None:  # pragma: no cover - contract
        raise NotImplementedError

    def snapshot(self, handle: Any) -> bytes:  # pragma: no cover - contract
        raise NotImplementedError

    def push_frame(self, handle: Any, frame: bytes) -> None:
        """Hand a frame captured elsewhere to the device.  Most devices ignore it."""

        return None


class MicrophoneDevice:
    """Protocol-like helper for microphone permission checks."""

    def request_access(self, browser_grant: Optional[bool] = None) -> bool:  # pragma: no cover - contract
        raise NotImplementedError


class BrowserCamera(CameraDevice):
    """Camera owned by the browser's webcam widget.

    Each granted acquisition gets its own handle.  Frames arrive from the
    webcam widget as uploaded files and are pushed in with :meth:`push_frame`
    until :meth:`snapshot` picks up the latest one.
    """

    HANDLE_PREFIX = "browser-webcam"

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._frames: Dict[str, Optional[bytes]] = {}
        self._lock = threading.Lock()

    def acquire(self, browser_grant: Optional[bool] = None) -> str:
        if browser_grant is not True:
            raise PermissionError("Camera permission was not granted in the browser")
        handle = f"{self.HANDLE_PREFIX}-{next(self._ids)}"
        with self._lock:
            self._frames[handle] = None
        return handle

    def release(self, handle: Any) -> None:
        with self._lock:
            self._frames.pop(handle, None)

    def push_frame(self, handle: Any, frame: bytes) -> None:
        with self._lock:
            if handle not in self._frames:
                raise RuntimeError(f"Camera stream {handle!r} is not open")
            self._frames[handle] = frame

    def snapshot(self, handle: Any) -> bytes:
        with self._lock:
            frame = self._frames.get(handle)
        if not frame:
            raise RuntimeError("No camera frame has been captured yet")
        return frame

    @property
    def open_streams(self) -> int:
        with self._lock:
            return len(self._frames)


class BrowserMicrophone(MicrophoneDevice):
    def request_access(self, browser_grant: Optional[bool] = None) -> bool:
        if browser_grant is None:
            raise PermissionError("The browser did not report microphone permission")
        return bool(browser_grant)


def encode_image_bytes(data: bytes, mime_type: str = DEFAULT_IMAGE_MIME) -> str:
    if not data:
        raise ValueError("Image data is empty")
    if len(data) > MAX_ATTACHMENT_BYTES:
        raise ValueError(
            f"Attachment is too large ({len(data)} bytes, limit {MAX_ATTACHMENT_BYTES})"
        )
    if not mime_type.startswith("image/"):
        raise ValueError(f"Not an image type: {mime_type}")
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def guess_image_mime(path: str | Path) -> str:
    mime_type, _ = mimetypes.guess_type(Path(path).name)
    return mime_type or DEFAULT_IMAGE_MIME


def encode_image_file(path: str | Path) -> str:
    """Read an image file and return it as an embeddable ``data:`` URL."""

    p = Path(path)
    if not p.exists() or not p.is_file():
        raise FileNotFoundError(f"Not a file: {p}")
    return encode_image_bytes(p.read_bytes(), guess_image_mime(p))


def upload_caption(path: str | Path) -> str:
    return f"File upload: {Path(path).name}"


SNAPSHOT_CAPTION = "Sent a photo from the site."


class CameraController:
    """Scoped camera acquisition with an explicit ``stop``.

    ``begin`` hands out a ticket for each acquisition.  ``stop`` invalidates
    every outstanding ticket and releases the live handle, so a handle that
    arrives for a stale ticket in ``resolve`` is released straight away
    instead of being installed.  The web app calls ``begin`` when the camera
    button is pressed and ``acquire`` once the browser has answered the
    permission prompt; a logout in between makes the ticket stale.
    """

    def __init__(self, device: CameraDevice) -> None:
        self.device = device
        self._generation = 0
        self._pending: Optional[int] = None
        self._handle: Any = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def begin(self) -> int:
        self._generation += 1
        self._pending = self._generation
        return self._generation

    def resolve(self, ticket: int, handle: Any) -> bool:
        if ticket != self._pending:
            logger.info("Releasing camera handle from cancelled acquisition %s", ticket)
            self.device.release(handle)
            return False
        self._pending = None
        self._handle = handle
        return True

    def fail(self, ticket: int, exc: BaseException) -> None:
        if ticket == self._pending:
            self._pending = None
        logger.warning("Camera acquisition %s failed: %s", ticket, exc)

    def acquire(self, ticket: int, browser_grant: Optional[bool] = None) -> bool:
        """Finish acquisition ``ticket``.

        Returns ``False`` when the ticket was cancelled by :meth:`stop`, and
        raises :class:`PermissionDenied` when a still-current request is refused.
        """

        try:
            handle = self.device.acquire(browser_grant)
        except PermissionError as exc:
            current = ticket == self._pending
            self.fail(ticket, exc)
            if not current:
                return False
            raise PermissionDenied("Camera access is required.") from exc
        return self.resolve(ticket, handle)

    def open(self, browser_grant: Optional[bool] = None) -> Any:
        """Acquire synchronously; raises :class:`PermissionDenied` when refused."""

        if self._handle is not None:
            return self._handle
        self.acquire(self.begin(), browser_grant)
        return self._handle

    def stop(self) -> None:
        self._generation += 1
        self._pending = None
        handle, self._handle = self._handle, None
        if handle is not None:
            self.device.release(handle)

    def push_frame(self, frame: bytes) -> None:
        if self._handle is None:
            raise RuntimeError("Camera is not open")
        self.device.push_frame(self._handle, frame)

    def take_snapshot(self, mime_type: str = DEFAULT_IMAGE_MIME) -> Tuple[str, str]:
        """Grab a frame as ``(data_url, caption)`` and stop the camera."""

        if self._handle is None:
            raise RuntimeError("Camera is not open")
        try:
            frame = self.device.snapshot(self._handle)
        finally:
            self.stop()
        return encode_image_bytes(frame, mime_type), SNAPSHOT_CAPTION


def check_microphone(device: MicrophoneDevice, browser_grant: Optional[bool] = None) -> bool:
    try:
        return bool(device.request_access(browser_grant))
    except PermissionError as exc:
        logger.warning("Microphone access refused: %s", exc)
        return False


__all__ = [
    "BrowserCamera",
    "BrowserMicrophone",
    "CameraController",
    "CameraDevice",
    "MicrophoneDevice",
    "SNAPSHOT_CAPTION",
    "check_microphone",
    "encode_image_bytes",
    "encode_image_file",
    "guess_image_mime",
    "upload_caption",
]
