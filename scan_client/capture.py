"""Image acquisition: camera capture and file picking.

The camera side is a small state machine around an OpenCV video device. Opening
the camera walks an ordered list of constraint profiles; failures are
classified once, and only the kinds a narrower profile could fix move on to the
next profile.
"""
import enum
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

import cv2

from . import config

logger = logging.getLogger(__name__)

JPEG_QUALITY = 80


class CaptureState(str, enum.Enum):
    IDLE = "idle"
    STARTING = "starting"
    LIVE = "live"
    CAPTURED = "captured"
    ERROR = "error"


class CameraErrorKind(str, enum.Enum):
    NOT_ALLOWED = "not_allowed"
    NOT_FOUND = "not_found"
    NOT_SUPPORTED = "not_supported"
    NOT_READABLE = "not_readable"
    OVERCONSTRAINED = "overconstrained"
    UNKNOWN = "unknown"


_ERROR_MESSAGES = {
    CameraErrorKind.NOT_ALLOWED: "Please allow camera permissions and try again.",
    CameraErrorKind.NOT_FOUND: "No camera found on this device.",
    CameraErrorKind.NOT_SUPPORTED: "Camera not supported on this system.",
    CameraErrorKind.NOT_READABLE: (
        "Camera is already in use or unavailable. "
        "Please close other apps using the camera and try again."
    ),
    CameraErrorKind.OVERCONSTRAINED: "Camera constraints not supported.",
}

# A narrower profile can only help with these
_RETRYABLE = {CameraErrorKind.NOT_READABLE, CameraErrorKind.OVERCONSTRAINED}


class CameraError(Exception):
    def __init__(self, kind: CameraErrorKind, detail: str = ""):
        self.kind = kind
        self.detail = detail
        super().__init__(self.message)

    @property
    def message(self) -> str:
        if self.kind == CameraErrorKind.UNKNOWN:
            return f"Unable to access camera. Error: {self.detail or 'Unknown camera error'}"
        return f"Unable to access camera. {_ERROR_MESSAGES[self.kind]}"

    @property
    def retryable(self) -> bool:
        return self.kind in _RETRYABLE


def classify_camera_error(exc: Exception) -> CameraError:
    """Map any failure raised while opening a camera onto a CameraError."""
    if isinstance(exc, CameraError):
        return exc
    if isinstance(exc, PermissionError):
        return CameraError(CameraErrorKind.NOT_ALLOWED, str(exc))
    if isinstance(exc, (FileNotFoundError, IndexError)):
        return CameraError(CameraErrorKind.NOT_FOUND, str(exc))
    if isinstance(exc, (NotImplementedError, AttributeError)):
        return CameraError(CameraErrorKind.NOT_SUPPORTED, str(exc))
    return CameraError(CameraErrorKind.UNKNOWN, str(exc))


@dataclass(frozen=True)
class ConstraintProfile:
    """One attempt at opening the camera.

    ``device`` of None means the system default device. Width and height are
    requested, not guaranteed; ``max_width``/``max_height`` bound what the
    device may negotiate.
    """

    name: str
    device: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    max_width: Optional[int] = None
    max_height: Optional[int] = None


def default_profiles(rear_device: int = config.CAMERA_DEVICE) -> list:
    return [
        ConstraintProfile("ideal", device=rear_device, width=1280, height=720,
                          max_width=1920, max_height=1080),
        ConstraintProfile("basic", width=640, height=480),
        ConstraintProfile("unconstrained"),
    ]


@dataclass
class CapturedImage:
    data: bytes
    content_type: str
    filename: str


def load_image_file(path) -> CapturedImage:
    """Read an image picked from disk."""
    path = Path(path)
    content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return CapturedImage(data=path.read_bytes(), content_type=content_type, filename=path.name)


class CameraCapture:
    """Camera dialog state machine.

    Use as a context manager so the device is released however the dialog
    ends::

        with CameraCapture() as camera:
            camera.start()
            camera.capture()
            image = camera.accept()
    """

    def __init__(
        self,
        profiles: Optional[Sequence[ConstraintProfile]] = None,
        camera_factory: Callable = cv2.VideoCapture,
    ):
        self.profiles = list(profiles) if profiles is not None else default_profiles()
        self.camera_factory = camera_factory
        self.state = CaptureState.IDLE
        self.error: Optional[str] = None
        self.active_profile: Optional[ConstraintProfile] = None
        self.captured: Optional[bytes] = None
        self._stream = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def is_streaming(self) -> bool:
        return self._stream is not None

    def start(self) -> bool:
        """Open the camera, walking the profile ladder. Returns True when live."""
        self._stop_stream()
        self.state = CaptureState.STARTING
        self.error = None
        self.captured = None

        last_error = CameraError(CameraErrorKind.NOT_FOUND)
        for profile in self.profiles:
            logger.info(f"Requesting camera access with profile '{profile.name}'")
            try:
                self._stream = self._open(profile)
            except Exception as exc:
                last_error = classify_camera_error(exc)
                logger.warning(
                    f"Camera profile '{profile.name}' failed: {last_error.kind.value} ({last_error.detail})"
                )
                if not last_error.retryable:
                    break
                continue
            self.active_profile = profile
            self.state = CaptureState.LIVE
            logger.info(f"Camera started with profile '{profile.name}'")
            return True

        self.active_profile = None
        self.error = last_error.message
        self.state = CaptureState.ERROR
        return False

    def _open(self, profile: ConstraintProfile):
        stream = self.camera_factory(profile.device if profile.device is not None else 0)
        try:
            if not stream.isOpened():
                raise CameraError(CameraErrorKind.NOT_READABLE, f"device {profile.device} did not open")
            if profile.width and profile.height:
                stream.set(cv2.CAP_PROP_FRAME_WIDTH, profile.width)
                stream.set(cv2.CAP_PROP_FRAME_HEIGHT, profile.height)
            width = int(stream.get(cv2.CAP_PROP_FRAME_WIDTH))
            height = int(stream.get(cv2.CAP_PROP_FRAME_HEIGHT))
            if ((profile.max_width and width > profile.max_width)
                    or (profile.max_height and height > profile.max_height)):
                raise CameraError(CameraErrorKind.OVERCONSTRAINED, f"negotiated {width}x{height}")
            ok, _ = stream.read()
            if not ok:
                raise CameraError(CameraErrorKind.NOT_READABLE, "no frame from device")
        except Exception:
            stream.release()
            raise
        return stream

    def capture(self) -> bytes:
        """Freeze the current frame as JPEG and stop the camera."""
        if self.state != CaptureState.LIVE:
            raise RuntimeError(f"Cannot capture while {self.state.value}")
        try:
            ok, frame = self._stream.read()
            if not ok:
                raise CameraError(CameraErrorKind.NOT_READABLE, "no frame from device")
            ok, encoded = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, JPEG_QUALITY])
            if not ok:
                raise CameraError(CameraErrorKind.UNKNOWN, "could not encode frame")
        except CameraError as exc:
            self._stop_stream()
            self.error = exc.message
            self.state = CaptureState.ERROR
            raise
        self._stop_stream()
        self.captured = encoded.tobytes()
        self.state = CaptureState.CAPTURED
        return self.captured

    def retake(self) -> bool:
        self.captured = None
        return self.start()

    def accept(self) -> CapturedImage:
        """Hand over the captured image and close the dialog."""
        if self.state != CaptureState.CAPTURED or self.captured is None:
            raise RuntimeError("No captured image to accept")
        image = CapturedImage(data=self.captured, content_type="image/jpeg", filename="capture.jpg")
        self.close()
        return image

    def close(self) -> None:
        self._stop_stream()
        self.captured = None
        self.error = None
        self.active_profile = None
        self.state = CaptureState.IDLE

    def _stop_stream(self) -> None:
        if self._stream is not None:
            self._stream.release()
            self._stream = None
