import io
from dataclasses import dataclass

from pydantic import ValidationError

from .errors import DecodeError
from .msgs import DriveMode, RecordMessage

_FORBIDDEN_PATH_CHARS = ("/", "\\", "\x00")


@dataclass(frozen=True)
class RecordEvent:
    """A decoded record message, flattened to the values the writer needs."""

    frame_id: str
    frame_bytes: bytes
    user_steering: float
    autopilot_steering: float
    drive_mode: DriveMode
    record_set: str


def _is_path_component(value: str) -> bool:
    if value in ("", ".", ".."):
        return False
    return not any(char in value for char in _FORBIDDEN_PATH_CHARS)


def decode(payload: bytes) -> RecordEvent:
    """
    Decode a records topic payload.

    Missing steering or drive mode messages read as zero values, as the producer
    omits them when nothing was computed for the frame.

    Raises:
        DecodeError: the payload is not a valid `events/RecordMessage`, or its frame id
            or record set cannot be used as a path component.
    """
    try:
        msg = RecordMessage.deserialize(io.BytesIO(payload))
    except ValidationError as e:
        raise DecodeError(RecordMessage._type, e) from e

    frame_id = msg.frame.id.id
    if not _is_path_component(frame_id):
        raise DecodeError(RecordMessage._type, f"invalid frame id {frame_id!r}")
    if not _is_path_component(msg.record_set):
        raise DecodeError(RecordMessage._type, f"invalid record set {msg.record_set!r}")

    return RecordEvent(
        frame_id=frame_id,
        frame_bytes=msg.frame.frame,
        user_steering=msg.steering.steering if msg.steering else 0.0,
        autopilot_steering=msg.autopilot_steering.steering if msg.autopilot_steering else 0.0,
        drive_mode=msg.drive_mode.drive_mode if msg.drive_mode else DriveMode.INVALID,
        record_set=msg.record_set,
    )
