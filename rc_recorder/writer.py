"""
Record writer.

Persists decoded record events as a dataset entry on disk, one image plus one
json sidecar per frame, grouped by record set:

    <records_dir>/<record_set>/cam/cam-image_array_<frame_id>.jpg
    <records_dir>/<record_set>/record_<frame_id>.json

The sidecar references the image by a path relative to the record set directory.
Both files are overwritten when the same frame is delivered again.
"""

import math
from pathlib import Path
from typing import Self

from loguru import logger
from pydantic import BaseModel, Field
from pydantic_core import PydanticSerializationError

from .decoder import RecordEvent, decode
from .errors import DirectoryError, MarshalError, RecorderError, WriteError

IMAGE_DIR = "cam"
IMAGE_NAME_FORMAT = "cam-image_array_{frame_id}.jpg"
RECORD_NAME_FORMAT = "record_{frame_id}.json"


class PersistedRecord(BaseModel):
    """
    Json sidecar of a frame, as read by the training tooling.

    Key names, trailing comma included, are matched literally downstream.
    """

    model_config = {"populate_by_name": True, "extra": "forbid"}

    user_angle: float = Field(alias="user/angle,")
    autopilot_angle: float = Field(alias="autopilot/angle,")
    cam_image_array: str = Field(alias="cam/image_array,")
    drive_mode: str = Field("", alias="drive/mode,")

    def to_json(self) -> bytes:
        for name in ("user_angle", "autopilot_angle"):
            if not math.isfinite(getattr(self, name)):
                raise MarshalError(ValueError(f"unsupported value for {name}: {getattr(self, name)}"))
        exclude = {"drive_mode"} if not self.drive_mode else None
        try:
            return self.model_dump_json(by_alias=True, exclude=exclude).encode("utf-8")
        except PydanticSerializationError as e:
            raise MarshalError(e) from e

    @classmethod
    def load(cls, path: str | Path) -> Self:
        return cls.model_validate_json(Path(path).read_bytes())


def _mkdir(path: Path) -> None:
    # exist_ok keeps concurrent creation of the same directory safe
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryError(path, e) from e


def _write(path: Path, content: bytes) -> None:
    try:
        path.write_bytes(content)
    except OSError as e:
        raise WriteError(path, e) from e


class RecordWriter:
    """Writes record events below `records_dir`. Holds no state besides the root path."""

    def __init__(self, records_dir: str | Path):
        self.records_dir = Path(records_dir)
        _mkdir(self.records_dir)

    def record_dir(self, event: RecordEvent) -> Path:
        return self.records_dir / event.record_set

    def image_path(self, event: RecordEvent) -> Path:
        return self.record_dir(event) / IMAGE_DIR / IMAGE_NAME_FORMAT.format(frame_id=event.frame_id)

    def record_path(self, event: RecordEvent) -> Path:
        return self.record_dir(event) / RECORD_NAME_FORMAT.format(frame_id=event.frame_id)

    def persist(self, event: RecordEvent) -> None:
        """
        Write the image then the json sidecar of `event`.

        The image is written first since the sidecar references it. A failure stops
        processing of this event; files already written are left in place.

        Raises:
            DirectoryError: a directory of the layout cannot be created
            WriteError: the image or the sidecar cannot be written
            MarshalError: the sidecar cannot be serialized
        """
        record_dir = self.record_dir(event)
        img_dir = record_dir / IMAGE_DIR
        img_name = self.image_path(event)

        _mkdir(img_dir)
        _write(img_name, event.frame_bytes)

        _mkdir(record_dir)
        record = PersistedRecord(
            user_angle=event.user_steering,
            autopilot_angle=event.autopilot_steering,
            cam_image_array=img_name.relative_to(record_dir).as_posix(),
            drive_mode=event.drive_mode.value,
        )
        _write(self.record_path(event), record.to_json())

    def handle(self, payload: bytes) -> bool:
        """
        Decode and persist one bus payload.

        Errors are logged and absorbed so that one bad message never stops the stream.
        Returns True when the record was written.
        """
        try:
            event = decode(payload)
            self.persist(event)
        except RecorderError as e:
            logger.error(f"Unable to record message: {e}")
            return False

        logger.debug(f"record {event.record_set}: {event.frame_id}")
        return True
