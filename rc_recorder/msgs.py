"""
Record message definitions.

This module contains the message types published on the records topic by the
data-collection pipeline: a captured frame with the steering values and the
drive mode that were active when it was taken.
"""

from datetime import datetime
from enum import StrEnum
from typing import ClassVar, Optional

from pydantic import Field, field_validator

from .message import RecorderMessage


class DriveMode(StrEnum):
    """Control regime active when a frame was captured."""

    INVALID = "INVALID"
    USER = "USER"
    PILOT = "PILOT"

    @classmethod
    def from_code(cls, code: int) -> "DriveMode":
        return list(cls)[code]


class FrameRef(RecorderMessage):
    """
    Identity of a captured frame.

    Attributes:
        name: Human readable frame name
        id: Frame identifier, unique within a record set
        created_at: Capture time
    """

    _type: ClassVar[str] = "events/FrameRef"

    name: str = ""
    id: str
    created_at: Optional[datetime] = None


class FrameMessage(RecorderMessage):
    _type: ClassVar[str] = "events/FrameMessage"

    id: FrameRef
    frame: bytes = b""


class SteeringMessage(RecorderMessage):
    """
    Steering value produced either by the user or by the autopilot.

    Attributes:
        steering: Steering value, -1.0 (left) to 1.0 (right)
        confidence: Producer confidence in the value
        frame_ref: Frame the value was computed for
    """

    _type: ClassVar[str] = "events/SteeringMessage"

    steering: float = 0.0
    confidence: float = 0.0
    frame_ref: Optional[FrameRef] = None


class DriveModeMessage(RecorderMessage):
    _type: ClassVar[str] = "events/DriveModeMessage"

    drive_mode: DriveMode = DriveMode.INVALID

    @field_validator("drive_mode", mode="before")
    @classmethod
    def validate_drive_mode(cls, v):
        # producers may send the enum code instead of its name
        if isinstance(v, int) and not isinstance(v, bool):
            if not 0 <= v < len(DriveMode):
                raise ValueError(f"unknown drive mode code {v}")
            return DriveMode.from_code(v)
        return v


class RecordMessage(RecorderMessage):
    """
    One training sample to persist.

    Attributes:
        frame: Captured frame, identity and encoded image
        steering: Steering applied by the user
        autopilot_steering: Steering proposed by the autopilot
        drive_mode: Drive mode in effect
        record_set: Name of the recording session
    """

    _type: ClassVar[str] = "events/RecordMessage"

    frame: FrameMessage
    steering: Optional[SteeringMessage] = None
    autopilot_steering: Optional[SteeringMessage] = None
    drive_mode: Optional[DriveModeMessage] = None
    record_set: str = Field(min_length=1)
