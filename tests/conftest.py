"""Pytest configuration for rc-recorder tests."""

import sys
from pathlib import Path

import pytest
from loguru import logger
from typer.testing import CliRunner

from rc_recorder.msgs import DriveMode, DriveModeMessage, FrameMessage, FrameRef, RecordMessage, SteeringMessage

FRAME_CONTENT = b"frame content"


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    # CliRunner swaps stderr; drop sinks bound to it
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def log_records():
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def cli_runner():
    return CliRunner(env={"NO_COLOR": "1", "TERM": "dumb"})


@pytest.fixture
def records_dir(tmp_path) -> Path:
    return tmp_path / "records"


def generate_message(
    frame_id: str,
    record_set: str,
    user_angle: float,
    autopilot_angle: float,
    drive_mode: DriveMode,
    frame: bytes = FRAME_CONTENT,
) -> RecordMessage:
    frame_ref = FrameRef(name=f"framie-{frame_id}", id=frame_id)
    return RecordMessage(
        frame=FrameMessage(id=frame_ref, frame=frame),
        steering=SteeringMessage(steering=user_angle, confidence=1.0, frame_ref=frame_ref),
        autopilot_steering=SteeringMessage(steering=autopilot_angle, confidence=0.8, frame_ref=frame_ref),
        drive_mode=DriveModeMessage(drive_mode=drive_mode),
        record_set=record_set,
    )


@pytest.fixture
def make_payload():
    def _make(
        frame_id="1", record_set="default", user_angle=-0.5, autopilot_angle=0.6, drive_mode=DriveMode.PILOT, **kwargs
    ):
        return generate_message(frame_id, record_set, user_angle, autopilot_angle, drive_mode, **kwargs).to_bytes()

    return _make
