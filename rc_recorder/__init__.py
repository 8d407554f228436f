__version__ = "0.1.0"

from .decoder import RecordEvent, decode
from .errors import BusError, DecodeError, DirectoryError, MarshalError, RecorderError, WriteError
from .msgs import DriveMode, RecordMessage
from .recorder import RecordListener
from .writer import PersistedRecord, RecordWriter

__all__ = [
    # Pipeline
    "decode",
    "RecordEvent",
    "RecordWriter",
    "PersistedRecord",
    "RecordListener",
    # Messages
    "DriveMode",
    "RecordMessage",
    # Errors
    "RecorderError",
    "DecodeError",
    "DirectoryError",
    "WriteError",
    "MarshalError",
    "BusError",
]
