"""Exception classes for the recorder."""

from pathlib import Path


class RecorderError(Exception):
    """Base exception for failures while handling one bus payload."""

    pass


class DecodeError(RecorderError):
    """Raised when a payload does not parse into the expected message."""

    def __init__(self, message_type: str, cause: Exception | str):
        self.message_type = message_type
        self.cause = cause
        super().__init__(f"unable to decode {message_type}: {cause}")


# PERSISTENCE EXCEPTIONS
class DirectoryError(RecorderError):
    """Raised when a required directory cannot be created."""

    def __init__(self, path: Path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"unable to create {path} directory: {cause}")


class WriteError(RecorderError):
    """Raised when image or json bytes cannot be written."""

    def __init__(self, path: Path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"unable to write file {path}: {cause}")


class MarshalError(RecorderError):
    """Raised when record metadata cannot be serialized."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"unable to marshal json content: {cause}")


class BusError(Exception):
    """Raised when the message bus cannot be reached or subscribed to."""

    pass
