"""
Message base class for the recorder.

Every payload exchanged on the bus is described by a message class. Messages
know their declared type and how to turn themselves into bytes and back, so
the decoder and the tests share a single definition of the wire format.
"""

import io
from typing import Any, ClassVar, Dict, Self

from pydantic import BaseModel


class RecorderMessage(BaseModel):
    """
    Pydantic base of the bus messages.

    Messages are exchanged as UTF-8 JSON. Byte fields travel base64 encoded.
    """

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
        "ser_json_bytes": "base64",
        "val_json_bytes": "base64",
    }

    # declared message type, a class attribute and not a field
    _type: ClassVar[str]

    def serialize(self, buffer: io.BytesIO) -> None:
        """Write the JSON form of the message, unset optional sub-messages left out."""
        buffer.write(self.model_dump_json(exclude_none=True).encode("utf-8"))

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.serialize(buffer)
        return buffer.getvalue()

    @classmethod
    def deserialize(cls, buffer: io.BytesIO) -> Self:
        """Read a message back; raises pydantic's `ValidationError` on a malformed payload."""
        return cls.model_validate_json(buffer.read())

    @classmethod
    def get_schema(cls) -> Dict[str, Any]:
        return cls.model_json_schema()
