"""Router wire protocol definitions."""

from typing import Annotated, Dict, List, Literal, Union
from pydantic import BaseModel, Field, NonNegativeInt, TypeAdapter, ValidationError

from ..exceptions import MessageDecodeError


class MessageType:
    """Values of the ``type`` discriminator."""
    DATA = "data"
    UPDATE = "update"
    TRACE = "trace"


class BaseMessage(BaseModel):
    """
    Fields shared by every message.

    Messages are JSON-encoded, one object per datagram.
    """
    source: str = Field(..., description="Originating router address")
    destination: str = Field(..., description="Final destination router address")

    def to_json(self) -> str:
        """Serialize to JSON."""
        return self.model_dump_json()

    def to_bytes(self) -> bytes:
        """Serialize to bytes for transport."""
        return self.to_json().encode('utf-8')


class DataMessage(BaseMessage):
    """Application payload relayed hop by hop to its destination."""
    type: Literal["data"] = MessageType.DATA
    payload: str = Field(..., description="Opaque payload text")


class UpdateMessage(BaseMessage):
    """Distance vector advertised to a single neighbor."""
    type: Literal["update"] = MessageType.UPDATE
    distances: Dict[str, NonNegativeInt] = Field(
        default_factory=dict,
        description="Destination address -> distance from the source router"
    )


class TraceMessage(BaseMessage):
    """Diagnostic message recording every router it traverses."""
    type: Literal["trace"] = MessageType.TRACE
    routers: List[str] = Field(
        default_factory=list,
        description="Routers traversed so far, in order"
    )


Message = Annotated[
    Union[DataMessage, UpdateMessage, TraceMessage],
    Field(discriminator="type")
]

_message_adapter = TypeAdapter(Message)


def decode_message(data: Union[bytes, str]) -> BaseMessage:
    """
    Decode a datagram into its concrete message variant.

    The ``type`` field selects the variant before the remaining
    fields are validated.

    Args:
        data: Raw datagram contents

    Returns:
        DataMessage, UpdateMessage or TraceMessage

    Raises:
        MessageDecodeError: If the datagram is not valid UTF-8 JSON, has a
            missing or unknown ``type``, or fails field validation
    """
    if isinstance(data, bytes):
        try:
            data = data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MessageDecodeError(f"Datagram is not valid UTF-8: {e}") from e

    try:
        return _message_adapter.validate_json(data)
    except ValidationError as e:
        raise MessageDecodeError(f"Invalid message: {e.errors()[0]['msg']}") from e


def create_data_message(source: str, destination: str, payload: str) -> DataMessage:
    """Create a data message."""
    return DataMessage(source=source, destination=destination, payload=payload)


def create_update_message(
    source: str,
    destination: str,
    distances: Dict[str, int]
) -> UpdateMessage:
    """Create a distance-vector update addressed to one neighbor."""
    return UpdateMessage(source=source, destination=destination, distances=distances)


def create_trace_message(source: str, destination: str) -> TraceMessage:
    """Create a trace seeded with the originating router."""
    return TraceMessage(source=source, destination=destination, routers=[source])
