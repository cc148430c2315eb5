"""Wire protocol and UDP transport."""

from .protocol import (
    MessageType,
    BaseMessage,
    DataMessage,
    UpdateMessage,
    TraceMessage,
    decode_message,
)
from .udp import UdpTransport

__all__ = [
    "MessageType",
    "BaseMessage",
    "DataMessage",
    "UpdateMessage",
    "TraceMessage",
    "decode_message",
    "UdpTransport",
]
