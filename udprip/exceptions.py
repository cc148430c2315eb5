"""Exception types raised by the router."""


class RouterError(Exception):
    """Base class for router errors."""


class MessageDecodeError(RouterError, ValueError):
    """Raised when an inbound datagram is not a valid protocol message."""


class CommandError(RouterError, ValueError):
    """Raised when an administrative command cannot be parsed."""
