"""Error kinds raised by the real-time messaging core."""


class ChatError(Exception):
    """Base class for errors reported back to a connected client."""


class InvalidMessage(ChatError):
    """Message has no recipient, or neither a body nor an attachment."""


class PersistenceFailure(ChatError):
    """The message log could not durably store a message."""


class ProtocolError(ChatError):
    """Event not valid for the session's current state."""


class SessionClosed(ChatError):
    """Push attempted on a session that is already closed."""
