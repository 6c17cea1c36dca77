"""Custom exceptions for the Arlo cloud client."""
import asyncio
from typing import Optional


class ArloBaseException(Exception):
    """Base exception for all Arlo-related errors."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ArloBaseException):
    """Raised when a required setting is missing or does not match the account."""
    pass


class AuthenticationError(ArloBaseException):
    """Raised when the client is used before login or a login stage fails."""
    pass


class RemoteError(ArloBaseException):
    """Raised when the vendor envelope reports a failure."""

    def __init__(self, code: Optional[int], message: str, details: dict = None):
        self.code = code
        super().__init__(f"Error code received {code}: {message}", details)
        self.remote_message = message


class NotFoundError(ArloBaseException):
    """Raised when a lookup (mailbox search, device predicate) matches nothing."""
    pass


class DeviceNotFoundError(NotFoundError):
    """Raised when no device matches the requested properties."""
    pass


class ParseError(ArloBaseException):
    """Raised when a stream frame or an MFA email cannot be parsed."""
    pass


class TransportError(ArloBaseException):
    """Raised when the network (HTTP or IMAP) fails."""
    pass


class EventStreamError(ArloBaseException):
    """Base class for event stream channel errors."""
    pass


class StreamNotOpenError(EventStreamError):
    """Raised when a command is issued while the event stream is not open."""
    pass


class StreamClosedError(EventStreamError):
    """Raised to waiters still pending when the event stream closes."""
    pass


class CommandTimeoutError(EventStreamError, asyncio.TimeoutError):
    """Raised when a correlated reply or the stream confirmation does not arrive in time."""

    def __str__(self) -> str:
        return self.message
