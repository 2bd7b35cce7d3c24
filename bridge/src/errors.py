"""
Exception hierarchy for the BL-NET bridge.

Every failure the poll cycle can hit is raised as a subclass of
:class:`BlnetError` so the driver can abandon the cycle with a single except
clause.  Nothing here is recovered locally except the device's own
not-ready signal, which never becomes an exception until the retry budget
is spent.

CHANGELOG:
- 2026-09-14: Initial creation (STORY-003)

TODO:
- None
"""


class BlnetError(Exception):
    """Base exception for all bridge errors."""


class TransportError(BlnetError):
    """Raised when connecting, sending, or receiving fails or times out."""


class ProtocolError(BlnetError):
    """Raised when the device closes the stream before a full reply arrived."""


class ChecksumError(BlnetError):
    """Raised when a reply's trailing byte does not match its checksum."""


class RetriesExhaustedError(BlnetError):
    """Raised when the device never reported ready within the retry budget."""


class DecodeError(BlnetError):
    """Raised when a snapshot buffer is too short for the field layout."""


class PublishError(BlnetError):
    """Raised when a reading cannot be sent to the home-automation endpoint."""
