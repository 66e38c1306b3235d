#!/usr/bin/env python3
"""Error types raised by the Beacon Oracle operator.

Every failure at an I/O boundary is surfaced as one of these so the
updater loop can log the kind of failure and carry on with the next
iteration. Only ConfigurationError is fatal, and only at startup.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import RelayStatus


class OracleError(Exception):
    """Base class for all operator errors."""


class ConfigurationError(OracleError, ValueError):
    """Missing or invalid settings. Raised before the loop starts."""


class TransportError(OracleError):
    """RPC node or relay unreachable, timed out, or answered with a bad HTTP status."""


class DecodeError(OracleError):
    """Chain data could not be interpreted (missing block, malformed root)."""


class ProtocolError(DecodeError):
    """Relay response body did not match the relay protocol."""


class RelayRejected(OracleError):
    """The relay declined the request (preflight or simulation failure).

    Attributes:
        status: RelayStatus reported by the relay
        message: Reason given by the relay, if any
    """

    def __init__(self, status: "RelayStatus", message: str | None = None) -> None:
        self.status = status
        self.message = message
        super().__init__(
            f"Relay rejected request with status {status.name} ({int(status)}): "
            f"{message or 'no message'}"
        )


class BroadcastError(OracleError):
    """The node refused a locally signed transaction, or it reverted."""


class ConfirmationError(OracleError):
    """A locally signed transaction was not mined before the timeout."""
