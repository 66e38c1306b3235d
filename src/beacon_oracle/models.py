#!/usr/bin/env python3
"""Data models for the Beacon Oracle operator.

This module provides immutable data classes for interval blocks read from
the source chain and for the request/response bodies of the secure relay
protocol, plus the enums describing the updater's lifecycle.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any

from .exceptions import ProtocolError

# An all-zero root means the contract has no record for a timestamp
EMPTY_ROOT: bytes = b"\x00" * 32


class RelayStatus(IntEnum):
    """Status code returned by the secure relay."""

    UNKNOWN = 0
    RELAYED = 1
    PREFLIGHT_ERROR = 2
    SIMULATION_FAILURE = 3
    PREFLIGHT_FAILURE = 4

    @classmethod
    def parse(cls, value: int) -> "RelayStatus":
        """Map a raw status code, treating unrecognised codes as UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class UpdaterState(Enum):
    """Where the updater is within the current iteration."""
    IDLE = "idle"
    SCANNING = "scanning"
    DECIDING = "deciding"
    SUBMITTING = "submitting"
    SLEEPING = "sleeping"


class IterationOutcome(Enum):
    """How a single updater iteration ended."""
    WAITING_FOR_SAFE_BLOCK = "waiting_for_safe_block"
    ALREADY_RECORDED = "already_recorded"
    SUBMITTED = "submitted"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class IntervalBlock:
    """A source chain block whose number is a multiple of the block interval.

    Attributes:
        block_number: The block number
        timestamp: Block timestamp (Unix timestamp), the oracle's record key
    """

    block_number: int
    timestamp: int

    def __str__(self) -> str:
        return f"IntervalBlock(number={self.block_number}, timestamp={self.timestamp})"


@dataclass(frozen=True, slots=True)
class RelayRequest:
    """Body of a POST to the relay's /relay route.

    Attributes:
        chain_id: Chain the transaction is sent on
        address: Checksummed target contract address (with 0x prefix)
        calldata: ABI-encoded call data, hex without 0x prefix
        platform_request: Whether the relay should bill this to the platform
    """

    chain_id: int
    address: str
    calldata: str
    platform_request: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON body expected by the relay."""
        return {
            "chain_id": self.chain_id,
            "address": self.address,
            "calldata": self.calldata,
            "platform_request": self.platform_request
        }


@dataclass(frozen=True, slots=True)
class RelayResponse:
    """Body returned by the relay.

    Attributes:
        status: Relay status code
        transaction_hash: Hash of the relayed transaction (only when RELAYED)
        message: Human-readable reason, usually set on failure
    """

    status: RelayStatus
    transaction_hash: str | None = None
    message: str | None = None

    @property
    def relayed(self) -> bool:
        return self.status is RelayStatus.RELAYED

    @classmethod
    def from_dict(cls, data: Any) -> "RelayResponse":
        """Build a response from a decoded JSON body.

        Raises:
            ProtocolError: If the body is not a relay response
        """
        if not isinstance(data, dict):
            raise ProtocolError(f"Relay response must be a JSON object, got {type(data).__name__}")

        status = data.get("status")
        # bool is an int subclass but never a valid status
        if not isinstance(status, int) or isinstance(status, bool):
            raise ProtocolError(f"Relay response has invalid status: {status!r}")

        transaction_hash = data.get("transaction_hash")
        message = data.get("message")
        for name, value in (("transaction_hash", transaction_hash), ("message", message)):
            if value is not None and not isinstance(value, str):
                raise ProtocolError(f"Relay response field {name} must be a string, got {value!r}")

        return cls(
            status=RelayStatus.parse(status),
            transaction_hash=transaction_hash,
            message=message
        )
