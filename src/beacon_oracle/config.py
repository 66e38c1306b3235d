#!/usr/bin/env python3
"""Configuration management for the Beacon Oracle operator.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from environment variables (optionally seeded from a
.env file) once at startup and passed into every component's constructor.
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from dotenv import find_dotenv, load_dotenv
from web3 import Web3

from .exceptions import ConfigurationError

# Get logger for this module
logger = logging.getLogger(__name__)

# Roughly one day of Ethereum blocks
DEFAULT_MAX_LOOKBACK: int = 8191


def _require_http_url(url: str, name: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ConfigurationError(
            f"Invalid {name}: {url!r}. Expected an http or https URL"
        )


def _env_int(name: str, default: int | None = None) -> int:
    """Read an integer environment variable.

    Raises:
        ConfigurationError: If the variable is missing without a default or is not an integer
    """
    raw = os.environ.get(name, "").strip()
    if not raw:
        if default is None:
            raise ConfigurationError(f"{name} environment variable is required")
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(
            f"{name} must be an integer, got {raw!r}"
        ) from None


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Configuration for the chain hosting the oracle contract.

    Attributes:
        rpc_url: HTTP(S) RPC endpoint of the chain
        chain_id: Expected chain ID, checked against the RPC at startup
        contract_address: Checksummed address of the beacon oracle contract
    """

    rpc_url: str
    chain_id: int
    contract_address: str

    def __post_init__(self) -> None:
        """Validate chain configuration."""
        if not self.rpc_url:
            raise ConfigurationError("RPC URL is required (RPC_URL)")
        _require_http_url(self.rpc_url, "RPC URL")

        if self.chain_id <= 0:
            raise ConfigurationError(f"Chain ID must be positive, got {self.chain_id}")

        if not self.contract_address:
            raise ConfigurationError("Contract address is required (CONTRACT_ADDRESS)")

        address = self.contract_address
        # Bare hex addresses are accepted too
        if not address.startswith("0x"):
            address = "0x" + address
        if not Web3.is_address(address):
            raise ConfigurationError(f"Invalid contract address: {self.contract_address}")

        # Use object.__setattr__ since dataclass is frozen
        object.__setattr__(self, 'contract_address', Web3.to_checksum_address(address))


@dataclass(frozen=True, slots=True)
class SigningConfig:
    """How transactions get signed and broadcast.

    Exactly one of relay_endpoint and private_key must be set. A private key
    selects the local signer; a relay endpoint selects the remote relay.

    Attributes:
        relay_endpoint: Base URL of the secure relay service
        private_key: Hex private key used to sign locally
        platform_request: Forwarded to the relay with every request
    """

    relay_endpoint: str | None = None
    private_key: str | None = None
    platform_request: bool = False

    def __post_init__(self) -> None:
        """Validate signing configuration."""
        if self.relay_endpoint and self.private_key:
            raise ConfigurationError(
                "Configure either a relay endpoint or a private key, not both"
            )
        if not self.relay_endpoint and not self.private_key:
            raise ConfigurationError(
                "Either RELAYER_PRIVATE_KEY or SECURE_RELAYER_ENDPOINT is required"
            )

        if self.relay_endpoint:
            _require_http_url(self.relay_endpoint, "relay endpoint")
            object.__setattr__(self, 'relay_endpoint', self.relay_endpoint.rstrip('/'))

        if self.private_key:
            # Should be 64 hex chars, optionally with 0x prefix
            key = self.private_key.removeprefix('0x')

            if len(key) != 64:
                raise ConfigurationError(
                    f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
                )

            try:
                int(key, 16)
            except ValueError:
                raise ConfigurationError(
                    "Invalid private key format. Must be hexadecimal"
                ) from None

    @property
    def mode(self) -> str:
        return "local" if self.private_key else "relay"


@dataclass(frozen=True, slots=True)
class MonitoringConfig:
    """Configuration for the update loop."""
    block_interval: int
    safety_margin: int = 1  # blocks to stay behind the head
    max_lookback: int = DEFAULT_MAX_LOOKBACK  # blocks scanned back for the latest record
    polling_interval: int = 300  # seconds between iterations
    request_timeout: int = 30  # RPC and relay timeout in seconds
    confirmation_timeout: int = 120  # seconds to wait for a receipt

    def __post_init__(self) -> None:
        """Validate monitoring configuration."""
        if self.block_interval <= 0:
            raise ConfigurationError(f"Block interval must be positive, got {self.block_interval}")

        if self.safety_margin < 0:
            raise ConfigurationError(f"Safety margin must be non-negative, got {self.safety_margin}")

        if self.max_lookback <= 0:
            raise ConfigurationError(f"Max lookback must be positive, got {self.max_lookback}")
        if self.max_lookback < self.block_interval:
            logger.warning(
                f"Max lookback ({self.max_lookback}) is smaller than the block interval "
                f"({self.block_interval}); only the latest interval will be scanned"
            )

        if self.polling_interval <= 0:
            raise ConfigurationError(f"Polling interval must be positive, got {self.polling_interval}")
        if self.polling_interval > 3600:
            raise ConfigurationError(f"Polling interval too long (max 3600s), got {self.polling_interval}")

        if self.request_timeout <= 0:
            raise ConfigurationError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ConfigurationError(f"Request timeout too long (max 120s), got {self.request_timeout}")

        if self.confirmation_timeout <= 0:
            raise ConfigurationError(
                f"Confirmation timeout must be positive, got {self.confirmation_timeout}"
            )
        if self.confirmation_timeout > 900:
            raise ConfigurationError(
                f"Confirmation timeout too long (max 900s), got {self.confirmation_timeout}"
            )


@dataclass(frozen=True, slots=True)
class OracleConfig:
    """Main configuration for the Beacon Oracle operator.

    Attributes:
        chain: Chain and contract the oracle lives on
        signing: How update transactions are signed
        monitoring: Update loop settings
    """

    chain: ChainConfig
    signing: SigningConfig
    monitoring: MonitoringConfig

    @classmethod
    def from_env(cls, env_file: str | None = None) -> "OracleConfig":
        """Load configuration from environment variables.

        Values from a .env file are loaded first but never override
        variables already present in the environment.

        Args:
            env_file: Path of the .env file (defaults to searching upwards from the cwd)

        Returns:
            OracleConfig instance with loaded values

        Raises:
            ConfigurationError: If required environment variables are missing or invalid
        """
        load_dotenv(env_file or find_dotenv(usecwd=True))

        chain_config = ChainConfig(
            rpc_url=os.environ.get("RPC_URL", ""),
            chain_id=_env_int("CHAIN_ID"),
            contract_address=os.environ.get("CONTRACT_ADDRESS", "")
        )

        # A private key takes precedence over the relay, as in self-relay deployments
        private_key = os.environ.get("RELAYER_PRIVATE_KEY") or None
        relay_endpoint = None if private_key else (os.environ.get("SECURE_RELAYER_ENDPOINT") or None)

        signing_config = SigningConfig(
            relay_endpoint=relay_endpoint,
            private_key=private_key,
            platform_request=_env_bool("PLATFORM_REQUEST")
        )

        monitoring_config = MonitoringConfig(
            block_interval=_env_int("BLOCK_INTERVAL"),
            safety_margin=_env_int("SAFETY_MARGIN", 1),
            max_lookback=_env_int("MAX_LOOKBACK_BLOCKS", DEFAULT_MAX_LOOKBACK),
            polling_interval=_env_int("POLLING_INTERVAL", 300),
            request_timeout=_env_int("REQUEST_TIMEOUT", 30),
            confirmation_timeout=_env_int("CONFIRMATION_TIMEOUT", 120)
        )

        return cls(
            chain=chain_config,
            signing=signing_config,
            monitoring=monitoring_config
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Beacon Oracle Configuration")
        logger.info("=" * 60)

        logger.info("Chain:")
        logger.info(f"  RPC URL: {self.chain.rpc_url}")
        logger.info(f"  Chain ID: {self.chain.chain_id}")
        logger.info(f"  Contract: {self.chain.contract_address}")

        logger.info("Signing:")
        logger.info(f"  Mode: {self.signing.mode.upper()}")
        if self.signing.private_key:
            logger.info("  Local Key: [CONFIGURED]")
        else:
            logger.info(f"  Relay Endpoint: {self.signing.relay_endpoint}")
            logger.info(f"  Platform Request: {self.signing.platform_request}")

        logger.info("Update Loop:")
        logger.info(f"  Block Interval: {self.monitoring.block_interval}")
        logger.info(f"  Safety Margin: {self.monitoring.safety_margin} blocks")
        logger.info(f"  Max Lookback: {self.monitoring.max_lookback} blocks")
        logger.info(f"  Polling Interval: {self.monitoring.polling_interval} seconds")
        logger.info(f"  Request Timeout: {self.monitoring.request_timeout} seconds")
        logger.info(f"  Confirmation Timeout: {self.monitoring.confirmation_timeout} seconds")

        logger.info("=" * 60)
