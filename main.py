#!/usr/bin/env python3
"""Entry point for the Beacon Oracle operator.

This module provides the main entry point for the operator service that
keeps the beacon oracle contract updated, signing either locally or through
the secure relay.
"""

import argparse
import asyncio
import logging
import os
import sys

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from beacon_oracle.config import OracleConfig
from beacon_oracle.exceptions import ConfigurationError, OracleError
from beacon_oracle.updater import OracleUpdater


async def main() -> None:
    """Main entry point for the Beacon Oracle operator.

    Parses startup arguments, loads configuration from the environment,
    checks the RPC endpoint and starts the update loop.

    Raises:
        SystemExit: On configuration or startup errors
    """
    # Parse startup arguments
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Beacon Oracle Operator - Commit interval block roots to the oracle contract",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables (a .env file is also read):
  RPC_URL                  - RPC endpoint of the chain hosting the oracle
  CHAIN_ID                 - Chain ID of that chain
  CONTRACT_ADDRESS         - Beacon oracle contract address
  BLOCK_INTERVAL           - Spacing between committed blocks
  RELAYER_PRIVATE_KEY      - Sign and send transactions locally with this key
  SECURE_RELAYER_ENDPOINT  - Secure relay base URL (used when no private key is set)
  PLATFORM_REQUEST         - Flag forwarded to the relay (default: false)
  SAFETY_MARGIN            - Blocks to stay behind the head (default: 1)
  MAX_LOOKBACK_BLOCKS      - Blocks scanned back for the latest record (default: 8191)
  POLLING_INTERVAL         - Seconds between iterations (default: 300)
  REQUEST_TIMEOUT          - RPC and relay timeout in seconds (default: 30)
  CONFIRMATION_TIMEOUT     - Receipt timeout in seconds (default: 120)
  LOG_LEVEL                - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Run a single update iteration and exit"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args: argparse.Namespace = parser.parse_args()

    # Set up logging with specified level
    setup_logging(args.log_level)

    logger.info("=== Beacon Oracle Operator Starting ===")
    logger.info("Loading configuration from environment...")

    try:
        # Load configuration from environment
        config: OracleConfig = OracleConfig.from_env()
        config.log_config()

        logger.info("Creating OracleUpdater instance...")
        updater: OracleUpdater = OracleUpdater.from_config(config)
        await updater.verify_chain()

    except ConfigurationError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - RPC_URL: RPC endpoint of the chain hosting the oracle")
        logger.error("  - CHAIN_ID: Chain ID served by RPC_URL")
        logger.error("  - CONTRACT_ADDRESS: Beacon oracle contract address")
        logger.error("  - BLOCK_INTERVAL: Spacing between committed blocks")
        logger.error("  - RELAYER_PRIVATE_KEY or SECURE_RELAYER_ENDPOINT: How to sign updates")
        sys.exit(1)

    except OracleError as e:
        logger.error(f"Startup Error: {type(e).__name__}: {e}")
        sys.exit(1)

    try:
        logger.info("OracleUpdater ready, starting main loop...")
        await updater.run(max_iterations=1 if args.once else None)

    except asyncio.CancelledError:
        # asyncio.run turns Ctrl-C into cancellation of this task
        logger.info("Received interrupt signal, shutting down gracefully...")
        updater.stop()
        raise

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        # asyncio.run cancels the loop task before re-raising here
        logger.info("Interrupted, exiting")
