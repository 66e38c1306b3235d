#!/usr/bin/env python3
"""Discovery of the latest interval block already recorded by the oracle.

The scan walks back from the head one interval at a time and stops at the
first block whose timestamp has a root in the contract. A gap wider than
max_lookback is treated as "no usable history".
"""

import logging

from .utils.chain_client import ChainClient

# Get logger for this module
logger = logging.getLogger(__name__)


class ChainStateScanner:
    """Finds the most recent interval-aligned block recorded on-chain."""

    def __init__(self, chain_client: ChainClient) -> None:
        """Initialize the scanner.

        Args:
            chain_client: Client for block reads and oracle contract queries
        """
        self.chain_client = chain_client

    async def find_latest_recorded_interval(
        self,
        block_interval: int,
        max_lookback: int,
        head: int | None = None
    ) -> int | None:
        """Find the latest interval block whose timestamp root is recorded.

        Candidates are the multiples of block_interval at or below the head
        that are fewer than max_lookback blocks behind it, never below block 0.

        Args:
            block_interval: Spacing between committed blocks
            max_lookback: How far behind the head to search, in blocks
            head: Head block number (read from the chain when omitted)

        Returns:
            The latest recorded interval block, or None if none is in range

        Raises:
            ValueError: If block_interval or max_lookback is not positive
            TransportError: If a chain read fails
            DecodeError: If chain data cannot be interpreted
        """
        if block_interval <= 0:
            raise ValueError(f"Block interval must be positive, got {block_interval}")
        if max_lookback <= 0:
            raise ValueError(f"Max lookback must be positive, got {max_lookback}")

        if head is None:
            head = await self.chain_client.get_head_block_number()

        candidate = head - (head % block_interval)
        # Clamped at genesis so small chains do not scan negative blocks
        lowest = max(0, head - max_lookback + 1)
        checked = 0

        while candidate >= lowest:
            interval_block = await self.chain_client.get_interval_block(candidate)
            checked += 1

            if await self.chain_client.is_recorded(interval_block.timestamp):
                logger.debug(
                    f"Found recorded interval at block {candidate} "
                    f"(timestamp {interval_block.timestamp}) after {checked} reads"
                )
                return candidate

            candidate -= block_interval

        logger.debug(
            f"No recorded interval within {max_lookback} blocks of head {head} "
            f"({checked} candidates checked)"
        )
        return None
