#!/usr/bin/env python3
"""Choice of the next interval block to commit to the oracle."""

import logging

logger = logging.getLogger(__name__)


def next_block_to_request(
    last_recorded: int | None,
    block_interval: int,
    head: int
) -> int:
    """Return the block whose timestamp should be added next.

    Without a recorded interval in reach, start from the most recent interval
    boundary at or before the head instead of backfilling the gap. Otherwise
    continue one interval after the last recorded block, whatever the head.

    Args:
        last_recorded: Latest interval block already in the contract, if any
        block_interval: Spacing between committed blocks
        head: Current head block number

    Returns:
        The block number to request

    Raises:
        ValueError: If block_interval is not positive or head is negative
    """
    if block_interval <= 0:
        raise ValueError(f"Block interval must be positive, got {block_interval}")
    if head < 0:
        raise ValueError(f"Head block number must be non-negative, got {head}")

    if last_recorded is None:
        default_start_block = head - (head % block_interval)
        logger.debug(
            f"No recorded interval found. Requesting timestamp for block: {default_start_block}"
        )
        return default_start_block

    block_to_request = last_recorded + block_interval
    logger.debug(
        f"Contract's latest recorded block is {last_recorded}. "
        f"Requesting timestamp for block: {block_to_request}"
    )
    return block_to_request
