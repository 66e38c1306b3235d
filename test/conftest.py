#!/usr/bin/env python3
"""Shared fixtures for the Beacon Oracle tests."""

import pytest

from beacon_oracle.config import ChainConfig, MonitoringConfig, OracleConfig, SigningConfig
from beacon_oracle.exceptions import DecodeError
from beacon_oracle.models import EMPTY_ROOT, IntervalBlock

CONTRACT_ADDRESS = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
GENESIS_TIME = 1_606_824_023
SECONDS_PER_BLOCK = 12


def timestamp_of(block_number: int) -> int:
    """Timestamp of a block on the fake chain."""
    return GENESIS_TIME + SECONDS_PER_BLOCK * block_number


class FakeChainClient:
    """In-memory stand-in for ChainClient.

    Block N has timestamp GENESIS_TIME + 12 * N; a block counts as recorded
    once record() has been called for it.
    """

    contract_address = CONTRACT_ADDRESS

    def __init__(self, head: int, recorded_blocks: tuple[int, ...] = (), chain_id: int = 1) -> None:
        self.head = head
        self.chain_id = chain_id
        self.roots: dict[int, bytes] = {}
        self.block_reads: list[int] = []
        for block_number in recorded_blocks:
            self.record(block_number)

    def record(self, block_number: int) -> None:
        self.roots[timestamp_of(block_number)] = bytes([block_number % 255 + 1]) * 32

    async def get_head_block_number(self) -> int:
        return self.head

    async def get_chain_id(self) -> int:
        return self.chain_id

    async def get_interval_block(self, block_number: int) -> IntervalBlock:
        self.block_reads.append(block_number)
        if block_number < 0 or block_number > self.head:
            raise DecodeError(f"Block {block_number} not found")
        return IntervalBlock(block_number=block_number, timestamp=timestamp_of(block_number))

    async def get_block_root(self, timestamp: int) -> bytes:
        return self.roots.get(timestamp, EMPTY_ROOT)

    async def is_recorded(self, timestamp: int) -> bool:
        return await self.get_block_root(timestamp) != EMPTY_ROOT

    def encode_add_timestamp(self, timestamp: int) -> str:
        return "0xd6f8a2b1" + f"{timestamp:064x}"


@pytest.fixture
def make_chain():
    """Factory for FakeChainClient instances."""
    return FakeChainClient


@pytest.fixture
def oracle_config() -> OracleConfig:
    """Relay-mode configuration with interval 100, margin 5 and lookback 500."""
    return OracleConfig(
        chain=ChainConfig(
            rpc_url="https://rpc.test",
            chain_id=1,
            contract_address=CONTRACT_ADDRESS
        ),
        signing=SigningConfig(relay_endpoint="https://relay.test"),
        monitoring=MonitoringConfig(
            block_interval=100,
            safety_margin=5,
            max_lookback=500,
            polling_interval=1
        )
    )
