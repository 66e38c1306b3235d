import asyncio
import json
import logging
from collections.abc import Awaitable
from pathlib import Path
from typing import Any, TypeVar

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.contract import AsyncContract
from web3.exceptions import BadFunctionCallOutput, BlockNotFound

from ..exceptions import DecodeError, TransportError
from ..models import EMPTY_ROOT, IntervalBlock

logger = logging.getLogger(__name__)

T = TypeVar("T")

ORACLE_CONTRACT_NAME: str = "EigenlayerBeaconOracle"


class ChainClient:
    """
    Async access to the chain hosting the beacon oracle contract.

    Reads block headers and the head height, queries the oracle's
    timestamp -> block root mapping and encodes addTimestamp calldata.
    Every RPC call is bounded by request_timeout and surfaces failures as
    TransportError or DecodeError.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        request_timeout: float = 30,
        w3: AsyncWeb3 | None = None
    ) -> None:
        """
        Initialize the ChainClient.

        Args:
            rpc_url: HTTP(S) RPC URL of the chain (required)
            contract_address: Address of the beacon oracle contract
            request_timeout: Seconds allowed for each RPC call
            w3: Pre-built AsyncWeb3 instance (defaults to an HTTP provider on rpc_url)
        """
        if not rpc_url:
            raise ValueError("RPC URL is required")

        self.rpc_url = rpc_url
        self.request_timeout = request_timeout
        self.contract_address = Web3.to_checksum_address(contract_address)

        self.w3: AsyncWeb3 = w3 or AsyncWeb3(AsyncHTTPProvider(self.rpc_url))
        self.contract: AsyncContract = self.w3.eth.contract(
            address=self.contract_address,
            abi=self.get_contract_abi(ORACLE_CONTRACT_NAME)
        )

    @staticmethod
    def get_contract_abi(contract_name: str) -> list[dict[str, Any]]:
        """Fetches ABI of the given contract from the bundled contracts folder.

        Args:
            contract_name: Name of the contract (without .json extension)

        Returns:
            List of ABI dictionaries for the contract

        Raises:
            FileNotFoundError: If the contract file doesn't exist
            json.JSONDecodeError: If the contract file is invalid JSON
        """
        contract_path: Path = (
            Path(__file__).parent.parent
            / "contracts"
            / f"{contract_name}.json"
        ).resolve()

        with contract_path.open() as file:
            contract_data: dict[str, Any] = json.load(file)

        return contract_data["abi"]

    async def _call(self, description: str, request: Awaitable[T]) -> T:
        """Await an RPC request with the configured timeout.

        Raises:
            TransportError: If the request times out or the node call fails
            DecodeError: If the node answered with data that cannot be used
        """
        try:
            return await asyncio.wait_for(request, timeout=self.request_timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Timed out after {self.request_timeout}s while {description}"
            ) from e
        except (BlockNotFound, BadFunctionCallOutput) as e:
            raise DecodeError(f"Unusable response while {description}: {e}") from e
        except Exception as e:
            raise TransportError(f"RPC error while {description}: {e}") from e

    async def get_head_block_number(self) -> int:
        """Return the current head height."""
        return int(await self._call("reading head block number", self.w3.eth.block_number))

    async def get_chain_id(self) -> int:
        """Return the chain ID reported by the RPC endpoint."""
        return int(await self._call("reading chain id", self.w3.eth.chain_id))

    async def get_interval_block(self, block_number: int) -> IntervalBlock:
        """
        Fetch a block by number and return its number and timestamp.

        :param block_number: The block number to fetch
        :return: The block's number and timestamp
        """
        block = await self._call(f"fetching block {block_number}", self.w3.eth.get_block(block_number))
        if block is None or block.get("timestamp") is None:
            raise DecodeError(f"Block {block_number} has no timestamp")

        return IntervalBlock(block_number=block_number, timestamp=int(block["timestamp"]))

    async def get_block_root(self, timestamp: int) -> bytes:
        """Read the root recorded for a timestamp (all zeroes when unrecorded)."""
        root = await self._call(
            f"reading block root for timestamp {timestamp}",
            self.contract.functions.timestampToBlockRoot(timestamp).call()
        )
        if not isinstance(root, (bytes, bytearray)) or len(root) != 32:
            raise DecodeError(f"Expected a 32-byte root for timestamp {timestamp}, got {root!r}")
        return bytes(root)

    async def is_recorded(self, timestamp: int) -> bool:
        """Check whether the oracle already holds a root for the timestamp."""
        return await self.get_block_root(timestamp) != EMPTY_ROOT

    def encode_add_timestamp(self, timestamp: int) -> str:
        """Encode addTimestamp(timestamp) calldata as a 0x-prefixed hex string."""
        return self.contract.encode_abi("addTimestamp", args=[timestamp])
