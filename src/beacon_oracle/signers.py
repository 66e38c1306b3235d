#!/usr/bin/env python3
"""Transaction signing for the Beacon Oracle operator.

Both ways of getting an addTimestamp transaction on-chain share the
RelaySigner capability: the LocalSigner signs with a private key held by the
operator, while the RemoteRelayClient hands the calldata to the secure relay.
The variant is picked from configuration by build_signer().
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol

import aiohttp
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TimeExhausted
from web3.middleware import SignAndSendRawMiddlewareBuilder
from web3.types import HexBytes, TxParams, TxReceipt

from .exceptions import BroadcastError, ConfirmationError, TransportError
from .utils.relay_client import RemoteRelayClient

if TYPE_CHECKING:
    from .config import OracleConfig
    from .utils.chain_client import ChainClient

logger = logging.getLogger(__name__)


class RelaySigner(Protocol):
    """Anything that can get calldata for the oracle contract on-chain."""

    async def submit(self, calldata: str) -> str:
        """Submit calldata to the oracle contract and return the transaction hash."""
        ...


class LocalSigner:
    """Signs and broadcasts transactions with a locally held private key."""

    def __init__(
        self,
        chain_client: "ChainClient",
        private_key: str,
        chain_id: int,
        confirmation_timeout: float = 120
    ) -> None:
        """
        Initialize the LocalSigner.

        Args:
            chain_client: Client whose web3 instance is used to send transactions
            private_key: Hex private key of the sending account
            chain_id: Chain ID stamped on every transaction
            confirmation_timeout: Seconds to wait for a transaction receipt
        """
        self.chain_client: "ChainClient" = chain_client
        self.chain_id: int = chain_id
        self.confirmation_timeout: float = confirmation_timeout

        self.account: LocalAccount = Account.from_key(private_key)
        self.w3 = chain_client.w3
        self.w3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(self.account))

        logger.info(f"LocalSigner initialized for account {self.account.address}")

    async def submit(self, calldata: str) -> str:
        """
        Sign and broadcast a transaction carrying the calldata, then wait for it.

        Args:
            calldata: ABI-encoded call data (0x-prefixed hex)

        Returns:
            Hash of the mined transaction (0x-prefixed hex)

        Raises:
            BroadcastError: If the node rejects the transaction or it reverts
            ConfirmationError: If no receipt shows up within the timeout
            TransportError: If the node is unreachable or times out
        """
        tx_params: TxParams = {
            'from': self.account.address,
            'to': self.chain_client.contract_address,
            'data': calldata,
            'chainId': self.chain_id
        }

        try:
            tx_hash: HexBytes = await asyncio.wait_for(
                self.w3.eth.send_transaction(tx_params),
                timeout=self.chain_client.request_timeout
            )
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Timed out after {self.chain_client.request_timeout}s while broadcasting transaction"
            ) from e
        except (aiohttp.ClientError, ConnectionError) as e:
            raise TransportError(f"RPC error while broadcasting transaction: {e}") from e
        except Exception as e:
            raise BroadcastError(f"Node rejected transaction: {e}") from e

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Transaction broadcast: {tx_hash_hex}")

        try:
            receipt: TxReceipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.confirmation_timeout
            )
        except TimeExhausted as e:
            raise ConfirmationError(
                f"Transaction {tx_hash_hex} not mined within {self.confirmation_timeout}s"
            ) from e
        except Exception as e:
            raise TransportError(f"Error waiting for receipt of {tx_hash_hex}: {e}") from e

        # Use walrus operator for status check
        if (status := receipt.get('status', 0)) != 1:
            raise BroadcastError(f"Transaction {tx_hash_hex} reverted with status={status}")

        logger.info(f"Transaction confirmed in block {receipt.get('blockNumber')}")
        return tx_hash_hex


def build_signer(config: "OracleConfig", chain_client: "ChainClient") -> RelaySigner:
    """Create the signer selected by the configuration.

    A configured private key selects the LocalSigner; otherwise requests go
    to the secure relay.
    """
    match config.signing:
        case signing if signing.private_key:
            logger.info("Using local signer (self-relay)")
            return LocalSigner(
                chain_client=chain_client,
                private_key=signing.private_key,
                chain_id=config.chain.chain_id,
                confirmation_timeout=config.monitoring.confirmation_timeout
            )
        case signing:
            logger.info(f"Using secure relay at {signing.relay_endpoint}")
            return RemoteRelayClient(
                relay_endpoint=signing.relay_endpoint,
                chain_id=config.chain.chain_id,
                contract_address=config.chain.contract_address,
                platform_request=signing.platform_request,
                request_timeout=config.monitoring.request_timeout
            )
