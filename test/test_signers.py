#!/usr/bin/env python3
"""Unit tests for the signers module."""

import asyncio

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock
from eth_account import Account
from web3.exceptions import TimeExhausted
from web3.types import HexBytes

from beacon_oracle.config import ChainConfig, MonitoringConfig, OracleConfig, SigningConfig
from beacon_oracle.exceptions import BroadcastError, ConfirmationError, TransportError
from beacon_oracle.signers import LocalSigner, build_signer
from beacon_oracle.utils.relay_client import RemoteRelayClient

CONTRACT_ADDRESS = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
PRIVATE_KEY = "0x" + "1" * 64
CALLDATA = "0xd6f8a2b1" + "00" * 28 + "5fc63057"
TX_HASH = HexBytes("0x" + "12" * 32)


@pytest.fixture
def mock_chain_client():
    """Create a mock ChainClient instance."""
    mock = MagicMock()
    mock.contract_address = CONTRACT_ADDRESS
    mock.request_timeout = 5
    mock.w3 = MagicMock()
    mock.w3.eth.send_transaction = AsyncMock(return_value=TX_HASH)
    mock.w3.eth.wait_for_transaction_receipt = AsyncMock(return_value={
        'status': 1,
        'blockNumber': 12346
    })
    return mock


def make_config(**signing) -> OracleConfig:
    return OracleConfig(
        chain=ChainConfig(rpc_url="https://rpc.test", chain_id=17000, contract_address=CONTRACT_ADDRESS),
        signing=SigningConfig(**signing),
        monitoring=MonitoringConfig(block_interval=100, request_timeout=15, confirmation_timeout=60)
    )


class TestLocalSigner:
    """Test suite for LocalSigner."""

    def test_init_adds_signing_middleware(self, mock_chain_client):
        """The signing middleware is installed on the client's web3 instance."""
        signer = LocalSigner(mock_chain_client, PRIVATE_KEY, chain_id=17000)

        assert signer.account.address == Account.from_key(PRIVATE_KEY).address
        assert signer.w3 is mock_chain_client.w3
        mock_chain_client.w3.middleware_onion.add.assert_called_once()

    @pytest.mark.asyncio
    async def test_submit_success(self, mock_chain_client):
        """A mined transaction returns its hash."""
        signer = LocalSigner(mock_chain_client, PRIVATE_KEY, chain_id=17000, confirmation_timeout=45)

        result = await signer.submit(CALLDATA)

        assert result == "0x" + "12" * 32
        mock_chain_client.w3.eth.send_transaction.assert_awaited_once_with({
            'from': signer.account.address,
            'to': CONTRACT_ADDRESS,
            'data': CALLDATA,
            'chainId': 17000
        })
        mock_chain_client.w3.eth.wait_for_transaction_receipt.assert_awaited_once_with(
            TX_HASH, timeout=45
        )

    @pytest.mark.asyncio
    async def test_submit_rejected_by_node(self, mock_chain_client):
        """A node rejection raises BroadcastError."""
        mock_chain_client.w3.eth.send_transaction.side_effect = ValueError(
            {"code": -32000, "message": "nonce too low"}
        )
        signer = LocalSigner(mock_chain_client, PRIVATE_KEY, chain_id=17000)

        with pytest.raises(BroadcastError, match="nonce too low"):
            await signer.submit(CALLDATA)
        mock_chain_client.w3.eth.wait_for_transaction_receipt.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        aiohttp.ClientConnectionError("Cannot connect to host 127.0.0.1:1"),
        ConnectionRefusedError("Connect call failed"),
    ])
    async def test_submit_node_unreachable(self, mock_chain_client, error):
        """An unreachable node raises TransportError, not BroadcastError."""
        mock_chain_client.w3.eth.send_transaction.side_effect = error
        signer = LocalSigner(mock_chain_client, PRIVATE_KEY, chain_id=17000)

        with pytest.raises(TransportError, match="while broadcasting transaction"):
            await signer.submit(CALLDATA)
        mock_chain_client.w3.eth.wait_for_transaction_receipt.assert_not_called()

    @pytest.mark.asyncio
    async def test_submit_broadcast_timeout(self, mock_chain_client):
        """A broadcast that hangs past the request timeout raises TransportError."""
        async def hang(tx_params):
            await asyncio.sleep(10)

        mock_chain_client.request_timeout = 0.01
        mock_chain_client.w3.eth.send_transaction = hang
        signer = LocalSigner(mock_chain_client, PRIVATE_KEY, chain_id=17000)

        with pytest.raises(TransportError, match="Timed out after 0.01s"):
            await signer.submit(CALLDATA)

    @pytest.mark.asyncio
    async def test_submit_not_mined(self, mock_chain_client):
        """A receipt timeout raises ConfirmationError."""
        mock_chain_client.w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("timeout")
        signer = LocalSigner(mock_chain_client, PRIVATE_KEY, chain_id=17000, confirmation_timeout=30)

        with pytest.raises(ConfirmationError, match="not mined within 30s"):
            await signer.submit(CALLDATA)

    @pytest.mark.asyncio
    async def test_submit_reverted(self, mock_chain_client):
        """A reverted transaction (status = 0) raises BroadcastError."""
        mock_chain_client.w3.eth.wait_for_transaction_receipt.return_value = {
            'status': 0,
            'blockNumber': 12346
        }
        signer = LocalSigner(mock_chain_client, PRIVATE_KEY, chain_id=17000)

        with pytest.raises(BroadcastError, match="reverted with status=0"):
            await signer.submit(CALLDATA)

    @pytest.mark.asyncio
    async def test_submit_connection_lost_while_waiting(self, mock_chain_client):
        """Losing the node while polling for the receipt raises TransportError."""
        mock_chain_client.w3.eth.wait_for_transaction_receipt.side_effect = ConnectionError("reset")
        signer = LocalSigner(mock_chain_client, PRIVATE_KEY, chain_id=17000)

        with pytest.raises(TransportError, match="reset"):
            await signer.submit(CALLDATA)


class TestBuildSigner:
    """Tests for signer selection."""

    def test_private_key_selects_local_signer(self, mock_chain_client):
        """A configured private key selects the LocalSigner."""
        signer = build_signer(make_config(private_key=PRIVATE_KEY), mock_chain_client)

        assert isinstance(signer, LocalSigner)
        assert signer.chain_id == 17000
        assert signer.confirmation_timeout == 60

    def test_relay_endpoint_selects_relay_client(self, mock_chain_client):
        """A relay endpoint selects the RemoteRelayClient."""
        config = make_config(relay_endpoint="https://relay.test/", platform_request=True)

        signer = build_signer(config, mock_chain_client)

        assert isinstance(signer, RemoteRelayClient)
        assert signer.url == "https://relay.test"
        assert signer.chain_id == 17000
        assert signer.contract_address == CONTRACT_ADDRESS
        assert signer.platform_request is True
        assert signer.request_timeout == 15
        mock_chain_client.w3.middleware_onion.add.assert_not_called()
