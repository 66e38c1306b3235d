import json
import logging
from typing import Any

import httpx
from web3 import Web3
from web3.types import HexBytes

from ..exceptions import ProtocolError, RelayRejected, TransportError
from ..models import RelayRequest, RelayResponse

logger = logging.getLogger(__name__)


class RemoteRelayClient:
    """Client for the secure relay service.

    The relay holds the signing key (e.g. in a managed KMS) and signs and
    broadcasts transactions on the operator's behalf, so this client never
    sees key material.
    """

    RELAY_PATH: str = "/relay"

    def __init__(
        self,
        relay_endpoint: str,
        chain_id: int,
        contract_address: str,
        platform_request: bool = False,
        request_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        """Initialize the relay client.

        Args:
            relay_endpoint: Base URL of the relay (without the /relay route)
            chain_id: Chain the relayed transactions target
            contract_address: Oracle contract the calldata is sent to
            platform_request: Forwarded as-is in every relay request
            request_timeout: HTTP timeout in seconds
            transport: Optional httpx transport (defaults to the network)
        """
        self.url: str = relay_endpoint.rstrip('/')
        self.chain_id: int = chain_id
        self.contract_address: str = Web3.to_checksum_address(contract_address)
        self.platform_request: bool = platform_request
        self.request_timeout: float = request_timeout
        self.transport: httpx.AsyncBaseTransport | None = transport

    async def _relay_post(self, payload: dict[str, Any]) -> httpx.Response:
        """Post a request body to the relay.

        Raises:
            TransportError: If the relay cannot be reached or answers with a non-200 status
        """
        full_url: str = self.url + self.RELAY_PATH
        logger.debug(f"Posting to {full_url}: {json.dumps(payload)}")

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response: httpx.Response = await client.post(
                    full_url, json=payload, timeout=self.request_timeout
                )
        except httpx.TimeoutException as e:
            raise TransportError(f"Relay request to {full_url} timed out after {self.request_timeout}s") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Relay request to {full_url} failed: {e}") from e

        if response.status_code != httpx.codes.OK:
            raise TransportError(f"Relay responded with status code: {response.status_code}")
        return response

    def _parse_response(self, response: httpx.Response) -> RelayResponse:
        try:
            body: Any = response.json()
        except ValueError as e:
            raise ProtocolError(f"Relay response is not valid JSON: {response.text[:200]!r}") from e
        return RelayResponse.from_dict(body)

    async def submit(self, calldata: str) -> str:
        """
        Relay calldata to the oracle contract.

        Args:
            calldata: ABI-encoded call data (hex, with or without 0x prefix)

        Returns:
            Hash of the relayed transaction (0x-prefixed hex)

        Raises:
            TransportError: On network failure, timeout or non-200 status
            ProtocolError: If the body is unparsable or lacks a valid hash
            RelayRejected: If the relay reports any status other than RELAYED
        """
        request = RelayRequest(
            chain_id=self.chain_id,
            address=self.contract_address,
            calldata=calldata.removeprefix("0x"),
            platform_request=self.platform_request
        )

        response = self._parse_response(await self._relay_post(request.to_dict()))
        logger.debug(f"Relay response: status={response.status.name}, message={response.message}")

        match response:
            case RelayResponse(relayed=True, transaction_hash=str() as tx_hash):
                return self._normalize_tx_hash(tx_hash)
            case RelayResponse(relayed=True):
                raise ProtocolError("Relay reported success without a transaction hash")
            case _:
                raise RelayRejected(response.status, response.message)

    @staticmethod
    def _normalize_tx_hash(tx_hash: str) -> str:
        try:
            tx_bytes = HexBytes(tx_hash)
        except ValueError as e:
            raise ProtocolError(f"Relay returned a malformed transaction hash: {tx_hash!r}") from e
        if len(tx_bytes) != 32:
            raise ProtocolError(f"Relay returned a malformed transaction hash: {tx_hash!r}")
        return Web3.to_hex(tx_bytes)
