"""
Beacon Oracle operator package.

Keeps an on-chain beacon oracle contract supplied with the block roots of
interval-aligned blocks, submitting through a local key or a secure relay.
"""

from .config import OracleConfig
from .scanner import ChainStateScanner
from .scheduler import next_block_to_request
from .signers import LocalSigner, RelaySigner, build_signer
from .updater import OracleUpdater
from .utils.chain_client import ChainClient
from .utils.relay_client import RemoteRelayClient

__all__ = [
    "OracleConfig",
    "OracleUpdater",
    "ChainStateScanner",
    "next_block_to_request",
    "ChainClient",
    "RelaySigner",
    "LocalSigner",
    "RemoteRelayClient",
    "build_signer",
]
__version__ = "0.1.0"
