import asyncio
import logging

from .config import OracleConfig
from .exceptions import ConfigurationError, OracleError
from .models import IntervalBlock, IterationOutcome, UpdaterState
from .scanner import ChainStateScanner
from .scheduler import next_block_to_request
from .signers import RelaySigner, build_signer
from .utils.chain_client import ChainClient

# Get logger for this module
logger = logging.getLogger(__name__)


class OracleUpdater:
    """
    Keeps the beacon oracle contract fed with interval block timestamps.

    Each iteration re-derives everything from chain state: find the latest
    recorded interval, pick the next one, and submit it once it is safely
    behind the head and still missing. Nothing is persisted between
    iterations, so the process can be killed and restarted at any point.
    """

    METRICS_LOG_EVERY = 10  # iterations

    def __init__(
        self,
        config: OracleConfig,
        chain_client: ChainClient,
        signer: RelaySigner
    ) -> None:
        """
        Initialize the OracleUpdater.

        :param config: Operator configuration
        :param chain_client: Client for the chain hosting the oracle
        :param signer: Signer used to get addTimestamp transactions on-chain
        """
        self.config = config
        self.chain_client = chain_client
        self.signer = signer
        self.scanner = ChainStateScanner(chain_client)

        self.state = UpdaterState.IDLE
        self.running = False
        self.shutdown_event = asyncio.Event()

        # Metrics tracking
        self.iterations = 0
        self.submissions = 0
        self.already_recorded = 0
        self.waiting = 0
        self.failures = 0

    @classmethod
    def from_config(cls, config: OracleConfig) -> "OracleUpdater":
        """
        Build the chain client and signer described by the configuration.

        :param config: Operator configuration
        :return: Configured OracleUpdater instance
        """
        chain_client = ChainClient(
            rpc_url=config.chain.rpc_url,
            contract_address=config.chain.contract_address,
            request_timeout=config.monitoring.request_timeout
        )
        signer = build_signer(config, chain_client)
        return cls(config, chain_client, signer)

    async def verify_chain(self) -> None:
        """
        Check that the RPC endpoint serves the configured chain.

        :raises ConfigurationError: If the RPC reports a different chain ID
        :raises TransportError: If the RPC endpoint cannot be reached
        """
        rpc_chain_id = await self.chain_client.get_chain_id()
        if rpc_chain_id != self.config.chain.chain_id:
            raise ConfigurationError(
                f"RPC endpoint {self.config.chain.rpc_url} serves chain {rpc_chain_id}, "
                f"but CHAIN_ID is {self.config.chain.chain_id}"
            )
        logger.info(f"Connected to chain {rpc_chain_id}")

    async def run_once(self) -> IterationOutcome:
        """
        Run a single scan, decide and submit iteration.

        Errors never escape: they are logged with the block and timestamp
        involved and reported as IterationOutcome.FAILED, so the next
        iteration retries naturally.

        :return: How the iteration ended
        """
        self.iterations += 1
        target: int | None = None
        interval_block: IntervalBlock | None = None
        monitoring = self.config.monitoring

        try:
            self.state = UpdaterState.SCANNING
            head = await self.chain_client.get_head_block_number()
            last_recorded = await self.scanner.find_latest_recorded_interval(
                block_interval=monitoring.block_interval,
                max_lookback=monitoring.max_lookback,
                head=head
            )

            self.state = UpdaterState.DECIDING
            target = next_block_to_request(last_recorded, monitoring.block_interval, head)

            # Stay behind the head so a reorg cannot invalidate the block
            if target >= head - monitoring.safety_margin:
                logger.debug(
                    f"Block {target} not yet {monitoring.safety_margin} blocks behind head {head}, waiting"
                )
                self.waiting += 1
                return IterationOutcome.WAITING_FOR_SAFE_BLOCK

            interval_block = await self.chain_client.get_interval_block(target)
            if await self.chain_client.is_recorded(interval_block.timestamp):
                logger.info(f"{interval_block} already recorded, skipping submission")
                self.already_recorded += 1
                return IterationOutcome.ALREADY_RECORDED

            self.state = UpdaterState.SUBMITTING
            logger.info(f"Attempting to add timestamp of {interval_block} to contract")
            calldata = self.chain_client.encode_add_timestamp(interval_block.timestamp)
            tx_hash = await self.signer.submit(calldata)

            logger.info(
                f"✓ Relayed transaction {tx_hash} for block {target} "
                f"to {self.config.chain.contract_address} on chain {self.config.chain.chain_id}"
            )
            self.submissions += 1
            return IterationOutcome.SUBMITTED

        except OracleError as e:
            self.failures += 1
            logger.error(
                f"✗ {type(e).__name__} during iteration "
                f"(target block: {target}, timestamp: {self._timestamp_of(interval_block)}): {e}"
            )
            return IterationOutcome.FAILED

        except Exception as e:
            self.failures += 1
            logger.error(
                f"✗ Unexpected error during iteration "
                f"(target block: {target}, timestamp: {self._timestamp_of(interval_block)}): {e}",
                exc_info=True
            )
            return IterationOutcome.FAILED

        finally:
            self.state = UpdaterState.IDLE
            if self.iterations % self.METRICS_LOG_EVERY == 0:
                self.log_metrics()

    @staticmethod
    def _timestamp_of(interval_block: IntervalBlock | None) -> int | None:
        return interval_block.timestamp if interval_block else None

    async def _sleep(self) -> None:
        """Sleep for the polling interval, waking early on stop()."""
        self.state = UpdaterState.SLEEPING
        logger.debug(f"Sleeping for {self.config.monitoring.polling_interval} seconds")
        try:
            await asyncio.wait_for(
                self.shutdown_event.wait(),
                timeout=self.config.monitoring.polling_interval
            )
        except asyncio.TimeoutError:
            pass  # Normal wake-up
        self.state = UpdaterState.IDLE

    async def run(self, max_iterations: int | None = None) -> None:
        """
        Main loop of the updater.

        Runs until stop() is called, or for max_iterations iterations when given.

        :param max_iterations: Optional bound on the number of iterations
        """
        self.running = True
        logger.info("Starting OracleUpdater...")
        logger.info(
            f"Updating {self.config.chain.contract_address} every "
            f"{self.config.monitoring.block_interval} blocks"
        )

        completed = 0
        try:
            while self.running:
                outcome = await self.run_once()
                completed += 1
                logger.debug(f"Iteration {self.iterations} finished: {outcome.value}")

                if max_iterations is not None and completed >= max_iterations:
                    break
                await self._sleep()
        finally:
            self.running = False
            self.state = UpdaterState.IDLE
            logger.info("OracleUpdater stopped")

    def stop(self) -> None:
        """Stop the update loop after the current iteration."""
        self.running = False
        self.shutdown_event.set()

    def get_metrics(self) -> dict[str, int]:
        """
        Get current update metrics.

        :return: Dictionary of metric names to values
        """
        return {
            "iterations": self.iterations,
            "submissions": self.submissions,
            "already_recorded": self.already_recorded,
            "waiting": self.waiting,
            "failures": self.failures
        }

    def log_metrics(self) -> None:
        """Log current update metrics."""
        metrics = self.get_metrics()
        logger.info(
            f"OracleUpdater Metrics: "
            f"Iterations={metrics['iterations']}, "
            f"Submitted={metrics['submissions']}, "
            f"AlreadyRecorded={metrics['already_recorded']}, "
            f"Waiting={metrics['waiting']}, "
            f"Failures={metrics['failures']}"
        )
