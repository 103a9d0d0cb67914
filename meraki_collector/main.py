"""
Meraki Collector - Main Entry Point.

Starts the collector service that, once per collection period:
1. Resolves the device inventory of every organization
2. Fetches the enabled metricsets over gap-free windows
3. Correlates metric samples with their devices
4. Emits one event per sample to the configured sink
"""
import asyncio
import logging
import signal
import sys
import time
from typing import List, Optional

from .api.dashboard_client import DashboardClient
from .config import CollectorSettings, get_collector_settings
from .devices.inventory import InventoryResolver
from .metricsets import build_metricsets
from .output.sinks import EventSink, JsonLinesSink
from .polling.orchestrator import CollectionOrchestrator, CycleReport
from .target import OrganizationTarget, build_targets

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)

logger = logging.getLogger(__name__)


class CollectorService:
    """
    Main collector service.

    Wires the Dashboard API client, inventory resolver, metricsets and
    orchestrator together and runs one collection cycle per period.
    """

    def __init__(
        self,
        settings: Optional[CollectorSettings] = None,
        sink: Optional[EventSink] = None,
        client: Optional[DashboardClient] = None,
    ):
        """
        Initialize the collector service.

        Args:
            settings: Collector settings.
            sink: Event sink, JSON lines on stdout by default.
            client: Dashboard API client (created from settings if omitted).
        """
        self.settings = settings or get_collector_settings()
        self.sink = sink
        self.client = client

        # Core components
        self.orchestrator: Optional[CollectionOrchestrator] = None
        self.targets: List[OrganizationTarget] = []
        self.last_report: Optional[CycleReport] = None

        # State
        self._running = False
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Start the collector service."""
        logger.info(f"Starting {self.settings.app_name}...")

        errors = self.settings.validate_settings()
        if errors:
            raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

        self.targets = build_targets(self.settings)

        if self.client is None:
            self.client = DashboardClient(self.settings.api)
        await self.client.connect()

        if self.sink is None:
            self.sink = JsonLinesSink()

        self.orchestrator = CollectionOrchestrator(
            resolver=InventoryResolver(self.client),
            metricsets=build_metricsets(self.client, self.settings.collection),
            sink=self.sink,
            settings=self.settings.collection,
        )

        self._running = True
        self._shutdown_event.clear()
        logger.info(
            f"{self.settings.app_name} started: {len(self.targets)} organizations, "
            f"period={self.settings.collection.period}s, "
            f"metricsets={', '.join(self.settings.collection.metricsets)}"
        )

    async def stop(self) -> None:
        """Stop the collector service."""
        if not self._running:
            return

        logger.info(f"Stopping {self.settings.app_name}...")
        self._running = False
        self._shutdown_event.set()

        if self.client:
            await self.client.disconnect()

        if self.sink:
            await self.sink.close()

        logger.info(f"{self.settings.app_name} stopped")

    async def run_once(self) -> CycleReport:
        """Run a single collection cycle."""
        self.last_report = await self.orchestrator.run_cycle(self.targets)
        return self.last_report

    async def serve_forever(self) -> None:
        """Run collection cycles until shutdown."""
        period = self.settings.collection.period

        while self._running:
            started = time.monotonic()

            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Unexpected error in collection cycle: {e}")

            # Wait for next cycle
            delay = max(period - (time.monotonic() - started), 0.0)
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass

    def get_stats(self) -> dict:
        """Get service statistics."""
        stats = {
            "running": self._running,
            "organizations": len(self.targets),
        }

        if self.client:
            stats["client"] = self.client.get_stats()

        if self.orchestrator:
            stats["orchestrator"] = self.orchestrator.get_stats()

        if self.last_report:
            stats["last_cycle"] = self.last_report.to_dict()

        return stats


def setup_signal_handlers(service: CollectorService, loop: asyncio.AbstractEventLoop):
    """Setup signal handlers for graceful shutdown."""
    def signal_handler():
        logger.info("Received shutdown signal")
        loop.create_task(service.stop())

    # Handle both SIGINT and SIGTERM
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda s, f: signal_handler())


async def main():
    """Main entry point."""
    settings = get_collector_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logging.getLogger("httpx").setLevel(logging.WARNING)

    service = CollectorService(settings)
    setup_signal_handlers(service, asyncio.get_running_loop())

    try:
        await service.start()
        await service.serve_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        await service.stop()


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
