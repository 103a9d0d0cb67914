"""
Collection orchestrator.

Runs one collection cycle across organizations: resolve the inventory,
fetch every metricset, correlate samples with devices, and hand events
to the sink. A failure in one organization or metricset never stops
the others.
"""
import asyncio
import logging
import time
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

from ..config import CollectionSettings, get_collector_settings
from ..correlation.event import Event
from ..devices.inventory import InventoryResolver
from ..exceptions import CollectionCycleError, CollectorError
from ..output.sinks import EventSink
from ..target import OrganizationTarget
from .window import WindowPlanner

if TYPE_CHECKING:
    from ..metricsets.base import MetricSet

logger = logging.getLogger(__name__)


@dataclass
class OrganizationResult:
    """Outcome of one organization in a collection cycle."""
    organization_id: str
    devices: int = 0
    events: Dict[str, int] = field(default_factory=dict)
    dropped_events: int = 0
    errors: Dict[str, str] = field(default_factory=dict)
    duration_ms: float = 0.0
    skipped: bool = False

    @property
    def success(self) -> bool:
        """True if inventory and every metricset were collected."""
        return not self.errors

    @property
    def total_events(self) -> int:
        return sum(self.events.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "success": self.success,
            "skipped": self.skipped,
            "devices": self.devices,
            "events": dict(self.events),
            "dropped_events": self.dropped_events,
            "errors": dict(self.errors),
            "duration_ms": round(self.duration_ms, 2),
        }


@dataclass
class CycleReport:
    """Outcome of one collection cycle."""
    started_at: datetime
    results: List[OrganizationResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(result.success for result in self.results)

    @property
    def failed_organizations(self) -> List[str]:
        return [result.organization_id for result in self.results if not result.success]

    @property
    def total_events(self) -> int:
        return sum(result.total_events for result in self.results)

    def raise_for_errors(self) -> None:
        """
        Raise an aggregate error if any organization failed.

        Raises:
            CollectionCycleError: Mapping of organization to its errors.
        """
        errors = {
            result.organization_id: "; ".join(
                f"{stage}: {message}" for stage, message in result.errors.items()
            )
            for result in self.results
            if not result.success
        }
        if errors:
            raise CollectionCycleError(errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "success": self.success,
            "total_events": self.total_events,
            "organizations": [result.to_dict() for result in self.results],
        }


class CollectionOrchestrator:
    """
    Runs collection cycles.

    Features:
    - Organizations processed concurrently, optionally bounded
    - Failures isolated per organization and per metricset
    - Gap-free collection windows per organization and metricset
    - Bounded event emission
    """

    def __init__(
        self,
        resolver: InventoryResolver,
        metricsets: Sequence["MetricSet"],
        sink: EventSink,
        settings: Optional[CollectionSettings] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            resolver: Inventory resolver.
            metricsets: Metricsets to collect for every organization.
            sink: Destination for events.
            settings: Collection settings.
        """
        self.resolver = resolver
        self.metricsets = list(metricsets)
        self.sink = sink
        self.settings = settings or get_collector_settings().collection

        self._planners: Dict[Tuple[str, str], WindowPlanner] = {}

        # Statistics
        self._cycles = 0
        self._failed_cycles = 0
        self._events_emitted = 0
        self._events_dropped = 0

    async def run_cycle(
        self,
        targets: Sequence[OrganizationTarget],
        now: Optional[datetime] = None,
    ) -> CycleReport:
        """
        Run one collection cycle.

        Args:
            targets: Organizations to collect.
            now: Collection instant, defaults to the current time.

        Returns:
            Per-organization results, in target order.
        """
        collected_at = now or datetime.now(timezone.utc)
        report = CycleReport(started_at=collected_at)

        limit = self.settings.max_concurrent_organizations
        semaphore = asyncio.Semaphore(limit) if limit else None

        async def run(target: OrganizationTarget) -> OrganizationResult:
            async with AsyncExitStack() as stack:
                if semaphore is not None:
                    await stack.enter_async_context(semaphore)
                return await self.collect_organization(target, collected_at)

        report.results = list(await asyncio.gather(*(run(target) for target in targets)))

        self._cycles += 1
        if not report.success:
            self._failed_cycles += 1
            logger.warning(
                f"Collection cycle finished with failures for "
                f"{', '.join(report.failed_organizations)}"
            )
        else:
            logger.info(
                f"Collection cycle finished: {len(targets)} organizations, "
                f"{report.total_events} events"
            )

        return report

    async def collect_organization(
        self,
        target: OrganizationTarget,
        collected_at: datetime,
    ) -> OrganizationResult:
        """
        Collect every metricset for one organization.

        Args:
            target: Organization target.
            collected_at: Collection instant.

        Returns:
            Organization result. Errors are recorded, not raised.
        """
        organization_id = target.organization_id
        result = OrganizationResult(organization_id=organization_id)
        start_time = time.monotonic()

        try:
            if (
                self.settings.skip_disabled_organizations
                and not await self.resolver.is_api_enabled(target)
            ):
                logger.info(f"Dashboard API access disabled for {organization_id}, skipping")
                result.skipped = True
                result.duration_ms = (time.monotonic() - start_time) * 1000
                return result

            inventory = await self.resolver.resolve_inventory(target)
        except asyncio.CancelledError:
            raise
        except CollectorError as e:
            result.errors["inventory"] = e.message
            logger.error(f"Inventory resolution failed for {organization_id}: {e.message}")
            result.duration_ms = (time.monotonic() - start_time) * 1000
            return result

        result.devices = len(inventory)

        for metricset in self.metricsets:
            planner = self._planner(target, metricset.name)
            window = planner.plan(collected_at)

            try:
                samples = await metricset.fetch(target, inventory, window)
                events = metricset.build_events(target, inventory, samples, collected_at)
            except asyncio.CancelledError:
                raise
            except CollectorError as e:
                result.errors[metricset.name] = e.message
                logger.error(f"{metricset.name} failed for {organization_id}: {e.message}")
                continue
            except Exception as e:
                result.errors[metricset.name] = str(e)
                logger.exception(f"Unexpected error in {metricset.name} for {organization_id}: {e}")
                continue

            planner.commit(window)

            emitted = await self._emit_all(events)
            result.events[metricset.name] = emitted
            result.dropped_events += len(events) - emitted

            logger.debug(
                f"{metricset.name} for {organization_id}: {len(samples)} samples, "
                f"{emitted}/{len(events)} events emitted"
            )

        result.duration_ms = (time.monotonic() - start_time) * 1000
        return result

    async def _emit_all(self, events: List[Event]) -> int:
        """
        Emit events, bounding each call by the emit timeout.

        Returns:
            Number of events the sink accepted.
        """
        emitted = 0

        for event in events:
            try:
                await asyncio.wait_for(
                    self.sink.emit(event),
                    timeout=self.settings.emit_timeout,
                )
                emitted += 1
            except asyncio.TimeoutError:
                logger.warning(
                    f"Timed out emitting {event.metricset} event for {event.organization_id}"
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error emitting {event.metricset} event: {e}")

        self._events_emitted += emitted
        self._events_dropped += len(events) - emitted
        return emitted

    def _planner(self, target: OrganizationTarget, metricset: str) -> WindowPlanner:
        key = (target.organization_id, metricset)
        planner = self._planners.get(key)
        if planner is None:
            planner = WindowPlanner(
                target.period,
                self.settings.window_margin,
                max_window=self.settings.max_window,
                late_grace=self.settings.late_arrival_grace,
            )
            self._planners[key] = planner
        return planner

    def get_stats(self) -> Dict[str, Any]:
        """
        Get orchestrator statistics.

        Returns:
            Dictionary of orchestrator stats.
        """
        return {
            "cycles": self._cycles,
            "failed_cycles": self._failed_cycles,
            "events_emitted": self._events_emitted,
            "events_dropped": self._events_dropped,
            "metricsets": [metricset.name for metricset in self.metricsets],
        }
