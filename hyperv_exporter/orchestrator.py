"""Scrape orchestration: run every collector and report on its health."""

import asyncio
import logging
import time
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from .collectors.base import Collector
from .collectors.ethernet_collector import EthernetCollector
from .collectors.health_collector import HealthCollector
from .collectors.hv_collector import HypervisorCollector
from .collectors.os_collector import OSCollector
from .collectors.processor_collector import ProcessorCollector
from .collectors.switch_collector import SwitchCollector
from .collectors.vid_collector import VidCollector
from .errors import CollectionError, ConfigurationError
from .services.counter_source import CounterSource
from .utils.logger import setup_logger
from .utils.metrics import NAMESPACE, CollectorResult, CountingStream, MetricDescriptor, MetricStream


SCRAPE_DURATION = MetricDescriptor(
    NAMESPACE, "exporter", "collector_duration_seconds",
    "hyperv_exporter: Duration of a collection.",
    ("collector",)
)

SCRAPE_SUCCESS = MetricDescriptor(
    NAMESPACE, "exporter", "collector_success",
    "hyperv_exporter: Whether the collector was successful.",
    ("collector",)
)

COLLECTOR_TYPES = {
    collector_type.name: collector_type
    for collector_type in (
        OSCollector,
        HealthCollector,
        VidCollector,
        HypervisorCollector,
        ProcessorCollector,
        SwitchCollector,
        EthernetCollector,
    )
}


def build_collectors(
    names: Iterable[str],
    source: CounterSource,
    logger: logging.Logger
) -> Dict[str, Collector]:
    """
    Construct the enabled collectors.

    Args:
        names: Collector names to enable
        source: Counter source shared by all collectors
        logger: Logger instance

    Returns:
        Dict[str, Collector]: Collector name to instance

    Raises:
        ConfigurationError: If a name is unknown or a collector's descriptors
            are inconsistent
    """
    collectors: Dict[str, Collector] = {}

    for name in names:
        collector_type = COLLECTOR_TYPES.get(name)
        if collector_type is None:
            raise ConfigurationError(
                f"Unknown collector: {name} (available: {', '.join(sorted(COLLECTOR_TYPES))})"
            )
        if name in collectors:
            raise ConfigurationError(f"Collector enabled more than once: {name}")
        collectors[name] = collector_type(source, logger)

    return collectors


class ScrapeOrchestrator:
    """
    Runs the registered collectors for one scrape.

    Collectors run concurrently. A failing collector is logged and reported
    through collector_success=0; it never affects the samples of the other
    collectors. The collector set is fixed at construction, so one
    orchestrator can serve concurrent scrapes.
    """

    def __init__(
        self,
        collectors: Mapping[str, Collector],
        logger: Optional[logging.Logger] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize scrape orchestrator.

        Args:
            collectors: Collector name to instance
            logger: Optional logger instance
            timeout: Optional per-collector timeout in seconds
        """
        self._collectors = MappingProxyType(dict(collectors))
        self.logger = (logger or setup_logger("orchestrator")).getChild(self.__class__.__name__)
        self.timeout = timeout

    @property
    def collectors(self) -> Mapping[str, Collector]:
        return self._collectors

    def descriptors(self) -> List[MetricDescriptor]:
        """Every descriptor a scrape can emit, meta-metrics first."""
        result = [SCRAPE_DURATION, SCRAPE_SUCCESS]
        for collector in self._collectors.values():
            result.extend(collector.descriptors())
        return result

    async def run_scrape(self, stream: MetricStream) -> List[CollectorResult]:
        """
        Run every collector once and write samples plus meta-metrics to stream.

        Args:
            stream: Output stream of this scrape

        Returns:
            List[CollectorResult]: One result per collector, in registration order
        """
        tasks = [
            self._execute(name, collector, stream)
            for name, collector in self._collectors.items()
        ]
        results = await asyncio.gather(*tasks)

        failed = [r.collector_name for r in results if not r.success]
        if failed:
            self.logger.warning(f"Scrape finished with {len(failed)} failed collector(s): {', '.join(failed)}")
        else:
            self.logger.debug(f"Scrape finished, {len(results)} collector(s) succeeded")

        return list(results)

    async def _execute(self, name: str, collector: Collector, stream: MetricStream) -> CollectorResult:
        """Run one collector and emit its duration and success samples."""
        counting = CountingStream(stream)
        error: Optional[str] = None
        begin = time.perf_counter()

        try:
            if self.timeout is not None:
                await asyncio.wait_for(collector.collect(counting), timeout=self.timeout)
            else:
                await collector.collect(counting)

        except asyncio.TimeoutError:
            error = f"timed out after {self.timeout}s"

        except CollectionError as e:
            error = str(e)

        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            self.logger.error(f"Unexpected error in {name} collector", exc_info=True)

        duration = time.perf_counter() - begin

        if error is None:
            self.logger.debug(f"OK: {name} collector succeeded after {duration:f}s.")
        else:
            self.logger.error(
                f"ERROR: {name} collector failed after {duration:f}s: {error}",
                extra={"collector": name, "duration_seconds": duration}
            )

        stream.emit(SCRAPE_DURATION, duration, name)
        stream.emit(SCRAPE_SUCCESS, 1.0 if error is None else 0.0, name)

        return CollectorResult(
            collector_name=name,
            success=error is None,
            duration=duration,
            sample_count=counting.count,
            error=error
        )
