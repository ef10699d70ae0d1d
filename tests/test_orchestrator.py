"""Tests for the scrape orchestrator."""

import asyncio

import pytest

from hyperv_exporter.collectors.base import Collector
from hyperv_exporter.collectors.health_collector import HealthCollector
from hyperv_exporter.collectors.os_collector import OSCollector
from hyperv_exporter.collectors.vid_collector import VidCollector
from hyperv_exporter.errors import ConfigurationError, SourceUnavailable
from hyperv_exporter.orchestrator import (
    COLLECTOR_TYPES,
    SCRAPE_DURATION,
    SCRAPE_SUCCESS,
    ScrapeOrchestrator,
    build_collectors,
)
from hyperv_exporter.utils.metrics import MetricStream

from conftest import HEALTH_CLASS, OS_CLASS, SWITCH_CLASS, VID_CLASS, FakeCounterSource


def meta_samples(stream, descriptor):
    return {s.label_values[0]: s.value for s in stream.samples if s.descriptor is descriptor}


def data_samples(stream):
    return [s for s in stream.samples if s.descriptor not in (SCRAPE_DURATION, SCRAPE_SUCCESS)]


class SlowCollector(Collector):
    name = "slow"

    async def collect(self, stream):
        await asyncio.sleep(5)


class BrokenCollector(Collector):
    name = "broken"

    async def collect(self, stream):
        raise KeyError("bug")


class TestMetaMetrics:
    def test_meta_metric_names(self):
        assert SCRAPE_DURATION.fq_name == "hyperv_exporter_collector_duration_seconds"
        assert SCRAPE_SUCCESS.fq_name == "hyperv_exporter_collector_success"
        assert SCRAPE_DURATION.label_names == ("collector",)

    @pytest.mark.asyncio
    async def test_two_meta_samples_per_collector(self, logger, os_row, health_row):
        source = FakeCounterSource(rows={OS_CLASS: [os_row], HEALTH_CLASS: [health_row]})
        orchestrator = ScrapeOrchestrator(build_collectors(["os", "health"], source, logger), logger)
        stream = MetricStream()

        results = await orchestrator.run_scrape(stream)

        assert meta_samples(stream, SCRAPE_SUCCESS) == {"os": 1.0, "health": 1.0}
        durations = meta_samples(stream, SCRAPE_DURATION)
        assert set(durations) == {"os", "health"}
        assert all(d >= 0 for d in durations.values())
        assert [r.collector_name for r in results] == ["os", "health"]
        assert all(r.success for r in results)
        assert results[0].sample_count == 12
        assert results[1].sample_count == 2


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_health_without_rows(self, logger, os_row):
        """health fails with MissingRow; os is unaffected."""
        source = FakeCounterSource(rows={OS_CLASS: [os_row], HEALTH_CLASS: []})
        orchestrator = ScrapeOrchestrator(build_collectors(["os", "health"], source, logger), logger)
        stream = MetricStream()

        results = await orchestrator.run_scrape(stream)

        assert meta_samples(stream, SCRAPE_SUCCESS) == {"os": 1.0, "health": 0.0}
        assert "health" in meta_samples(stream, SCRAPE_DURATION)
        assert {s.descriptor.subsystem for s in data_samples(stream)} == {"os"}
        health = next(r for r in results if r.collector_name == "health")
        assert not health.success
        assert "no rows" in health.error

    @pytest.mark.asyncio
    async def test_one_source_unavailable_among_four(self, logger, os_row, health_row, vid_rows):
        source = FakeCounterSource(
            rows={OS_CLASS: [os_row], HEALTH_CLASS: [health_row], VID_CLASS: vid_rows},
            errors={SWITCH_CLASS: SourceUnavailable("WinRM down")}
        )
        collectors = build_collectors(["os", "health", "vid", "switch"], source, logger)
        orchestrator = ScrapeOrchestrator(collectors, logger)
        stream = MetricStream()

        await orchestrator.run_scrape(stream)

        meta = [s for s in stream.samples if s.descriptor in (SCRAPE_DURATION, SCRAPE_SUCCESS)]
        assert len(meta) == 8
        assert meta_samples(stream, SCRAPE_SUCCESS) == {
            "os": 1.0, "health": 1.0, "vid": 1.0, "switch": 0.0,
        }
        assert len(data_samples(stream)) == 12 + 2 + 6

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_isolated(self, fake_source, logger, health_row):
        fake_source.rows[HEALTH_CLASS] = [health_row]
        orchestrator = ScrapeOrchestrator({
            "broken": BrokenCollector(fake_source, logger),
            "health": HealthCollector(fake_source, logger),
        }, logger)
        stream = MetricStream()

        results = await orchestrator.run_scrape(stream)

        assert meta_samples(stream, SCRAPE_SUCCESS) == {"broken": 0.0, "health": 1.0}
        assert "KeyError" in results[0].error

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure(self, fake_source, logger, health_row):
        fake_source.rows[HEALTH_CLASS] = [health_row]
        orchestrator = ScrapeOrchestrator({
            "slow": SlowCollector(fake_source, logger),
            "health": HealthCollector(fake_source, logger),
        }, logger, timeout=0.05)
        stream = MetricStream()

        results = await orchestrator.run_scrape(stream)

        assert meta_samples(stream, SCRAPE_SUCCESS) == {"slow": 0.0, "health": 1.0}
        assert meta_samples(stream, SCRAPE_DURATION)["slow"] < 5
        assert "timed out" in results[0].error


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_collectors_run_concurrently(self, logger):
        class Sleepy(Collector):
            async def collect(self, stream):
                await asyncio.sleep(0.2)

        source = FakeCounterSource()
        orchestrator = ScrapeOrchestrator({f"c{i}": Sleepy(source, logger) for i in range(5)}, logger)
        loop = asyncio.get_running_loop()

        start = loop.time()
        await orchestrator.run_scrape(MetricStream())

        assert loop.time() - start < 0.9

    @pytest.mark.asyncio
    async def test_concurrent_scrapes_are_independent(self, logger, os_row):
        source = FakeCounterSource(rows={OS_CLASS: [os_row]})
        orchestrator = ScrapeOrchestrator({"os": OSCollector(source, logger)}, logger)
        first, second = MetricStream(), MetricStream()

        await asyncio.gather(orchestrator.run_scrape(first), orchestrator.run_scrape(second))

        assert len(first) == len(second) == 12 + 2


class TestBuildCollectors:
    def test_all_known_collectors(self, fake_source, logger):
        collectors = build_collectors(list(COLLECTOR_TYPES), fake_source, logger)
        assert list(collectors) == ["os", "health", "vid", "hv", "processor", "switch", "ethernet"]
        assert isinstance(collectors["vid"], VidCollector)

    def test_unknown_collector(self, fake_source, logger):
        with pytest.raises(ConfigurationError):
            build_collectors(["os", "cpu"], fake_source, logger)

    def test_duplicate_collector(self, fake_source, logger):
        with pytest.raises(ConfigurationError):
            build_collectors(["os", "os"], fake_source, logger)

    def test_collector_set_is_read_only(self, fake_source, logger):
        orchestrator = ScrapeOrchestrator(build_collectors(["os"], fake_source, logger), logger)
        with pytest.raises(TypeError):
            orchestrator.collectors["health"] = HealthCollector(fake_source, logger)
