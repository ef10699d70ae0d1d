"""Tests for the Collector interface and the declarative row mapper."""

import pytest

from hyperv_exporter.collectors.base import (
    Cardinality,
    Collector,
    CounterClass,
    CounterClassCollector,
    FieldMapping,
    gauge,
    instance_gauge,
)
from hyperv_exporter.errors import (
    ConfigurationError,
    MalformedSchema,
    MissingRow,
    QueryFailed,
    SourceUnavailable,
)
from hyperv_exporter.utils.metrics import MetricStream
from hyperv_exporter.utils.transforms import kibibytes_to_bytes

from conftest import FakeCounterSource


class SystemCollector(CounterClassCollector):
    """Single-row collector used to exercise the mapper."""

    name = "system"

    METRICS = (
        ("memory", gauge("test", "memory_bytes", "Memory")),
        ("count", gauge("test", "count", "Count")),
    )

    COUNTER_CLASSES = (
        CounterClass(
            name="Test_System",
            cardinality=Cardinality.SINGLE,
            fields=(
                FieldMapping("memory", "Memory", kibibytes_to_bytes),
                FieldMapping("count", "Count"),
            ),
        ),
    )


class InstanceCollector(CounterClassCollector):
    """Per-instance collector used to exercise the mapper."""

    name = "instances"

    METRICS = (
        ("pages", instance_gauge("test", "pages", "Pages")),
    )

    COUNTER_CLASSES = (
        CounterClass(
            name="Test_Instance",
            cardinality=Cardinality.PER_INSTANCE,
            fields=(FieldMapping("pages", "Pages"),),
        ),
    )


class TestCollectorInterface:
    def test_collector_is_abstract(self, fake_source, logger):
        with pytest.raises(TypeError):
            Collector(fake_source, logger)

    def test_collector_logger_hierarchy(self, fake_source, logger):
        collector = SystemCollector(fake_source, logger)
        assert collector.logger.parent == logger or collector.logger.name.startswith(logger.name)

    def test_registry_built_at_construction(self, fake_source, logger):
        collector = SystemCollector(fake_source, logger)
        assert set(collector.registry) == {"memory", "count"}
        assert collector.registry["memory"].fq_name == "hyperv_test_memory_bytes"

    def test_registry_is_per_instance_but_descriptors_shared(self, fake_source, logger):
        first = SystemCollector(fake_source, logger)
        second = SystemCollector(fake_source, logger)
        assert first.registry is not second.registry
        assert first.registry["memory"] is second.registry["memory"]


class TestConstructionErrors:
    def test_duplicate_logical_name(self, fake_source, logger):
        class Duplicate(SystemCollector):
            METRICS = SystemCollector.METRICS + (("memory", gauge("test", "other", "Other")),)

        with pytest.raises(ConfigurationError):
            Duplicate(fake_source, logger)

    def test_unknown_metric_in_mapping(self, fake_source, logger):
        class Unknown(SystemCollector):
            COUNTER_CLASSES = (
                CounterClass("Test_System", Cardinality.SINGLE, (
                    FieldMapping("memory", "Memory"),
                    FieldMapping("count", "Count"),
                    FieldMapping("missing", "Missing"),
                )),
            )

        with pytest.raises(ConfigurationError):
            Unknown(fake_source, logger)

    def test_label_schema_mismatch(self, fake_source, logger):
        class Mismatch(InstanceCollector):
            METRICS = (("pages", gauge("test", "pages", "Pages")),)

        with pytest.raises(ConfigurationError):
            Mismatch(fake_source, logger)

    def test_metric_without_source_field(self, fake_source, logger):
        class Unused(SystemCollector):
            METRICS = SystemCollector.METRICS + (("orphan", gauge("test", "orphan", "Orphan")),)

        with pytest.raises(ConfigurationError):
            Unused(fake_source, logger)

    def test_class_declared_twice(self, fake_source, logger):
        class Twice(SystemCollector):
            COUNTER_CLASSES = SystemCollector.COUNTER_CLASSES * 2

        with pytest.raises(ConfigurationError):
            Twice(fake_source, logger)


class TestSingleRowClasses:
    @pytest.mark.asyncio
    async def test_maps_first_row(self, logger):
        source = FakeCounterSource(rows={"Test_System": [
            {"Memory": 2, "Count": 7},
            {"Memory": 99, "Count": 99},
        ]})
        stream = MetricStream()

        await SystemCollector(source, logger).collect(stream)

        values = {s.descriptor.name: s.value for s in stream.samples}
        assert values == {"memory_bytes": 2048.0, "count": 7.0}
        assert all(s.label_values == () for s in stream.samples)

    @pytest.mark.asyncio
    async def test_zero_rows_is_missing_row(self, fake_source, logger):
        fake_source.rows["Test_System"] = []
        stream = MetricStream()

        with pytest.raises(MissingRow) as exc_info:
            await SystemCollector(fake_source, logger).collect(stream)

        assert exc_info.value.class_name == "Test_System"
        assert len(stream) == 0


class TestPerInstanceClasses:
    @pytest.mark.asyncio
    async def test_one_sample_set_per_row(self, logger):
        source = FakeCounterSource(rows={"Test_Instance": [
            {"Name": "vmA", "Pages": 10},
            {"Name": "vmB", "Pages": 20},
        ]})
        stream = MetricStream()

        await InstanceCollector(source, logger).collect(stream)

        assert [(s.label_values, s.value) for s in stream.samples] == [
            (("vmA",), 10.0),
            (("vmB",), 20.0),
        ]

    @pytest.mark.asyncio
    async def test_zero_rows_is_success(self, fake_source, logger):
        fake_source.rows["Test_Instance"] = []
        stream = MetricStream()

        await InstanceCollector(fake_source, logger).collect(stream)

        assert len(stream) == 0

    def test_rows_map_independently(self, fake_source, logger):
        collector = InstanceCollector(fake_source, logger)
        counter_class = collector.COUNTER_CLASSES[0]
        rows = [{"Name": "vmA", "Pages": 10}, {"Name": "vmB", "Pages": 20}]

        samples = collector.map_rows(counter_class, rows)
        rows[0]["Pages"] = 999
        rows[0]["Name"] = "changed"

        assert samples[0].value == 10.0
        assert samples[0].label_values == ("vmA",)
        assert samples[1].value == 20.0

    @pytest.mark.asyncio
    async def test_row_without_name_is_malformed(self, logger):
        source = FakeCounterSource(rows={"Test_Instance": [{"Pages": 10}]})

        with pytest.raises(MalformedSchema) as exc_info:
            await InstanceCollector(source, logger).collect(MetricStream())

        assert exc_info.value.field == "Name"


class TestErrors:
    @pytest.mark.asyncio
    async def test_source_error_becomes_query_failed(self, logger):
        cause = SourceUnavailable("host unreachable")
        source = FakeCounterSource(errors={"Test_System": cause})

        with pytest.raises(QueryFailed) as exc_info:
            await SystemCollector(source, logger).collect(MetricStream())

        assert exc_info.value.class_name == "Test_System"
        assert exc_info.value.cause is cause

    @pytest.mark.asyncio
    async def test_missing_field_is_malformed(self, logger):
        source = FakeCounterSource(rows={"Test_System": [{"Memory": 1}]})
        stream = MetricStream()

        with pytest.raises(MalformedSchema) as exc_info:
            await SystemCollector(source, logger).collect(stream)

        assert exc_info.value.field == "Count"
        assert len(stream) == 0

    @pytest.mark.asyncio
    async def test_unconvertible_value_is_malformed(self, logger):
        source = FakeCounterSource(rows={"Test_System": [{"Memory": "lots", "Count": 1}]})

        with pytest.raises(MalformedSchema):
            await SystemCollector(source, logger).collect(MetricStream())
