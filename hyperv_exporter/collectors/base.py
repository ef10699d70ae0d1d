"""Base collector classes and the declarative counter-row mapper."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple
import logging

from ..errors import CollectionError, ConfigurationError, MalformedSchema, MissingRow, QueryFailed
from ..services.counter_source import CounterSource, RawCounterRow
from ..utils.metrics import NAMESPACE, MetricDescriptor, MetricStream, Sample, build_registry
from ..utils.transforms import as_number


INSTANCE_LABEL = "instance"


class Cardinality(Enum):
    """How many rows a counter class yields."""

    SINGLE = "single"              # system-wide counters, exactly one row
    PER_INSTANCE = "per_instance"  # one row per live object, labeled by Name


@dataclass(frozen=True)
class FieldMapping:
    """
    Maps one row field to one metric.

    Attributes:
        metric: Logical metric name in the collector's registry
        field: Field of the counter row
        transform: Converts the raw field value to the exposed number
        label: Optional function deriving an extra label value from the field
    """

    metric: str
    field: str
    transform: Callable[[Any], float] = as_number
    label: Optional[Callable[[Any], str]] = None


@dataclass(frozen=True)
class CounterClass:
    """Shape of one queried counter class."""

    name: str
    cardinality: Cardinality
    fields: Tuple[FieldMapping, ...]
    instance_field: str = "Name"


def gauge(subsystem: str, name: str, help: str, label_names: Sequence[str] = ()) -> MetricDescriptor:
    """Describe a gauge in the exporter namespace."""
    return MetricDescriptor(NAMESPACE, subsystem, name, help, tuple(label_names))


def instance_gauge(subsystem: str, name: str, help: str) -> MetricDescriptor:
    """Describe a gauge labeled by the row's instance name."""
    return gauge(subsystem, name, help, (INSTANCE_LABEL,))


class Collector(ABC):
    """Abstract base class for all collectors."""

    name: str = "unknown"

    def __init__(self, source: CounterSource, logger: logging.Logger):
        """
        Initialize base collector.

        Args:
            source: Counter source queried on every scrape
            logger: Logger instance
        """
        self.source = source
        self.logger = logger.getChild(self.__class__.__name__)

    @abstractmethod
    async def collect(self, stream: MetricStream) -> None:
        """
        Collect samples and write them to the stream.

        Args:
            stream: Shared output stream of the current scrape

        Raises:
            CollectionError: Any collection error (caught by the orchestrator)
        """
        pass

    def descriptors(self) -> List[MetricDescriptor]:
        """Descriptors this collector may emit, known before any scrape."""
        return []


class CounterClassCollector(Collector):
    """
    Collector driven by declarative counter-class tables.

    Subclasses declare METRICS, a sequence of (logical name, descriptor)
    pairs, and COUNTER_CLASSES, the classes they query with the field
    mappings that feed those metrics. The registry is built and checked
    against the mappings once, at construction.
    """

    METRICS: Sequence[Tuple[str, MetricDescriptor]] = ()
    COUNTER_CLASSES: Sequence[CounterClass] = ()

    def __init__(self, source: CounterSource, logger: logging.Logger):
        super().__init__(source, logger)
        self.registry: Dict[str, MetricDescriptor] = build_registry(self.METRICS)
        self._validate_mappings()

    def descriptors(self) -> List[MetricDescriptor]:
        return list(self.registry.values())

    def _validate_mappings(self) -> None:
        """
        Check every mapping against the registry.

        Raises:
            ConfigurationError: On unknown metrics, label schema mismatches,
                or descriptors no mapping feeds
        """
        fed = set()
        class_names = set()

        for counter_class in self.COUNTER_CLASSES:
            if counter_class.name in class_names:
                raise ConfigurationError(f"{self.name}: class {counter_class.name} declared twice")
            class_names.add(counter_class.name)

            for mapping in counter_class.fields:
                descriptor = self.registry.get(mapping.metric)
                if descriptor is None:
                    raise ConfigurationError(
                        f"{self.name}: {counter_class.name}.{mapping.field} maps to "
                        f"unknown metric {mapping.metric}"
                    )

                expected = self._label_count(counter_class, mapping)
                if expected != len(descriptor.label_names):
                    raise ConfigurationError(
                        f"{self.name}: {descriptor.fq_name} declares "
                        f"{len(descriptor.label_names)} label(s) but "
                        f"{counter_class.name}.{mapping.field} provides {expected}"
                    )
                fed.add(mapping.metric)

        unused = set(self.registry) - fed
        if unused:
            raise ConfigurationError(f"{self.name}: metrics without a source field: {sorted(unused)}")

    @staticmethod
    def _label_count(counter_class: CounterClass, mapping: FieldMapping) -> int:
        count = 1 if counter_class.cardinality is Cardinality.PER_INSTANCE else 0
        if mapping.label is not None:
            count += 1
        return count

    async def collect(self, stream: MetricStream) -> None:
        """
        Query every owned class and write all samples in one batch.

        Raises:
            QueryFailed: If a class query fails
            MissingRow: If a single-row class returns no rows
            MalformedSchema: If a row cannot be mapped
        """
        samples: List[Sample] = []

        for counter_class in self.COUNTER_CLASSES:
            rows = await self._query(counter_class)
            samples.extend(self.map_rows(counter_class, rows))

        stream.extend(samples)
        self.logger.debug(f"{self.name}: emitted {len(samples)} sample(s)")

    async def _query(self, counter_class: CounterClass) -> List[RawCounterRow]:
        try:
            return await self.source.query(counter_class.name)
        except CollectionError as e:
            raise QueryFailed(counter_class.name, e) from e

    def map_rows(self, counter_class: CounterClass, rows: List[RawCounterRow]) -> List[Sample]:
        """
        Map the rows of one class to samples.

        Single-row classes use row 0; per-instance classes map every row.

        Raises:
            MissingRow: If a single-row class returned nothing
            MalformedSchema: If a field is missing or cannot be converted
        """
        if counter_class.cardinality is Cardinality.SINGLE:
            if not rows:
                raise MissingRow(counter_class.name)
            rows = rows[:1]

        samples = []
        for row in rows:
            samples.extend(self._map_row(counter_class, row))
        return samples

    def _map_row(self, counter_class: CounterClass, row: RawCounterRow) -> Iterator[Sample]:
        instance: Tuple[str, ...] = ()
        if counter_class.cardinality is Cardinality.PER_INSTANCE:
            name = row.get(counter_class.instance_field)
            if not isinstance(name, str):
                raise MalformedSchema(
                    f"{counter_class.name}: row without a {counter_class.instance_field} field",
                    class_name=counter_class.name,
                    field=counter_class.instance_field
                )
            instance = (name,)

        for mapping in counter_class.fields:
            if mapping.field not in row:
                raise MalformedSchema(
                    f"{counter_class.name}: missing field {mapping.field}",
                    class_name=counter_class.name,
                    field=mapping.field
                )

            raw = row[mapping.field]
            try:
                value = mapping.transform(raw)
                labels = instance + ((mapping.label(raw),) if mapping.label else ())
            except (TypeError, ValueError) as e:
                raise MalformedSchema(
                    f"{counter_class.name}: cannot convert {mapping.field}={raw!r}: {e}",
                    class_name=counter_class.name,
                    field=mapping.field
                ) from e

            yield Sample(self.registry[mapping.metric], value, labels)
