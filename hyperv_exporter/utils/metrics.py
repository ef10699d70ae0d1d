"""Metric data structures shared by collectors, orchestrator and exposition."""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple
import threading
import time

from ..errors import ConfigurationError


NAMESPACE = "hyperv"

GAUGE = "gauge"


def build_fq_name(namespace: str, subsystem: str, name: str) -> str:
    """
    Join namespace, subsystem and name with underscores, skipping empty parts.

    Args:
        namespace: Process-wide metric namespace
        subsystem: Group of related counters (os, health, switch, ...)
        name: Metric name within the subsystem

    Returns:
        str: Fully-qualified metric name
    """
    return "_".join(part for part in (namespace, subsystem, name) if part)


@dataclass(frozen=True)
class MetricDescriptor:
    """Immutable identity of one exposed metric."""

    namespace: str
    subsystem: str
    name: str
    help: str
    label_names: Tuple[str, ...] = ()
    kind: str = GAUGE

    @property
    def fq_name(self) -> str:
        return build_fq_name(self.namespace, self.subsystem, self.name)


@dataclass(frozen=True)
class Sample:
    """One value of a descriptor with its label values."""

    descriptor: MetricDescriptor
    value: float
    label_values: Tuple[str, ...] = ()

    def __post_init__(self):
        """Reject samples that do not conform to their descriptor's label schema."""
        if len(self.label_values) != len(self.descriptor.label_names):
            raise ValueError(
                f"{self.descriptor.fq_name} expects {len(self.descriptor.label_names)} "
                f"label value(s), got {len(self.label_values)}"
            )


@dataclass
class CollectorResult:
    """Outcome of running one collector during a scrape."""

    collector_name: str
    success: bool
    duration: float
    sample_count: int = 0
    error: Optional[str] = None
    timestamp: Optional[float] = None

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = time.time()


class MetricStream:
    """
    Append-only sample sink shared by all collectors of one scrape.

    Writes are serialized with a lock so a batch from one collector is never
    interleaved with another collector's batch.
    """

    def __init__(self):
        self._samples: List[Sample] = []
        self._lock = threading.Lock()

    def emit(self, descriptor: MetricDescriptor, value: float, *label_values: str) -> None:
        """Append a single sample."""
        sample = Sample(descriptor, float(value), tuple(label_values))
        with self._lock:
            self._samples.append(sample)

    def extend(self, samples: Iterable[Sample]) -> None:
        """Append a batch of samples atomically."""
        batch = list(samples)
        with self._lock:
            self._samples.extend(batch)

    @property
    def samples(self) -> List[Sample]:
        with self._lock:
            return list(self._samples)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)


class CountingStream:
    """Forwards writes to a shared stream and counts what one collector wrote."""

    def __init__(self, target: MetricStream):
        self.target = target
        self.count = 0

    def emit(self, descriptor: MetricDescriptor, value: float, *label_values: str) -> None:
        self.target.emit(descriptor, value, *label_values)
        self.count += 1

    def extend(self, samples: Iterable[Sample]) -> None:
        batch = list(samples)
        self.target.extend(batch)
        self.count += len(batch)


def build_registry(descriptors: Iterable[Tuple[str, MetricDescriptor]]) -> Dict[str, MetricDescriptor]:
    """
    Build a collector's descriptor registry.

    Args:
        descriptors: (logical name, descriptor) pairs

    Returns:
        Dict[str, MetricDescriptor]: Logical name to descriptor

    Raises:
        ConfigurationError: If a logical name or fully-qualified name repeats
    """
    registry: Dict[str, MetricDescriptor] = {}
    seen_fq_names = set()

    for logical_name, descriptor in descriptors:
        if logical_name in registry:
            raise ConfigurationError(f"Duplicate metric descriptor: {logical_name}")
        if descriptor.fq_name in seen_fq_names:
            raise ConfigurationError(f"Duplicate metric name: {descriptor.fq_name}")
        if len(set(descriptor.label_names)) != len(descriptor.label_names):
            raise ConfigurationError(f"Repeated label name in {descriptor.fq_name}")
        registry[logical_name] = descriptor
        seen_fq_names.add(descriptor.fq_name)

    return registry
