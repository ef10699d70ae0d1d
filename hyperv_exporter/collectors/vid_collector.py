"""Virtualization Infrastructure Driver (VID) partition memory counters."""

from .base import Cardinality, CounterClass, CounterClassCollector, FieldMapping, instance_gauge


class VidCollector(CounterClassCollector):
    """Collector for per-partition VID page counters."""

    name = "vid"

    METRICS = (
        ("physical_pages_allocated", instance_gauge(
            "vid", "physical_pages_allocated",
            "Number of physical pages allocated to the partition")),
        ("preferred_numa_node_index", instance_gauge(
            "vid", "preferred_numa_node_index",
            "Preferred NUMA node of the partition")),
        ("remote_physical_pages", instance_gauge(
            "vid", "remote_physical_pages",
            "Number of physical pages not allocated from the preferred NUMA node")),
    )

    COUNTER_CLASSES = (
        CounterClass(
            name="Win32_PerfRawData_VidPerfProvider_HyperVVMVidPartition",
            cardinality=Cardinality.PER_INSTANCE,
            fields=(
                FieldMapping("physical_pages_allocated", "PhysicalPagesAllocated"),
                FieldMapping("preferred_numa_node_index", "PreferredNUMANodeIndex"),
                FieldMapping("remote_physical_pages", "RemotePhysicalPages"),
            ),
        ),
    )
