"""Logical, root virtual and guest virtual processor run times."""

from .base import Cardinality, CounterClass, CounterClassCollector, FieldMapping, instance_gauge


HVSTATS = "Win32_PerfRawData_HvStats_"

# Percentages are the raw 100ns-tick counters; no rate is derived here
LOGICAL_PROCESSOR_FIELDS = (
    ("guest_run_time", "PercentGuestRunTime", "Time the logical processor spent running guest code"),
    ("hypervisor_run_time", "PercentHypervisorRunTime", "Time the logical processor spent running hypervisor code"),
    ("idle_time", "PercentIdleTime", "Time the logical processor spent idle"),
    ("total_run_time", "PercentTotalRunTime", "Time the logical processor spent running guest and hypervisor code"),
)

VIRTUAL_PROCESSOR_FIELDS = (
    ("guest_run_time", "PercentGuestRunTime", "Time the virtual processor spent running guest code"),
    ("hypervisor_run_time", "PercentHypervisorRunTime", "Time the virtual processor spent running hypervisor code"),
    ("remote_run_time", "PercentRemoteRunTime", "Time the virtual processor spent running on a remote NUMA node"),
    ("total_run_time", "PercentTotalRunTime", "Time the virtual processor spent running guest and hypervisor code"),
    ("cpu_wait_time_per_dispatch", "CPUWaitTimePerDispatch", "Average time in nanoseconds spent waiting for a virtual processor to be dispatched"),
)

# (metric prefix, class suffix, fields)
PROCESSOR_KINDS = (
    ("logical", "HyperVHypervisorLogicalProcessor", LOGICAL_PROCESSOR_FIELDS),
    ("root", "HyperVHypervisorRootVirtualProcessor", VIRTUAL_PROCESSOR_FIELDS),
    ("vm", "HyperVHypervisorVirtualProcessor", VIRTUAL_PROCESSOR_FIELDS),
)


class ProcessorCollector(CounterClassCollector):
    """Collector for per-processor run time counters."""

    name = "processor"

    METRICS = tuple(
        (f"{prefix}_{metric}", instance_gauge("processor", f"{prefix}_{metric}", help))
        for prefix, _, fields in PROCESSOR_KINDS
        for metric, _, help in fields
    )

    COUNTER_CLASSES = tuple(
        CounterClass(
            name=HVSTATS + suffix,
            cardinality=Cardinality.PER_INSTANCE,
            fields=tuple(FieldMapping(f"{prefix}_{metric}", field) for metric, field, _ in fields),
        )
        for prefix, suffix, fields in PROCESSOR_KINDS
    )
