"""Virtual machine health summary."""

from .base import Cardinality, CounterClass, CounterClassCollector, FieldMapping, gauge


class HealthCollector(CounterClassCollector):
    """Collector for the Hyper-V virtual machine health summary."""

    name = "health"

    METRICS = (
        ("critical", gauge("health", "critical", "Number of virtual machines with critical health")),
        ("ok", gauge("health", "ok", "Number of virtual machines with ok health")),
    )

    COUNTER_CLASSES = (
        CounterClass(
            name="Win32_PerfRawData_VmmsVirtualMachineStats_HyperVVirtualMachineHealthSummary",
            cardinality=Cardinality.SINGLE,
            fields=(
                FieldMapping("critical", "HealthCritical"),
                FieldMapping("ok", "HealthOk"),
            ),
        ),
    )
