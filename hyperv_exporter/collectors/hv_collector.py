"""Hypervisor and root partition counters."""

from .base import Cardinality, CounterClass, CounterClassCollector, FieldMapping, gauge


ROOT_PARTITION_FIELDS = (
    # (metric, field, help)
    ("address_spaces", "AddressSpaces", "Number of address spaces in the virtual TLB of the partition"),
    ("attached_devices", "AttachedDevices", "Number of devices attached to the partition"),
    ("deposited_pages", "DepositedPages", "Number of pages deposited into the partition"),
    ("device_dma_errors", "DeviceDMAErrors", "Number of DMA requests rejected by the IOMMU"),
    ("device_interrupt_errors", "DeviceInterruptErrors", "Number of interrupts rejected by the IOMMU"),
    ("device_interrupt_mappings", "DeviceInterruptMappings", "Number of device interrupt mappings used by the partition"),
    ("device_interrupt_throttle_events", "DeviceInterruptThrottleEvents", "Number of times an interrupt from a device was throttled"),
    ("gpa_pages", "GPAPages", "Number of pages in the guest physical address space of the partition"),
    ("io_tlb_flush_cost", "IOTLBFlushCost", "Average time in nanoseconds of the most recent IOTLB flushes"),
    ("recommended_virtual_tlb_size", "RecommendedVirtualTLBSize", "Recommended number of pages for the virtual TLB"),
    ("skipped_timer_ticks", "SkippedTimerTicks", "Number of timer interrupts skipped for the partition"),
    ("device_1g_pages", "Value1Gdevicepages", "Number of 1G pages in the device space of the partition"),
    ("device_2m_pages", "Value2Mdevicepages", "Number of 2M pages in the device space of the partition"),
    ("device_4k_pages", "Value4Kdevicepages", "Number of 4K pages in the device space of the partition"),
    ("gpa_1g_pages", "Value1GGPApages", "Number of 1G pages in the guest physical address space"),
    ("gpa_2m_pages", "Value2MGPApages", "Number of 2M pages in the guest physical address space"),
    ("gpa_4k_pages", "Value4KGPApages", "Number of 4K pages in the guest physical address space"),
    ("virtual_tlb_pages", "VirtualTLBPages", "Number of pages used by the virtual TLB of the partition"),
)

# Raw "per second" counters; exposed as-is, rates are computed downstream
ROOT_PARTITION_RATE_FIELDS = (
    ("gpa_space_modifications", "GPASpaceModificationsPersec", "Raw count of modifications to the guest physical address space"),
    ("io_tlb_flushes", "IOTLBFlushesPersec", "Raw count of IOTLB flushes"),
    ("virtual_tlb_flush_entries", "VirtualTLBFlushEntiresPersec", "Raw count of flushes of the entire virtual TLB"),
)


class HypervisorCollector(CounterClassCollector):
    """Collector for system-wide hypervisor and root partition counters."""

    name = "hv"

    METRICS = tuple(
        [(metric, gauge("hv", f"root_partition_{metric}", help))
         for metric, _, help in ROOT_PARTITION_FIELDS]
        + [(f"rate_{metric}", gauge("rate", f"root_partition_{metric}", help))
           for metric, _, help in ROOT_PARTITION_RATE_FIELDS]
        + [
            ("logical_processors", gauge("hv", "logical_processors", "Number of logical processors present in the system")),
            ("virtual_processors", gauge("hv", "virtual_processors", "Number of virtual processors present in the system")),
        ]
    )

    COUNTER_CLASSES = (
        CounterClass(
            name="Win32_PerfRawData_HvStats_HyperVHypervisorRootPartition",
            cardinality=Cardinality.SINGLE,
            fields=tuple(
                [FieldMapping(metric, field) for metric, field, _ in ROOT_PARTITION_FIELDS]
                + [FieldMapping(f"rate_{metric}", field) for metric, field, _ in ROOT_PARTITION_RATE_FIELDS]
            ),
        ),
        CounterClass(
            name="Win32_PerfRawData_HvStats_HyperVHypervisor",
            cardinality=Cardinality.SINGLE,
            fields=(
                FieldMapping("logical_processors", "LogicalProcessors"),
                FieldMapping("virtual_processors", "VirtualProcessors"),
            ),
        ),
    )
