"""Operating system memory, process and clock metrics (Win32_OperatingSystem)."""

from ..utils.transforms import info_value, kibibytes_to_bytes, to_epoch_seconds, zone_abbreviation
from .base import Cardinality, CounterClass, CounterClassCollector, FieldMapping, gauge


class OSCollector(CounterClassCollector):
    """Collector for system-wide operating system counters."""

    name = "os"

    METRICS = (
        ("physical_memory_free_bytes", gauge(
            "os", "physical_memory_free_bytes",
            "Bytes of physical memory currently unused and available")),
        ("virtual_memory_free_bytes", gauge(
            "os", "virtual_memory_free_bytes",
            "Bytes of virtual memory currently unused and available")),
        ("virtual_memory_bytes", gauge(
            "os", "virtual_memory_bytes",
            "Total bytes of virtual memory")),
        ("visible_memory_bytes", gauge(
            "os", "visible_memory_bytes",
            "Total bytes of physical memory available to the operating system")),
        ("paging_free_bytes", gauge(
            "os", "paging_free_bytes",
            "Bytes that can be mapped into the paging files without paging others out")),
        ("paging_limit_bytes", gauge(
            "os", "paging_limit_bytes",
            "Total bytes that can be stored in the paging files")),
        ("process_memory_limit_bytes", gauge(
            "os", "process_memory_limit_bytes",
            "Maximum bytes of memory that can be allocated to a process")),
        ("processes", gauge(
            "os", "processes",
            "Current number of processes")),
        ("processes_limit", gauge(
            "os", "processes_limit",
            "Maximum number of process contexts the operating system supports")),
        ("users", gauge(
            "os", "users",
            "Number of user sessions")),
        ("time", gauge(
            "os", "time",
            "Current wall-clock time of the host, in seconds since the epoch")),
        ("timezone", gauge(
            "os", "timezone",
            "Time zone the host clock is reported in", ("timezone",))),
    )

    COUNTER_CLASSES = (
        CounterClass(
            name="Win32_OperatingSystem",
            cardinality=Cardinality.SINGLE,
            fields=(
                FieldMapping("physical_memory_free_bytes", "FreePhysicalMemory", kibibytes_to_bytes),
                FieldMapping("virtual_memory_free_bytes", "FreeVirtualMemory", kibibytes_to_bytes),
                FieldMapping("virtual_memory_bytes", "TotalVirtualMemorySize", kibibytes_to_bytes),
                FieldMapping("visible_memory_bytes", "TotalVisibleMemorySize", kibibytes_to_bytes),
                FieldMapping("paging_free_bytes", "FreeSpaceInPagingFiles", kibibytes_to_bytes),
                FieldMapping("paging_limit_bytes", "SizeStoredInPagingFiles", kibibytes_to_bytes),
                FieldMapping("process_memory_limit_bytes", "MaxProcessMemorySize", kibibytes_to_bytes),
                FieldMapping("processes", "NumberOfProcesses"),
                FieldMapping("processes_limit", "MaxNumberOfProcesses"),
                FieldMapping("users", "NumberOfUsers"),
                FieldMapping("time", "LocalDateTime", to_epoch_seconds),
                FieldMapping("timezone", "LocalDateTime", info_value, label=zone_abbreviation),
            ),
        ),
    )
