"""Shared pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from hyperv_exporter.services.counter_source import CounterSource
from hyperv_exporter.utils.logger import setup_logger


OS_CLASS = "Win32_OperatingSystem"
HEALTH_CLASS = "Win32_PerfRawData_VmmsVirtualMachineStats_HyperVVirtualMachineHealthSummary"
VID_CLASS = "Win32_PerfRawData_VidPerfProvider_HyperVVMVidPartition"
SWITCH_CLASS = "Win32_PerfRawData_NvspSwitchStats_HyperVVirtualSwitch"


class FakeCounterSource(CounterSource):
    """In-memory counter source returning canned rows per class."""

    def __init__(self, rows=None, errors=None):
        self.rows = dict(rows or {})
        self.errors = dict(errors or {})
        self.queries = []

    async def query(self, class_name):
        self.queries.append(class_name)
        if class_name in self.errors:
            raise self.errors[class_name]
        # Fresh dicts per query, like a real source
        return [dict(row) for row in self.rows.get(class_name, [])]


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test")


@pytest.fixture
def fake_source():
    """Empty fake counter source; tests fill in rows and errors."""
    return FakeCounterSource()


@pytest.fixture
def os_row():
    """Win32_OperatingSystem row at 2023-01-01T00:00:00Z reported in +02:00."""
    return {
        "FreePhysicalMemory": 2048,
        "FreeVirtualMemory": "4096",
        "TotalVirtualMemorySize": 8192,
        "TotalVisibleMemorySize": 6144,
        "FreeSpaceInPagingFiles": 1024,
        "SizeStoredInPagingFiles": 2048,
        "MaxProcessMemorySize": "137438953344",
        "NumberOfProcesses": 123,
        "MaxNumberOfProcesses": 4294967295,
        "NumberOfUsers": 2,
        "LocalDateTime": datetime(2023, 1, 1, 2, 0, 0, tzinfo=timezone(timedelta(hours=2))),
    }


@pytest.fixture
def health_row():
    return {"HealthCritical": 1, "HealthOk": 5}


@pytest.fixture
def vid_rows():
    return [
        {"Name": "vmA", "PhysicalPagesAllocated": 1000, "PreferredNUMANodeIndex": 0, "RemotePhysicalPages": 10},
        {"Name": "vmB", "PhysicalPagesAllocated": 2000, "PreferredNUMANodeIndex": 1, "RemotePhysicalPages": 0},
    ]
