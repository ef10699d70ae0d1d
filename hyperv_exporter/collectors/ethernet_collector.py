"""Virtual network adapter counters."""

from .base import Cardinality, CounterClass, CounterClassCollector, FieldMapping, instance_gauge


class EthernetCollector(CounterClassCollector):
    """Collector for per-adapter traffic of virtual network adapters."""

    name = "ethernet"

    METRICS = (
        ("bytes_received", instance_gauge("ethernet", "bytes_received", "Bytes received by the virtual network adapter")),
        ("bytes_sent", instance_gauge("ethernet", "bytes_sent", "Bytes sent by the virtual network adapter")),
        ("frames_received", instance_gauge("ethernet", "frames_received", "Frames received by the virtual network adapter")),
        ("frames_sent", instance_gauge("ethernet", "frames_sent", "Frames sent by the virtual network adapter")),
        ("frames_dropped_incoming", instance_gauge("ethernet", "frames_dropped_incoming", "Incoming frames dropped by the virtual network adapter")),
        ("frames_dropped_outgoing", instance_gauge("ethernet", "frames_dropped_outgoing", "Outgoing frames dropped by the virtual network adapter")),
    )

    COUNTER_CLASSES = (
        CounterClass(
            name="Win32_PerfRawData_NvspNicStats_HyperVVirtualNetworkAdapter",
            cardinality=Cardinality.PER_INSTANCE,
            fields=(
                FieldMapping("bytes_received", "BytesReceivedPersec"),
                FieldMapping("bytes_sent", "BytesSentPersec"),
                FieldMapping("frames_received", "FramesReceivedPersec"),
                FieldMapping("frames_sent", "FramesSentPersec"),
                FieldMapping("frames_dropped_incoming", "DroppedPacketsIncomingPersec"),
                FieldMapping("frames_dropped_outgoing", "DroppedPacketsOutgoingPersec"),
            ),
        ),
    )
