"""Virtual switch traffic counters."""

from .base import Cardinality, CounterClass, CounterClassCollector, FieldMapping, instance_gauge


SWITCH_FIELDS = (
    ("broadcast_packets_received", "BroadcastPacketsReceivedPersec", "Broadcast packets received by the virtual switch"),
    ("broadcast_packets_sent", "BroadcastPacketsSentPersec", "Broadcast packets sent by the virtual switch"),
    ("bytes", "BytesPersec", "Bytes received and sent by the virtual switch"),
    ("bytes_received", "BytesReceivedPersec", "Bytes received by the virtual switch"),
    ("bytes_sent", "BytesSentPersec", "Bytes sent by the virtual switch"),
    ("directed_packets_received", "DirectedPacketsReceivedPersec", "Directed packets received by the virtual switch"),
    ("directed_packets_sent", "DirectedPacketsSentPersec", "Directed packets sent by the virtual switch"),
    ("dropped_packets_incoming", "DroppedPacketsIncomingPersec", "Incoming packets dropped by the virtual switch"),
    ("dropped_packets_outgoing", "DroppedPacketsOutgoingPersec", "Outgoing packets dropped by the virtual switch"),
    ("extensions_dropped_packets_incoming", "ExtensionsDroppedPacketsIncomingPersec", "Incoming packets dropped by switch extensions"),
    ("extensions_dropped_packets_outgoing", "ExtensionsDroppedPacketsOutgoingPersec", "Outgoing packets dropped by switch extensions"),
    ("learned_mac_addresses", "LearnedMacAddresses", "MAC addresses learned by the virtual switch"),
    ("multicast_packets_received", "MulticastPacketsReceivedPersec", "Multicast packets received by the virtual switch"),
    ("multicast_packets_sent", "MulticastPacketsSentPersec", "Multicast packets sent by the virtual switch"),
    ("send_channel_moves", "NumberofSendChannelMovesPersec", "Send channel moves"),
    ("vmq_moves", "NumberofVMQMovesPersec", "Virtual machine queue moves"),
    ("packets_flooded", "PacketsFlooded", "Packets flooded by the virtual switch"),
    ("packets", "PacketsPersec", "Packets received and sent by the virtual switch"),
    ("packets_received", "PacketsReceivedPersec", "Packets received by the virtual switch"),
    ("packets_sent", "PacketsSentPersec", "Packets sent by the virtual switch"),
    ("purged_mac_addresses", "PurgedMacAddresses", "MAC addresses purged by the virtual switch"),
)


class SwitchCollector(CounterClassCollector):
    """Collector for per-switch traffic counters."""

    name = "switch"

    METRICS = tuple(
        (metric, instance_gauge("switch", metric, help))
        for metric, _, help in SWITCH_FIELDS
    )

    COUNTER_CLASSES = (
        CounterClass(
            name="Win32_PerfRawData_NvspSwitchStats_HyperVVirtualSwitch",
            cardinality=Cardinality.PER_INSTANCE,
            fields=tuple(FieldMapping(metric, field) for metric, field, _ in SWITCH_FIELDS),
        ),
    )
