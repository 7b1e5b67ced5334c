"""Host network links: rolnet-owned VLANs and bridges and the saved snapshot."""

from rolnet.hostnet.linktable import BaseLinkTable, IPRoute2LinkTable, LinkNotFoundError, LinkRecord, LinkTableError
from rolnet.hostnet.manager import OWNED_PREFIX, HostNetworkManager, bridge_link_name, is_owned, vlan_link_name
from rolnet.hostnet.models import (
    HostLink,
    HostLinkType,
    HostNetworkBridge,
    HostNetworkDevice,
    HostNetworkLink,
    HostNetworkVlan,
    HostSnapshot,
)
from rolnet.hostnet.service import HostNetworkService

__all__ = [
    "BaseLinkTable",
    "IPRoute2LinkTable",
    "LinkRecord",
    "LinkTableError",
    "LinkNotFoundError",
    "OWNED_PREFIX",
    "HostNetworkManager",
    "HostNetworkService",
    "bridge_link_name",
    "vlan_link_name",
    "is_owned",
    "HostLink",
    "HostLinkType",
    "HostNetworkLink",
    "HostNetworkDevice",
    "HostNetworkVlan",
    "HostNetworkBridge",
    "HostSnapshot",
]
