"""Host network links and the persisted host snapshot."""

from __future__ import annotations

from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field


class HostLinkType(str, Enum):
    DEVICE = "device"
    VLAN = "vlan"
    BRIDGE = "bridge"
    NONE = "none"


class HostNetworkLink(BaseModel):
    """A link of a kind rolnet does not manage (loopback, veth, tun, ...)."""

    name: str
    type: HostLinkType = HostLinkType.NONE
    addresses: list[str] = Field(default_factory=list)


class HostNetworkDevice(HostNetworkLink):
    type: HostLinkType = HostLinkType.DEVICE


class HostNetworkVlan(HostNetworkLink):
    type: HostLinkType = HostLinkType.VLAN
    vlan_id: int
    master: str


class HostNetworkBridge(HostNetworkLink):
    type: HostLinkType = HostLinkType.BRIDGE
    slaves: list[str] = Field(default_factory=list)


HostLink = Union[HostNetworkDevice, HostNetworkVlan, HostNetworkBridge, HostNetworkLink]


class SnapshotDevice(BaseModel):
    name: str
    addresses: list[str] = Field(default_factory=list)


class SnapshotVlan(SnapshotDevice):
    vlan_id: int
    master: str


class HostSnapshot(BaseModel):
    """Saved host configuration: every device and every rolnet-owned VLAN.

    Serialized as ``{"Devices": [...], "Vlans": [...]}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    devices: list[SnapshotDevice] = Field(default_factory=list, alias="Devices")
    vlans: list[SnapshotVlan] = Field(default_factory=list, alias="Vlans")
