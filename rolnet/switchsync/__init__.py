"""Desired switch/port/VLAN state and its replay on managed switches."""

from rolnet.switchsync.models import PortCreate, PortUpdate, SwitchCreate, SwitchUpdate, VLANCreate, VLANUpdate
from rolnet.switchsync.service import EthernetSwitchService

__all__ = [
    "EthernetSwitchService",
    "SwitchCreate",
    "SwitchUpdate",
    "PortCreate",
    "PortUpdate",
    "VLANCreate",
    "VLANUpdate",
]
