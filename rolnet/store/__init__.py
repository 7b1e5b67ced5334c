"""Desired-state store: entities, query builder and repositories."""

from rolnet.store.entities import Entity, EthernetSwitch, EthernetSwitchPort, EthernetSwitchVLAN, PoEType
from rolnet.store.query import QueryBuilder, QueryError
from rolnet.store.repository import Page, Repository, StoreContext, StoreError


def open_store(context: StoreContext) -> tuple[
    Repository[EthernetSwitch], Repository[EthernetSwitchPort], Repository[EthernetSwitchVLAN]
]:
    """Register the switch, port and VLAN tables on ``context`` and load them."""
    switches = context.repository(EthernetSwitch, "switches")
    ports = context.repository(EthernetSwitchPort, "ports")
    vlans = context.repository(EthernetSwitchVLAN, "vlans")
    context.load()
    return switches, ports, vlans


__all__ = [
    "Entity",
    "EthernetSwitch",
    "EthernetSwitchPort",
    "EthernetSwitchVLAN",
    "PoEType",
    "QueryBuilder",
    "QueryError",
    "Page",
    "Repository",
    "StoreContext",
    "StoreError",
    "open_store",
]
