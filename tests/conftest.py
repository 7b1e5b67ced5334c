"""Shared fixtures for the rolnet test suite."""

from __future__ import annotations

import dataclasses
from unittest.mock import MagicMock

import pytest

from rolnet.hostnet.linktable import BaseLinkTable, LinkNotFoundError, LinkRecord, LinkTableError
from rolnet.hostnet.manager import HostNetworkManager
from rolnet.hostnet.service import HostNetworkService
from rolnet.store import StoreContext, open_store
from rolnet.switchctrl.base.manager import BaseSwitchManager
from rolnet.switchsync.models import PortCreate, SwitchCreate
from rolnet.switchsync.service import EthernetSwitchService

# ── host link table ───────────────────────────────────────────────────


class FakeLinkTable(BaseLinkTable):
    """In-memory link table that behaves like iproute2 for the calls rolnet makes."""

    def __init__(self) -> None:
        self.records: dict[str, LinkRecord] = {}
        self.up: set[str] = set()
        self._next_index = 1

    def add_link(self, name: str, kind: str = "device", **kwargs) -> LinkRecord:
        record = LinkRecord(index=self._next_index, name=name, kind=kind, **kwargs)
        self._next_index += 1
        self.records[name] = record
        return record

    def links(self) -> list[LinkRecord]:
        return [dataclasses.replace(r, addresses=list(r.addresses)) for r in self.records.values()]

    def _require(self, name: str) -> LinkRecord:
        if name not in self.records:
            raise LinkNotFoundError(f'Cannot find device "{name}"')
        return self.records[name]

    def add_vlan(self, name: str, parent: str, vlan_id: int) -> None:
        self._require(parent)
        if name in self.records:
            raise LinkTableError("RTNETLINK answers: File exists")
        self.add_link(name, "vlan", parent=parent, vlan_id=vlan_id)

    def add_bridge(self, name: str) -> None:
        if name in self.records:
            raise LinkTableError("RTNETLINK answers: File exists")
        self.add_link(name, "bridge")

    def delete(self, name: str) -> None:
        self._require(name)
        del self.records[name]
        self.up.discard(name)
        for record in self.records.values():
            if record.master == name:
                record.master = None

    def set_up(self, name: str) -> None:
        self._require(name)
        self.up.add(name)

    def set_master(self, name: str, master: str) -> None:
        self._require(master)
        self._require(name).master = master

    def set_nomaster(self, name: str) -> None:
        self._require(name).master = None

    def add_address(self, name: str, cidr: str) -> None:
        record = self._require(name)
        if cidr in record.addresses:
            raise LinkTableError("RTNETLINK answers: File exists")
        record.addresses.append(cidr)

    def delete_address(self, name: str, cidr: str) -> None:
        record = self._require(name)
        if cidr not in record.addresses:
            raise LinkTableError("RTNETLINK answers: Cannot assign requested address")
        record.addresses.remove(cidr)


@pytest.fixture()
def link_table():
    """Host with loopback, two NICs, one foreign VLAN, a foreign bridge and a veth."""
    table = FakeLinkTable()
    table.add_link("lo", addresses=["127.0.0.1/8"])
    table.add_link("eth0", addresses=["192.168.1.10/24"])
    table.add_link("eth1")
    table.add_link("eth0.100", "vlan", parent="eth0", vlan_id=100)
    table.add_link("docker0", "bridge", addresses=["172.17.0.1/16"])
    table.add_link("veth1", "veth", master="docker0")
    return table


@pytest.fixture()
def host_manager(tmp_path, link_table):
    return HostNetworkManager(tmp_path / "hostNetworkConfig.json", link_table)


@pytest.fixture()
def host_service(host_manager):
    return HostNetworkService(host_manager)


# ── desired-state store and synchronizer ──────────────────────────────


@pytest.fixture()
def repos():
    """In-memory switch, port and VLAN repositories."""
    return open_store(StoreContext())


@pytest.fixture()
def mock_switch_manager():
    """MagicMock of a switch manager recording every hardware call."""
    return MagicMock(spec=BaseSwitchManager)


@pytest.fixture()
def manager_registry(mock_switch_manager):
    """Registry stand-in returning ``mock_switch_manager`` for every switch."""
    registry = MagicMock()
    registry.get.return_value = mock_switch_manager
    return registry


@pytest.fixture()
def switch_service(repos, manager_registry):
    switches, ports, vlans = repos
    return EthernetSwitchService(switches, ports, vlans, manager_registry)


@pytest.fixture()
def lab_switch(switch_service):
    """A stored switch with ports 1/0/1 .. 1/0/4."""
    switch = switch_service.create_switch(
        SwitchCreate(
            name="lab-sw1",
            serial="22360A0001",
            switch_model="tl-sg2210mp",
            address="192.168.1.254",
            username="admin",
            password="secret",
        )
    )
    ports = [switch_service.create_port(switch.id, PortCreate(name=f"1/0/{i}")) for i in range(1, 5)]
    return switch, ports


# ── switchctrl transport mocks ────────────────────────────────────────


@pytest.fixture()
def mock_tplink_cli():
    """MagicMock of TPLinkCLITransport returning clean output."""
    transport = MagicMock()
    transport.send_command.return_value = ""
    transport.send_config_commands.return_value = ""
    return transport


@pytest.fixture()
def mock_mikrotik_rest():
    """MagicMock of MikroTikRESTTransport with get/put/patch/delete."""
    transport = MagicMock()
    transport.get.return_value = []
    transport.put.return_value = {}
    transport.patch.return_value = {}
    return transport
