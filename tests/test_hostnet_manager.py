"""Tests for the host network interface manager."""

import json

import pytest

from rolnet.errors import InternalError, NotFoundError, ValidationError
from rolnet.hostnet.manager import BACKUP_SUFFIX, bridge_link_name, is_owned, vlan_link_name
from rolnet.hostnet.models import HostLinkType, HostNetworkBridge, HostNetworkDevice, HostNetworkVlan


def _snapshot(manager) -> dict:
    return json.loads(manager.config_path.read_text())


class TestNaming:
    """Test rolnet link naming."""

    def test_vlan_link_name(self):
        assert vlan_link_name("eth0", 42) == "rol.eth0.42"

    def test_bridge_link_name(self):
        assert bridge_link_name("lab") == "rol.br.lab"

    def test_is_owned(self):
        assert is_owned("rol.eth0.42")
        assert is_owned("rol.br.lab")
        assert not is_owned("eth0.100")
        assert not is_owned("role0")


class TestLinkListing:
    """Test classification of the host link table."""

    def test_classification(self, host_manager):
        links = {link.name: link for link in host_manager.get_list()}

        assert isinstance(links["eth0"], HostNetworkDevice)
        assert links["eth0"].addresses == ["192.168.1.10/24"]
        assert isinstance(links["eth0.100"], HostNetworkVlan)
        assert links["eth0.100"].master == "eth0"
        assert links["eth0.100"].vlan_id == 100
        assert isinstance(links["docker0"], HostNetworkBridge)
        assert links["docker0"].slaves == ["veth1"]
        assert links["veth1"].type == HostLinkType.NONE

    def test_get_by_name(self, host_manager):
        assert host_manager.get_by_name("eth1").type == HostLinkType.DEVICE

    def test_get_by_name_missing(self, host_manager):
        with pytest.raises(NotFoundError):
            host_manager.get_by_name("eth9")


class TestLinkChanges:
    """Test VLAN, bridge and address changes on the link table."""

    def test_create_vlan(self, host_manager, link_table):
        name = host_manager.create_vlan("eth0", 42)

        assert name == "rol.eth0.42"
        assert name in link_table.up
        vlan = host_manager.get_by_name(name)
        assert isinstance(vlan, HostNetworkVlan)
        assert (vlan.master, vlan.vlan_id) == ("eth0", 42)

    def test_create_vlan_missing_master(self, host_manager):
        with pytest.raises(NotFoundError):
            host_manager.create_vlan("eth9", 42)

    def test_create_vlan_twice(self, host_manager):
        host_manager.create_vlan("eth0", 42)
        with pytest.raises(InternalError):
            host_manager.create_vlan("eth0", 42)

    def test_set_addr_accumulates(self, host_manager):
        name = host_manager.create_vlan("eth0", 42)
        host_manager.set_addr(name, "10.42.0.1/24")
        host_manager.set_addr(name, "10.43.0.1/24")
        assert host_manager.get_by_name(name).addresses == ["10.42.0.1/24", "10.43.0.1/24"]

    @pytest.mark.parametrize("cidr", ["10.42.0.1", "10.42.0.300/24", "fe80::1/64"])
    def test_set_addr_invalid(self, host_manager, cidr):
        with pytest.raises(ValidationError):
            host_manager.set_addr("eth1", cidr)

    def test_set_addr_missing_link(self, host_manager):
        with pytest.raises(NotFoundError):
            host_manager.set_addr("eth9", "10.0.0.1/24")

    def test_remove_addr(self, host_manager):
        host_manager.remove_addr("eth0", "192.168.1.10/24")
        assert host_manager.get_by_name("eth0").addresses == []

    def test_bridge_with_slave(self, host_manager):
        name = host_manager.create_bridge("lab")
        host_manager.set_link_master("eth1", name)
        assert host_manager.get_by_name(name).slaves == ["eth1"]

        host_manager.unset_link_master("eth1")
        assert host_manager.get_by_name(name).slaves == []

    def test_set_master_missing_bridge(self, host_manager):
        with pytest.raises(NotFoundError):
            host_manager.set_link_master("eth1", "rol.br.none")

    def test_delete(self, host_manager):
        name = host_manager.create_vlan("eth0", 42)
        host_manager.delete_link_by_name(name)
        with pytest.raises(NotFoundError):
            host_manager.get_by_name(name)

    def test_delete_missing(self, host_manager):
        with pytest.raises(NotFoundError):
            host_manager.delete_link_by_name("rol.eth0.7")


class TestSaveAndRestore:
    """Test the snapshot file and its single backup generation."""

    def test_save_writes_devices_and_owned_vlans(self, host_manager):
        name = host_manager.create_vlan("eth0", 42)
        host_manager.set_addr(name, "10.42.0.1/24")

        host_manager.save_configuration()

        document = _snapshot(host_manager)
        assert set(document) == {"Devices", "Vlans"}
        assert [d["name"] for d in document["Devices"]] == ["lo", "eth0", "eth1"]
        assert document["Vlans"] == [
            {"name": "rol.eth0.42", "addresses": ["10.42.0.1/24"], "vlan_id": 42, "master": "eth0"}
        ]
        assert not host_manager.backup_path.exists()

    def test_second_save_keeps_backup(self, host_manager):
        host_manager.save_configuration()
        first = host_manager.config_path.read_text()
        host_manager.create_vlan("eth0", 42)

        host_manager.save_configuration()

        assert host_manager.backup_path.name == host_manager.config_path.name + BACKUP_SUFFIX
        assert host_manager.backup_path.read_text() == first
        assert len(_snapshot(host_manager)["Vlans"]) == 1

    def test_restore_without_backup(self, host_manager):
        host_manager.save_configuration()
        with pytest.raises(NotFoundError):
            host_manager.restore_configuration()

    def test_restore_applies_backup(self, host_manager, link_table):
        host_manager.save_configuration()
        host_manager.create_vlan("eth0", 42)
        host_manager.save_configuration()

        host_manager.restore_configuration()

        assert "rol.eth0.42" not in link_table.records
        assert not host_manager.backup_path.exists()
        assert _snapshot(host_manager)["Vlans"] == []

    def test_restore_recreates_deleted_vlan(self, host_manager, link_table):
        name = host_manager.create_vlan("eth0", 42)
        host_manager.set_addr(name, "10.42.0.1/24")
        host_manager.save_configuration()
        host_manager.save_configuration()
        link_table.delete("rol.eth0.42")
        link_table.add_address("eth1", "10.99.0.1/24")
        link_table.delete_address("docker0", "172.17.0.1/16")

        host_manager.restore_configuration()

        assert link_table.records["rol.eth0.42"].addresses == ["10.42.0.1/24"]
        assert link_table.records["eth1"].addresses == ["10.99.0.1/24"]
        assert link_table.records["docker0"].addresses == []
        assert link_table.records["veth1"].master == "docker0"
        assert "eth0.100" in link_table.records

    def test_restore_without_current_file(self, host_manager):
        host_manager.save_configuration()
        host_manager.save_configuration()
        host_manager.config_path.unlink()

        host_manager.restore_configuration()
        assert host_manager.config_path.exists()


class TestLoadConfiguration:
    """Test reconciling the host with the saved snapshot."""

    def _write(self, manager, vlans):
        manager.config_path.write_text(json.dumps({"Devices": [], "Vlans": vlans}))

    def test_missing_file(self, host_manager):
        with pytest.raises(NotFoundError):
            host_manager.load_configuration()

    def test_corrupt_file(self, host_manager):
        host_manager.config_path.write_text("{")
        with pytest.raises(InternalError):
            host_manager.load_configuration()

    def test_creates_missing_vlans(self, host_manager, link_table):
        self._write(
            host_manager, [{"name": "rol.eth1.7", "addresses": ["10.7.0.1/24"], "vlan_id": 7, "master": "eth1"}]
        )

        host_manager.load_configuration()

        record = link_table.records["rol.eth1.7"]
        assert (record.parent, record.vlan_id, record.addresses) == ("eth1", 7, ["10.7.0.1/24"])

    def test_deletes_only_owned_vlans(self, host_manager, link_table):
        """Unprefixed links survive a load even when absent from the snapshot."""
        host_manager.create_vlan("eth0", 42)
        self._write(host_manager, [])

        host_manager.load_configuration()

        assert "rol.eth0.42" not in link_table.records
        assert "eth0.100" in link_table.records
        assert "docker0" in link_table.records

    def test_idempotent(self, host_manager, link_table):
        host_manager.create_vlan("eth0", 42)
        host_manager.save_configuration()
        host_manager.create_vlan("eth1", 8)

        host_manager.load_configuration()
        after_first = sorted(link_table.records)
        host_manager.load_configuration()

        assert sorted(link_table.records) == after_first
        assert "rol.eth0.42" in after_first
        assert "rol.eth1.8" not in after_first

    def test_missing_master_is_internal(self, host_manager):
        self._write(host_manager, [{"name": "rol.eth9.7", "addresses": [], "vlan_id": 7, "master": "eth9"}])
        with pytest.raises(InternalError) as exc_info:
            host_manager.load_configuration()
        assert isinstance(exc_info.value.cause, NotFoundError)
