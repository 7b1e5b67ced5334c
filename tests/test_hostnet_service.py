"""Tests for host VLAN and bridge operations and the unsaved-changes flag."""

import pytest

from rolnet.errors import InternalError, NotFoundError, ValidationError
from rolnet.hostnet.linktable import LinkTableError


class TestVlans:
    """Test owned VLAN operations."""

    def test_create_with_addresses(self, host_service):
        vlan = host_service.create_vlan("eth0", 42, ["10.42.0.1/24", "10.42.1.1/24"])

        assert vlan.name == "rol.eth0.42"
        assert vlan.addresses == ["10.42.0.1/24", "10.42.1.1/24"]
        assert host_service.has_unsaved_changes

    def test_create_reports_every_invalid_field(self, host_service):
        with pytest.raises(ValidationError) as exc_info:
            host_service.create_vlan("eth0", 5000, ["10.0.0.1", "bogus/24"])
        assert [e.field for e in exc_info.value.errors] == ["vlan_id", "addresses", "addresses"]
        assert not host_service.has_unsaved_changes

    def test_create_name_too_long(self, host_service):
        with pytest.raises(ValidationError) as exc_info:
            host_service.create_vlan("enp0s31f6", 4000)
        assert exc_info.value.errors[0].field == "master"

    def test_foreign_vlans_hidden(self, host_service):
        """eth0.100 exists on the host but is not managed by rolnet."""
        host_service.create_vlan("eth0", 42)
        assert [v.name for v in host_service.get_vlan_list()] == ["rol.eth0.42"]
        with pytest.raises(NotFoundError):
            host_service.get_vlan_by_name("eth0.100")

    def test_set_vlan_addr(self, host_service):
        host_service.create_vlan("eth0", 42, ["10.42.0.1/24"])
        vlan = host_service.set_vlan_addr("rol.eth0.42", "10.43.0.1/24")
        assert vlan.addresses == ["10.42.0.1/24", "10.43.0.1/24"]

    def test_set_addr_on_foreign_link(self, host_service):
        with pytest.raises(NotFoundError):
            host_service.set_vlan_addr("eth0", "10.43.0.1/24")

    def test_update_replaces_addresses(self, host_service, link_table):
        host_service.create_vlan("eth0", 42, ["10.42.0.1/24", "10.42.1.1/24"])
        vlan = host_service.update_vlan("rol.eth0.42", ["10.42.1.1/24", "10.42.2.1/24"])
        assert vlan.addresses == ["10.42.1.1/24", "10.42.2.1/24"]

    def test_update_unchanged_keeps_flag_clear(self, host_service, host_manager):
        host_service.create_vlan("eth0", 42, ["10.42.0.1/24"])
        host_service.save_changes()

        host_service.update_vlan("rol.eth0.42", ["10.42.0.1/24"])
        assert not host_service.has_unsaved_changes

    def test_delete(self, host_service, link_table):
        host_service.create_vlan("eth0", 42)
        host_service.delete_vlan("rol.eth0.42")
        assert "rol.eth0.42" not in link_table.records

    def test_delete_foreign(self, host_service, link_table):
        with pytest.raises(NotFoundError):
            host_service.delete_vlan("eth0.100")
        assert "eth0.100" in link_table.records


class TestBridges:
    """Test owned bridge operations."""

    def test_create_with_slaves(self, host_service):
        bridge = host_service.create_bridge("lab", ["10.50.0.1/24"], ["eth1"])

        assert bridge.name == "rol.br.lab"
        assert bridge.addresses == ["10.50.0.1/24"]
        assert bridge.slaves == ["eth1"]

    def test_foreign_bridges_hidden(self, host_service):
        assert host_service.get_bridge_list() == []
        with pytest.raises(NotFoundError):
            host_service.get_bridge_by_name("docker0")

    def test_update(self, host_service, link_table):
        host_service.create_bridge("lab", ["10.50.0.1/24"], ["eth1"])
        link_table.add_link("eth2")

        bridge = host_service.update_bridge("rol.br.lab", ["10.51.0.1/24"], ["eth2"])

        assert bridge.addresses == ["10.51.0.1/24"]
        assert bridge.slaves == ["eth2"]
        assert link_table.records["eth1"].master is None

    def test_invalid_slave_name(self, host_service):
        with pytest.raises(ValidationError):
            host_service.create_bridge("lab", slaves=["eth 1"])

    def test_delete(self, host_service, link_table):
        host_service.create_bridge("lab", slaves=["eth1"])
        host_service.delete_bridge("rol.br.lab")
        assert "rol.br.lab" not in link_table.records
        assert link_table.records["eth1"].master is None


class TestUnsavedChanges:
    """Test save, reset, restore and startup apply."""

    def test_save_without_changes(self, host_service, host_manager):
        assert not host_service.save_changes()
        assert not host_manager.config_path.exists()

    def test_save_clears_flag(self, host_service, host_manager):
        host_service.create_vlan("eth0", 42)
        assert host_service.save_changes()
        assert not host_service.has_unsaved_changes
        assert host_manager.config_path.exists()

    def test_failed_update_still_marks_unsaved(self, host_service, link_table, monkeypatch):
        host_service.create_vlan("eth0", 42, ["10.42.0.1/24"])
        host_service.save_changes()

        def _add_address(name, cidr):
            raise LinkTableError("RTNETLINK answers: Permission denied")

        monkeypatch.setattr(link_table, "add_address", _add_address)

        with pytest.raises(InternalError):
            host_service.update_vlan("rol.eth0.42", ["10.42.9.1/24"])

        assert link_table.records["rol.eth0.42"].addresses == []
        assert host_service.has_unsaved_changes

    def test_failed_slave_change_still_marks_unsaved(self, host_service, link_table, monkeypatch):
        host_service.create_bridge("lab", slaves=["eth1"])
        host_service.save_changes()
        link_table.add_link("eth2")

        def _set_master(name, master):
            raise LinkTableError("RTNETLINK answers: Device or resource busy")

        monkeypatch.setattr(link_table, "set_master", _set_master)

        with pytest.raises(InternalError):
            host_service.update_bridge("rol.br.lab", [], ["eth2"])

        assert link_table.records["eth1"].master is None
        assert host_service.has_unsaved_changes

    def test_reset_without_changes(self, host_service):
        assert not host_service.reset_changes()

    def test_reset_reverts_to_saved(self, host_service, link_table):
        host_service.create_vlan("eth0", 42)
        host_service.save_changes()
        host_service.create_vlan("eth1", 8)

        assert host_service.reset_changes()

        assert "rol.eth0.42" in link_table.records
        assert "rol.eth1.8" not in link_table.records
        assert not host_service.has_unsaved_changes

    def test_restore_previous(self, host_service, link_table):
        host_service.create_vlan("eth0", 42)
        host_service.save_changes()
        host_service.create_vlan("eth1", 8)
        host_service.save_changes()

        host_service.restore_previous()

        assert "rol.eth0.42" in link_table.records
        assert "rol.eth1.8" not in link_table.records

    def test_restore_previous_without_backup(self, host_service):
        with pytest.raises(NotFoundError):
            host_service.restore_previous()

    def test_apply_saved_without_file(self, host_service):
        assert not host_service.apply_saved()

    def test_apply_saved(self, host_service, host_manager, link_table):
        host_service.create_vlan("eth0", 42)
        host_service.save_changes()
        link_table.delete("rol.eth0.42")

        assert host_service.apply_saved()
        assert "rol.eth0.42" in link_table.records
