"""Host VLAN and bridge operations with an unsaved-changes flag.

Only rolnet-owned links are visible through this service. Changes are applied
to the host immediately; :meth:`HostNetworkService.save_changes` writes them to
the snapshot and :meth:`HostNetworkService.reset_changes` reverts the host to
the last saved snapshot.
"""

from __future__ import annotations

import threading
from typing import Iterable

from loguru import logger

from rolnet.diff import membership_diff, unique
from rolnet.errors import NotFoundError, ValidationError
from rolnet.hostnet.manager import HostNetworkManager, bridge_link_name, is_owned, vlan_link_name
from rolnet.hostnet.models import HostNetworkBridge, HostNetworkVlan
from rolnet.validation import check_cidr, check_link_name, check_vlan_id, validate_cidr


class HostNetworkService:
    def __init__(self, manager: HostNetworkManager):
        self._manager = manager
        self._lock = threading.RLock()
        self._has_unsaved_changes = False
        self.logger = logger.bind(classname=self.__class__.__name__)

    @property
    def has_unsaved_changes(self) -> bool:
        with self._lock:
            return self._has_unsaved_changes

    # ── VLANs ─────────────────────────────────────────────────────────

    def get_vlan_list(self) -> list[HostNetworkVlan]:
        with self._lock:
            return [
                link for link in self._manager.get_list() if isinstance(link, HostNetworkVlan) and is_owned(link.name)
            ]

    def get_vlan_by_name(self, name: str) -> HostNetworkVlan:
        with self._lock:
            link = self._manager.get_by_name(name)
            if not isinstance(link, HostNetworkVlan) or not is_owned(link.name):
                raise NotFoundError(f"host VLAN '{name}' not found")
            return link

    def create_vlan(self, master: str, vlan_id: int, addresses: Iterable[str] = ()) -> HostNetworkVlan:
        """Create ``rol.<master>.<vlan_id>`` with the given addresses."""
        addresses = list(addresses)
        errors = ValidationError()
        check_vlan_id(errors, vlan_id)
        check_link_name(errors, vlan_link_name(master, vlan_id), "master")
        for address in addresses:
            check_cidr(errors, address)
        errors.raise_if_any()

        with self._lock:
            name = self._manager.create_vlan(master, vlan_id)
            self._has_unsaved_changes = True
            for address in addresses:
                self._manager.set_addr(name, address)
            return self.get_vlan_by_name(name)

    def set_vlan_addr(self, name: str, cidr: str) -> HostNetworkVlan:
        cidr = validate_cidr(cidr)
        with self._lock:
            self.get_vlan_by_name(name)
            self._manager.set_addr(name, cidr)
            self._has_unsaved_changes = True
            return self.get_vlan_by_name(name)

    def update_vlan(self, name: str, addresses: Iterable[str]) -> HostNetworkVlan:
        """Replace the addresses of an owned VLAN."""
        wanted = self._canonical_addresses(addresses)
        with self._lock:
            vlan = self.get_vlan_by_name(name)
            self._replace_addresses(name, vlan.addresses, wanted)
            return self.get_vlan_by_name(name)

    def delete_vlan(self, name: str) -> None:
        with self._lock:
            self.get_vlan_by_name(name)
            self._manager.delete_link_by_name(name)
            self._has_unsaved_changes = True

    # ── bridges ───────────────────────────────────────────────────────

    def get_bridge_list(self) -> list[HostNetworkBridge]:
        with self._lock:
            return [
                link
                for link in self._manager.get_list()
                if isinstance(link, HostNetworkBridge) and is_owned(link.name)
            ]

    def get_bridge_by_name(self, name: str) -> HostNetworkBridge:
        with self._lock:
            link = self._manager.get_by_name(name)
            if not isinstance(link, HostNetworkBridge) or not is_owned(link.name):
                raise NotFoundError(f"host bridge '{name}' not found")
            return link

    def create_bridge(
        self, name: str, addresses: Iterable[str] = (), slaves: Iterable[str] = ()
    ) -> HostNetworkBridge:
        """Create ``rol.br.<name>``, assign addresses and attach slave links."""
        addresses = list(addresses)
        slaves = unique(slaves)
        errors = ValidationError()
        check_link_name(errors, bridge_link_name(name), "name")
        for address in addresses:
            check_cidr(errors, address)
        for slave in slaves:
            check_link_name(errors, slave, "slaves")
        errors.raise_if_any()

        with self._lock:
            link_name = self._manager.create_bridge(name)
            self._has_unsaved_changes = True
            for address in addresses:
                self._manager.set_addr(link_name, address)
            for slave in slaves:
                self._manager.set_link_master(slave, link_name)
            return self.get_bridge_by_name(link_name)

    def update_bridge(self, name: str, addresses: Iterable[str], slaves: Iterable[str]) -> HostNetworkBridge:
        """Replace the addresses and the slave links of an owned bridge."""
        wanted_addresses = self._canonical_addresses(addresses)
        wanted_slaves = unique(slaves)
        errors = ValidationError()
        for slave in wanted_slaves:
            check_link_name(errors, slave, "slaves")
        errors.raise_if_any()

        with self._lock:
            bridge = self.get_bridge_by_name(name)
            self._replace_addresses(name, bridge.addresses, wanted_addresses)
            slave_diff = membership_diff(bridge.slaves, wanted_slaves)
            if not slave_diff.is_empty:
                self._has_unsaved_changes = True
            for slave in slave_diff.remove:
                self._manager.unset_link_master(slave)
            for slave in slave_diff.add:
                self._manager.set_link_master(slave, name)
            return self.get_bridge_by_name(name)

    def delete_bridge(self, name: str) -> None:
        with self._lock:
            self.get_bridge_by_name(name)
            self._manager.delete_link_by_name(name)
            self._has_unsaved_changes = True

    # ── snapshot ──────────────────────────────────────────────────────

    def save_changes(self) -> bool:
        """Write the snapshot if anything changed since the last save. Returns whether it did."""
        with self._lock:
            if not self._has_unsaved_changes:
                return False
            self._manager.save_configuration()
            self._has_unsaved_changes = False
            return True

    def reset_changes(self) -> bool:
        """Revert unsaved changes by loading the saved snapshot. Returns whether it did."""
        with self._lock:
            if not self._has_unsaved_changes:
                return False
            self._manager.load_configuration()
            self._has_unsaved_changes = False
            self.logger.info("Reverted unsaved host network changes")
            return True

    def restore_previous(self) -> None:
        """Make the backup snapshot current and apply it."""
        with self._lock:
            self._manager.restore_configuration()
            self._has_unsaved_changes = False

    def apply_saved(self) -> bool:
        """Apply the saved snapshot, if there is one. Intended for startup."""
        with self._lock:
            if not self._manager.config_path.exists():
                self.logger.debug(f"No saved host configuration at {self._manager.config_path}")
                return False
            self._manager.load_configuration()
            self._has_unsaved_changes = False
            return True

    # ── helpers ───────────────────────────────────────────────────────

    @staticmethod
    def _canonical_addresses(addresses: Iterable[str]) -> list[str]:
        addresses = list(addresses)
        errors = ValidationError()
        for address in addresses:
            check_cidr(errors, address)
        errors.raise_if_any()
        return unique(validate_cidr(address) for address in addresses)

    def _replace_addresses(self, name: str, current: list[str], wanted: list[str]) -> None:
        diff = membership_diff(current, wanted)
        if not diff.is_empty:
            self._has_unsaved_changes = True
        for address in diff.remove:
            self._manager.remove_addr(name, address)
        for address in diff.add:
            self._manager.set_addr(name, address)
