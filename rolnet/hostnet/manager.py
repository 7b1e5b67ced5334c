"""Host network interface manager.

Classifies the links of the OS link table, creates and removes rolnet-owned
VLAN and bridge links and keeps a saved snapshot of the configuration with
one backup generation next to it (``<file>.back``).

Only links whose name starts with :data:`OWNED_PREFIX` are ever deleted when
a snapshot is loaded.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from rolnet.diff import difference
from rolnet.errors import InternalError, NotFoundError, ValidationError
from rolnet.hostnet.linktable import BaseLinkTable, IPRoute2LinkTable, LinkNotFoundError, LinkRecord, LinkTableError
from rolnet.hostnet.models import (
    HostLink,
    HostLinkType,
    HostNetworkBridge,
    HostNetworkDevice,
    HostNetworkLink,
    HostNetworkVlan,
    HostSnapshot,
    SnapshotDevice,
    SnapshotVlan,
)
from rolnet.validation import validate_cidr

OWNED_PREFIX = "rol."
BRIDGE_PREFIX = OWNED_PREFIX + "br."
BACKUP_SUFFIX = ".back"


def is_owned(name: str) -> bool:
    return name.startswith(OWNED_PREFIX)


def vlan_link_name(master: str, vlan_id: int) -> str:
    return f"{OWNED_PREFIX}{master}.{vlan_id}"


def bridge_link_name(name: str) -> str:
    return f"{BRIDGE_PREFIX}{name}"


@contextmanager
def _link_errors(action: str) -> Iterator[None]:
    try:
        yield
    except LinkNotFoundError as e:
        raise NotFoundError(f"failed to {action}: {e}") from e
    except LinkTableError as e:
        raise InternalError(f"failed to {action}", cause=e) from e


class HostNetworkManager:
    """Wraps a link table and the snapshot file at ``config_path``."""

    def __init__(self, config_path: Path, link_table: BaseLinkTable | None = None):
        self.config_path = config_path
        self.backup_path = config_path.with_name(config_path.name + BACKUP_SUFFIX)
        self._links = link_table if link_table is not None else IPRoute2LinkTable()
        self.logger = logger.bind(classname=self.__class__.__name__)

    # ── link table ────────────────────────────────────────────────────

    def get_list(self) -> list[HostLink]:
        with _link_errors("list host links"):
            records = self._links.links()
        return [self._to_link(record, records) for record in records]

    def get_by_name(self, name: str) -> HostLink:
        with _link_errors("list host links"):
            records = self._links.links()
        for record in records:
            if record.name == name:
                return self._to_link(record, records)
        raise NotFoundError(f"host link '{name}' not found")

    @staticmethod
    def _to_link(record: LinkRecord, records: list[LinkRecord]) -> HostLink:
        if record.kind == HostLinkType.DEVICE.value:
            return HostNetworkDevice(name=record.name, addresses=record.addresses)
        if record.kind == HostLinkType.VLAN.value:
            return HostNetworkVlan(
                name=record.name,
                addresses=record.addresses,
                vlan_id=record.vlan_id or 0,
                master=record.parent or "",
            )
        if record.kind == HostLinkType.BRIDGE.value:
            slaves = [r.name for r in records if r.master == record.name]
            return HostNetworkBridge(name=record.name, addresses=record.addresses, slaves=slaves)
        return HostNetworkLink(name=record.name, addresses=record.addresses)

    def create_vlan(self, master: str, vlan_id: int) -> str:
        """Add VLAN ``vlan_id`` on ``master`` as ``rol.<master>.<vlan_id>`` and bring it up."""
        name = vlan_link_name(master, vlan_id)
        with _link_errors(f"create VLAN {vlan_id} on {master}"):
            self._links.link_by_name(master)
            self._links.add_vlan(name, master, vlan_id)
            self._links.set_up(name)
        self.logger.info(f"Created host VLAN link {name}")
        return name

    def create_bridge(self, name: str) -> str:
        """Add bridge ``rol.br.<name>`` and bring it up."""
        link_name = bridge_link_name(name)
        with _link_errors(f"create bridge {link_name}"):
            self._links.add_bridge(link_name)
            self._links.set_up(link_name)
        self.logger.info(f"Created host bridge {link_name}")
        return link_name

    def set_link_master(self, slave: str, bridge: str) -> None:
        with _link_errors(f"attach {slave} to {bridge}"):
            self._links.link_by_name(bridge)
            self._links.set_master(slave, bridge)

    def unset_link_master(self, slave: str) -> None:
        with _link_errors(f"release {slave} from its bridge"):
            self._links.set_nomaster(slave)

    def delete_link_by_name(self, name: str) -> None:
        with _link_errors(f"delete link {name}"):
            self._links.link_by_name(name)
            self._links.delete(name)
        self.logger.info(f"Deleted host link {name}")

    def set_addr(self, name: str, cidr: str) -> None:
        """Add ``cidr`` to the link; existing addresses are kept."""
        cidr = validate_cidr(cidr)
        with _link_errors(f"add address {cidr} to {name}"):
            self._links.link_by_name(name)
            self._links.add_address(name, cidr)

    def remove_addr(self, name: str, cidr: str) -> None:
        cidr = validate_cidr(cidr)
        with _link_errors(f"remove address {cidr} from {name}"):
            self._links.delete_address(name, cidr)

    # ── snapshot ──────────────────────────────────────────────────────

    def save_configuration(self) -> None:
        """Snapshot devices and owned VLANs; the previous snapshot becomes the backup."""
        links = self.get_list()
        snapshot = HostSnapshot(
            devices=[
                SnapshotDevice(name=link.name, addresses=link.addresses)
                for link in links
                if isinstance(link, HostNetworkDevice)
            ],
            vlans=[
                SnapshotVlan(name=link.name, addresses=link.addresses, vlan_id=link.vlan_id, master=link.master)
                for link in links
                if isinstance(link, HostNetworkVlan) and is_owned(link.name)
            ],
        )
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            if self.config_path.exists():
                os.replace(self.config_path, self.backup_path)
            self.config_path.write_text(snapshot.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        except OSError as e:
            raise InternalError(f"failed to save host configuration to {self.config_path}", cause=e) from e
        self.logger.info(
            f"Saved host configuration ({len(snapshot.devices)} devices, {len(snapshot.vlans)} VLANs) to {self.config_path}"
        )

    def restore_configuration(self) -> None:
        """Put the backup back in place of the current snapshot and load it."""
        if not self.backup_path.exists():
            raise NotFoundError(f"backup configuration {self.backup_path} not found")
        try:
            self.config_path.unlink(missing_ok=True)
            os.replace(self.backup_path, self.config_path)
        except OSError as e:
            raise InternalError(f"failed to restore {self.backup_path}", cause=e) from e
        self.logger.info(f"Restored host configuration from {self.backup_path}")
        self.load_configuration()

    def load_configuration(self) -> None:
        """Reconcile the host VLAN links with the saved snapshot.

        Snapshot VLANs missing on the host are created with their addresses.
        Owned VLAN links that existed before the load and are absent from the
        snapshot are deleted. Loading the same snapshot twice changes nothing
        the second time.
        """
        snapshot = self._read_snapshot()
        present = [link for link in self.get_list() if isinstance(link, HostNetworkVlan)]
        present_names = {link.name for link in present}

        for vlan in snapshot.vlans:
            if vlan.name in present_names:
                continue
            try:
                name = self.create_vlan(vlan.master, vlan.vlan_id)
                for address in vlan.addresses:
                    self.set_addr(name, address)
            except (NotFoundError, ValidationError) as e:
                raise InternalError(f"failed to create VLAN {vlan.name} from saved configuration", cause=e) from e

        owned = [link.name for link in present if is_owned(link.name)]
        for name in difference(owned, [vlan.name for vlan in snapshot.vlans]):
            try:
                self.delete_link_by_name(name)
            except NotFoundError as e:
                raise InternalError(f"failed to delete VLAN {name} missing from saved configuration", cause=e) from e

    def _read_snapshot(self) -> HostSnapshot:
        if not self.config_path.exists():
            raise NotFoundError(f"host configuration {self.config_path} not found")
        try:
            return HostSnapshot.model_validate_json(self.config_path.read_text(encoding="utf-8"))
        except (OSError, PydanticValidationError) as e:
            raise InternalError(f"failed to read host configuration {self.config_path}", cause=e) from e
