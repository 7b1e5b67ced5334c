"""Synchronizes desired switch, port and VLAN records with the switches themselves.

Every mutation runs under a per-switch lock: the previous membership is read,
diffed against the desired one, replayed on the switch and only then written
back. Hardware changes already applied when a later step fails stay applied;
there is no compensating rollback.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator
from uuid import UUID

from loguru import logger

from rolnet.diff import MembershipDiff, membership_diff, remove_element, unique
from rolnet.errors import InternalError, NotFoundError, ValidationError
from rolnet.store import EthernetSwitch, EthernetSwitchPort, EthernetSwitchVLAN, Page, Repository, StoreError
from rolnet.store.query import QueryBuilder
from rolnet.switchctrl import BaseSwitchManager, SwitchError, SwitchManagerRegistry
from rolnet.switchsync.models import PortCreate, PortUpdate, SwitchCreate, SwitchUpdate, VLANCreate, VLANUpdate
from rolnet.validation import check_disjoint, check_ipv4_address, check_required, check_vlan_id


@contextmanager
def _internal(action: str) -> Iterator[None]:
    """Convert store and switch failures into :class:`InternalError`."""
    try:
        yield
    except (StoreError, SwitchError) as e:
        raise InternalError(f"failed to {action}", cause=e) from e


class EthernetSwitchService:
    """Validated CRUD for switches, ports and VLANs, replayed on switch hardware.

    Switches whose model has no registered manager are tracked in the store
    only.
    """

    def __init__(
        self,
        switch_repo: Repository[EthernetSwitch],
        port_repo: Repository[EthernetSwitchPort],
        vlan_repo: Repository[EthernetSwitchVLAN],
        managers: SwitchManagerRegistry | None = None,
    ):
        self._switches = switch_repo
        self._ports = port_repo
        self._vlans = vlan_repo
        self._managers = managers if managers is not None else SwitchManagerRegistry()
        self._locks: dict[UUID, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        self.logger = logger.bind(classname=self.__class__.__name__)

    def _lock(self, switch_id: UUID) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(switch_id)
            if lock is None:
                lock = self._locks[switch_id] = threading.RLock()
            return lock

    # ── switches ──────────────────────────────────────────────────────

    def create_switch(self, data: SwitchCreate) -> EthernetSwitch:
        self._validate_switch(data, switch_id=None)
        with _internal("create switch"):
            switch = self._switches.insert(EthernetSwitch(**data.model_dump()))
        self.logger.info(f"Created switch {switch.name} ({switch.serial}) id={switch.id}")
        return switch

    def update_switch(self, switch_id: UUID, data: SwitchUpdate) -> EthernetSwitch:
        with self._lock(switch_id):
            current = self._get_switch(switch_id)
            self._validate_switch(data, switch_id=switch_id)
            with _internal("update switch"):
                switch = self._switches.update(switch_id, current.model_copy(update=data.model_dump()))
            # credentials or model may have changed
            self._managers.forget(switch_id)
        return switch

    def delete_switch(self, switch_id: UUID) -> None:
        """Delete the switch together with all of its VLANs and ports."""
        with self._lock(switch_id):
            self._get_switch(switch_id)
            with _internal("delete switch"):
                for vlan in self._vlans.get_all(include_deleted=False, query=self._on_switch(switch_id)):
                    self._vlans.delete(vlan.id)
                for port in self._ports.get_all(include_deleted=False, query=self._on_switch(switch_id)):
                    self._ports.delete(port.id)
                self._switches.delete(switch_id)
            self._managers.forget(switch_id)
        self.logger.info(f"Deleted switch {switch_id} with its ports and VLANs")

    def get_switch(self, switch_id: UUID) -> EthernetSwitch:
        return self._get_switch(switch_id)

    def get_switches(
        self, search: str = "", order_by: str = "", direction: str = "asc", page: int = 1, page_size: int = 10
    ) -> Page[EthernetSwitch]:
        query = self._switches.new_query_builder()
        if search:
            pattern = f"%{search}%"
            query.where("name", "LIKE", pattern).or_("serial", "LIKE", pattern).or_("address", "LIKE", pattern)
        return self._page(self._switches, query, order_by, direction, page, page_size)

    def _validate_switch(self, data: SwitchCreate, switch_id: UUID | None) -> None:
        errors = ValidationError()
        check_required(errors, "name", data.name)
        check_required(errors, "serial", data.serial)
        check_required(errors, "switch_model", data.switch_model)
        check_ipv4_address(errors, data.address)
        errors.raise_if_any()

        query = self._switches.new_query_builder().where("serial", "==", data.serial)
        if switch_id is not None:
            query.where("id", "!=", switch_id)
        if self._switches.count(include_deleted=False, query=query):
            raise ValidationError.for_field("serial", f"switch with serial '{data.serial}' already exists")

    # ── ports ─────────────────────────────────────────────────────────

    def create_port(self, switch_id: UUID, data: PortCreate) -> EthernetSwitchPort:
        with self._lock(switch_id):
            self._get_switch(switch_id)
            self._validate_port(switch_id, data, port_id=None)
            with _internal("create port"):
                port = self._ports.insert(EthernetSwitchPort(ethernet_switch_id=switch_id, **data.model_dump()))
        self.logger.debug(f"Created port {port.name} on switch {switch_id}")
        return port

    def update_port(self, switch_id: UUID, port_id: UUID, data: PortUpdate) -> EthernetSwitchPort:
        with self._lock(switch_id):
            self._get_switch(switch_id)
            current = self._get_port(switch_id, port_id)
            self._validate_port(switch_id, data, port_id=port_id)
            with _internal("update port"):
                return self._ports.update(port_id, current.model_copy(update=data.model_dump()))

    def delete_port(self, switch_id: UUID, port_id: UUID) -> None:
        """Strip the port from every VLAN of the switch, then delete it.

        Only the stored membership is changed; the switch itself keeps its
        configuration for the port.
        """
        with self._lock(switch_id):
            self._get_switch(switch_id)
            self._get_port(switch_id, port_id)
            with _internal("remove port from VLANs"):
                for vlan in self._vlans.get_all(include_deleted=False, query=self._on_switch(switch_id)):
                    if port_id not in vlan.tagged_ports and port_id not in vlan.untagged_ports:
                        continue
                    stripped = vlan.model_copy(
                        update={
                            "tagged_ports": remove_element(vlan.tagged_ports, port_id),
                            "untagged_ports": remove_element(vlan.untagged_ports, port_id),
                        }
                    )
                    self._vlans.update(vlan.id, stripped)
            with _internal("delete port"):
                self._ports.delete(port_id)

    def get_port(self, switch_id: UUID, port_id: UUID) -> EthernetSwitchPort:
        self._get_switch(switch_id)
        return self._get_port(switch_id, port_id)

    def get_ports(
        self,
        switch_id: UUID,
        search: str = "",
        order_by: str = "",
        direction: str = "asc",
        page: int = 1,
        page_size: int = 10,
    ) -> Page[EthernetSwitchPort]:
        self._get_switch(switch_id)
        query = self._on_switch(switch_id)
        if search:
            query.where_query(self._ports.new_query_builder().where("name", "LIKE", f"%{search}%"))
        return self._page(self._ports, query, order_by, direction, page, page_size)

    def _validate_port(self, switch_id: UUID, data: PortCreate, port_id: UUID | None) -> None:
        errors = ValidationError()
        check_required(errors, "name", data.name)
        errors.raise_if_any()

        query = self._on_switch(switch_id).where("name", "==", data.name)
        if port_id is not None:
            query.where("id", "!=", port_id)
        if self._ports.count(include_deleted=False, query=query):
            raise ValidationError.for_field("name", f"port '{data.name}' already exists on switch {switch_id}")

    def _get_port(self, switch_id: UUID, port_id: UUID) -> EthernetSwitchPort:
        return self._ports.get_by_id(port_id, include_deleted=False, query=self._on_switch(switch_id))

    def _port_name(self, port_id: UUID, include_deleted: bool) -> str:
        try:
            return self._ports.get_by_id(port_id, include_deleted=include_deleted).name
        except NotFoundError as e:
            raise InternalError(f"failed to resolve name of port {port_id}", cause=e) from e

    def _check_ports_exist(self, switch_id: UUID, tagged: list[UUID], untagged: list[UUID]) -> None:
        """Report every missing tagged and untagged port in one error."""
        port_ids = unique([*tagged, *untagged])
        if not port_ids:
            return
        ids = self._ports.new_query_builder()
        for port_id in port_ids:
            ids.or_("id", "==", port_id)
        query = self._on_switch(switch_id).where_query(ids)
        existing = {port.id for port in self._ports.get_all(include_deleted=False, query=query)}

        errors = ValidationError()
        for port_id in tagged:
            if port_id not in existing:
                errors.add("tagged_ports", f"port {port_id} does not exist on switch {switch_id}")
        for port_id in untagged:
            if port_id not in existing:
                errors.add("untagged_ports", f"port {port_id} does not exist on switch {switch_id}")
        errors.raise_if_any()

    # ── VLANs ─────────────────────────────────────────────────────────

    def create_vlan(self, switch_id: UUID, data: VLANCreate) -> EthernetSwitchVLAN:
        """Store the VLAN, then create it on the switch with its port membership.

        A failing switch call leaves the stored VLAN in place.
        """
        tagged = unique(data.tagged_ports)
        untagged = unique(data.untagged_ports)
        errors = ValidationError()
        check_vlan_id(errors, data.vlan_id)
        check_disjoint(errors, tagged, untagged)
        errors.raise_if_any()

        with self._lock(switch_id):
            switch = self._get_switch(switch_id)
            self._check_ports_exist(switch_id, tagged, untagged)
            taken = self._on_switch(switch_id).where("vlan_id", "==", data.vlan_id)
            if self._vlans.count(include_deleted=False, query=taken):
                raise ValidationError.for_field("vlan_id", f"VLAN {data.vlan_id} already exists on switch {switch_id}")

            with _internal("create VLAN"):
                vlan = self._vlans.insert(
                    EthernetSwitchVLAN(
                        ethernet_switch_id=switch_id,
                        vlan_id=data.vlan_id,
                        tagged_ports=tagged,
                        untagged_ports=untagged,
                    )
                )

            manager = self._managers.get(switch)
            if manager is None:
                return vlan

            with _internal(f"create VLAN {vlan.vlan_id} on switch {switch.name}"):
                manager.create_vlan(vlan.vlan_id)
                for port_id in tagged:
                    manager.add_tagged_vlan_on_port(self._port_name(port_id, include_deleted=False), vlan.vlan_id)
                for port_id in untagged:
                    manager.add_untagged_vlan_on_port(self._port_name(port_id, include_deleted=False), vlan.vlan_id)
                manager.save_config()
        self.logger.info(f"Created VLAN {vlan.vlan_id} on switch {switch.name}")
        return vlan

    def update_vlan(self, switch_id: UUID, vlan_id: UUID, data: VLANUpdate) -> EthernetSwitchVLAN:
        """Replace the VLAN membership, replaying the difference on the switch.

        All removals are sent before any addition; the stored membership is
        written after the switch has been updated.
        """
        tagged = unique(data.tagged_ports)
        untagged = unique(data.untagged_ports)
        errors = ValidationError()
        check_disjoint(errors, tagged, untagged)
        errors.raise_if_any()

        with self._lock(switch_id):
            self._get_switch(switch_id)
            vlan = self._get_vlan(switch_id, vlan_id)
            self._check_ports_exist(switch_id, tagged, untagged)

            tagged_diff = membership_diff(vlan.tagged_ports, tagged)
            untagged_diff = membership_diff(vlan.untagged_ports, untagged)

            manager = self._manager_for(switch_id)
            if manager is not None:
                self._replay(manager, vlan.vlan_id, tagged_diff, untagged_diff)

            with _internal("update VLAN"):
                return self._vlans.update(
                    vlan.id, vlan.model_copy(update={"tagged_ports": tagged, "untagged_ports": untagged})
                )

    def delete_vlan(self, switch_id: UUID, vlan_id: UUID) -> None:
        with self._lock(switch_id):
            switch = self._get_switch(switch_id)
            vlan = self._get_vlan(switch_id, vlan_id)

            manager = self._managers.get(switch)
            members = [*vlan.tagged_ports, *vlan.untagged_ports]
            if manager is not None and members:
                with _internal(f"remove VLAN {vlan.vlan_id} from ports of switch {switch.name}"):
                    for port_id in members:
                        manager.remove_vlan_from_port(self._port_name(port_id, include_deleted=True), vlan.vlan_id)
                    manager.save_config()

            with _internal("delete VLAN"):
                self._vlans.delete(vlan.id)
        self.logger.info(f"Deleted VLAN {vlan.vlan_id} from switch {switch.name}")

    def get_vlan(self, switch_id: UUID, vlan_id: UUID) -> EthernetSwitchVLAN:
        self._get_switch(switch_id)
        return self._get_vlan(switch_id, vlan_id)

    def get_vlans(
        self,
        switch_id: UUID,
        search: str = "",
        order_by: str = "",
        direction: str = "asc",
        page: int = 1,
        page_size: int = 10,
    ) -> Page[EthernetSwitchVLAN]:
        """List VLANs; ``search`` matches the tag or any member port id."""
        self._get_switch(switch_id)
        query = self._on_switch(switch_id)
        if search:
            pattern = f"%{search}%"
            matching = self._vlans.new_query_builder()
            matching.where("vlan_id", "LIKE", pattern)
            matching.or_("tagged_ports", "LIKE", pattern).or_("untagged_ports", "LIKE", pattern)
            query.where_query(matching)
        return self._page(self._vlans, query, order_by, direction, page, page_size)

    def _get_vlan(self, switch_id: UUID, vlan_id: UUID) -> EthernetSwitchVLAN:
        return self._vlans.get_by_id(vlan_id, include_deleted=False, query=self._on_switch(switch_id))

    def _replay(
        self,
        manager: BaseSwitchManager,
        tag: int,
        tagged_diff: MembershipDiff[UUID],
        untagged_diff: MembershipDiff[UUID],
    ) -> None:
        if tagged_diff.is_empty and untagged_diff.is_empty:
            return
        with _internal(f"apply VLAN {tag} membership changes"):
            # removed ports may have been deleted in the meantime
            for port_id in [*tagged_diff.remove, *untagged_diff.remove]:
                manager.remove_vlan_from_port(self._port_name(port_id, include_deleted=True), tag)
            for port_id in tagged_diff.add:
                manager.add_tagged_vlan_on_port(self._port_name(port_id, include_deleted=False), tag)
            for port_id in untagged_diff.add:
                manager.add_untagged_vlan_on_port(self._port_name(port_id, include_deleted=False), tag)
            manager.save_config()
        self.logger.debug(
            f"VLAN {tag}: removed {len(tagged_diff.remove) + len(untagged_diff.remove)} port(s), "
            f"added {len(tagged_diff.add)} tagged and {len(untagged_diff.add)} untagged"
        )

    # ── helpers ───────────────────────────────────────────────────────

    def _get_switch(self, switch_id: UUID) -> EthernetSwitch:
        return self._switches.get_by_id(switch_id, include_deleted=False)

    def _manager_for(self, switch_id: UUID) -> BaseSwitchManager | None:
        try:
            switch = self._switches.get_by_id(switch_id, include_deleted=False)
        except NotFoundError as e:
            raise InternalError(f"failed to resolve switch manager for {switch_id}", cause=e) from e
        return self._managers.get(switch)

    def _on_switch(self, switch_id: UUID) -> QueryBuilder:
        return QueryBuilder().where("ethernet_switch_id", "==", switch_id)

    @staticmethod
    def _page(
        repo: Repository, query: QueryBuilder, order_by: str, direction: str, page: int, page_size: int
    ) -> Page:
        with _internal(f"list {repo.table}"):
            items = repo.get_list(order_by, direction, page, page_size, include_deleted=False, query=query)
            total = repo.count(include_deleted=False, query=query)
        return Page(items=items, page=max(page, 1), page_size=page_size, total=total)

    def close(self) -> None:
        """Disconnect all cached switch managers."""
        self._managers.close()
