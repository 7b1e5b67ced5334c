"""MikroTik RouterOS switch manager on the bridge VLAN table."""

from __future__ import annotations

import logging
from typing import Any

from rolnet.switchctrl.base.manager import BaseSwitchManager
from rolnet.switchctrl.exceptions import PortError, VLANError
from rolnet.switchctrl.factory import register_model
from rolnet.switchctrl.vendors.mikrotik.rest import MikroTikRESTTransport

logger = logging.getLogger(__name__)

BRIDGE_VLAN_PATH = "interface/bridge/vlan"
BRIDGE_PORT_PATH = "interface/bridge/port"
DEFAULT_PVID = 1


def _split(members: str | None) -> list[str]:
    return [m.strip() for m in (members or "").split(",") if m.strip()]


@register_model("crs326-24g-2s+")
class MikroTikSwitchManager(BaseSwitchManager):
    """Membership lives in ``/interface/bridge/vlan`` entries of one bridge.

    RouterOS applies and persists every change immediately, so
    :meth:`save_config` has nothing to do.
    """

    def __init__(
        self,
        host: str,
        username: str = "admin",
        password: str = "",
        rest_port: int = 443,
        verify_ssl: bool = False,
        bridge: str = "bridge",
        **kwargs: Any,
    ):
        super().__init__(host, username, password)
        self.bridge = bridge
        self._rest = MikroTikRESTTransport(
            host=host,
            username=username,
            password=password,
            port=rest_port,
            verify_ssl=verify_ssl,
        )

    def create_vlan(self, vlan_id: int) -> None:
        if self._find_vlan_entry(vlan_id) is not None:
            logger.info("VLAN %d already present on %s", vlan_id, self.host)
            return
        self._rest.put(BRIDGE_VLAN_PATH, {"bridge": self.bridge, "vlan-ids": str(vlan_id)})
        logger.info("Created VLAN %d on %s", vlan_id, self.host)

    def add_tagged_vlan_on_port(self, port_name: str, vlan_id: int) -> None:
        self._set_membership(port_name, vlan_id, tagged=True)

    def add_untagged_vlan_on_port(self, port_name: str, vlan_id: int) -> None:
        self._set_membership(port_name, vlan_id, tagged=False)
        self._set_pvid(port_name, vlan_id)

    def remove_vlan_from_port(self, port_name: str, vlan_id: int) -> None:
        entry = self._require_vlan_entry(vlan_id)
        tagged = [p for p in _split(entry.get("tagged")) if p != port_name]
        untagged = [p for p in _split(entry.get("untagged")) if p != port_name]
        self._rest.patch(BRIDGE_VLAN_PATH, entry[".id"], {"tagged": ",".join(tagged), "untagged": ",".join(untagged)})

        port = self._find_bridge_port(port_name)
        if port is not None and str(port.get("pvid", "")) == str(vlan_id):
            self._rest.patch(BRIDGE_PORT_PATH, port[".id"], {"pvid": str(DEFAULT_PVID)})
        logger.info("Removed VLAN %d from %s (%s)", vlan_id, port_name, self.host)

    def save_config(self) -> None:
        logger.debug("RouterOS persists changes immediately, nothing to save on %s", self.host)

    def connect(self) -> None:
        self._rest.connect()

    def disconnect(self) -> None:
        if self._rest.is_connected():
            self._rest.disconnect()

    def _set_membership(self, port_name: str, vlan_id: int, tagged: bool) -> None:
        entry = self._require_vlan_entry(vlan_id)
        tagged_ports = [p for p in _split(entry.get("tagged")) if p != port_name]
        untagged_ports = [p for p in _split(entry.get("untagged")) if p != port_name]
        (tagged_ports if tagged else untagged_ports).append(port_name)
        self._rest.patch(
            BRIDGE_VLAN_PATH,
            entry[".id"],
            {"tagged": ",".join(tagged_ports), "untagged": ",".join(untagged_ports)},
        )
        mode = "tagged" if tagged else "untagged"
        logger.info("Assigned %s to VLAN %d (%s) on %s", port_name, vlan_id, mode, self.host)

    def _set_pvid(self, port_name: str, vlan_id: int) -> None:
        port = self._find_bridge_port(port_name)
        if port is None:
            raise PortError(f"{port_name} is not a port of bridge {self.bridge} on {self.host}")
        self._rest.patch(BRIDGE_PORT_PATH, port[".id"], {"pvid": str(vlan_id)})

    def _find_vlan_entry(self, vlan_id: int) -> dict[str, Any] | None:
        entries = self._rest.get(BRIDGE_VLAN_PATH, params={"bridge": self.bridge, "vlan-ids": str(vlan_id)})
        return entries[0] if entries else None

    def _require_vlan_entry(self, vlan_id: int) -> dict[str, Any]:
        entry = self._find_vlan_entry(vlan_id)
        if entry is None:
            raise VLANError(f"VLAN {vlan_id} not found on bridge {self.bridge} ({self.host})")
        return entry

    def _find_bridge_port(self, port_name: str) -> dict[str, Any] | None:
        ports = self._rest.get(BRIDGE_PORT_PATH, params={"bridge": self.bridge, "interface": port_name})
        return ports[0] if ports else None
