"""TP-Link T-series switch manager (TL-SG2210MP and compatible)."""

from __future__ import annotations

import logging
import re
from typing import Any

from rolnet.switchctrl.base.manager import BaseSwitchManager
from rolnet.switchctrl.exceptions import ConfigSaveError, PortError, VLANError
from rolnet.switchctrl.factory import register_model
from rolnet.switchctrl.vendors.tplink.cli import TPLinkCLITransport, output_has_error

logger = logging.getLogger(__name__)

_BARE_PORT = re.compile(r"^\d+/\d+/\d+$")


def interface_name(port_name: str) -> str:
    """Map a stored port name to the CLI interface name.

    ``1/0/3`` becomes ``gigabitEthernet 1/0/3``; names that already carry an
    interface type are used unchanged.
    """
    if _BARE_PORT.match(port_name):
        return f"gigabitEthernet {port_name}"
    return port_name


@register_model("tl-sg2210mp")
class TPLinkSwitchManager(BaseSwitchManager):
    """Drives 802.1Q membership through the T-series general port mode.

    Usage::

        with TPLinkSwitchManager(host="10.0.0.2", username="admin", password="pw") as manager:
            manager.create_vlan(42)
            manager.add_tagged_vlan_on_port("1/0/3", 42)
            manager.save_config()
    """

    def __init__(
        self,
        host: str,
        username: str = "admin",
        password: str = "",
        ssh_port: int = 22,
        enable_password: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(host, username, password)
        self._cli = TPLinkCLITransport(
            host=host,
            username=username,
            password=password,
            port=ssh_port,
            enable_password=enable_password,
        )

    def create_vlan(self, vlan_id: int) -> None:
        output = self._cli.send_config_commands([f"vlan {vlan_id}", "exit"])
        if output_has_error(output):
            raise VLANError(f"Failed to create VLAN {vlan_id}: {output}")
        logger.info("Created VLAN %d on %s", vlan_id, self.host)

    def add_tagged_vlan_on_port(self, port_name: str, vlan_id: int) -> None:
        self._configure_port(
            port_name,
            [f"switchport general allowed vlan {vlan_id} tagged"],
            f"add tagged VLAN {vlan_id}",
        )

    def add_untagged_vlan_on_port(self, port_name: str, vlan_id: int) -> None:
        self._configure_port(
            port_name,
            [f"switchport general allowed vlan {vlan_id} untagged", f"switchport pvid {vlan_id}"],
            f"add untagged VLAN {vlan_id}",
        )

    def remove_vlan_from_port(self, port_name: str, vlan_id: int) -> None:
        self._configure_port(
            port_name,
            [f"no switchport general allowed vlan {vlan_id}"],
            f"remove VLAN {vlan_id}",
        )

    def save_config(self) -> None:
        self._cli.ensure_connected()
        self._cli.enter_enable_mode()
        output = self._cli.send_command("copy running-config startup-config")
        if output_has_error(output):
            raise ConfigSaveError(f"Failed to save configuration on {self.host}: {output}")
        logger.info("Saved configuration on %s", self.host)

    def connect(self) -> None:
        self._cli.connect()

    def disconnect(self) -> None:
        if self._cli.is_connected():
            self._cli.disconnect()

    def _configure_port(self, port_name: str, commands: list[str], action: str) -> None:
        output = self._cli.send_config_commands([f"interface {interface_name(port_name)}", *commands, "exit"])
        if output_has_error(output):
            raise PortError(f"Failed to {action} on {port_name}: {output}")
        logger.info("%s on %s (%s)", action.capitalize(), port_name, self.host)
