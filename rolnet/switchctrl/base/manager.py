"""Abstract switch manager: the capability set the synchronizer drives."""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any, Self


class BaseSwitchManager(ABC):
    """Vendor-specific driver for one physical switch.

    Implementations are registered per switch model with
    :func:`rolnet.switchctrl.factory.register_model`. Every capability raises a
    :class:`~rolnet.switchctrl.exceptions.SwitchError` subclass on failure.
    """

    def __init__(self, host: str, username: str = "", password: str = "", **kwargs: Any) -> None:
        self.host = host
        self.username = username
        self.password = password

    @abstractmethod
    def create_vlan(self, vlan_id: int) -> None:
        """Create VLAN ``vlan_id`` on the switch."""

    @abstractmethod
    def add_tagged_vlan_on_port(self, port_name: str, vlan_id: int) -> None:
        """Add ``port_name`` to the VLAN as a tagged member."""

    @abstractmethod
    def add_untagged_vlan_on_port(self, port_name: str, vlan_id: int) -> None:
        """Add ``port_name`` to the VLAN as an untagged member."""

    @abstractmethod
    def remove_vlan_from_port(self, port_name: str, vlan_id: int) -> None:
        """Remove any membership of ``port_name`` in the VLAN."""

    @abstractmethod
    def save_config(self) -> None:
        """Persist the running configuration so it survives a reboot."""

    @abstractmethod
    def connect(self) -> None:
        """Explicitly connect the underlying transport."""

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect the underlying transport."""

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        self.disconnect()
