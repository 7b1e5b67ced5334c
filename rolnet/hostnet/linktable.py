"""Access to the operating system link table through iproute2."""

from __future__ import annotations

import json
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

DEVICE_KIND = "device"


class LinkTableError(Exception):
    """An iproute2 call failed or returned unparsable output."""


class LinkNotFoundError(LinkTableError):
    """The named link does not exist."""


@dataclass
class LinkRecord:
    """One row of the link table.

    ``kind`` is ``device`` for links without a link-info kind (physical NICs,
    loopback), otherwise the kernel kind (``vlan``, ``bridge``, ``veth``, ...).
    """

    index: int
    name: str
    kind: str = DEVICE_KIND
    parent: str | None = None
    vlan_id: int | None = None
    master: str | None = None
    addresses: list[str] = field(default_factory=list)


class BaseLinkTable(ABC):
    """The link-table primitives the host network manager is built on."""

    @abstractmethod
    def links(self) -> list[LinkRecord]:
        """Return all links with their IPv4 addresses."""

    def link_by_name(self, name: str) -> LinkRecord:
        for record in self.links():
            if record.name == name:
                return record
        raise LinkNotFoundError(f"link '{name}' not found")

    @abstractmethod
    def add_vlan(self, name: str, parent: str, vlan_id: int) -> None:
        """Add an 802.1Q VLAN link on top of ``parent``."""

    @abstractmethod
    def add_bridge(self, name: str) -> None: ...

    @abstractmethod
    def delete(self, name: str) -> None: ...

    @abstractmethod
    def set_up(self, name: str) -> None: ...

    @abstractmethod
    def set_master(self, name: str, master: str) -> None: ...

    @abstractmethod
    def set_nomaster(self, name: str) -> None: ...

    @abstractmethod
    def add_address(self, name: str, cidr: str) -> None: ...

    @abstractmethod
    def delete_address(self, name: str, cidr: str) -> None: ...


class IPRoute2LinkTable(BaseLinkTable):
    """Link table backed by the ``ip`` command's JSON output."""

    def __init__(self, ip_binary: str = "ip", timeout: int = 10):
        self.ip_binary = ip_binary
        self.timeout = timeout

    def links(self) -> list[LinkRecord]:
        raw_links = self._run_json("-details", "-json", "link", "show")
        raw_addrs = self._run_json("-json", "-4", "addr", "show")

        addresses: dict[str, list[str]] = {}
        for entry in raw_addrs:
            addresses[entry.get("ifname", "")] = [
                f"{info['local']}/{info['prefixlen']}"
                for info in entry.get("addr_info", [])
                if info.get("family") == "inet" and "local" in info
            ]

        names_by_index = {entry["ifindex"]: entry["ifname"] for entry in raw_links if "ifindex" in entry}
        return [self._record(entry, names_by_index, addresses) for entry in raw_links]

    @staticmethod
    def _record(entry: dict[str, Any], names_by_index: dict[int, str], addresses: dict[str, list[str]]) -> LinkRecord:
        name = entry["ifname"]
        linkinfo = entry.get("linkinfo") or {}
        kind = linkinfo.get("info_kind") or DEVICE_KIND

        parent = entry.get("link")
        if parent is None and "link_index" in entry:
            parent = names_by_index.get(entry["link_index"])

        vlan_id = None
        if kind == "vlan":
            vlan_id = (linkinfo.get("info_data") or {}).get("id")

        return LinkRecord(
            index=entry.get("ifindex", 0),
            name=name,
            kind=kind,
            parent=parent,
            vlan_id=vlan_id,
            master=entry.get("master"),
            addresses=addresses.get(name, []),
        )

    def add_vlan(self, name: str, parent: str, vlan_id: int) -> None:
        self._run("link", "add", "link", parent, "name", name, "type", "vlan", "protocol", "802.1Q", "id", str(vlan_id))

    def add_bridge(self, name: str) -> None:
        self._run("link", "add", "name", name, "type", "bridge")

    def delete(self, name: str) -> None:
        self._run("link", "del", "dev", name)

    def set_up(self, name: str) -> None:
        self._run("link", "set", "dev", name, "up")

    def set_master(self, name: str, master: str) -> None:
        self._run("link", "set", "dev", name, "master", master)

    def set_nomaster(self, name: str) -> None:
        self._run("link", "set", "dev", name, "nomaster")

    def add_address(self, name: str, cidr: str) -> None:
        self._run("addr", "add", cidr, "dev", name)

    def delete_address(self, name: str, cidr: str) -> None:
        self._run("addr", "del", cidr, "dev", name)

    def _run_json(self, *args: str) -> list[dict[str, Any]]:
        output = self._run(*args)
        try:
            return json.loads(output) if output.strip() else []
        except json.JSONDecodeError as e:
            raise LinkTableError(f"unparsable output of ip {' '.join(args)}: {e}") from e

    def _run(self, *args: str) -> str:
        cmd = [self.ip_binary, *args]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            raise LinkTableError(f"Command {' '.join(cmd)} failed: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            logger.debug(f"Command {' '.join(cmd)} exited with {result.returncode}: {stderr}")
            if "Cannot find device" in stderr or "does not exist" in stderr:
                raise LinkNotFoundError(stderr)
            raise LinkTableError(f"Command {' '.join(cmd)} failed: {stderr}")
        return result.stdout
