"""CLI for host VLAN and bridge links and the saved host configuration.

Examples:
  rolnet hostnet links
  rolnet hostnet vlan create eth0 42 --addr 10.42.0.1/24 --save
  rolnet hostnet vlan addr rol.eth0.42 10.42.1.1/24 --save
  rolnet hostnet bridge create lab --addr 10.50.0.1/24 --slave rol.eth0.42 --save
  rolnet hostnet save
  rolnet hostnet restore
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable

from loguru import logger
from tabulate import tabulate

from rolnet.errors import InternalError, NotFoundError, ValidationError
from rolnet.hostnet.manager import HostNetworkManager
from rolnet.hostnet.models import HostNetworkBridge, HostNetworkVlan
from rolnet.hostnet.service import HostNetworkService
from rolnet.settings import Settings


def _print_vlans(vlans: list[HostNetworkVlan]) -> None:
    rows = [[v.name, v.master, v.vlan_id, ", ".join(v.addresses) or "-"] for v in vlans]
    print(tabulate(rows, headers=["Name", "Master", "VLAN", "Addresses"]))


def _print_bridges(bridges: list[HostNetworkBridge]) -> None:
    rows = [[b.name, ", ".join(b.slaves) or "-", ", ".join(b.addresses) or "-"] for b in bridges]
    print(tabulate(rows, headers=["Name", "Slaves", "Addresses"]))


def cmd_links(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    rows = [[link.name, link.type.value, ", ".join(link.addresses) or "-"] for link in manager.get_list()]
    print(tabulate(rows, headers=["Name", "Type", "Addresses"]))


def cmd_vlan_list(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    _print_vlans(service.get_vlan_list())


def cmd_vlan_show(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    _print_vlans([service.get_vlan_by_name(args.name)])


def cmd_vlan_create(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    vlan = service.create_vlan(args.master, args.vlan_id, args.addr)
    print(vlan.name)


def cmd_vlan_addr(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    _print_vlans([service.set_vlan_addr(args.name, args.cidr)])


def cmd_vlan_update(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    _print_vlans([service.update_vlan(args.name, args.addr)])


def cmd_vlan_delete(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    service.delete_vlan(args.name)
    print(f"Host VLAN {args.name} deleted")


def cmd_bridge_list(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    _print_bridges(service.get_bridge_list())


def cmd_bridge_show(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    _print_bridges([service.get_bridge_by_name(args.name)])


def cmd_bridge_create(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    bridge = service.create_bridge(args.name, args.addr, args.slave)
    print(bridge.name)


def cmd_bridge_update(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    _print_bridges([service.update_bridge(args.name, args.addr, args.slave)])


def cmd_bridge_delete(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    service.delete_bridge(args.name)
    print(f"Host bridge {args.name} deleted")


def cmd_save(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    manager.save_configuration()
    print(f"Host configuration saved to {manager.config_path}")


def cmd_load(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    manager.load_configuration()
    print(f"Host configuration loaded from {manager.config_path}")


def cmd_restore(service: HostNetworkService, manager: HostNetworkManager, args: argparse.Namespace) -> None:
    service.restore_previous()
    print(f"Previous host configuration restored to {manager.config_path}")


Handler = Callable[[HostNetworkService, HostNetworkManager, argparse.Namespace], None]

HANDLERS: dict[tuple[str, str | None], Handler] = {
    ("links", None): cmd_links,
    ("vlan", "list"): cmd_vlan_list,
    ("vlan", "show"): cmd_vlan_show,
    ("vlan", "create"): cmd_vlan_create,
    ("vlan", "addr"): cmd_vlan_addr,
    ("vlan", "update"): cmd_vlan_update,
    ("vlan", "delete"): cmd_vlan_delete,
    ("bridge", "list"): cmd_bridge_list,
    ("bridge", "show"): cmd_bridge_show,
    ("bridge", "create"): cmd_bridge_create,
    ("bridge", "update"): cmd_bridge_update,
    ("bridge", "delete"): cmd_bridge_delete,
    ("save", None): cmd_save,
    ("load", None): cmd_load,
    ("restore", None): cmd_restore,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rolnet hostnet",
        description="Host VLAN/bridge links and the saved host network configuration",
    )
    parser.add_argument(
        "--config", type=Path, help="Saved configuration file (default: $ROLNET_ROOT_PATH/hostNetworkConfig.json)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.add_parser("links", help="List all host links")

    vlan_parser = subparsers.add_parser("vlan", help="rolnet-owned VLAN links")
    vlan_sub = vlan_parser.add_subparsers(dest="vlan_command")
    vlan_sub.add_parser("list", help="List VLAN links")
    vlan_show = vlan_sub.add_parser("show", help="Show one VLAN link")
    vlan_show.add_argument("name")
    vlan_create = vlan_sub.add_parser("create", help="Create rol.<master>.<vlan_id>")
    vlan_create.add_argument("master", help="Parent link, e.g. eth0")
    vlan_create.add_argument("vlan_id", type=int, help="VLAN tag (1-4094)")
    vlan_create.add_argument("--addr", action="append", default=[], help="IPv4 CIDR address, repeatable")
    vlan_addr = vlan_sub.add_parser("addr", help="Add an address to a VLAN link")
    vlan_addr.add_argument("name")
    vlan_addr.add_argument("cidr")
    vlan_update = vlan_sub.add_parser("update", help="Replace the addresses of a VLAN link")
    vlan_update.add_argument("name")
    vlan_update.add_argument("--addr", action="append", default=[], help="IPv4 CIDR address, repeatable")
    vlan_delete = vlan_sub.add_parser("delete", help="Delete a VLAN link")
    vlan_delete.add_argument("name")

    bridge_parser = subparsers.add_parser("bridge", help="rolnet-owned bridges")
    bridge_sub = bridge_parser.add_subparsers(dest="bridge_command")
    bridge_sub.add_parser("list", help="List bridges")
    bridge_show = bridge_sub.add_parser("show", help="Show one bridge")
    bridge_show.add_argument("name")
    bridge_create = bridge_sub.add_parser("create", help="Create rol.br.<name>")
    bridge_create.add_argument("name")
    bridge_update = bridge_sub.add_parser("update", help="Replace addresses and slaves of a bridge")
    bridge_update.add_argument("name")
    for sub in (bridge_create, bridge_update):
        sub.add_argument("--addr", action="append", default=[], help="IPv4 CIDR address, repeatable")
        sub.add_argument("--slave", action="append", default=[], help="Slave link name, repeatable")
    bridge_delete = bridge_sub.add_parser("delete", help="Delete a bridge")
    bridge_delete.add_argument("name")

    for sub in (vlan_create, vlan_addr, vlan_update, vlan_delete, bridge_create, bridge_update, bridge_delete):
        sub.add_argument("--save", action="store_true", help="Save the host configuration afterwards")

    subparsers.add_parser("save", help="Save the current host configuration")
    subparsers.add_parser("load", help="Apply the saved host configuration")
    subparsers.add_parser("restore", help="Restore and apply the previous saved configuration")

    return parser


def main(args: list[str] | None = None) -> None:
    parser = build_parser()
    parsed = parser.parse_args(args)

    sub_command = getattr(parsed, f"{parsed.command}_command", None) if parsed.command else None
    handler = HANDLERS.get((parsed.command, sub_command))
    if handler is None:
        parser.print_help()
        sys.exit(1)

    settings = Settings.from_env()
    manager = HostNetworkManager(parsed.config or settings.host_config_path)
    service = HostNetworkService(manager)
    try:
        handler(service, manager, parsed)
        if getattr(parsed, "save", False) and service.save_changes():
            print(f"Host configuration saved to {manager.config_path}")
    except (NotFoundError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except InternalError as e:
        logger.opt(exception=e).error("Host network operation failed")
        print("Error: internal error, see log for details", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
