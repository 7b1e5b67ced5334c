"""CLI for the store-backed switch/port/VLAN synchronizer.

Examples:
  rolnet sync switch add --name lab-sw1 --serial 22360A0001 \\
      --model tl-sg2210mp --address 192.168.1.254 --username admin --password <PW>
  rolnet sync port add <SWITCH_ID> 1/0/3
  rolnet sync vlan add <SWITCH_ID> 42 --tagged 1/0/3 --untagged 1/0/4
  rolnet sync vlan update <SWITCH_ID> <VLAN_ID> --tagged 1/0/3 1/0/5
  rolnet sync vlan list <SWITCH_ID>
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from uuid import UUID

from loguru import logger
from tabulate import tabulate

from rolnet.errors import InternalError, NotFoundError, ValidationError
from rolnet.settings import Settings
from rolnet.store import EthernetSwitchPort, PoEType, StoreContext, StoreError, open_store
from rolnet.switchctrl import SwitchManagerRegistry
from rolnet.switchsync.models import PortCreate, SwitchCreate, VLANCreate, VLANUpdate
from rolnet.switchsync.service import EthernetSwitchService

LIST_PAGE_SIZE = 1000


def _resolve_ports(service: EthernetSwitchService, switch_id: UUID, refs: list[str]) -> list[UUID]:
    """Accept port ids or port names. Every unknown name is reported in one ValidationError."""
    by_name: dict[str, EthernetSwitchPort] | None = None
    port_ids: list[UUID] = []
    errors = ValidationError()
    for ref in refs:
        try:
            port_ids.append(UUID(ref))
            continue
        except ValueError:
            pass
        if by_name is None:
            ports = service.get_ports(switch_id, page_size=LIST_PAGE_SIZE).items
            by_name = {p.name: p for p in ports}
        if ref not in by_name:
            errors.add("ports", f"no port named '{ref}' on switch {switch_id}")
            continue
        port_ids.append(by_name[ref].id)
    errors.raise_if_any()
    return port_ids


def cmd_switch_add(service: EthernetSwitchService, args: argparse.Namespace) -> None:
    switch = service.create_switch(
        SwitchCreate(
            name=args.name,
            serial=args.serial,
            switch_model=args.model,
            address=args.address,
            username=args.username,
            password=args.password,
        )
    )
    print(switch.id)


def cmd_switch_list(service: EthernetSwitchService, args: argparse.Namespace) -> None:
    page = service.get_switches(search=args.search or "", order_by="name", page_size=LIST_PAGE_SIZE)
    rows = [[s.id, s.name, s.serial, s.switch_model, s.address] for s in page.items]
    print(tabulate(rows, headers=["ID", "Name", "Serial", "Model", "Address"]))


def cmd_switch_delete(service: EthernetSwitchService, args: argparse.Namespace) -> None:
    service.delete_switch(args.switch_id)
    print(f"Switch {args.switch_id} deleted")


def cmd_port_add(service: EthernetSwitchService, args: argparse.Namespace) -> None:
    port = service.create_port(
        args.switch_id, PortCreate(name=args.name, poe_type=PoEType(args.poe_type), poe_enabled=args.poe_enabled)
    )
    print(port.id)


def cmd_port_list(service: EthernetSwitchService, args: argparse.Namespace) -> None:
    page = service.get_ports(args.switch_id, search=args.search or "", order_by="name", page_size=LIST_PAGE_SIZE)
    rows = [[p.id, p.name, p.poe_type.value, "yes" if p.poe_enabled else "no"] for p in page.items]
    print(tabulate(rows, headers=["ID", "Name", "PoE", "PoE enabled"]))


def cmd_port_delete(service: EthernetSwitchService, args: argparse.Namespace) -> None:
    service.delete_port(args.switch_id, args.port_id)
    print(f"Port {args.port_id} deleted")


def cmd_vlan_add(service: EthernetSwitchService, args: argparse.Namespace) -> None:
    vlan = service.create_vlan(
        args.switch_id,
        VLANCreate(
            vlan_id=args.vlan_id,
            tagged_ports=_resolve_ports(service, args.switch_id, args.tagged),
            untagged_ports=_resolve_ports(service, args.switch_id, args.untagged),
        ),
    )
    print(vlan.id)


def cmd_vlan_update(service: EthernetSwitchService, args: argparse.Namespace) -> None:
    service.update_vlan(
        args.switch_id,
        args.vlan_id,
        VLANUpdate(
            tagged_ports=_resolve_ports(service, args.switch_id, args.tagged),
            untagged_ports=_resolve_ports(service, args.switch_id, args.untagged),
        ),
    )
    print(f"VLAN {args.vlan_id} updated")


def cmd_vlan_list(service: EthernetSwitchService, args: argparse.Namespace) -> None:
    ports = {p.id: p.name for p in service.get_ports(args.switch_id, page_size=LIST_PAGE_SIZE).items}
    page = service.get_vlans(args.switch_id, order_by="vlan_id", page_size=LIST_PAGE_SIZE)
    rows = [
        [
            v.id,
            v.vlan_id,
            ", ".join(ports.get(p, str(p)) for p in v.tagged_ports) or "-",
            ", ".join(ports.get(p, str(p)) for p in v.untagged_ports) or "-",
        ]
        for v in page.items
    ]
    print(tabulate(rows, headers=["ID", "VLAN", "Tagged", "Untagged"]))


def cmd_vlan_delete(service: EthernetSwitchService, args: argparse.Namespace) -> None:
    service.delete_vlan(args.switch_id, args.vlan_id)
    print(f"VLAN {args.vlan_id} deleted")


HANDLERS = {
    ("switch", "add"): cmd_switch_add,
    ("switch", "list"): cmd_switch_list,
    ("switch", "delete"): cmd_switch_delete,
    ("port", "add"): cmd_port_add,
    ("port", "list"): cmd_port_list,
    ("port", "delete"): cmd_port_delete,
    ("vlan", "add"): cmd_vlan_add,
    ("vlan", "update"): cmd_vlan_update,
    ("vlan", "list"): cmd_vlan_list,
    ("vlan", "delete"): cmd_vlan_delete,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rolnet sync",
        description="Desired switch/port/VLAN state, replayed on managed switches",
    )
    parser.add_argument("--store", type=Path, help="Store file (default: $ROLNET_ROOT_PATH/rolnet.json)")
    parser.add_argument("--ssh-port", type=int, help="SSH port for CLI-managed switches")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    switch_parser = subparsers.add_parser("switch", help="Switch records")
    switch_sub = switch_parser.add_subparsers(dest="switch_command")
    switch_add = switch_sub.add_parser("add", help="Register a switch")
    switch_add.add_argument("--name", required=True)
    switch_add.add_argument("--serial", required=True)
    switch_add.add_argument("--model", required=True, help="Switch model, e.g. tl-sg2210mp")
    switch_add.add_argument("--address", required=True, help="Management IPv4 address")
    switch_add.add_argument("--username", default="")
    switch_add.add_argument("--password", default="")
    switch_list = switch_sub.add_parser("list", help="List switches")
    switch_list.add_argument("--search")
    switch_delete = switch_sub.add_parser("delete", help="Delete a switch with its ports and VLANs")
    switch_delete.add_argument("switch_id", type=UUID)

    port_parser = subparsers.add_parser("port", help="Switch ports")
    port_sub = port_parser.add_subparsers(dest="port_command")
    port_add = port_sub.add_parser("add", help="Add a port")
    port_add.add_argument("switch_id", type=UUID)
    port_add.add_argument("name")
    port_add.add_argument("--poe-type", choices=[t.value for t in PoEType], default=PoEType.NONE.value)
    port_add.add_argument("--poe-enabled", action="store_true")
    port_list = port_sub.add_parser("list", help="List ports of a switch")
    port_list.add_argument("switch_id", type=UUID)
    port_list.add_argument("--search")
    port_delete = port_sub.add_parser("delete", help="Delete a port")
    port_delete.add_argument("switch_id", type=UUID)
    port_delete.add_argument("port_id", type=UUID)

    vlan_parser = subparsers.add_parser("vlan", help="VLANs and their port membership")
    vlan_sub = vlan_parser.add_subparsers(dest="vlan_command")
    vlan_add = vlan_sub.add_parser("add", help="Create a VLAN")
    vlan_add.add_argument("switch_id", type=UUID)
    vlan_add.add_argument("vlan_id", type=int, help="VLAN tag (1-4094)")
    vlan_update = vlan_sub.add_parser("update", help="Replace the port membership of a VLAN")
    vlan_update.add_argument("switch_id", type=UUID)
    vlan_update.add_argument("vlan_id", type=UUID)
    for sub in (vlan_add, vlan_update):
        sub.add_argument("--tagged", nargs="*", default=[], help="Tagged port ids or names")
        sub.add_argument("--untagged", nargs="*", default=[], help="Untagged port ids or names")
    vlan_list = vlan_sub.add_parser("list", help="List VLANs of a switch")
    vlan_list.add_argument("switch_id", type=UUID)
    vlan_delete = vlan_sub.add_parser("delete", help="Delete a VLAN")
    vlan_delete.add_argument("switch_id", type=UUID)
    vlan_delete.add_argument("vlan_id", type=UUID)

    return parser


def main(args: list[str] | None = None) -> None:
    parser = build_parser()
    parsed = parser.parse_args(args)

    handler = HANDLERS.get((parsed.command, getattr(parsed, f"{parsed.command}_command", None)))
    if handler is None:
        parser.print_help()
        sys.exit(1)

    settings = Settings.from_env(ssh_port=parsed.ssh_port)
    context = StoreContext(parsed.store or settings.store_path)
    try:
        switches, ports, vlans = open_store(context)
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    service = EthernetSwitchService(switches, ports, vlans, SwitchManagerRegistry(ssh_port=settings.ssh_port))
    try:
        handler(service, parsed)
    except (NotFoundError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except InternalError as e:
        logger.opt(exception=e).error("Synchronization failed")
        print("Error: internal error, see log for details", file=sys.stderr)
        sys.exit(1)
    finally:
        service.close()


if __name__ == "__main__":
    main()
