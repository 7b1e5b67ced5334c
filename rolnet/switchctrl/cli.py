"""CLI entry point for direct switch VLAN operations, bypassing the store.

Supported models:
  - tl-sg2210mp      TP-Link T-series, SSH CLI
  - crs326-24g-2s+   MikroTik RouterOS, REST API (bridge VLAN table)

Examples:
  # Create VLAN 42 and tag it on a TP-Link port
  rolnet switchctrl --model tl-sg2210mp --host 192.168.1.254 \\
      --username admin --password <PW> vlan create 42
  rolnet switchctrl --model tl-sg2210mp --host 192.168.1.254 \\
      --username admin --password <PW> port tag 1/0/3 42

  # MikroTik: untagged member on ether5 of bridge "bridge"
  rolnet switchctrl --model crs326-24g-2s+ --host 192.168.88.1 \\
      --password <PW> port untag ether5 42
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from rolnet.switchctrl import SwitchError, create_manager, list_models
from rolnet.switchctrl.base.manager import BaseSwitchManager


def cmd_vlan_create(manager: BaseSwitchManager, args: argparse.Namespace) -> None:
    manager.create_vlan(args.vlan_id)
    print(f"VLAN {args.vlan_id} created successfully")


def cmd_port_tag(manager: BaseSwitchManager, args: argparse.Namespace) -> None:
    manager.add_tagged_vlan_on_port(args.port, args.vlan_id)
    print(f"Port {args.port} is now a tagged member of VLAN {args.vlan_id}")


def cmd_port_untag(manager: BaseSwitchManager, args: argparse.Namespace) -> None:
    manager.add_untagged_vlan_on_port(args.port, args.vlan_id)
    print(f"Port {args.port} is now an untagged member of VLAN {args.vlan_id}")


def cmd_port_remove(manager: BaseSwitchManager, args: argparse.Namespace) -> None:
    manager.remove_vlan_from_port(args.port, args.vlan_id)
    print(f"VLAN {args.vlan_id} removed from port {args.port}")


def cmd_save(manager: BaseSwitchManager, args: argparse.Namespace) -> None:
    manager.save_config()
    print("Configuration saved")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for direct switch operations."""
    parser = argparse.ArgumentParser(
        prog="rolnet switchctrl",
        description="Direct VLAN membership operations on one managed switch",
    )
    parser.add_argument("--model", choices=list_models(), help="Switch model")
    parser.add_argument("--host", help="Switch IP address or hostname")
    parser.add_argument("--username", default="admin", help="Username (default: admin)")
    parser.add_argument("--password", default="", help="Password")
    parser.add_argument("--ssh-port", type=int, help="SSH port (TP-Link)")
    parser.add_argument("--enable-password", help="Enable password (TP-Link, defaults to --password)")
    parser.add_argument("--rest-port", type=int, help="REST API port (MikroTik)")
    parser.add_argument("--bridge", help="Bridge holding the VLAN table (MikroTik)")
    parser.add_argument("--verify-ssl", action="store_true", help="Verify SSL certificates")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("models", help="List supported switch models")

    vlan_parser = subparsers.add_parser("vlan", help="VLAN management")
    vlan_sub = vlan_parser.add_subparsers(dest="vlan_command", help="VLAN commands")
    vlan_create = vlan_sub.add_parser("create", help="Create a VLAN")
    vlan_create.add_argument("vlan_id", type=int, help="VLAN ID (1-4094)")

    port_parser = subparsers.add_parser("port", help="Port VLAN membership")
    port_sub = port_parser.add_subparsers(dest="port_command", help="Port commands")
    for name, help_text in (
        ("tag", "Add the port as a tagged member"),
        ("untag", "Add the port as an untagged member"),
        ("remove", "Remove any membership of the port"),
    ):
        sub = port_sub.add_parser(name, help=help_text)
        sub.add_argument("port", help="Port name (e.g. 1/0/3 for TP-Link, ether5 for MikroTik)")
        sub.add_argument("vlan_id", type=int, help="VLAN ID")

    subparsers.add_parser("save", help="Persist the running configuration")

    return parser


def _manager_kwargs(parsed: argparse.Namespace) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "username": parsed.username,
        "password": parsed.password,
        "verify_ssl": parsed.verify_ssl,
    }
    for option in ("ssh_port", "enable_password", "rest_port", "bridge"):
        value = getattr(parsed, option)
        if value is not None:
            kwargs[option] = value
    return kwargs


def main(args: list[str] | None = None) -> None:
    """Main entry point for direct switch operations."""
    parser = build_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "models":
        for model in list_models():
            print(model)
        return

    if not parsed.model or not parsed.host:
        parser.error("--model and --host are required for switch operations")

    if parsed.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    handlers = {
        ("vlan", "create"): cmd_vlan_create,
        ("port", "tag"): cmd_port_tag,
        ("port", "untag"): cmd_port_untag,
        ("port", "remove"): cmd_port_remove,
        ("save", None): cmd_save,
    }
    sub_command = getattr(parsed, f"{parsed.command}_command", None)
    handler = handlers.get((parsed.command, sub_command))
    if handler is None:
        print(f"Usage: rolnet switchctrl ... {parsed.command} <subcommand>", file=sys.stderr)
        sys.exit(1)

    manager = create_manager(parsed.model, host=parsed.host, **_manager_kwargs(parsed))
    if manager is None:
        print(f"Error: no switch manager for model '{parsed.model}'", file=sys.stderr)
        sys.exit(1)

    try:
        with manager:
            handler(manager, parsed)
    except SwitchError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
