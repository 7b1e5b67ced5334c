"""Orchestrator CLI dispatching to sub-CLIs.

Sub-commands:
  switchctrl  Direct VLAN operations on one managed switch
  sync        Store-backed switch/port/VLAN state replayed on the switches
  hostnet     Host VLAN/bridge links and the saved host configuration

Examples:
  rolnet switchctrl --model tl-sg2210mp --host 192.168.1.254 \\
      --username admin --password <PW> vlan create 42

  rolnet sync vlan add <SWITCH_ID> 42 --tagged 1/0/3

  rolnet hostnet vlan create eth0 42 --addr 10.42.0.1/24 --save
"""

from __future__ import annotations

import os
import sys
from importlib import import_module

from tabulate import tabulate

from rolnet import __version__, configure_logging
from rolnet import glogger

COMMANDS = {
    "switchctrl": ("rolnet.switchctrl.cli", "Direct switch VLAN operations"),
    "sync": ("rolnet.switchsync.cli", "Desired switch/port/VLAN state"),
    "hostnet": ("rolnet.hostnet.cli", "Host VLAN and bridge links"),
}


def _print_usage() -> None:
    print("usage: rolnet <command> [options]\n")
    print("Available commands:")
    for cmd, (_, desc) in COMMANDS.items():
        print(f"  {cmd:14s}  {desc}")
    print("\nRun 'rolnet <command> --help' for command-specific options.")


def _print_startup_banner() -> None:
    startup_rows = [["version", __version__]]
    for var in ("ROLNET_ROOT_PATH", "ROLNET_HOST_CONFIG_FILE", "ROLNET_STORE_FILE", "BUILDTIME"):
        val = os.environ.get(var)
        if val:
            startup_rows.append([var, val])

    table_str = tabulate(startup_rows, tablefmt="mixed_grid")
    lines = table_str.split("\n")
    table_width = len(lines[0])
    title = "rolnet starting up"
    title_border = "┍" + "━" * (table_width - 2) + "┑"
    title_row = "│ " + title.center(table_width - 4) + " │"
    separator = lines[0].replace("┍", "┝").replace("┑", "┥").replace("┯", "┿")

    glogger.opt(raw=True).debug(
        "\n{}\n", title_border + "\n" + title_row + "\n" + separator + "\n" + "\n".join(lines[1:])
    )


def main() -> None:
    """Main entry point: dispatch to a sub-CLI."""
    configure_logging()
    _print_startup_banner()

    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        _print_usage()
        sys.exit(0 if len(sys.argv) >= 2 else 1)

    command = sys.argv[1]
    if command not in COMMANDS:
        print(f"rolnet: unknown command '{command}'\n", file=sys.stderr)
        _print_usage()
        sys.exit(1)

    module_path, _ = COMMANDS[command]
    module = import_module(module_path)
    module.main(sys.argv[2:])


if __name__ == "__main__":
    main()
