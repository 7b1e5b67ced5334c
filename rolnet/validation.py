"""Input checks shared by the switch synchronizer and the host network service.

Each ``check_*`` helper appends to a :class:`ValidationError` so that callers
can report every offending field at once and raise with
:meth:`ValidationError.raise_if_any`.
"""

from __future__ import annotations

import ipaddress
import re
from typing import Iterable
from uuid import UUID

from rolnet.errors import ValidationError

VLAN_ID_MIN = 1
VLAN_ID_MAX = 4094
# IFNAMSIZ - 1
LINK_NAME_MAX_LEN = 15
LINK_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")


def check_required(errors: ValidationError, field: str, value: str) -> None:
    if not value or not value.strip():
        errors.add(field, "must not be empty")


def check_vlan_id(errors: ValidationError, vlan_id: int, field: str = "vlan_id") -> None:
    if not VLAN_ID_MIN <= vlan_id <= VLAN_ID_MAX:
        errors.add(field, f"must be between {VLAN_ID_MIN} and {VLAN_ID_MAX}, got {vlan_id}")


def check_ipv4_address(errors: ValidationError, value: str, field: str = "address") -> None:
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        errors.add(field, f"'{value}' is not a valid IPv4 address")


def check_cidr(errors: ValidationError, value: str, field: str = "addresses") -> None:
    """Accept host addresses with a prefix length, e.g. ``10.0.0.1/24``."""
    if "/" not in value:
        errors.add(field, f"'{value}' is missing a prefix length")
        return
    try:
        ipaddress.IPv4Interface(value)
    except ValueError:
        errors.add(field, f"'{value}' is not a valid IPv4 CIDR address")


def check_link_name(errors: ValidationError, name: str, field: str = "name") -> None:
    if not LINK_NAME_PATTERN.match(name):
        errors.add(field, f"'{name}' may only contain letters, digits, '.', '-' and '_'")
    elif len(name) > LINK_NAME_MAX_LEN:
        errors.add(field, f"'{name}' exceeds the {LINK_NAME_MAX_LEN} character link name limit")


def check_disjoint(
    errors: ValidationError, tagged: Iterable[UUID], untagged: Iterable[UUID], field: str = "untagged_ports"
) -> None:
    """A port cannot be a tagged and an untagged member of the same VLAN."""
    tagged_set = set(tagged)
    for port_id in untagged:
        if port_id in tagged_set:
            errors.add(field, f"port {port_id} is both tagged and untagged")


def validate_cidr(value: str, field: str = "addresses") -> str:
    """Return ``value`` in canonical ``address/prefix`` form.

    Raises a :class:`ValidationError` unless ``value`` is an IPv4 CIDR address.
    """
    errors = ValidationError()
    check_cidr(errors, value, field)
    errors.raise_if_any()
    return str(ipaddress.IPv4Interface(value))
