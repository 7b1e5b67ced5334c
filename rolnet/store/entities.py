"""Persisted desired-state entities."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Entity(BaseModel):
    """Base entity with identity, timestamps and a soft-delete marker."""

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class PoEType(str, Enum):
    """Power-over-ethernet capability of a switch port."""

    NONE = "none"
    POE = "poe"
    POE_PLUS = "poe+"
    PASSIVE24 = "passive24"


class EthernetSwitch(Entity):
    name: str
    serial: str
    switch_model: str
    address: str
    username: str = ""
    password: str = ""


class EthernetSwitchPort(Entity):
    ethernet_switch_id: UUID
    name: str
    poe_type: PoEType = PoEType.NONE
    poe_enabled: bool = False


class EthernetSwitchVLAN(Entity):
    """VLAN on a switch.

    ``tagged_ports`` and ``untagged_ports`` hold port ids; each list is free of
    duplicates and the two lists never share an id.
    """

    ethernet_switch_id: UUID
    vlan_id: int
    tagged_ports: list[UUID] = Field(default_factory=list)
    untagged_ports: list[UUID] = Field(default_factory=list)
