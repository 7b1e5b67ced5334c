"""Input models for switch, port and VLAN mutations."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field

from rolnet.store.entities import PoEType


class SwitchCreate(BaseModel):
    name: str
    serial: str
    switch_model: str
    address: str
    username: str = ""
    password: str = ""


class SwitchUpdate(SwitchCreate):
    pass


class PortCreate(BaseModel):
    name: str
    poe_type: PoEType = PoEType.NONE
    poe_enabled: bool = False


class PortUpdate(PortCreate):
    pass


class VLANUpdate(BaseModel):
    """Desired membership; replaces the previously applied one."""

    tagged_ports: list[UUID] = Field(default_factory=list)
    untagged_ports: list[UUID] = Field(default_factory=list)


class VLANCreate(VLANUpdate):
    vlan_id: int
