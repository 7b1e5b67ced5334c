"""Switch model registry and per-switch manager cache."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, Callable
from uuid import UUID

from loguru import logger

from rolnet.switchctrl.base.manager import BaseSwitchManager

if TYPE_CHECKING:
    from rolnet.store.entities import EthernetSwitch

_MODEL_REGISTRY: dict[str, type[BaseSwitchManager]] = {}


def register_model(name: str) -> Callable[[type[BaseSwitchManager]], type[BaseSwitchManager]]:
    """Decorator to register a switch manager class for a switch model.

    Usage::

        @register_model("tl-sg2210mp")
        class TPLinkSwitchManager(BaseSwitchManager):
            ...
    """

    def decorator(cls: type[BaseSwitchManager]) -> type[BaseSwitchManager]:
        _MODEL_REGISTRY[name.lower()] = cls
        return cls

    return decorator


def create_manager(model: str, host: str, **kwargs: Any) -> BaseSwitchManager | None:
    """Create a switch manager for the given switch model.

    Args:
        model: Switch model identifier (e.g. "tl-sg2210mp").
        host: Switch management address.
        **kwargs: Credentials and vendor-specific keyword arguments.

    Returns:
        A manager instance, or ``None`` when no manager is registered for the
        model. ``None`` means the switch is tracked in the store only.
    """
    cls = _MODEL_REGISTRY.get(model.lower())
    if cls is None:
        return None
    return cls(host=host, **kwargs)


def list_models() -> list[str]:
    """Return a sorted list of registered switch models."""
    return sorted(_MODEL_REGISTRY.keys())


class SwitchManagerRegistry:
    """Caches one manager per switch id.

    Instance-scoped so that each owning service controls the lifetime of its
    connections.
    """

    def __init__(self, **manager_kwargs: Any) -> None:
        self._manager_kwargs = manager_kwargs
        self._managers: dict[UUID, BaseSwitchManager] = {}
        self._lock = threading.Lock()

    def get(self, ethernet_switch: EthernetSwitch) -> BaseSwitchManager | None:
        with self._lock:
            manager = self._managers.get(ethernet_switch.id)
            if manager is not None:
                return manager
            manager = create_manager(
                ethernet_switch.switch_model,
                host=ethernet_switch.address,
                username=ethernet_switch.username,
                password=ethernet_switch.password,
                **self._manager_kwargs,
            )
            if manager is None:
                logger.debug(
                    f"No switch manager for model '{ethernet_switch.switch_model}', "
                    f"switch {ethernet_switch.id} is tracked in the store only"
                )
                return None
            self._managers[ethernet_switch.id] = manager
            return manager

    def forget(self, switch_id: UUID) -> None:
        """Drop and disconnect the cached manager of a switch, if any."""
        with self._lock:
            manager = self._managers.pop(switch_id, None)
        if manager is not None:
            manager.disconnect()

    def close(self) -> None:
        with self._lock:
            managers = list(self._managers.values())
            self._managers.clear()
        for manager in managers:
            manager.disconnect()
