"""Abstract base classes for switch management."""

from rolnet.switchctrl.base.manager import BaseSwitchManager
from rolnet.switchctrl.base.transport import BaseTransport

__all__ = [
    "BaseTransport",
    "BaseSwitchManager",
]
