"""Switch control: per-model switch managers for VLAN membership."""

import rolnet.switchctrl.vendors  # noqa: F401  # trigger model registration

from rolnet.switchctrl.base.manager import BaseSwitchManager
from rolnet.switchctrl.base.transport import BaseTransport
from rolnet.switchctrl.exceptions import (
    APIError,
    AuthenticationError,
    ConfigSaveError,
    PortError,
    SSHError,
    SwitchError,
    VLANError,
)
from rolnet.switchctrl.factory import SwitchManagerRegistry, create_manager, list_models, register_model

__all__ = [
    "create_manager",
    "list_models",
    "register_model",
    "SwitchManagerRegistry",
    "BaseSwitchManager",
    "BaseTransport",
    "SwitchError",
    "AuthenticationError",
    "APIError",
    "SSHError",
    "VLANError",
    "PortError",
    "ConfigSaveError",
]
