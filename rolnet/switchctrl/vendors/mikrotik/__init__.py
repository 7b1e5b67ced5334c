"""MikroTik RouterOS switches managed over the REST API."""

from rolnet.switchctrl.vendors.mikrotik.manager import MikroTikSwitchManager
from rolnet.switchctrl.vendors.mikrotik.rest import MikroTikRESTTransport

__all__ = ["MikroTikRESTTransport", "MikroTikSwitchManager"]
