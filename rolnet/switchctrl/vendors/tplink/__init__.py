"""TP-Link T-series switches managed over SSH CLI."""

from rolnet.switchctrl.vendors.tplink.cli import TPLinkCLITransport
from rolnet.switchctrl.vendors.tplink.manager import TPLinkSwitchManager

__all__ = ["TPLinkCLITransport", "TPLinkSwitchManager"]
