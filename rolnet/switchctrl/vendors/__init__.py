"""Vendor implementations for switch management.

Importing this package triggers model registration via @register_model.
"""

import rolnet.switchctrl.vendors.mikrotik  # noqa: F401
import rolnet.switchctrl.vendors.tplink  # noqa: F401
