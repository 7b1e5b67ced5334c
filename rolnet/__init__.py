"""Lab network reconciliation.

Keeps the desired switch/port/VLAN configuration, the live state of managed
ethernet switches and the host network link table consistent.
"""

__version__ = "0.1.0"

import os
import sys
from typing import Any, Callable, Dict

from loguru import logger as glogger

glogger.disable(__name__)


def _loguru_skiplog_filter(record: dict) -> bool:  # type: ignore[type-arg]
    """Filter function to hide records with ``extra['skiplog']`` set."""
    return not record.get("extra", {}).get("skiplog", False)


def configure_logging(
    loguru_filter: Callable[[Dict[str, Any]], bool] = _loguru_skiplog_filter,
    level: str | None = None,
) -> None:
    """Configure a default ``loguru`` sink with a convenient format and filter."""
    if level is not None:
        os.environ["LOGURU_LEVEL"] = level
    elif os.getenv("DEBUG", "").lower() == "true":
        os.environ["LOGURU_LEVEL"] = "DEBUG"
    os.environ["LOGURU_LEVEL"] = os.getenv("LOGURU_LEVEL", "INFO")
    glogger.remove()
    logger_fmt: str = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{module}</cyan>::<cyan>{extra[classname]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )
    glogger.add(sys.stderr, level=os.getenv("LOGURU_LEVEL"), format=logger_fmt, filter=loguru_filter)  # type: ignore[arg-type]
    glogger.configure(extra={"classname": "None", "skiplog": False})
    glogger.enable(__name__)


from rolnet.errors import InternalError, NotFoundError, RolError, ValidationError  # noqa: E402

__all__ = [
    "glogger",
    "configure_logging",
    "RolError",
    "NotFoundError",
    "ValidationError",
    "InternalError",
]
