"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_ROOT_PATH = Path.home() / ".rolnet"
DEFAULT_HOST_CONFIG_FILE = "hostNetworkConfig.json"
DEFAULT_STORE_FILE = "rolnet.json"


class Settings(BaseModel):
    """Paths and defaults shared by the CLIs and services."""

    root_path: Path = DEFAULT_ROOT_PATH
    host_config_file: str = DEFAULT_HOST_CONFIG_FILE
    store_file: str = DEFAULT_STORE_FILE
    ssh_port: int = Field(default=22, ge=1, le=65535)
    debug: bool = False

    @property
    def host_config_path(self) -> Path:
        return self.root_path / self.host_config_file

    @property
    def store_path(self) -> Path:
        return self.root_path / self.store_file

    @classmethod
    def from_env(cls, **overrides: object) -> Settings:
        """Build settings from ``ROLNET_*`` variables, then apply non-None overrides."""
        values: dict[str, object] = {}
        if root := os.getenv("ROLNET_ROOT_PATH"):
            values["root_path"] = Path(root).expanduser()
        if host_config := os.getenv("ROLNET_HOST_CONFIG_FILE"):
            values["host_config_file"] = host_config
        if store := os.getenv("ROLNET_STORE_FILE"):
            values["store_file"] = store
        if ssh_port := os.getenv("ROLNET_SSH_PORT"):
            values["ssh_port"] = int(ssh_port)
        values["debug"] = os.getenv("DEBUG", "").lower() == "true"

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
