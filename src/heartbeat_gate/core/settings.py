from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import toml
from platformdirs import user_config_path
from pydantic import BaseModel, ConfigDict

ENV_PREFIX: str = "HEARTBEAT"
SECTION: str = "heartbeat"

log = logging.getLogger(__name__)


class HeartbeatOptions(BaseModel):
    """Options of the heartbeat middleware, fixed once the pipeline is built."""

    model_config = ConfigDict(frozen=True)

    api_key_header_key: str = "X-Api-Key"
    """Name of the header carrying the caller's key."""
    api_key: str = ""
    """Expected key. Empty or blank disables authorization."""

    @property
    def is_open(self) -> bool:
        return not self.api_key.strip()


def system_config_file() -> Path:
    """The config file shipped with the package."""
    return Path(__file__).parent / "server_settings.toml"


def get_default_config_path() -> Path:
    config_path = os.getenv(f"{ENV_PREFIX}_CONFIG_PATH")
    if config_path:
        return Path(config_path)
    user_path = user_config_path("heartbeat-gate") / "server_settings.toml"
    if user_path.is_file():
        return user_path
    return system_config_file()


def _env_overrides(fields) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for name in fields:
        value = os.getenv(f"{ENV_PREFIX}_{name.upper()}")
        if value is not None:
            overrides[name] = value.strip()
    return overrides


class Settings(BaseModel):
    """Setup of the heartbeat and of the demo server."""

    api_key: str = ""
    api_key_header_key: str = "X-Api-Key"
    path: str = "/heartbeat"
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    suppress_heartbeat_logs: bool = False
    upstream_url: Optional[str] = None
    dev: bool = False

    @classmethod
    def load(
        cls,
        config_path: Optional[Union[str, Path]] = None,
        **kwargs: Any,
    ) -> "Settings":
        """Read the TOML config, then apply ``HEARTBEAT_*`` env variables
        and finally explicit keyword arguments."""
        path = Path(config_path) if config_path else get_default_config_path()
        try:
            cfg = toml.loads(path.read_text(encoding="utf-8"))
        except (FileNotFoundError, IsADirectoryError):
            log.warning(
                "Config file %s not readable, falling back to packaged defaults.",
                path,
            )
            cfg = toml.loads(system_config_file().read_text(encoding="utf-8"))
        values: Dict[str, Any] = dict(cfg.get(SECTION, {}))
        values.update(_env_overrides(cls.model_fields))
        values.update(kwargs)
        # empty strings in toml/env mean "unset" for optional fields
        for key in ("log_file", "upstream_url"):
            if values.get(key) == "":
                values[key] = None
        return cls(**values)

    @property
    def options(self) -> HeartbeatOptions:
        return HeartbeatOptions(
            api_key_header_key=self.api_key_header_key,
            api_key=self.api_key,
        )


# Simple singleton-style accessor
_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.load()
    return _SETTINGS
