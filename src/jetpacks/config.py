"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (JETPACKS__SERVER__PORT=9090)
  2. jetpacks.yaml          (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional — all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, SecretStr
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from jetpacks.models.document import ParserConfig

_DEFAULT_CONFIG_DIR = platformdirs.user_config_dir("jetpacks")
_DEFAULT_SOURCE_URL = "https://raw.githubusercontent.com/the-rileyj/Jetpacks/master/README.md"


def _find_config_file() -> str | None:
    """Return the path of the first jetpacks.yaml found, or None."""
    candidates = [
        Path("jetpacks.yaml"),
        Path(_DEFAULT_CONFIG_DIR) / "jetpacks.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


class SourceSettings(BaseModel):
    url: str = _DEFAULT_SOURCE_URL
    timeout_seconds: float = 30.0
    max_redirects: int = 3


class ParserSettings(BaseModel):
    title_prefix: str = "# "
    divider: str = "## Jetpacks"
    section_prefix: str = "## "
    fence_markers: tuple[str, ...] = ("```",)

    def to_parser_config(self) -> ParserConfig:
        return ParserConfig(
            title_prefix=self.title_prefix,
            divider=self.divider,
            section_prefix=self.section_prefix,
            fence_markers=self.fence_markers,
        )


class WebhookSettings(BaseModel):
    secret: SecretStr | None = None
    secret_file: str | None = None
    signature_header: str = "X-Hub-Signature"


class RefreshSettings(BaseModel):
    # 0 disables polling; the webhook is then the only refresh trigger.
    poll_interval_minutes: int = 0


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: JETPACKS__SOURCE__URL=...
        env_prefix="JETPACKS__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    source: SourceSettings = SourceSettings()
    parser: ParserSettings = ParserSettings()
    webhook: WebhookSettings = WebhookSettings()
    refresh: RefreshSettings = RefreshSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and pydantic's secrets dir intentionally excluded;
            # the webhook secret file is read by jetpacks.webhook
        )
