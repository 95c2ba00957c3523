"""
Runtime settings for ganttkit.

Settings are resolved with the following precedence:
1. Keyword arguments (highest priority)
2. Environment variables (GANTTKIT_* prefix)
3. YAML config file (~/.config/ganttkit/config.yml, or GANTTKIT_CONFIG)
4. Built-in defaults (lowest priority)
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

# ganttkit.logs builds its handlers from these settings, so log through the plain hierarchy
log = logging.getLogger("ganttkit.config")

DEFAULT_HOME = Path.home() / ".local" / "share" / "ganttkit"
DEFAULT_CONFIG_FILE = Path.home() / ".config" / "ganttkit" / "config.yml"

ENV_PREFIX = "GANTTKIT_"

def config_path() -> Path:
    """Location of the YAML config file, GANTTKIT_CONFIG overrides the default."""
    override = os.getenv(f"{ENV_PREFIX}CONFIG")
    return Path(override) if override else DEFAULT_CONFIG_FILE

class _TolerantYamlSource(YamlConfigSettingsSource):
    """YAML source that treats an unreadable or non-mapping file as empty."""

    def _read_file(self, file_path: Path) -> Dict[str, Any]:
        try:
            data = super()._read_file(file_path)
        except (OSError, yaml.YAMLError) as e:
            log.warning(f"Ignoring config file {file_path}: {e}")
            return {}
        if not isinstance(data, dict):
            log.warning(f"Ignoring config file {file_path}: expected a mapping")
            return {}
        return data

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )

    data_dir: Path = Field(default=DEFAULT_HOME / "data", description="Directory holding the persisted store keys")
    log_dir: Path = Field(default=DEFAULT_HOME / "logs", description="Directory for the log file")
    backup_dir: Path = Field(default=DEFAULT_HOME / "backups", description="Directory for snapshot backups")
    state_key: str = Field(default="ganttState", description="Store key of the persisted snapshot")
    team_key: str = Field(default="gantt-team-members", description="Store key of the team roster")
    backup_keep: int = Field(default=10, ge=1, description="How many backups cleanup keeps")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        yaml_file = settings_cls.model_config.get("yaml_file") or config_path()
        return init_settings, env_settings, _TolerantYamlSource(settings_cls, yaml_file=yaml_file)

def _settings_class(config_file: Optional[Path]) -> Type[Settings]:
    if config_file is None:
        return Settings

    class FileSettings(Settings):
        model_config = SettingsConfigDict(yaml_file=Path(config_file))

    return FileSettings

def _field_defaults(names) -> Dict[str, Any]:
    return {
        name: Settings.model_fields[name].get_default(call_default_factory=True)
        for name in names if name in Settings.model_fields
    }

def load_settings(config_file: Optional[Path] = None) -> Settings:
    """
    Build the effective settings.

    An invalid value falls back to that field's default only; every other
    resolved value is kept so the planner keeps using the configured store.
    """
    settings_cls = _settings_class(config_file)
    try:
        return settings_cls()
    except ValidationError as e:
        invalid = set()
        for error in e.errors():
            name = str(error["loc"][0]) if error["loc"] else "<root>"
            invalid.add(name)
            log.warning(f"Ignoring invalid setting {name!r}: {error['msg']}")
        return settings_cls(**_field_defaults(invalid))
