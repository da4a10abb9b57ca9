"""Settings resolution with profile support.

Profiles are TOML tables in ~/.config/scrum-master/config.toml; env vars
(SCRUM_*) and a .env file in cwd always override the profile's values.
"""

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Literal

import tomlkit
import typer
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

CONFIG_PATH = Path.home() / ".config" / "scrum-master" / "config.toml"

PLACEHOLDER_VALUES = {"your-anthropic-api-key-here", "your-jira-api-token"}


class ScrumSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SCRUM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_profile: str | None = None

    # Anthropic
    anthropic_api_key: SecretStr | None = None
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_timeout_seconds: int = Field(default=120, gt=0)
    anthropic_max_tokens: int = Field(default=4000, gt=0)
    chunk_size_chars: int = Field(default=15000, gt=0)
    retry_count: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=5.0, ge=0)

    # Jira
    jira_base_url: str | None = None
    jira_username: str | None = None
    jira_api_token: SecretStr | None = None
    jira_project_key: str | None = None
    jira_timeout_seconds: int = Field(default=30, gt=0)

    # Processing
    mode: Literal["full", "analyze-only"] = "full"
    output_dir: Path = Path("./output")
    save_intermediate: bool = True

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Profile values arrive as init kwargs and must lose to the environment
        return env_settings, dotenv_settings, init_settings, file_secret_settings


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load the config file, returning an empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def _secret_missing(value: SecretStr | None) -> bool:
    return value is None or not value.get_secret_value() or value.get_secret_value() in PLACEHOLDER_VALUES


def missing_ai_settings(settings: ScrumSettings) -> list[str]:
    return ["anthropic_api_key"] if _secret_missing(settings.anthropic_api_key) else []


def missing_tracker_settings(settings: ScrumSettings) -> list[str]:
    missing = [name for name in ("jira_base_url", "jira_username", "jira_project_key") if not getattr(settings, name)]
    if _secret_missing(settings.jira_api_token):
        missing.append("jira_api_token")
    return missing


def get_settings(
    profile: str | None = None,
    *,
    require_ai: bool = False,
    require_tracker: bool = False,
) -> ScrumSettings:
    """Resolve the active profile and return a fully populated ScrumSettings.

    Profile precedence (highest to lowest):
    1. profile argument (--profile CLI flag)
    2. SCRUM_DEFAULT_PROFILE env var
    3. default_profile key in the config file
    4. First profile defined in the config file
    """
    toml_config = _load_toml()

    active = (
        profile
        or os.environ.get("SCRUM_DEFAULT_PROFILE")
        or toml_config.get("default_profile")
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = dict(toml_config[active])
        else:
            profiles = _list_profiles(toml_config)
            typer.echo(f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}")
            raise typer.Exit(1)

    # env vars + .env always override profile defaults
    settings = ScrumSettings(**profile_defaults)

    missing: list[str] = []
    if require_ai:
        missing += missing_ai_settings(settings)
    if require_tracker:
        missing += missing_tracker_settings(settings)
    if missing:
        env_names = ", ".join(f"SCRUM_{name.upper()}" for name in missing)
        typer.echo(
            f"Missing configuration: {', '.join(missing)}. Set {env_names} or add them to the "
            f"[{active or 'profile'}] section of {CONFIG_PATH}"
        )
        raise typer.Exit(1)

    return settings
