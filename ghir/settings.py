"""Settings resolution with named profile support."""

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
import typer
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_PATH = Path.home() / ".config" / "ghir" / "config.toml"


class GhirSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GHIR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_profile: str | None = None

    github_token: SecretStr | None = None
    github_auth: str = "token"  # "token" | "gh-cli"
    api_url: str = "https://api.github.com"
    timeout: float = 30.0  # seconds, per remote call

    state_file: Path = Path("ghir.state.toml")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Profile values arrive as init kwargs; the environment wins over them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/ghir/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def get_settings(profile: str | None = None) -> GhirSettings:
    """Resolve the active profile and return a fully populated GhirSettings.

    Precedence (highest to lowest):
    1. profile argument (--profile CLI flag)
    2. GHIR_PROFILE env var
    3. default_profile key in ~/.config/ghir/config.toml
    4. First profile defined in ~/.config/ghir/config.toml

    Env vars and .env always override values from the profile block.
    """
    toml_config = _load_toml()

    active = (
        profile
        or os.environ.get("GHIR_PROFILE")
        or toml_config.get("default_profile")
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = dict(toml_config[active])
        elif active not in toml_config:
            profiles = _list_profiles(toml_config)
            typer.echo(f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}")
            raise typer.Exit(1)

    settings = GhirSettings(**profile_defaults)

    if settings.github_auth == "token" and not settings.github_token:
        typer.echo(
            "Missing GitHub credentials. Set GHIR_GITHUB_TOKEN or "
            f"github_token in the [{active or 'profile'}] section of {CONFIG_PATH}, "
            'or set github_auth = "gh-cli" to use the gh CLI.'
        )
        raise typer.Exit(1)

    return settings
