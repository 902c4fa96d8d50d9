"""
Configuration management for the Northdata scraper.
Loads and validates settings from YAML files and environment variables.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

from northdata_scraper.errors import ConfigError


class GeneralConfig(BaseModel):
    """General process configuration."""

    log_level: str = "INFO"
    log_json: bool = True
    log_file: str | None = None


class ServerConfig(BaseModel):
    """HTTP front end configuration."""

    host: str = "0.0.0.0"
    port: int = 3000


class CredentialsConfig(BaseModel):
    """Account used for the login flow."""

    model_config = ConfigDict(extra="forbid")

    username: str = ""
    password: str = Field(default="", repr=False)


class SiteConfig(BaseModel):
    """Target site layout.

    Structural path locators are positional XPath expressions; they do not
    depend on class or id naming on the target site.
    """

    base_url: str = "https://www.northdata.de"
    login_path: str = "/_login"
    suggest_path: str = "/suggest.json"
    suggest_countries: str = "DE"

    # form: type-and-submit on the home page, direct: navigate to search_url_template
    search_mode: Literal["form", "direct"] = "form"
    search_url_template: str = "{base_url}/?query={query}"

    login_username_path: str = "/html/body/main/div/div/div/div[1]/form/div[1]/input"
    login_password_path: str = "/html/body/main/div/div/div/div[1]/form/div[2]/input"
    login_submit_path: str = "/html/body/main/div/div/div/div[1]/form/button"
    login_error_selector: str = ".error-message"

    search_input_path: str = "/html/body/main/div/div/div/form/div/input"
    search_submit_path: str = "/html/body/main/div/div/div/form/div/button"
    results_selector: str = ".search-results"

    content_section_path: str = "/html/body/main/div/section"
    loading_marker: str = "Netzwerk wird geladen"
    graphic_selector: str = 'svg[aria-label="Netzwerk"]'

    blocked_request_prefixes: list[str] = Field(
        default_factory=lambda: ["https://api.rupt.dev"]
    )

    @property
    def origin_prefix(self) -> str:
        """URL prefix that page requests must start with."""
        return self.base_url.rstrip("/") + "/"

    @property
    def login_url(self) -> str:
        return self.base_url.rstrip("/") + self.login_path


class BrowserConfig(BaseModel):
    """Browser and pacing configuration."""

    navigation_timeout_ms: int = 30000
    request_delay_ms: int = 2000
    max_retries: int = Field(default=3, ge=0)
    headless: bool = True

    # Keystroke pacing (uniform distribution)
    typing_delay_min_ms: int = 50
    typing_delay_max_ms: int = 150
    path_typing_divisor: int = Field(default=8, ge=1)  # path-located targets type faster
    typing_settle_ms: int = 50

    wait_for_network_idle: bool = True
    network_idle_timeout_ms: int = 1000

    loading_marker_timeout_ms: int = 20000
    content_settle_ms: int = 1000
    graphic_settle_ms: int = 500
    search_submit_pause_ms: int = 500
    retry_backoff_seconds: float = 0.0  # 0 = retry immediately

    executable_path: str | None = None
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )
    viewport_width: int = 1280
    viewport_height: int = 800
    graphic_viewport_width: int = 1440
    graphic_viewport_height: int = 900

    @property
    def wait_until(self) -> str:
        """Playwright load state used for every navigation."""
        return "networkidle" if self.wait_for_network_idle else "load"


class Settings(BaseModel):
    """Main settings container."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    site: SiteConfig = Field(default_factory=SiteConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)

    def validate_credentials(self) -> None:
        """Fail fast when the login account is not configured.

        Raises:
            ConfigError: If username or password is empty.
        """
        if not self.credentials.username or not self.credentials.password:
            raise ConfigError("Northdata credentials are required")


# Environment variables used by earlier deployments, mapped to settings paths.
# Booleans follow the old semantics: only the literal "false" disables.
_LEGACY_ENV_KEYS: dict[str, tuple[str, ...]] = {
    "NORTHDATA_USERNAME": ("credentials", "username"),
    "NORTHDATA_PASSWORD": ("credentials", "password"),
    "PORT": ("server", "port"),
    "BROWSER_TIMEOUT": ("browser", "navigation_timeout_ms"),
    "REQUEST_DELAY": ("browser", "request_delay_ms"),
    "MAX_RETRIES": ("browser", "max_retries"),
    "BROWSER_HEADLESS": ("browser", "headless"),
    "TYPING_DELAY_MIN": ("browser", "typing_delay_min_ms"),
    "TYPING_DELAY_MAX": ("browser", "typing_delay_max_ms"),
    "WAIT_FOR_NETWORK_IDLE": ("browser", "wait_for_network_idle"),
    "NETWORK_IDLE_TIMEOUT": ("browser", "network_idle_timeout_ms"),
    "PUPPETEER_EXECUTABLE_PATH": ("browser", "executable_path"),
    "BROWSER_EXECUTABLE_PATH": ("browser", "executable_path"),
}

_LEGACY_BOOL_KEYS = {"BROWSER_HEADLESS", "WAIT_FOR_NETWORK_IDLE"}


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary.
        override: Dictionary whose values win.

    Returns:
        New merged dictionary.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_config(config_dir: Path) -> dict[str, Any]:
    """Load settings.yaml with local.yaml overrides (settings section).

    Args:
        config_dir: Configuration directory path.

    Returns:
        Merged configuration dictionary.
    """
    config: dict[str, Any] = {}

    base_path = config_dir / "settings.yaml"
    if base_path.exists():
        with open(base_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

    local_path = config_dir / "local.yaml"
    if local_path.exists():
        with open(local_path, encoding="utf-8") as f:
            local = yaml.safe_load(f) or {}
        if "settings" in local:
            config = _deep_merge(config, local["settings"])

    return config


def _parse_scalar(value: str) -> Any:
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _set_path(config: dict[str, Any], path: tuple[str, ...] | list[str], value: Any) -> None:
    current = config
    for part in path[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[path[-1]] = value


def _apply_legacy_env(config: dict[str, Any]) -> dict[str, Any]:
    """Apply the flat environment variables of earlier deployments."""
    for env_key, path in _LEGACY_ENV_KEYS.items():
        value = os.environ.get(env_key)
        if value is None or value == "":
            continue
        if env_key in _LEGACY_BOOL_KEYS:
            _set_path(config, path, value != "false")
        elif path[0] == "credentials" or path[-1] == "executable_path":
            _set_path(config, path, value)
        else:
            _set_path(config, path, _parse_scalar(value))
    return config


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides.

    Environment variables should be prefixed with NDS_ and use
    double underscores for nested keys.

    Example:
        NDS_BROWSER__MAX_RETRIES=5

    Args:
        config: Configuration dictionary.

    Returns:
        Configuration with environment overrides.
    """
    prefix = "NDS_"

    for key, value in os.environ.items():
        if not key.startswith(prefix) or key == "NDS_CONFIG_DIR":
            continue

        key_path = key[len(prefix) :].lower().split("__")
        if key_path[0] == "credentials":
            # Passwords like "1234" must stay strings
            _set_path(config, key_path, value)
        else:
            _set_path(config, key_path, _parse_scalar(value))

    return config


def load_settings(config_dir: Path | None = None) -> Settings:
    """Build settings from defaults, YAML and environment.

    Args:
        config_dir: Directory holding settings.yaml. Uses NDS_CONFIG_DIR if None.

    Returns:
        Settings instance.
    """
    if config_dir is None:
        config_dir = Path(os.environ.get("NDS_CONFIG_DIR", "config"))

    config = _load_yaml_config(config_dir)
    config = _apply_legacy_env(config)
    config = _apply_env_overrides(config)

    return Settings(**config)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get application settings.

    Settings are loaded from:
    1. Default values
    2. YAML configuration files
    3. Environment variables (highest priority)

    Returns:
        Settings instance.
    """
    return load_settings()

