"""
Configuration settings for the Chefify API.

Configuration is read from layered sources, each overriding the previous one:

1. ``appsettings.json``
2. ``appsettings.<environment>.json`` (optional)
3. environment variables, where ``__`` separates key segments
   (``Authentication__OIDC__ClientId`` sets ``Authentication:OIDC:ClientId``)

Keys are colon separated paths and are matched case-insensitively.
"""

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterator, Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from src.service.exceptions import ConfigurationError

APP_VERSION = "0.1.0"

SETTINGS_FILE = "appsettings.json"
DEFAULT_ENVIRONMENT = "Production"
ENV_SETTINGS_DIR = "CHEFIFY_SETTINGS_DIR"
ENV_ENVIRONMENT = "CHEFIFY_ENVIRONMENT"

OIDC_SECTION = "Authentication:OIDC"

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_KEY_DELIMITER = ":"
_ENV_DELIMITER = "__"

logger = logging.getLogger(__name__)


def _flatten(data: Any, prefix: str = "") -> Iterator[tuple[str, str]]:
    if isinstance(data, dict):
        for key, value in data.items():
            yield from _flatten(value, f"{prefix}{_KEY_DELIMITER}{key}" if prefix else str(key))
    elif isinstance(data, list):
        for index, value in enumerate(data):
            yield from _flatten(value, f"{prefix}{_KEY_DELIMITER}{index}")
    elif data is None:
        return
    elif isinstance(data, bool):
        yield prefix, "true" if data else "false"
    else:
        yield prefix, str(data)


class Configuration:
    """
    A flat, case-insensitive key/value view over the layered configuration sources.
    """

    def __init__(self, values: Mapping[str, str] | None = None):
        # lower cased key -> (original key, value)
        self._values: dict[str, tuple[str, str]] = {}
        for key, value in (values or {}).items():
            self.set(key, value)

    @classmethod
    def load(
        cls,
        base_path: str | Path | None = None,
        environment: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "Configuration":
        """
        Load the configuration from the settings files in ``base_path`` and from ``environ``.

        base_path - the directory holding ``appsettings.json``. Defaults to the project root.
        environment - the environment name selecting the optional override file.
        environ - the environment variables. Defaults to ``os.environ``.
        """
        base_path = Path(base_path) if base_path else _PROJECT_ROOT
        environ = os.environ if environ is None else environ
        environment = environment or DEFAULT_ENVIRONMENT

        config = cls()
        config.add_json_file(base_path / SETTINGS_FILE)
        config.add_json_file(base_path / f"appsettings.{environment}.json", optional=True)
        config.add_environment_variables(environ)
        return config

    def add_json_file(self, path: str | Path, optional: bool = False) -> "Configuration":
        """Merge a JSON settings file into the configuration."""
        path = Path(path)
        if not path.is_file():
            if optional:
                return self
            raise ConfigurationError(f"Configuration file {path} not found")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Configuration file {path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a JSON object")
        for key, value in _flatten(data):
            self.set(key, value)
        logger.debug("Loaded configuration file %s", path)
        return self

    def add_environment_variables(
        self, environ: Mapping[str, str], prefix: str = ""
    ) -> "Configuration":
        """Merge environment variables, optionally only those starting with ``prefix``."""
        for name, value in environ.items():
            if prefix:
                if not name.lower().startswith(prefix.lower()):
                    continue
                name = name[len(prefix):]
            self.set(name.replace(_ENV_DELIMITER, _KEY_DELIMITER), value)
        return self

    def set(self, key: str, value: str) -> None:
        self._values[key.lower()] = (key, value)

    def __getitem__(self, key: str) -> str | None:
        entry = self._values.get(key.lower())
        return entry[1] if entry else None

    def __contains__(self, key: str) -> bool:
        return key.lower() in self._values

    def get(self, key: str, default: str | None = None) -> str | None:
        value = self[key]
        return default if value is None else value

    def get_required(self, key: str) -> str:
        """
        Get a configuration value, raising ConfigurationError if it is absent.
        """
        value = self[key]
        if value is None:
            raise ConfigurationError(f"Required configuration key '{key}' is missing")
        return value

    def get_section(self, key: str) -> "Configuration":
        """
        Get the child configuration under ``key`` with the key prefix removed.
        """
        prefix = key.lower() + _KEY_DELIMITER
        section = Configuration()
        for lower_key, (orig_key, value) in self._values.items():
            if lower_key.startswith(prefix):
                section.set(orig_key[len(prefix):], value)
        return section

    def get_list(self, key: str) -> list[str] | None:
        """
        Get the values of an array section ordered by index, or None if the section is empty.
        """
        section = self.get_section(key)
        indexed = []
        for _, (child_key, value) in section._values.items():
            if child_key.isdigit():
                indexed.append((int(child_key), value))
        if not indexed:
            return None
        return [value for _, value in sorted(indexed)]


class OIDCSettings(BaseModel):
    """
    OpenID Connect settings bound from the ``Authentication:OIDC`` configuration section.
    """

    authority: str = Field(description="Base URL of the OpenID Connect provider")
    client_id: str = Field(description="Client ID registered with the provider")
    audience: str | None = Field(default=None, description="Expected token audience")
    scopes: list[str] = Field(
        default_factory=lambda: ["openid", "profile", "email"],
        description="Scopes requested by clients during login",
    )
    require_https_metadata: bool = Field(
        default=True, description="Whether the provider must be served over HTTPS"
    )
    cache_ttl_seconds: int = Field(
        default=300, gt=0, description="How long resolved tokens are cached"
    )
    cache_max_size: int = Field(
        default=1000, gt=0, description="Maximum number of cached tokens"
    )
    timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for requests to the provider"
    )

    @field_validator("authority", "client_id")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @model_validator(mode="after")
    def check_https(self) -> "OIDCSettings":
        if self.require_https_metadata and not self.authority.lower().startswith("https://"):
            raise ValueError("authority must use https when RequireHttpsMetadata is enabled")
        return self


# Field name -> key inside the Authentication:OIDC section
_OIDC_KEYS = {
    "authority": "Authority",
    "client_id": "ClientId",
    "audience": "Audience",
    "require_https_metadata": "RequireHttpsMetadata",
    "cache_ttl_seconds": "CacheTtlSeconds",
    "cache_max_size": "CacheMaxSize",
    "timeout_seconds": "TimeoutSeconds",
}


class Settings(BaseModel):
    """
    Application settings for the Chefify API.
    """

    app_name: str = "Chefify API"
    app_description: str = "FastAPI service for Chefify users signing in through OpenID Connect"
    api_version: str = APP_VERSION
    log_level: str = Field(
        default="INFO",
        description="Logging level for the application",
    )
    environment: str = Field(
        default=DEFAULT_ENVIRONMENT, description="Name of the hosting environment"
    )
    service_root_path: str | None = Field(
        default=None, description="Path prefix the service is mounted under"
    )
    oidc: OIDCSettings

    @classmethod
    def from_configuration(cls, config: Configuration) -> "Settings":
        """
        Bind the settings from a loaded configuration.

        Raises ConfigurationError if the OIDC section is missing required values.
        """
        section = config.get_section(OIDC_SECTION)
        oidc_data: dict[str, Any] = {}
        for field, key in _OIDC_KEYS.items():
            value = section[key]
            if value is not None:
                oidc_data[field] = value
        scopes = section.get_list("Scopes")
        if scopes is not None:
            oidc_data["scopes"] = scopes

        data: dict[str, Any] = {"oidc": oidc_data}
        # LOG_LEVEL from the environment beats Logging:LogLevel from the settings files
        log_level = config["LOG_LEVEL"] or config["Logging:LogLevel"]
        if log_level:
            data["log_level"] = log_level
        if config["Environment"] is not None:
            data["environment"] = config["Environment"]
        if config["ServiceRootPath"]:
            data["service_root_path"] = config["ServiceRootPath"]
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


@lru_cache()
def get_configuration() -> Configuration:
    """
    Get the application configuration.

    Uses lru_cache to avoid reading the settings files for every request.
    """
    environment = os.getenv(ENV_ENVIRONMENT, DEFAULT_ENVIRONMENT)
    config = Configuration.load(
        base_path=os.getenv(ENV_SETTINGS_DIR) or _PROJECT_ROOT,
        environment=environment,
    )
    if config["Environment"] is None:
        config.set("Environment", environment)
    return config


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings.

    Uses lru_cache to avoid loading the settings for every request.
    """
    return Settings.from_configuration(get_configuration())


def configure_logging(log_level: str | None = None):
    """Configure logging for the application."""
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")
    if log_level.upper() not in logging.getLevelNamesMapping():
        logging.warning(
            "Unrecognized log level '%s'. Falling back to 'INFO'.",
            log_level,
        )
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger().setLevel(level)
