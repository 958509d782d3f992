"""
Dev Agent Configuration

Layered settings resolution. Providers are merged in order, later wins:

    1. ProjectFileProvider   config.yaml / config.json in the project root
    2. EnvironmentProvider   .env (python-dotenv), then the process environment
    3. StoredConfigProvider  the ``config`` table of an initialized store

The core components never read configuration themselves; they receive an
already-resolved DatabaseConfig or GitHubConfig.

Usage:
    from dev_agent.config import resolve_database_config, resolve_github_config

    store = SchemaStore(resolve_database_config().path)
    github = resolve_github_config(store=store)
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, field_validator
from pydantic import ValidationError as PydanticValidationError

from dev_agent.exceptions import ConfigurationError
from dev_agent.validators import (
    validate_database_path,
    validate_database_type,
    validate_github_owner,
    validate_github_repo,
    validate_github_token,
)

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ("config.yaml", "config.yml", "config.json")
DEFAULT_DATABASE_PATH = ":memory:"

# Environment variable -> dotted setting key. Earlier names win for the same key.
ENV_KEY_MAP = (
    ("DEV_AGENT_DB_PATH", "database.path"),
    ("DATABASE_PATH", "database.path"),
    ("DEV_AGENT_DB_TYPE", "database.type"),
    ("GITHUB_TOKEN", "github.token"),
    ("GITHUB_OWNER", "github.owner"),
    ("GITHUB_REPO", "github.repo"),
)

# Legacy nesting used by older project files
KEY_ALIASES = {
    "storage.database.path": "database.path",
    "storage.database.type": "database.type",
}


class DatabaseConfig(BaseModel):
    """Resolved store settings."""

    path: str = DEFAULT_DATABASE_PATH
    type: str = "sqlite"

    @field_validator("path")
    @classmethod
    def check_path(cls, v: str) -> str:
        is_valid, message = validate_database_path(v)
        if not is_valid:
            raise ValueError(message)
        return v

    @field_validator("type")
    @classmethod
    def check_type(cls, v: str) -> str:
        is_valid, message = validate_database_type(v)
        if not is_valid:
            raise ValueError(message)
        return v.lower()


class GitHubConfig(BaseModel):
    """Resolved tracker settings."""

    owner: str
    repo: str
    token: str

    @field_validator("owner")
    @classmethod
    def check_owner(cls, v: str) -> str:
        is_valid, message = validate_github_owner(v)
        if not is_valid:
            raise ValueError(message)
        return v

    @field_validator("repo")
    @classmethod
    def check_repo(cls, v: str) -> str:
        is_valid, message = validate_github_repo(v)
        if not is_valid:
            raise ValueError(message)
        return v

    @field_validator("token")
    @classmethod
    def check_token(cls, v: str) -> str:
        is_valid, message = validate_github_token(v)
        if not is_valid:
            raise ValueError(message)
        return v

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __repr__(self) -> str:
        return f"GitHubConfig(owner={self.owner!r}, repo={self.repo!r}, token='********')"


def flatten(data: Mapping[str, Any], parent: str = "") -> Dict[str, Any]:
    """Flatten nested mappings into dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{parent}.{key}" if parent else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten(value, dotted))
        else:
            flat[dotted] = value
    return flat


class ConfigProvider:
    """A source of dotted-key settings."""

    name = "base"

    def load(self) -> Dict[str, Any]:
        raise NotImplementedError


class ProjectFileProvider(ConfigProvider):
    """Settings from config.yaml / config.json in the project root."""

    name = "project file"

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root else Path.cwd()

    def find_config_file(self) -> Optional[Path]:
        for file_name in CONFIG_FILE_NAMES:
            candidate = self.root / file_name
            if candidate.exists():
                return candidate
        return None

    def load(self) -> Dict[str, Any]:
        config_path = self.find_config_file()
        if config_path is None:
            return {}

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if config_path.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Invalid configuration file {config_path}",
                details=str(e),
                remediation="Fix the syntax of the configuration file",
            ) from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read {config_path}", details=str(e)) from e

        if not isinstance(data, Mapping):
            return {}

        settings = {}
        for key, value in flatten(data).items():
            settings[KEY_ALIASES.get(key, key)] = value
        logger.debug("Loaded %d setting(s) from %s", len(settings), config_path)
        return settings


class EnvironmentProvider(ConfigProvider):
    """Settings from a .env file and the process environment."""

    name = "environment"

    def __init__(self, env_file: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None):
        self.env_file = env_file
        self.environ = environ

    def load(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        env_file = self.env_file or Path.cwd() / ".env"
        if Path(env_file).exists():
            values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})

        values.update(os.environ if self.environ is None else self.environ)

        settings: Dict[str, Any] = {}
        for env_name, key in ENV_KEY_MAP:
            if key not in settings and values.get(env_name):
                settings[key] = values[env_name]
        return settings


class StoredConfigProvider(ConfigProvider):
    """Settings persisted in the store's ``config`` table."""

    name = "store"

    def __init__(self, store):
        self.store = store

    def load(self) -> Dict[str, Any]:
        from dev_agent.storage.config_store import ConfigRepository

        if not self.store.is_initialized or not self.store.table_exists("config"):
            return {}
        return ConfigRepository(self.store).all()


def merge_providers(providers: Iterable[ConfigProvider]) -> Dict[str, Any]:
    """Merge provider settings in order; later providers win.

    Empty values never override a value from an earlier provider.
    """
    merged: Dict[str, Any] = {}
    for provider in providers:
        for key, value in provider.load().items():
            if value is None or value == "":
                continue
            merged[key] = value
    return merged


def default_providers(
    root: Optional[Path] = None,
    store=None,
    environ: Optional[Mapping[str, str]] = None,
) -> List[ConfigProvider]:
    providers: List[ConfigProvider] = [
        ProjectFileProvider(root),
        EnvironmentProvider(Path(root) / ".env" if root else None, environ),
    ]
    if store is not None:
        providers.append(StoredConfigProvider(store))
    return providers


def _build(model, values: Dict[str, Any], section: str):
    try:
        return model(**values)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = first["loc"][0] if first.get("loc") else None
        raise ConfigurationError(
            f"Invalid {section} configuration: {first['msg']}",
            config_key=f"{section}.{field}" if field else None,
        ) from e


def resolve_database_config(
    root: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DatabaseConfig:
    """Resolve the store location.

    The stored layer is not consulted: the store has to be located before
    it can be read. With nothing configured the store is ephemeral.
    """
    settings = merge_providers(default_providers(root, None, environ))
    values = {}
    if settings.get("database.path"):
        values["path"] = str(settings["database.path"])
    if settings.get("database.type"):
        values["type"] = str(settings["database.type"])

    config = _build(DatabaseConfig, values, "database")
    if config.path == DEFAULT_DATABASE_PATH:
        logger.debug("No database path configured; using an in-memory store")
    return config


def resolve_github_config(
    root: Optional[Path] = None,
    store=None,
    environ: Optional[Mapping[str, str]] = None,
) -> GitHubConfig:
    """Resolve tracker settings from every layer.

    Raises:
        ConfigurationError: If owner, repo or token is missing or malformed
    """
    settings = merge_providers(default_providers(root, store, environ))

    for key in ("github.owner", "github.repo", "github.token"):
        if not settings.get(key):
            raise ConfigurationError(f"Missing required setting: {key}", config_key=key)

    return _build(
        GitHubConfig,
        {
            "owner": str(settings["github.owner"]),
            "repo": str(settings["github.repo"]),
            "token": str(settings["github.token"]),
        },
        "github",
    )
