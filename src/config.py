"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. An explicit path (e.g. STUDIO_ASSISTANT_CONFIG)
2. ./studio-assistant.yaml (working directory)
3. <user config dir>/config.yaml

Environment variables override YAML: STUDIO_ASSISTANT_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.
With no config file at all, every setting takes its default.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from src.utils.paths import get_config_dir

logger = logging.getLogger(__name__)

ENV_PREFIX = "STUDIO_ASSISTANT_"
CONFIG_PATH_ENV = "STUDIO_ASSISTANT_CONFIG"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Missing env vars resolve to empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


class RepositoryConfig(BaseModel):
    """Content repository connection."""

    project_id: str = ""
    dataset: str = "production"
    token: str = ""
    api_version: str = "2024-01-01"
    base_url: Optional[str] = None
    timeout_seconds: float = 30.0

    @property
    def is_configured(self) -> bool:
        return bool(self.project_id or self.base_url)


class AssistantEndpointConfig(BaseModel):
    """Chat endpoint that produces assistant replies. Empty disables sending."""

    endpoint: str = ""
    system_prompt: Optional[str] = None
    timeout_seconds: float = 120.0


class ActionConfig(BaseModel):
    """Action execution behaviour."""

    auto_execute_enabled: bool = True
    max_auto_execute_age_seconds: float = Field(default=10, ge=0)


class ContextConfig(BaseModel):
    """Document context resolution."""

    slug_required_types: list[str] = ["page"]
    max_prepopulated_documents: int = Field(default=5, ge=0)

    @field_validator("slug_required_types", mode="before")
    @classmethod
    def split_comma_list(cls, value: Any) -> Any:
        """Accept "page,article" from env overrides."""
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


class SessionConfig(BaseModel):
    """Conversation history display."""

    page_size: int = Field(default=20, ge=1)


class SearchConfig(BaseModel):
    """Document picker search."""

    debounce_ms: int = Field(default=300, ge=0)
    limit: int = Field(default=50, ge=1)


class DatabaseConfig(BaseModel):
    """Local persistence. An empty url uses the default SQLite file."""

    url: str = ""


class AssistantConfig(BaseModel):
    """Top-level configuration for the studio assistant."""

    repository: RepositoryConfig = RepositoryConfig()
    assistant: AssistantEndpointConfig = AssistantEndpointConfig()
    actions: ActionConfig = ActionConfig()
    context: ContextConfig = ContextConfig()
    sessions: SessionConfig = SessionConfig()
    search: SearchConfig = SearchConfig()
    database: DatabaseConfig = DatabaseConfig()


def _find_config_file() -> Optional[Path]:
    """Search for a config file in standard locations."""
    candidates = [
        Path.cwd() / "studio-assistant.yaml",
        Path.cwd() / "studio-assistant.yml",
        get_config_dir() / "config.yaml",
        get_config_dir() / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply STUDIO_ASSISTANT_<SECTION>_<KEY> env var overrides.

    For example, ``STUDIO_ASSISTANT_ACTIONS_AUTO_EXECUTE_ENABLED=false``
    maps to section ``actions``, field ``auto_execute_enabled``.
    Values stay strings; model validation converts them.
    """
    sections = sorted(AssistantConfig.model_fields.keys(), key=len, reverse=True)
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        suffix = key[len(ENV_PREFIX):].lower()
        for section in sections:
            section_prefix = section + "_"
            if suffix.startswith(section_prefix) and len(suffix) > len(section_prefix):
                field_name = suffix[len(section_prefix):]
                if field_name not in AssistantConfig.model_fields[section].annotation.model_fields:
                    break
                target = data.setdefault(section, {})
                if isinstance(target, dict):
                    target[field_name] = value
                break
    return data


def load_config(config_path: Optional[str] = None) -> AssistantConfig:
    """Load the assistant configuration.

    Args:
        config_path: Explicit path to a config file. Falls back to
            STUDIO_ASSISTANT_CONFIG, then the standard locations.

    Returns:
        Validated AssistantConfig (defaults when no file exists).

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    config_path = config_path or os.environ.get(CONFIG_PATH_ENV) or None
    if config_path:
        path: Optional[Path] = Path(config_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file()

    raw_data: dict[str, Any] = {}
    if path is not None:
        logger.info("Loading config from %s", path)
        with open(path) as f:
            raw_data = yaml.safe_load(f) or {}

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_env_overrides(data)
    return AssistantConfig(**data)
