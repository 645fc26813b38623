"""Layered configuration loader for babeljson."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Sequence

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError, TranslationProviderConfigurationError

APP_NAME = "babeljson"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TONE = "Neutral, professional product UI tone"
DEFAULT_TARGET_LANGUAGE = "es-ES"


def split_terms(raw: str | Sequence[str] | None) -> List[str]:
    """Split a comma separated term list, dropping blanks and duplicates."""

    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    cleaned = (str(item).strip() for item in items)
    return list(dict.fromkeys(term for term in cleaned if term))


class BabelJsonConfig(BaseModel):
    """Schema describing all supported configuration options."""

    model_config = ConfigDict(extra="ignore")

    LLM_PROVIDER: Literal["azure_openai", "openai"] = Field(
        default="openai",
        description="Large language model provider selection.",
    )
    OPENAI_API_KEY: str | None = Field(default=None, repr=False)
    AZURE_OPENAI_API_KEY: str | None = Field(default=None, repr=False)
    AZURE_OPENAI_ENDPOINT: str | None = Field(default=None)
    AZURE_OPENAI_API_VERSION: str | None = Field(default=None)
    AZURE_OPENAI_DEPLOYMENT_NAME: str | None = Field(default=None)
    BABELJSON_MODEL: str | None = Field(default=None)
    BABELJSON_TONE: str = Field(default=DEFAULT_TONE)
    BABELJSON_BATCH_SIZE: int = Field(default=15, ge=1)
    BABELJSON_MAX_RETRIES: int = Field(default=5, ge=1)
    BABELJSON_BATCH_DELAY: float = Field(default=0.7, ge=0)
    BABELJSON_RETRY_DELAY: float = Field(default=0.4, ge=0)
    BABELJSON_REQUEST_TIMEOUT: float = Field(default=90.0, gt=0)
    BABELJSON_PROTECTED_TERMS: List[str] = Field(default_factory=list)
    BABELJSON_PROVIDER_DEBUG: bool = Field(default=False)

    @model_validator(mode="before")
    @classmethod
    def _normalise_provider(cls, data: Any) -> Any:
        if isinstance(data, dict):
            raw_value = data.get("LLM_PROVIDER")
            if isinstance(raw_value, str):
                normalized = raw_value.strip().lower().replace("-", "_")
                synonyms = {
                    "azure_open_ai": "azure_openai",
                    "azureopenai": "azure_openai",
                }
                normalized = synonyms.get(normalized, normalized)
                if normalized not in {"openai", "azure_openai"}:
                    normalized = "openai"
                data["LLM_PROVIDER"] = normalized
        return data

    @field_validator("BABELJSON_PROTECTED_TERMS", mode="before")
    @classmethod
    def _split_protected_terms(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_terms(value)
        return value


@dataclass(frozen=True)
class LoadedConfig:
    """Validated settings plus the layer each key came from."""

    model: BabelJsonConfig
    sources: Dict[str, str] = field(default_factory=dict)


@lru_cache(maxsize=1)
def _load_config_instance(app_dir: Path | None = None) -> LoadedConfig:
    """Load configuration layers once and cache the validated result."""

    base_dir = app_dir or Path.cwd()
    sources: Dict[str, str] = {}
    combined = _load_discovered_yaml(app_dir=base_dir, sources=sources)
    _merge_env_sources(combined, sources=sources, app_dir=base_dir)

    try:
        model = BabelJsonConfig.model_validate(combined)
    except ValidationError as exc:
        raise ConfigurationError(
            _format_validation_errors(exc.errors(), sources)
        ) from exc
    return LoadedConfig(model=model, sources=dict(sources))


def discover_file_paths(app_dir: Path) -> List[Path]:
    """Return existing YAML configuration files, lowest precedence first."""

    home = Path.home()
    candidates = [
        home / ".config" / APP_NAME / "config.yaml",
        home / f".{APP_NAME}.yaml",
        app_dir / f"{APP_NAME}.yaml",
        app_dir / "config.yaml",
    ]
    return [path for path in candidates if path.is_file()]


def _load_discovered_yaml(
    *,
    app_dir: Path,
    sources: Dict[str, str],
) -> dict[str, Any]:
    """Load YAML configuration files in precedence order."""

    allowed = set(BabelJsonConfig.model_fields)
    result: dict[str, Any] = {}
    for path in discover_file_paths(app_dir):
        try:
            with path.open("r", encoding="utf-8") as handle:
                parsed = yaml.safe_load(handle)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(
                f"Configuration file {path} could not be read: {exc}"
            ) from exc
        if parsed is None:
            continue
        if not isinstance(parsed, Mapping):
            raise ConfigurationError(
                f"Invalid configuration file {path}: expected a mapping at the root."
            )
        for key, value in parsed.items():
            if key not in allowed:
                continue
            result[key] = value
            sources[key] = f"file:{path}"
    return result


def _merge_env_sources(
    target: dict[str, Any],
    *,
    sources: Dict[str, str],
    app_dir: Path,
) -> None:
    """Merge .env and process environment variables into the target mapping."""

    allowed = set(BabelJsonConfig.model_fields)

    def merge_values(values: Mapping[str, str | None], *, source_prefix: str) -> None:
        for key, value in sorted(values.items()):
            if value is None or not value.strip():
                continue
            if key not in allowed:
                continue
            target[key] = value
            sources[key] = f"env:{source_prefix}:{key}"

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        merge_values(dotenv_values(dotenv_path), source_prefix=".env")

    merge_values(
        {k: v for k, v in os.environ.items() if isinstance(v, str)},
        source_prefix="process",
    )


def require_provider_credentials(settings: BabelJsonConfig) -> None:
    """Fail when the selected provider lacks the settings it needs."""

    provider = settings.LLM_PROVIDER
    errors: list[str] = []

    if provider == "openai":
        if not settings.OPENAI_API_KEY:
            errors.append(
                "OPENAI_API_KEY is required when LLM_PROVIDER is 'openai'."
            )
    elif provider == "azure_openai":
        missing = [
            name
            for name, value in {
                "AZURE_OPENAI_API_KEY": settings.AZURE_OPENAI_API_KEY,
                "AZURE_OPENAI_ENDPOINT": settings.AZURE_OPENAI_ENDPOINT,
                "AZURE_OPENAI_API_VERSION": settings.AZURE_OPENAI_API_VERSION,
                "AZURE_OPENAI_DEPLOYMENT_NAME": settings.AZURE_OPENAI_DEPLOYMENT_NAME,
            }.items()
            if not value
        ]
        if missing:
            errors.append(
                "The following Azure OpenAI settings must be provided when "
                f"LLM_PROVIDER is 'azure_openai': {', '.join(missing)}."
            )

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise TranslationProviderConfigurationError(
            "Configuration validation errors detected:\n" + bullet_list
        )


def _format_validation_errors(
    entries: Sequence[Mapping[str, Any]],
    sources: Mapping[str, str],
) -> str:
    details: list[str] = []
    for entry in entries:
        loc = entry.get("loc") or ()
        location = ".".join(str(part) for part in loc if part not in {None, ""})
        message = str(entry.get("msg") or "Invalid value")
        key = str(loc[0]) if loc else ""
        source = sources.get(key)
        origin = f" (source: {source})" if source else ""
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}{origin}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def get_config(app_dir: Path | None = None) -> LoadedConfig:
    """Return the cached configuration instance."""

    return _load_config_instance(app_dir=app_dir)


def get_settings(app_dir: Path | None = None) -> BabelJsonConfig:
    """Return the validated schema model for typed access."""

    return get_config(app_dir=app_dir).model
