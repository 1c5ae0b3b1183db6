"""Configuration helpers for environment-aware setup."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, MutableMapping
import os

from dotenv import load_dotenv

from ..errors import ConfigurationError

__all__ = [
    "DEFAULT_STATUS_CODES",
    "DEFAULT_STATUS_TEXTS",
    "EnvironmentSettings",
    "StatusConfig",
    "build_hierarchical_tree",
    "load_environment_settings",
    "log_configuration_snapshot",
    "lookup_dotted_value",
    "parse_bool",
    "split_env_list",
]


DEFAULT_STATUS_CODES: Mapping[str, int] = MappingProxyType(
    {
        "server_error": 500,
        "not_found": 404,
        "bad_request": 400,
        "success": 200,
        "created": 201,
        "forbidden": 403,
        "validation_failed": 422,
    }
)

DEFAULT_STATUS_TEXTS: Mapping[str, str] = MappingProxyType(
    {name: name for name in DEFAULT_STATUS_CODES}
)


def split_env_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class EnvironmentSettings:
    """Represents the environment configuration detected at runtime."""

    name: str
    loaded_files: tuple[str, ...]
    hierarchical: Mapping[str, Any]

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return ``key`` from the process environment, else ``default``.

        Dotted keys such as ``status_codes.not_found`` are resolved against
        the ``STATUS_CODES__NOT_FOUND`` style overrides instead.
        """

        if "." in key:
            value = lookup_dotted_value(self.hierarchical, key)
        else:
            value = os.getenv(key)
        if value is None:
            return default
        return value


def build_hierarchical_tree(
    values: Mapping[str, str], *, delimiter: str = "__"
) -> Mapping[str, Any]:
    """Build a nested mapping from ``KEY__CHILD`` style environment variables."""

    tree: dict[str, Any] = {}
    for raw_key, value in values.items():
        if delimiter not in raw_key:
            continue
        segments = [segment.strip().upper() for segment in raw_key.split(delimiter) if segment.strip()]
        if not segments:
            continue
        current: MutableMapping[str, Any] = tree
        for part in segments[:-1]:
            child = current.setdefault(part, {})
            if not isinstance(child, MutableMapping):
                break
            current = child
        else:
            current[segments[-1]] = value
    return tree


def lookup_dotted_value(tree: Mapping[str, Any], key: str) -> str | None:
    """Lookup a ``parent.child`` key in ``tree``; leaves only."""

    segments = [segment.strip().upper() for segment in key.split(".") if segment.strip()]
    if not segments:
        return None
    current: Any = tree
    for part in segments:
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    if isinstance(current, Mapping):
        return None
    return str(current)


def load_environment_settings(
    *, env: str | None = None, project_root: str | Path | None = None
) -> EnvironmentSettings:
    """Load environment settings supporting layered ``.env`` files."""

    root = Path(project_root or Path.cwd())
    name = (env or os.getenv("APP_ENV") or os.getenv("FLASK_ENV") or "development").strip()
    name = name or "development"
    slug = name.lower()
    ordered_files = [
        root / ".env",
        root / ".env.local",
        root / f".env.{slug}",
        root / f".env.{slug}.local",
    ]

    loaded_files: list[str] = []
    for candidate in ordered_files:
        if not candidate.exists():
            continue
        load_dotenv(candidate, override=True)
        loaded_files.append(str(candidate))

    return EnvironmentSettings(
        name=name,
        loaded_files=tuple(loaded_files),
        hierarchical=build_hierarchical_tree(dict(os.environ)),
    )


def _coerce_status_code(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"status_codes.{name} must be an integer, got {value!r}")
    try:
        code = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"status_codes.{name} must be an integer, got {value!r}"
        ) from None
    if not 100 <= code <= 599:
        raise ConfigurationError(f"status_codes.{name} is not an HTTP status: {code}")
    return code


@dataclass(frozen=True)
class StatusConfig:
    """Named status codes and texts consumed by the response formatter."""

    status_codes: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_STATUS_CODES))
    status_texts: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_STATUS_TEXTS))

    def __post_init__(self) -> None:
        codes = {
            name: _coerce_status_code(name, value)
            for name, value in self.status_codes.items()
        }
        texts = {name: str(value) for name, value in self.status_texts.items()}
        object.__setattr__(self, "status_codes", MappingProxyType(codes))
        object.__setattr__(self, "status_texts", MappingProxyType(texts))

    @classmethod
    def from_mapping(
        cls,
        overrides: Mapping[str, Any] | None = None,
        *,
        settings: EnvironmentSettings | None = None,
    ) -> "StatusConfig":
        """Build a config from defaults, environment overrides and ``overrides``.

        ``overrides`` uses dotted keys (``{"status_codes.not_found": 410}``)
        and takes precedence over ``STATUS_CODES__NOT_FOUND`` style
        environment variables, which in turn override the defaults.
        """

        codes: dict[str, Any] = dict(DEFAULT_STATUS_CODES)
        texts: dict[str, Any] = dict(DEFAULT_STATUS_TEXTS)
        sections = {"status_codes": codes, "status_texts": texts}

        if settings is not None:
            for section, target in sections.items():
                for name in target:
                    value = settings.get(f"{section}.{name}")
                    if value is not None:
                        target[name] = value

        for key, value in (overrides or {}).items():
            section, sep, name = key.partition(".")
            if not sep or section not in sections or not name:
                raise ConfigurationError(f"Unsupported status configuration key: {key}")
            sections[section][name] = value

        return cls(status_codes=codes, status_texts=texts)

    def get(self, key: str) -> Any:
        """Return the value stored under a dotted key such as ``status_codes.created``."""

        section, _, name = key.partition(".")
        if section == "status_codes":
            values: Mapping[str, Any] = self.status_codes
        elif section == "status_texts":
            values = self.status_texts
        else:
            raise ConfigurationError(f"Unknown configuration key: {key}")
        try:
            return values[name]
        except KeyError:
            raise ConfigurationError(f"Unknown configuration key: {key}") from None

    def code(self, name: str) -> int:
        return self.get(f"status_codes.{name}")

    def text(self, name: str) -> str:
        return self.get(f"status_texts.{name}")


def _sanitize_value(key: str, value: Any) -> Any:
    markers = ("SECRET", "PASSWORD", "TOKEN", "KEY")
    upper_key = key.upper()
    if any(marker in upper_key for marker in markers):
        return "***"
    return value


def log_configuration_snapshot(
    *,
    logger: Any,
    settings: EnvironmentSettings,
    config: Mapping[str, Any],
    keys_of_interest: Iterable[str],
    status_config: StatusConfig | None = None,
) -> None:
    """Log a sanitized snapshot of the runtime configuration."""

    snapshot = {
        key: _sanitize_value(key, config.get(key))
        for key in keys_of_interest
        if key in config
    }
    extra: dict[str, Any] = {
        "environment": settings.name,
        "env_files": settings.loaded_files,
        "config_snapshot": snapshot,
    }
    if status_config is not None:
        extra["status_codes"] = dict(status_config.status_codes)
        extra["status_texts"] = dict(status_config.status_texts)
    logger.info("Runtime configuration initialised", extra=extra)
