from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlparse

import yaml

from .errors import ConfigurationError

_CONFIG_ENV = "ECAGATE_CONFIG"
_DEFAULT_CONFIG_FILE = "ecagate.yaml"

LOGGER = logging.getLogger(__name__)

DEFAULT_TOKEN_URL = "https://accounts.eclipse.org/oauth2/token"
DEFAULT_API_BASE_URL = "https://api.eclipse.org/"
DEFAULT_DOCUMENTATION = "Please see http://wiki.eclipse.org/ECA"
MODES = ("local", "delegated")


@dataclass
class AccountEntry:
    username: str
    emails: Tuple[str, ...] = ()


@dataclass
class DirectoryConfig:
    """Static committer and account data for hosts without their own directory."""

    committers: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    accounts: List[AccountEntry] = field(default_factory=list)


@dataclass
class GateConfig:
    client_id: str = ""
    client_secret: str = field(default="", repr=False)
    token_url: str = DEFAULT_TOKEN_URL
    api_base_url: str = DEFAULT_API_BASE_URL
    grant_type: str = "client_credentials"
    scope: str = "eclipsefdn_view_all_profiles"
    request_timeout_s: float = 5.0
    max_workers: int = 8
    documentation_url: str = DEFAULT_DOCUMENTATION
    mode: str = "local"
    provider: str = "gerrit"
    strict_mode: bool = False
    directory: DirectoryConfig = field(default_factory=DirectoryConfig)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "GateConfig":
        oauth_section = _as_mapping(mapping.get("oauth"))
        api_section = _as_mapping(mapping.get("api"))
        validation_section = _as_mapping(mapping.get("validation"))
        directory_section = _as_mapping(mapping.get("directory"))

        committers = {
            str(project): tuple(str(user) for user in _as_sequence(users))
            for project, users in _as_mapping(directory_section.get("committers")).items()
        }
        accounts = [
            AccountEntry(
                username=str(entry["username"]),
                emails=tuple(str(email) for email in _as_sequence(entry.get("emails"))),
            )
            for entry in _as_sequence(directory_section.get("accounts"))
            if isinstance(entry, Mapping) and entry.get("username")
        ]

        return cls(
            client_id=str(oauth_section.get("client_id") or ""),
            client_secret=str(oauth_section.get("client_secret") or ""),
            token_url=str(oauth_section.get("token_url") or DEFAULT_TOKEN_URL),
            grant_type=str(oauth_section.get("grant_type") or "client_credentials"),
            scope=str(oauth_section.get("scope") or "eclipsefdn_view_all_profiles"),
            api_base_url=str(api_section.get("base_url") or DEFAULT_API_BASE_URL),
            request_timeout_s=float(api_section.get("timeout_s", 5.0)),
            max_workers=int(api_section.get("max_workers", 8)),
            documentation_url=str(validation_section.get("documentation") or DEFAULT_DOCUMENTATION),
            mode=str(validation_section.get("mode") or "local"),
            provider=str(validation_section.get("provider") or "gerrit"),
            strict_mode=bool(validation_section.get("strict_mode", False)),
            directory=DirectoryConfig(committers=committers, accounts=accounts),
        )


def load_gate_config(path: Optional[Path] = None) -> GateConfig:
    """Load configuration from defaults, the YAML file and the environment."""

    base = _default_mapping()
    file_mapping = _load_yaml_config(path)
    if file_mapping:
        base = _deep_merge(base, file_mapping)
    base = _apply_env_overrides(base)
    try:
        return GateConfig.from_mapping(base)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration value: {exc}") from exc


def validate_gate_config(config: GateConfig) -> GateConfig:
    problems: List[str] = []
    if not config.client_id:
        problems.append("oauth.client_id is required")
    if not config.client_secret:
        problems.append("oauth.client_secret is required")
    for name, value in (("oauth.token_url", config.token_url), ("api.base_url", config.api_base_url)):
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            problems.append(f"{name} must be an http(s) URL, got {value!r}")
    if config.request_timeout_s <= 0:
        problems.append("api.timeout_s must be positive")
    if config.max_workers <= 0:
        problems.append("api.max_workers must be positive")
    if config.mode not in MODES:
        problems.append(f"validation.mode must be one of {', '.join(MODES)}")
    if problems:
        raise ConfigurationError("; ".join(problems))
    return config


def _default_mapping() -> Dict[str, Any]:
    return {
        "oauth": {
            "token_url": DEFAULT_TOKEN_URL,
            "grant_type": "client_credentials",
            "scope": "eclipsefdn_view_all_profiles",
            "client_id": None,
            "client_secret": None,
        },
        "api": {"base_url": DEFAULT_API_BASE_URL, "timeout_s": 5.0, "max_workers": 8},
        "validation": {
            "mode": "local",
            "provider": "gerrit",
            "strict_mode": False,
            "documentation": DEFAULT_DOCUMENTATION,
        },
        "directory": {"committers": {}, "accounts": []},
    }


def _load_yaml_config(path: Optional[Path]) -> Dict[str, Any]:
    candidates: List[Path] = []
    if path is not None:
        if not path.exists():
            raise ConfigurationError(f"Configuration file {path} does not exist")
        candidates.append(path)
    else:
        path_env = os.environ.get(_CONFIG_ENV)
        if path_env:
            candidates.append(Path(path_env))
        candidates.append(Path.cwd() / _DEFAULT_CONFIG_FILE)
    for candidate in candidates:
        if not candidate.exists():
            continue
        try:
            content = candidate.read_text(encoding="utf-8")
        except OSError as exc:
            LOGGER.warning("Failed reading config %s: %s", candidate, exc)
            continue
        try:
            loaded = yaml.safe_load(content) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {candidate}: {exc}") from exc
        if isinstance(loaded, Mapping):
            LOGGER.debug("Loaded configuration from %s", candidate)
            return dict(loaded)
        LOGGER.warning("Ignoring config %s: top level is not a mapping", candidate)
    return {}


def _deep_merge(base: Dict[str, Any], updates: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in updates.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            base[key] = _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _apply_env_overrides(mapping: Dict[str, Any]) -> Dict[str, Any]:
    for env_name, (path, converter) in _ENVIRONMENT_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None:
            continue
        try:
            value = converter(raw)
        except ValueError:
            LOGGER.warning("Invalid value for %s: %s", env_name, raw)
            continue
        _assign_mapping_value(mapping, path, value)
    return mapping


def _assign_mapping_value(mapping: Dict[str, Any], path: Sequence[str], value: Any) -> None:
    target = mapping
    for key in path[:-1]:
        current = target.get(key)
        if not isinstance(current, dict):
            current = {}
            target[key] = current
        target = current
    target[path[-1]] = value


def _as_mapping(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def _as_sequence(value: Any) -> Tuple[Any, ...]:
    if isinstance(value, (list, tuple, set)):
        return tuple(value)
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    return tuple()


def _to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on", "enabled"}:
        return True
    if lowered in {"0", "false", "no", "off", "disabled"}:
        return False
    raise ValueError(value)


def _to_str(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(value)
    return stripped


def _to_int(value: str) -> int:
    return int(value, 10)


def _to_float(value: str) -> float:
    return float(value)


_ENVIRONMENT_OVERRIDES: Dict[str, Tuple[Tuple[str, ...], Any]] = {
    "ECAGATE_CLIENT_ID": (("oauth", "client_id"), _to_str),
    "ECAGATE_CLIENT_SECRET": (("oauth", "client_secret"), _to_str),
    "ECAGATE_TOKEN_URL": (("oauth", "token_url"), _to_str),
    "ECAGATE_GRANT_TYPE": (("oauth", "grant_type"), _to_str),
    "ECAGATE_SCOPE": (("oauth", "scope"), _to_str),
    "ECAGATE_API_BASE_URL": (("api", "base_url"), _to_str),
    "ECAGATE_REQUEST_TIMEOUT_S": (("api", "timeout_s"), _to_float),
    "ECAGATE_MAX_WORKERS": (("api", "max_workers"), _to_int),
    "ECAGATE_MODE": (("validation", "mode"), _to_str),
    "ECAGATE_STRICT_MODE": (("validation", "strict_mode"), _to_bool),
}
