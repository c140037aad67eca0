import copy
import logging
import os
import sys
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Final, Mapping

import yaml

# Settings key holding the JSON-encoded timezone list.
SETTINGS_KEY: Final[str] = "timezones"
DEFAULT_TIMEZONE: Final[str] = "UTC"
TIME_PLACEHOLDER: Final[str] = "--:--"
TIME_FORMAT: Final[str] = "%H:%M"
TICK_INTERVAL_SECONDS: Final[int] = 60

AVATAR_BASE_URL: Final[str] = "https://gravatar.com/avatar/"
AVATAR_DEFAULT_IMAGE: Final[str] = "mp"
AVATAR_SIZE: Final[int] = 32
AVATAR_CLEANUP_DELAY_SECONDS: Final[int] = 60
AVATAR_TEMP_PREFIX: Final[str] = "tzpanel_avatar_"

PANEL_CONFIG_FILENAME: Final[str] = "config_panel.yaml"

# Curated zones offered by the preferences zone picker: (id, label).
COMMON_TIMEZONES: Final[tuple[tuple[str, str], ...]] = (
    ("UTC", "UTC"),
    ("America/New_York", "New York (ET)"),
    ("America/Chicago", "Chicago (CT)"),
    ("America/Denver", "Denver (MT)"),
    ("America/Los_Angeles", "Los Angeles (PT)"),
    ("America/Anchorage", "Anchorage (AKT)"),
    ("Pacific/Honolulu", "Honolulu (HT)"),
    ("Europe/London", "London (GMT/BST)"),
    ("Europe/Paris", "Paris (CET)"),
    ("Europe/Berlin", "Berlin (CET)"),
    ("Europe/Rome", "Rome (CET)"),
    ("Europe/Madrid", "Madrid (CET)"),
    ("Europe/Amsterdam", "Amsterdam (CET)"),
    ("Europe/Brussels", "Brussels (CET)"),
    ("Europe/Vienna", "Vienna (CET)"),
    ("Europe/Stockholm", "Stockholm (CET)"),
    ("Europe/Athens", "Athens (EET)"),
    ("Europe/Helsinki", "Helsinki (EET)"),
    ("Europe/Istanbul", "Istanbul (TRT)"),
    ("Europe/Moscow", "Moscow (MSK)"),
    ("Asia/Dubai", "Dubai (GST)"),
    ("Asia/Kolkata", "Kolkata (IST)"),
    ("Asia/Bangkok", "Bangkok (ICT)"),
    ("Asia/Singapore", "Singapore (SGT)"),
    ("Asia/Hong_Kong", "Hong Kong (HKT)"),
    ("Asia/Shanghai", "Shanghai (CST)"),
    ("Asia/Tokyo", "Tokyo (JST)"),
    ("Asia/Seoul", "Seoul (KST)"),
    ("Australia/Sydney", "Sydney (AEDT)"),
    ("Australia/Melbourne", "Melbourne (AEDT)"),
    ("Australia/Brisbane", "Brisbane (AEST)"),
    ("Australia/Perth", "Perth (AWST)"),
    ("Pacific/Auckland", "Auckland (NZDT)"),
)

DEFAULT_PANEL_CONFIG: Final[dict[str, Any]] = {
    "panel": {
        "tick_interval_seconds": TICK_INTERVAL_SECONDS,
        "time_format": TIME_FORMAT,
        "placeholder": TIME_PLACEHOLDER,
    },
    "avatar": {
        "enabled": True,
        "size": AVATAR_SIZE,
        "base_url": AVATAR_BASE_URL,
        "default_image": AVATAR_DEFAULT_IMAGE,
        "timeout": 10.0,
        "cleanup_delay_seconds": AVATAR_CLEANUP_DELAY_SECONDS,
        "max_workers": 2,
    },
    "logging": {
        "level": "INFO",
        "filename": "tzpanel.log",
    },
    "settings": {
        "filename": "settings.yaml",
    },
}


def get_config_base() -> Path:
    """Return the configuration directory path.

    Prefer a ``config`` directory alongside the executable; if missing,
    fall back to ``Path(__file__).resolve().parents[2] / "config"``.
    """
    exe_dir = Path(sys.argv[0]).resolve().parent
    candidate = exe_dir / "config"
    if candidate.exists():
        return candidate
    return Path(__file__).resolve().parents[2] / "config"


class Paths:
    """Project path constants"""
    if getattr(sys, "frozen", False):
        # sys.executable points into a temporary _MEI directory; use sys.argv[0] for the real executable path
        BASE_DIR: Final[str] = os.path.dirname(os.path.abspath(sys.argv[0]))
    else:
        BASE_DIR: Final[str] = str(Path(__file__).resolve().parents[2])
    CONFIG_DIR: Final[str] = str(get_config_base())
    LOG_DIR: Final[str] = os.path.join(BASE_DIR, "log")


def is_source_checkout(root: str | os.PathLike[str] | None = None) -> bool:
    """True when running from a repository checkout rather than an installed package."""
    base = Path(root) if root is not None else Path(__file__).resolve().parents[2]
    return (base / "pyproject.toml").is_file() and (base / "config").is_dir()


def _uses_bundled_dirs() -> bool:
    return bool(getattr(sys, "frozen", False)) or is_source_checkout()


def get_data_dir(user_dir: str | os.PathLike[str] | None = None) -> Path:
    """Return the writable directory for the settings file and panel config.

    Frozen builds and source checkouts keep using ``Paths.CONFIG_DIR``.  An
    installed package must not write next to its modules, so it uses
    *user_dir* (the platform's per-user config location) and falls back to
    ``~/.config/tzpanel``.
    """
    if _uses_bundled_dirs():
        return Path(Paths.CONFIG_DIR)
    if user_dir:
        return Path(user_dir)
    return Path.home() / ".config" / "tzpanel"


def get_log_dir(data_dir: str | os.PathLike[str]) -> Path:
    if _uses_bundled_dirs():
        return Path(Paths.LOG_DIR)
    return Path(data_dir) / "log"


def _read_yaml_dict(path: Path) -> dict[str, Any]:
    """Return mapping parsed from *path*, raising on malformed YAML."""
    if not path.exists():
        logging.debug("Config file %s does not exist; using empty mapping", path)
        return {}
    try:
        content = path.read_text(encoding="utf-8")
    except Exception as exc:  # pragma: no cover - file permission issues are environment-dependent
        raise RuntimeError(f"Failed to read config file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Failed to parse YAML file {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise RuntimeError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return dict(data)


def _write_yaml_dict(path: Path, payload: Mapping[str, Any]) -> None:
    """Persist *payload* into *path* as YAML in a single atomic replace."""
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp_path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(
                dict(payload or {}),
                handle,
                allow_unicode=True,
                sort_keys=False,
                default_flow_style=False,
            )
        os.replace(tmp_path, path)
    except Exception as exc:  # pragma: no cover - disk errors are environment-dependent
        raise RuntimeError(f"Failed to write config file {path}: {exc}") from exc


def _merge_defaults(defaults: Mapping[str, Any], loaded: Mapping[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(dict(defaults))
    for key, value in loaded.items():
        base = merged.get(key)
        if isinstance(base, Mapping) and isinstance(value, Mapping):
            merged[key] = _merge_defaults(base, value)
        else:
            merged[key] = value
    return merged


@lru_cache(maxsize=None)
def _load_config_cached(base_dir: str) -> dict[str, Any]:
    """Load the panel configuration from disk and overlay it on the defaults."""
    loaded = _read_yaml_dict(Path(base_dir) / PANEL_CONFIG_FILENAME)
    return _merge_defaults(DEFAULT_PANEL_CONFIG, loaded)


def load_config(
    refresh: bool = False,
    *,
    base_dir: str | os.PathLike[str] | None = None,
) -> dict[str, Any]:
    """Return a deep-copied panel configuration dictionary.

    Set ``refresh=True`` to discard the cached content and re-read from disk.
    """
    config_base = Path(base_dir) if base_dir is not None else Path(Paths.CONFIG_DIR)
    cache_key = str(config_base.resolve())
    if refresh:
        _load_config_cached.cache_clear()
    data = _load_config_cached(cache_key)
    return copy.deepcopy(data)


def save_config(
    config: Mapping[str, Any] | None,
    *,
    base_dir: str | os.PathLike[str] | None = None,
) -> None:
    """Persist the panel configuration dictionary."""
    config_base = Path(base_dir) if base_dir is not None else Path(Paths.CONFIG_DIR)
    _write_yaml_dict(config_base / PANEL_CONFIG_FILENAME, config or {})
    _load_config_cached.cache_clear()


@dataclass(frozen=True)
class AvatarSettings:
    """Typed view of the ``avatar`` section."""

    enabled: bool = True
    size: int = AVATAR_SIZE
    base_url: str = AVATAR_BASE_URL
    default_image: str = AVATAR_DEFAULT_IMAGE
    timeout: float = 10.0
    cleanup_delay_seconds: float = AVATAR_CLEANUP_DELAY_SECONDS
    max_workers: int = 2


def _coerce_truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def get_avatar_settings(
    *, config: Mapping[str, Any] | None = None, refresh: bool = False
) -> AvatarSettings:
    """Return the avatar settings parsed from configuration."""

    try:
        data = config if config is not None else load_config(refresh=refresh)
    except Exception:
        logging.debug("Failed to load config for avatar settings", exc_info=True)
        data = {}
    section = data.get("avatar") if isinstance(data, Mapping) else None
    if not isinstance(section, Mapping):
        return AvatarSettings()
    defaults = AvatarSettings()
    try:
        return AvatarSettings(
            enabled=_coerce_truthy(section.get("enabled", defaults.enabled)),
            size=int(section.get("size", defaults.size)),
            base_url=str(section.get("base_url") or defaults.base_url),
            default_image=str(section.get("default_image") or defaults.default_image),
            timeout=float(section.get("timeout", defaults.timeout)),
            cleanup_delay_seconds=float(
                section.get("cleanup_delay_seconds", defaults.cleanup_delay_seconds)
            ),
            max_workers=max(1, int(section.get("max_workers", defaults.max_workers))),
        )
    except (TypeError, ValueError):
        logging.warning("Invalid avatar section %s; using defaults", dict(section))
        return defaults


@dataclass(frozen=True)
class PanelSettings:
    """Typed view of the ``panel`` section."""

    tick_interval_seconds: int = TICK_INTERVAL_SECONDS
    time_format: str = TIME_FORMAT
    placeholder: str = TIME_PLACEHOLDER


def get_panel_settings(
    *, config: Mapping[str, Any] | None = None, refresh: bool = False
) -> PanelSettings:
    """Return the panel settings parsed from configuration."""

    try:
        data = config if config is not None else load_config(refresh=refresh)
    except Exception:
        logging.debug("Failed to load config for panel settings", exc_info=True)
        data = {}
    section = data.get("panel") if isinstance(data, Mapping) else None
    if not isinstance(section, Mapping):
        return PanelSettings()
    defaults = PanelSettings()
    try:
        interval = int(section.get("tick_interval_seconds", defaults.tick_interval_seconds))
    except (TypeError, ValueError):
        logging.warning("Invalid tick interval %r; using default", section.get("tick_interval_seconds"))
        interval = defaults.tick_interval_seconds
    return PanelSettings(
        tick_interval_seconds=max(1, interval),
        time_format=str(section.get("time_format") or defaults.time_format),
        placeholder=str(section.get("placeholder") or defaults.placeholder),
    )
