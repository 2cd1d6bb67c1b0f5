# config.py
# Description: Configuration management for the media_catalog package.
#
# Imports
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional
#
# Third-Party Imports
import toml
from loguru import logger
#
# Local Imports
#
#######################################################################################################################
#
# Functions:

# --- Default Configuration ---
# Used as-is when the config file is missing or unreadable
DEFAULT_CONFIG = {
    "general": {"log_level": "INFO"},
    "logging": {
        "log_filename": "media_catalog.log",
        "file_log_level": "DEBUG",
        "log_rotation": "10 MB",
        "log_retention": 5,
    },
    "storage": {
        "backend": "json",  # memory | json | sqlite
        "path": "~/.local/share/media_catalog/catalog_storage.json",
        "storage_key": "media_catalog_v2",
        "sync_queue_key": "media_sync_queue",
    },
    "cache_shell": {
        "scope": "http://localhost:8000/",
        "cache_prefix": "media-catalog-v3-",
        "cache_dir": "",  # empty = in-memory caches
        "entry_page": "./index.html",
        "request_timeout": 30,
        "install_workers": 4,
        "denylisted_schemes": ["chrome-extension"],
        "extra_assets": [],
    },
}

CONFIG_PATH_ENV_VAR = "MEDIA_CATALOG_CONFIG_PATH"


def get_config_path() -> Path:
    """Determines the path to the configuration file."""
    # Priority: Environment variable > Default user location
    env_path = os.environ.get(CONFIG_PATH_ENV_VAR)
    if env_path:
        path = Path(env_path).expanduser().resolve()
        logger.debug(f"Using config path from {CONFIG_PATH_ENV_VAR}: {path}")
        return path

    default_path = Path.home() / ".config" / "media_catalog" / "config.toml"
    logger.debug(f"Using default config path: {default_path}")
    return default_path


# Loaded config is cached here after the first load
_APP_CONFIG: Optional[Dict[str, Any]] = None


def _copy_defaults() -> Dict[str, Any]:
    return {
        section: {k: (list(v) if isinstance(v, list) else v) for k, v in values.items()}
        for section, values in DEFAULT_CONFIG.items()
    }


def load_config(config_path: Optional[Path] = None, *, create_default: bool = True) -> Dict[str, Any]:
    """
    Loads configuration from the TOML file and merges it over the defaults.
    Writes a default config file when none exists and `create_default` is set.
    The result is cached until `reset_config()` is called.
    """
    global _APP_CONFIG
    if _APP_CONFIG is not None:
        return _APP_CONFIG

    if config_path is None:
        config_path = get_config_path()

    config = _copy_defaults()

    try:
        if config_path.exists():
            try:
                with open(config_path, "rb") as f:
                    user_config = tomllib.load(f)

                # One-level deep merge of user sections into defaults
                for section, section_config in user_config.items():
                    if section in config and isinstance(section_config, dict):
                        config[section].update(section_config)
                    else:
                        config[section] = section_config
                logger.info(f"Loaded configuration from {config_path}")
            except tomllib.TOMLDecodeError as e:
                logger.error(f"Error decoding TOML file {config_path}: {e}")
                logger.warning("Using default configuration values due to TOML error.")
        elif create_default:
            logger.warning(f"Config file not found at {config_path}. Creating default config.")
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w", encoding="utf-8") as f:
                toml.dump(DEFAULT_CONFIG, f)
            logger.info(f"Created default configuration file at: {config_path}")
    except OSError as e:
        logger.error(f"OS error accessing config file {config_path}: {e}")
        logger.warning("Using default configuration values due to OS error.")

    _APP_CONFIG = config
    logger.debug(f"Configuration loaded: Sections={list(config.keys())}")
    return _APP_CONFIG


def reset_config() -> None:
    """Drops the cached configuration so the next access reloads it."""
    global _APP_CONFIG
    _APP_CONFIG = None

# --- Convenience Access Functions ---

def get_setting(section: str, key: str, default: Any = None) -> Any:
    """Gets a specific setting, returning a default if not found."""
    config = load_config()
    return config.get(section, {}).get(key, default)


def get_storage_path() -> Path:
    """Gets the resolved storage file path and makes sure its directory exists."""
    path_str = get_setting("storage", "path", DEFAULT_CONFIG["storage"]["path"])
    storage_path = Path(path_str).expanduser().resolve()
    storage_path.parent.mkdir(parents=True, exist_ok=True)
    return storage_path


def get_log_file_path() -> Path:
    """Gets the log file path, placed next to the storage file."""
    log_filename = get_setting("logging", "log_filename", DEFAULT_CONFIG["logging"]["log_filename"])
    return get_storage_path().parent / log_filename


@dataclass
class CacheShellSettings:
    """Settings for the offline cache shell."""
    scope: str = DEFAULT_CONFIG["cache_shell"]["scope"]
    cache_prefix: str = DEFAULT_CONFIG["cache_shell"]["cache_prefix"]
    cache_dir: Optional[Path] = None
    entry_page: str = DEFAULT_CONFIG["cache_shell"]["entry_page"]
    request_timeout: float = DEFAULT_CONFIG["cache_shell"]["request_timeout"]
    install_workers: int = DEFAULT_CONFIG["cache_shell"]["install_workers"]
    denylisted_schemes: List[str] = field(default_factory=lambda: ["chrome-extension"])
    extra_assets: List[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "CacheShellSettings":
        section = (config if config is not None else load_config()).get("cache_shell", {})
        cache_dir = section.get("cache_dir") or None
        return cls(
            scope=section.get("scope", cls.scope),
            cache_prefix=section.get("cache_prefix", cls.cache_prefix),
            cache_dir=Path(cache_dir).expanduser() if cache_dir else None,
            entry_page=section.get("entry_page", cls.entry_page),
            request_timeout=float(section.get("request_timeout", cls.request_timeout)),
            install_workers=max(int(section.get("install_workers", cls.install_workers)), 1),
            denylisted_schemes=list(section.get("denylisted_schemes", ["chrome-extension"])),
            extra_assets=list(section.get("extra_assets", [])),
        )

#
# End of config.py
#######################################################################################################################
