"""
Loader settings: config.yaml next to this module, overridden per key by
environment variables (.env is read by main.py before Config is built).
"""

import os
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import yaml


def _to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ('1', 'true', 'yes', 'on'):
        return True
    if lowered in ('0', 'false', 'no', 'off'):
        return False
    raise ValueError(f"not a boolean: {value!r}")


# env var -> (section, key, converter). Each override is typed by what it feeds:
# URLs, keys and header values stay strings.
ENV_OVERRIDES: Dict[str, Tuple[str, str, Callable[[str], Any]]] = {
    'LOADER_SOURCE_URL': ('source', 'url', str),
    'LOADER_ITEMS_KEY': ('source', 'items_key', str),
    'LOADER_TOTAL_KEY': ('source', 'total_key', str),
    'FETCHER_USER_AGENT': ('fetcher', 'user_agent', str),
    'FETCHER_TIMEOUT': ('fetcher', 'timeout', float),
    'FETCHER_MAX_REDIRECTS': ('fetcher', 'max_redirects', int),
    'FETCHER_MAX_RESPONSE_SIZE': ('fetcher', 'max_response_size', int),
    'FALLBACK_ENABLED': ('fallback', 'enabled', _to_bool),
    'REFRESH_INTERVAL': ('consumer', 'refresh_interval', float),
    'LOG_LEVEL': ('logging', 'level', str),
    'LOG_RENDERER': ('logging', 'renderer', str),
}


class Config:
    """Sectioned loader settings."""

    def __init__(self, config_path: str = None, environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            config_path: YAML file to read. Defaults to the config.yaml shipped
                         beside this module.
            environ: Environment to take overrides from. Defaults to os.environ.
        """
        if config_path is None:
            config_path = Path(__file__).parent / "config.yaml"

        self.config_path = Path(config_path)
        self._sections = self._read_file()
        self._apply_overrides(os.environ if environ is None else environ)

    def _read_file(self) -> Dict[str, Dict[str, Any]]:
        try:
            with open(self.config_path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")

        for name, section in data.items():
            if section is None:
                data[name] = {}
            elif not isinstance(section, dict):
                raise ValueError(f"Configuration section '{name}' must be a mapping")

        return data

    def _apply_overrides(self, environ: Mapping[str, str]):
        for env_var, (section, key, convert) in ENV_OVERRIDES.items():
            raw = environ.get(env_var)
            if raw is None:
                continue
            try:
                value = convert(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {env_var}: {e}")
            self._sections.setdefault(section, {})[key] = value

    def section(self, name: str) -> Dict[str, Any]:
        """Copy of one config section; empty when the file has none."""
        return dict(self._sections.get(name, {}))

    @property
    def source(self) -> Dict[str, Any]:
        """Remote collection endpoint and payload keys."""
        return self.section('source')

    @property
    def fetcher(self) -> Dict[str, Any]:
        """HTTP client settings."""
        return self.section('fetcher')

    @property
    def fallback(self) -> Dict[str, Any]:
        """Degraded-mode substitute data."""
        return self.section('fallback')

    @property
    def consumer(self) -> Dict[str, Any]:
        """Console consumer settings (refresh interval)."""
        return self.section('consumer')

    @property
    def logging(self) -> Dict[str, Any]:
        """Log level and renderer."""
        return self.section('logging')
