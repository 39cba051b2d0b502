"""
Config system - Layered typed configuration.

Sources, later overriding earlier:
defaults > paspages.yaml > .env file > environment variables > overrides
"""

from dataclasses import dataclass, field, fields, MISSING
from pathlib import Path
from typing import Any, Dict, List, Optional, get_args, get_origin
import json
import os

import yaml
from dotenv import dotenv_values

from .faults import ConfigInvalidFault


@dataclass
class CoreConfig:
    """Runtime configuration of a PasPages instance."""

    environment: str = "development"
    database_url: str = "sqlite:///paspages.db"

    # Emergency access for /admin/setup; setup is refused while unset
    master_key: Optional[str] = None
    app_secret: Optional[str] = None

    default_locale: str = "en"
    locales: List[str] = field(default_factory=lambda: ["en", "id"])
    cors_origin: str = "*"

    default_theme: str = "default"
    blog_index_path: str = "/blog"

    assets_dir: Optional[str] = None
    storage_dir: str = "uploads"

    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > YAML file > defaults
    """

    def __init__(self, env_prefix: str = "PASPAGES_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        env_prefix: str = "PASPAGES_",
        env_file: Optional[str] = ".env",
        overrides: Optional[Dict[str, Any]] = None,
    ) -> CoreConfig:
        """
        Load configuration from all sources and build a CoreConfig.

        Args:
            path: YAML config file (defaults to ./paspages.yaml when present)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file (skipped when missing)
            overrides: Manual overrides (highest precedence)

        Returns:
            Validated CoreConfig instance
        """
        loader = cls(env_prefix=env_prefix)

        if path is None and Path("paspages.yaml").exists():
            path = "paspages.yaml"
        if path:
            loader._load_yaml_file(Path(path))

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader.config_data.update(overrides)

        return loader.build()

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        if not path.exists():
            raise ConfigInvalidFault(str(path), "config file does not exist")
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigInvalidFault(str(path), "top level must be a mapping")
        self.config_data.update(data)

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return
        for key, value in dotenv_values(env_path).items():
            if key.startswith(self.env_prefix) and value is not None:
                self._set_key(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_key(key, value)

    def _set_key(self, key: str, value: str):
        """PASPAGES_DATABASE_URL -> database_url"""
        self.config_data[key[len(self.env_prefix):].lower()] = value

    def build(self) -> CoreConfig:
        """Coerce merged data into a CoreConfig."""
        known = {f.name: f for f in fields(CoreConfig)}
        kwargs: Dict[str, Any] = {}

        for name, value in self.config_data.items():
            if name not in known:
                # Unknown keys are tolerated so that modules may read their own
                continue
            kwargs[name] = self._coerce(name, value, known[name].type)

        for name, f in known.items():
            if name in kwargs:
                continue
            if f.default is MISSING and f.default_factory is MISSING:
                raise ConfigInvalidFault(name, "required configuration key not provided")

        return CoreConfig(**kwargs)

    def _coerce(self, name: str, value: Any, expected: Any) -> Any:
        """Coerce string values from env/.env into the declared field type."""
        origin = get_origin(expected)

        if origin is list:
            if isinstance(value, list):
                return [str(v) for v in value]
            if isinstance(value, str):
                text = value.strip()
                if text.startswith("["):
                    try:
                        return [str(v) for v in json.loads(text)]
                    except json.JSONDecodeError as exc:
                        raise ConfigInvalidFault(name, f"invalid JSON list: {exc}") from exc
                return [part.strip() for part in text.split(",") if part.strip()]
            raise ConfigInvalidFault(name, f"expected a list, got {type(value).__name__}")

        # Optional[str] and str
        args = get_args(expected)
        if value is None:
            if type(None) in args:
                return None
            raise ConfigInvalidFault(name, "value may not be null")
        if isinstance(value, (dict, list)):
            raise ConfigInvalidFault(name, f"expected a string, got {type(value).__name__}")
        return str(value)


def load_config(**kwargs) -> CoreConfig:
    """Shortcut for ``ConfigLoader.load``."""
    return ConfigLoader.load(**kwargs)
