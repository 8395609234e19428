"""
Hierarchical configuration management.

Loads configuration from multiple sources with this precedence (highest wins):
    1. Environment variables (PREFIX_SECTION__KEY)
    2. Config file (YAML or JSON)
    3. Built-in defaults

Usage:
    config = Config(config_file="config/baitulmal.yaml")

    config.get("nisab.harta.threshold")     # dot-notation access
    config.get("funds.khairat.target")
    config.validated().nisab                # typed, validated view
"""

import json
import os
from typing import Any

import yaml

_DEFAULT_ENV_PREFIX = "BAITULMAL_"

# Nisab and rates as published for 2025 (RM / grams)
_DEFAULT_NISAB = {
    "harta": {"threshold": 14454, "rate": 0.025, "unit": "currency"},
    "perniagaan": {"threshold": 14454, "rate": 0.025, "unit": "currency"},
    "emas": {"threshold": 85, "rate": 0.025, "unit": "grams"},
    "perak": {"threshold": 595, "rate": 0.025, "unit": "grams"},
    "fitrah": {"threshold": 0, "rate": 7.0, "unit": "per_head"},
}

_DEFAULT_KHAIRAT_DOCUMENTS = [
    "death_certificate",
    "hospital_confirmation",
    "applicant_ic",
    "deceased_ic",
    "bank_statement",
]

_DEFAULT_ZAKAT_DOCUMENTS = [
    "applicant_ic",
    "income_statement",
]


class Config:
    """
    Central configuration manager.

    Loads and merges configuration from defaults, a config file, and
    environment variables. Env vars use double-underscore to denote nesting:
    BAITULMAL_FUNDS__KHAIRAT__TARGET=250000 -> config["funds"]["khairat"]["target"] = "250000"
    """

    def __init__(
        self,
        config_file: str | None = None,
        env_prefix: str = _DEFAULT_ENV_PREFIX,
        defaults: dict[str, Any] | None = None,
    ):
        """
        Args:
            config_file: Path to YAML or JSON configuration file.
            env_prefix: Prefix for environment variable overrides.
            defaults: Additional default values to merge (deployment-specific).
        """
        self.config_file = config_file
        self.env_prefix = env_prefix or ""
        self._extra_defaults = defaults or {}
        self.config_data: dict[str, Any] = {}

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from all sources."""
        self.config_data = self._get_default_config()

        if self._extra_defaults:
            self._update_dict(self.config_data, self._extra_defaults)

        if self.config_file and os.path.exists(self.config_file):
            file_config = self._load_file(self.config_file)
            self._update_dict(self.config_data, file_config)

        # Env vars override everything
        self._load_from_env()

    def _get_default_config(self) -> dict[str, Any]:
        """Build default configuration."""
        return {
            "nisab": json.loads(json.dumps(_DEFAULT_NISAB)),
            "funds": {
                "zakat": {"target": 200000},
                "khairat": {"target": 200000},
                "health_advisory_below": 50.0,
            },
            "khairat": {
                "default_benefit": 5000,
                "benefit_schedule": {},
                "required_documents": list(_DEFAULT_KHAIRAT_DOCUMENTS),
            },
            "zakat": {
                "required_documents": list(_DEFAULT_ZAKAT_DOCUMENTS),
            },
        }

    @staticmethod
    def _load_file(path: str) -> dict[str, Any]:
        """Load a YAML or JSON config file."""
        ext = os.path.splitext(path)[1].lower()
        with open(path) as f:
            if ext in (".yaml", ".yml"):
                return yaml.safe_load(f) or {}
            elif ext == ".json":
                return json.load(f)
        return {}

    def _update_dict(self, target: dict, source: dict) -> None:
        """Recursively merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._update_dict(target[key], value)
            else:
                target[key] = value

    def _load_from_env(self) -> None:
        """Override config values from environment variables."""
        if not self.env_prefix:
            return
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(self.env_prefix):
                continue
            config_key = env_key[len(self.env_prefix) :].lower()
            key_parts = config_key.split("__")

            current = self.config_data
            for part in key_parts[:-1]:
                if part not in current:
                    current[part] = {}
                current = current[part]
            current[key_parts[-1]] = env_value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a config value by dot-notation path.

        Args:
            key_path: e.g. "nisab.harta.threshold", "funds.khairat.target"
            default: Returned when key is not found.
        """
        parts = key_path.split(".")
        current = self.config_data
        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def set(self, key_path: str, value: Any) -> None:
        """Set a config value by dot-notation path, creating intermediate dicts."""
        parts = key_path.split(".")
        current = self.config_data
        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

    def validated(self):
        """Return a typed, validated view of the configuration.

        Raises:
            ConfigurationError: if any section fails schema validation.
        """
        from pydantic import ValidationError

        from .config_schema import BaitulmalConfig
        from .exceptions import ConfigurationError

        try:
            return BaitulmalConfig.model_validate(self.config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
