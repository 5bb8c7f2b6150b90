"""Configuration management and validation service."""

import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_NETWORKS_URL = (
    "https://raw.githubusercontent.com/superfluid-finance/protocol-monorepo/"
    "dev/packages/metadata/networks.json"
)
DEFAULT_SUBGRAPH_URL_TEMPLATE = "https://{network}.subgraph.x.superfluid.dev"
DEFAULT_COINGECKO_BASE_URL = "https://pro-api.coingecko.com/api/v3"

# Wrapped-native symbols that CoinGecko lists under a different ticker
DEFAULT_SYMBOL_OVERRIDES = {
    "xDAI": "DAI",
    "MATIC": "POL",
}


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    path: str
    message: str


class ConfigValidationException(Exception):
    """Raised when config validation fails."""

    def __init__(self, errors: List[ConfigValidationError]):
        self.errors = errors
        messages = [f"{e.path}: {e.message}" for e in errors]
        super().__init__("Configuration validation failed:\n" + "\n".join(messages))


@dataclass
class Settings:
    """Resolved runtime settings."""
    coingecko_api_key: str
    host: str = "0.0.0.0"
    port: int = 3000
    update_interval_seconds: int = 3600
    request_timeout_seconds: float = 30.0
    snapshot_path: str = "data/token_prices.json"
    coingecko_base_url: str = DEFAULT_COINGECKO_BASE_URL
    vs_currency: str = "usd"
    symbol_overrides: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_SYMBOL_OVERRIDES)
    )
    networks_url: str = DEFAULT_NETWORKS_URL
    subgraph_url_template: str = DEFAULT_SUBGRAPH_URL_TEMPLATE
    debug: bool = False
    log_level: str = "INFO"
    log_format: Optional[str] = None


# Schema type names -> accepted Python types. "mapping" is a str -> str dict.
SCHEMA_TYPES = {
    "str": str,
    "int": int,
    "float": (int, float),
    "bool": bool,
    "dict": dict,
    "mapping": dict,
}

CONFIG_SCHEMA = {
    "server": {
        "type": "dict",
        "required": False,
        "properties": {
            "host": {"type": "str", "required": False},
            "port": {"type": "int", "required": False, "min": 1, "max": 65535},
            "debug": {"type": "bool", "required": False},
        }
    },
    "refresh": {
        "type": "dict",
        "required": False,
        "properties": {
            "interval_seconds": {"type": "int", "required": False, "min": 1},
            "request_timeout_seconds": {"type": "float", "required": False, "min": 1},
            "snapshot_path": {"type": "str", "required": False},
        }
    },
    "coingecko": {
        "type": "dict",
        "required": False,
        "properties": {
            "base_url": {"type": "str", "required": False, "url": True},
            "api_key": {"type": "str", "required": False},
            "vs_currency": {"type": "str", "required": False},
            "symbol_overrides": {"type": "mapping", "required": False},
        }
    },
    "sources": {
        "type": "dict",
        "required": False,
        "properties": {
            "networks_url": {"type": "str", "required": False, "url": True},
            "subgraph_url_template": {"type": "str", "required": False, "url": True, "placeholder": "{network}"},
        }
    },
    "logging": {
        "type": "dict",
        "required": False,
        "properties": {
            "level": {"type": "str", "required": False, "options": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
            "format": {"type": "str", "required": False},
        }
    },
}

# Environment variable -> (dot-notation config key, converter)
ENV_OVERRIDES = {
    "PORT": ("server.port", int),
    "UPDATE_INTERVAL": ("refresh.interval_seconds", int),
    "COINGECKO_BASE_URL": ("coingecko.base_url", str),
    "COINGECKO_API_KEY": ("coingecko.api_key", str),
    "DEBUG": ("server.debug", lambda v: v.strip().lower() not in ("", "0", "false", "no")),
}


class ConfigService:
    """Service for loading and validating configuration."""

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        """Initialize config service.

        Args:
            config_path: Path to config file. If None, uses CONFIG_PATH or the default location.
            environ: Environment mapping. If None, uses os.environ after loading .env.
        """
        if environ is None:
            load_dotenv()
            environ = dict(os.environ)

        if config_path is None:
            config_path = environ.get("CONFIG_PATH")
        if config_path is None:
            # Default config path relative to backend directory
            backend_dir = Path(__file__).parent.parent.parent
            config_path = str(backend_dir / "config.yaml")

        self.config_path = config_path
        self.environ = environ
        self._config: Dict[str, Any] = {}

    def load_and_validate(self) -> Dict[str, Any]:
        """Load and validate the configuration file, then apply env overrides.

        Returns:
            Validated configuration dictionary.

        Raises:
            ConfigValidationException: If validation fails.
        """
        errors: List[ConfigValidationError] = []

        config: Any = {}
        if not os.path.exists(self.config_path):
            logger.info(f"Config file not found at {self.config_path}, using defaults")
        else:
            try:
                with open(self.config_path, 'r') as f:
                    config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                errors.append(ConfigValidationError(
                    path="",
                    message=f"Invalid YAML syntax: {str(e)}"
                ))
                raise ConfigValidationException(errors)

        if config is None:
            config = {}

        if not isinstance(config, dict):
            errors.append(ConfigValidationError(
                path="",
                message=f"Config must be a dictionary, got {type(config).__name__}"
            ))
            raise ConfigValidationException(errors)

        errors.extend(self._apply_env_overrides(config))

        # Validate against schema
        errors.extend(self._validate_dict(config, CONFIG_SCHEMA, ""))

        if errors:
            raise ConfigValidationException(errors)

        self._config = config
        logger.info(f"Configuration loaded and validated from {self.config_path}")
        return config

    def load_settings(self) -> Settings:
        """Load configuration and resolve it into Settings.

        Raises:
            ConfigValidationException: If validation fails or the API key is missing.
        """
        self.load_and_validate()

        api_key = self.get("coingecko.api_key")
        if not api_key:
            raise ConfigValidationException([ConfigValidationError(
                path="coingecko.api_key",
                message="COINGECKO_API_KEY is not set"
            )])

        symbol_overrides = dict(DEFAULT_SYMBOL_OVERRIDES)
        symbol_overrides.update(self.get("coingecko.symbol_overrides", {}))

        defaults = Settings(coingecko_api_key=api_key)
        debug = self.get("server.debug", False)
        return Settings(
            coingecko_api_key=api_key,
            host=self.get("server.host", defaults.host),
            port=self.get("server.port", defaults.port),
            update_interval_seconds=self.get("refresh.interval_seconds", defaults.update_interval_seconds),
            request_timeout_seconds=float(self.get("refresh.request_timeout_seconds", defaults.request_timeout_seconds)),
            snapshot_path=self.get("refresh.snapshot_path", defaults.snapshot_path),
            coingecko_base_url=self.get("coingecko.base_url", defaults.coingecko_base_url).rstrip("/"),
            vs_currency=self.get("coingecko.vs_currency", defaults.vs_currency),
            symbol_overrides=symbol_overrides,
            networks_url=self.get("sources.networks_url", defaults.networks_url),
            subgraph_url_template=self.get("sources.subgraph_url_template", defaults.subgraph_url_template),
            debug=debug,
            log_level="DEBUG" if debug else self.get("logging.level", defaults.log_level),
            log_format=self.get("logging.format"),
        )

    def _apply_env_overrides(self, config: Dict[str, Any]) -> List[ConfigValidationError]:
        """Overlay environment variables onto the file config in place."""
        errors = []
        for env_name, (key, convert) in ENV_OVERRIDES.items():
            raw = self.environ.get(env_name)
            if raw is None or raw == "":
                continue
            try:
                value = convert(raw)
            except ValueError:
                errors.append(ConfigValidationError(
                    path=env_name,
                    message=f"Invalid value '{raw}'"
                ))
                continue

            section, name = key.split(".")
            target = config.setdefault(section, {})
            if not isinstance(target, dict):
                # Reported by schema validation
                continue
            target[name] = value
        return errors

    def _validate_dict(
        self,
        data: Dict[str, Any],
        schema: Dict[str, Any],
        path: str
    ) -> List[ConfigValidationError]:
        """Check one config section: unknown keys, required keys, then each value."""
        errors = [
            ConfigValidationError(path=_join(path, key), message=f"Unknown configuration key '{key}'")
            for key in data
            if key not in schema
        ]

        for key, prop_schema in schema.items():
            if key in data:
                errors.extend(self._validate_value(data[key], prop_schema, _join(path, key)))
            elif prop_schema.get("required", False):
                errors.append(ConfigValidationError(path=_join(path, key), message="Required field missing"))

        return errors

    def _validate_value(
        self,
        value: Any,
        schema: Dict[str, Any],
        path: str
    ) -> List[ConfigValidationError]:
        expected_type = schema.get("type")
        if expected_type not in SCHEMA_TYPES:
            return []

        if not _is_type(value, expected_type):
            return [ConfigValidationError(
                path=path,
                message=f"Expected {expected_type}, got {type(value).__name__}"
            )]

        if expected_type == "dict":
            return self._validate_dict(value, schema["properties"], path) if "properties" in schema else []
        if expected_type == "mapping":
            return [
                ConfigValidationError(
                    path=_join(path, str(k)),
                    message=f"Expected str -> str, got {type(k).__name__} -> {type(v).__name__}"
                )
                for k, v in value.items()
                if not isinstance(k, str) or not isinstance(v, str) or not v
            ]

        errors = []
        if "min" in schema and value < schema["min"]:
            errors.append(ConfigValidationError(path=path, message=f"Value {value} is below minimum {schema['min']}"))
        if "max" in schema and value > schema["max"]:
            errors.append(ConfigValidationError(path=path, message=f"Value {value} is above maximum {schema['max']}"))
        if "options" in schema and value not in schema["options"]:
            errors.append(ConfigValidationError(
                path=path,
                message=f"Value '{value}' not in allowed options: {schema['options']}"
            ))
        if schema.get("url") and not value.startswith(("http://", "https://")):
            errors.append(ConfigValidationError(path=path, message=f"'{value}' is not an http(s) URL"))
        if "placeholder" in schema and schema["placeholder"] not in value:
            errors.append(ConfigValidationError(
                path=path,
                message=f"'{value}' must contain the {schema['placeholder']} placeholder"
            ))
        return errors

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dot-notation key such as "coingecko.base_url"."""
        value: Any = self._config
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _is_type(value: Any, expected_type: str) -> bool:
    # bool is an int subclass
    if expected_type in ("int", "float") and isinstance(value, bool):
        return False
    return isinstance(value, SCHEMA_TYPES[expected_type])
