"""Configuration management with Pydantic settings."""

import os
from typing import Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from pingboard.schemas.check import ProviderType
from pingboard.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_ENDPOINTS: Dict[ProviderType, str] = {
    ProviderType.OPENAI: "https://api.openai.com/v1/chat/completions",
    ProviderType.GEMINI: "https://generativelanguage.googleapis.com/v1beta",
    ProviderType.ANTHROPIC: "https://api.anthropic.com/v1/messages",
}

TRUE_VALUES = ("true", "1", "yes", "on")


class ProviderConfigError(ValueError):
    """Raised when a provider entry lacks required fields."""

    def __init__(self, provider_id: str, missing: List[str], masked_key: str = ""):
        self.provider_id = provider_id
        self.missing = missing
        self.masked_key = masked_key
        super().__init__(
            f"Provider {provider_id} is missing {'/'.join(missing)}"
        )


class ProviderConfig(BaseModel):
    """A monitored provider endpoint. Immutable once loaded."""
    id: str
    name: str
    type: ProviderType
    endpoint: str
    model: str
    credential: SecretStr

    model_config = ConfigDict(frozen=True)

    @property
    def masked_credential(self) -> str:
        return mask_key(self.credential.get_secret_value())


class PollingConfig(BaseModel):
    """Probe cadence and thresholds."""
    interval_seconds: int = 60
    timeout_seconds: float = 15.0
    degraded_threshold_ms: int = 6000
    max_concurrent: int = 20
    background: bool = True

    @field_validator('interval_seconds')
    @classmethod
    def interval_must_be_reasonable(cls, v):
        if v < 10:
            raise ValueError('interval_seconds must be at least 10 seconds')
        return v

    @field_validator('timeout_seconds')
    @classmethod
    def timeout_must_be_positive(cls, v):
        if v <= 0:
            raise ValueError('timeout_seconds must be positive')
        return v

    @field_validator('max_concurrent')
    @classmethod
    def max_concurrent_must_be_positive(cls, v):
        if v < 1:
            raise ValueError('max_concurrent must be at least 1')
        return v

    @property
    def interval_ms(self) -> int:
        return self.interval_seconds * 1000

    @property
    def interval_label(self) -> str:
        return format_interval_label(self.interval_seconds)


class HistoryConfig(BaseModel):
    """Retention of probe history."""
    window_minutes: int = 60
    max_points: int = 60

    @field_validator('window_minutes', 'max_points')
    @classmethod
    def must_be_positive(cls, v, info):
        if v < 1:
            raise ValueError(f'{info.field_name} must be at least 1')
        return v


class DatabaseConfig(BaseModel):
    """Database configuration."""
    url: str = "sqlite+aiosqlite:///./data/pingboard.db"
    pool_size: int = 5
    max_overflow: int = 10
    echo: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    format: str = "json"
    file: Optional[str] = None
    console: bool = True

    @field_validator('level')
    @classmethod
    def log_level_must_be_valid(cls, v):
        v = v.upper()
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v not in valid_levels:
            raise ValueError(f'log level must be one of {valid_levels}')
        return v


class PrometheusConfig(BaseModel):
    """Prometheus metrics configuration."""
    enabled: bool = True
    path: str = "/metrics"


class CORSConfig(BaseModel):
    """CORS configuration."""
    enabled: bool = True
    allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    allow_methods: List[str] = Field(default_factory=lambda: ["GET"])
    allow_headers: List[str] = Field(default_factory=lambda: ["*"])


class APIConfig(BaseModel):
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    cors: CORSConfig = Field(default_factory=CORSConfig)

    @field_validator('port')
    @classmethod
    def port_must_be_valid(cls, v):
        if not (1 <= v <= 65535):
            raise ValueError('port must be between 1 and 65535')
        return v


class Config(BaseModel):
    """Main configuration class."""
    providers: List[ProviderConfig] = Field(default_factory=list)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    prometheus: PrometheusConfig = Field(default_factory=PrometheusConfig)
    api: APIConfig = Field(default_factory=APIConfig)


def mask_key(key: Optional[str]) -> str:
    """Mask a credential, keeping a short prefix and suffix."""
    if not key:
        return ""
    if len(key) <= 4:
        return "****"
    return f"{key[:4]}****{key[-2:]}"


def format_interval_label(seconds: int) -> str:
    """Human readable poll interval, e.g. ``"1 minute"`` or ``"90 seconds"``."""
    if seconds >= 60 and seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds} second" if seconds == 1 else f"{seconds} seconds"


def normalize_type(value: Optional[str]) -> Optional[ProviderType]:
    """Map a raw type string onto a known provider family."""
    if not value:
        return None
    try:
        return ProviderType(value.strip().lower())
    except ValueError:
        return None


def parse_provider(provider_id: str, env: Mapping[str, str]) -> ProviderConfig:
    """
    Build one provider from ``CHECK_<ID>_*`` variables.

    Args:
        provider_id: Identifier as listed in ``CHECK_GROUPS``
        env: Environment mapping to read from

    Returns:
        ProviderConfig: The parsed provider

    Raises:
        ProviderConfigError: If TYPE, KEY or MODEL is missing or invalid
    """
    prefix = f"CHECK_{provider_id.upper()}_"

    def read(suffix: str) -> Optional[str]:
        value = env.get(prefix + suffix)
        return value.strip() if value and value.strip() else None

    provider_type = normalize_type(read("TYPE"))
    api_key = read("KEY")
    model = read("MODEL")

    missing = [
        field for field, value in (
            ("TYPE", provider_type), ("KEY", api_key), ("MODEL", model)
        ) if not value
    ]
    if missing:
        raise ProviderConfigError(provider_id, missing, mask_key(api_key))

    return ProviderConfig(
        id=provider_id,
        name=read("NAME") or provider_id,
        type=provider_type,
        endpoint=read("ENDPOINT") or DEFAULT_ENDPOINTS[provider_type],
        model=model,
        credential=SecretStr(api_key),
    )


def load_provider_configs(env: Optional[Mapping[str, str]] = None) -> List[ProviderConfig]:
    """
    Load the ordered provider list from ``CHECK_GROUPS``.

    Entries missing required fields are skipped with a warning; the rest
    are returned in the order they are listed.
    """
    env = os.environ if env is None else env
    group_ids = [item.strip() for item in env.get("CHECK_GROUPS", "").split(",")]

    providers: List[ProviderConfig] = []
    seen = set()
    for group_id in group_ids:
        if not group_id or group_id in seen:
            continue
        seen.add(group_id)
        try:
            providers.append(parse_provider(group_id, env))
        except ProviderConfigError as e:
            logger.warning(
                "Skipping provider with incomplete configuration",
                extra={
                    "provider_id": e.provider_id,
                    "missing": e.missing,
                    "key": e.masked_key,
                }
            )

    logger.info(
        "Loaded provider configuration",
        extra={"providers": [p.id for p in providers]}
    )
    return providers


def load_config(env: Optional[Mapping[str, str]] = None) -> Config:
    """
    Load configuration from YAML file and environment variables.

    Returns:
        Config: Loaded configuration

    Raises:
        FileNotFoundError: If the config file is required but missing
        ValueError: If the YAML or its values are invalid
    """
    env = os.environ if env is None else env

    app_env = env.get("APP_ENV", "development")
    config_path = env.get("CONFIG_PATH", "config/config.yaml")

    config_data = {}
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {config_path}: {e}")
    elif app_env != "development":
        raise FileNotFoundError(f"Config file not found: {config_path}")

    # Providers only come from the environment
    config_data.pop("providers", None)

    try:
        config = Config(**config_data)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")

    database_url = env.get("DATABASE_URL")
    if database_url:
        config.database.url = database_url

    log_level = env.get("LOG_LEVEL")
    if log_level:
        config.logging.level = log_level.upper()

    overrides = {
        "CHECK_POLL_INTERVAL_SECONDS": (config.polling, "interval_seconds"),
        "CHECK_HISTORY_WINDOW_MINUTES": (config.history, "window_minutes"),
        "CHECK_HISTORY_MAX_POINTS": (config.history, "max_points"),
    }
    for name, (section, field) in overrides.items():
        raw = env.get(name)
        if not raw:
            continue
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f"{name} must be an integer, got {raw!r}")
        # Re-validate through the model so the field validators apply
        data = section.model_dump()
        data[field] = value
        validated = type(section)(**data)
        setattr(section, field, getattr(validated, field))

    background = env.get("CHECK_BACKGROUND_POLLING")
    if background is not None:
        config.polling.background = background.lower() in TRUE_VALUES

    config.providers = load_provider_configs(env)
    return config
