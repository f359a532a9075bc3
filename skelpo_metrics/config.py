"""Configuration models using Pydantic for validation."""
from typing import Optional, Literal
from pydantic import BaseModel, Field, ValidationError, field_validator
import os

from skelpo_metrics.errors import ConfigError

URL_ENV = "SKELPO_METRICS_URL"
KEY_ENV = "SKELPO_METRICS_KEY"


class ClientConfig(BaseModel):
    """Remote metrics API endpoint and credentials."""
    url: str
    key: str
    timeout_s: float = 10.0
    max_workers: int = 4

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        """Strip trailing slashes so paths can be appended."""
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("url must not be empty")
        return v

    @field_validator('key')
    @classmethod
    def validate_key(cls, v):
        if not v:
            raise ValueError("key must not be empty")
        return v

    @field_validator('timeout_s', 'max_workers')
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("must be positive")
        return v


class SelfMetricsConfig(BaseModel):
    """Self-monitoring of the reporting pipeline."""
    enabled: bool = True
    serve: bool = False
    port: int = 9464
    bind_address: str = "0.0.0.0"
    prefix: str = "skelpo_"


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"


class Config(BaseModel):
    """Root configuration model."""
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    client: ClientConfig
    self_metrics: SelfMetricsConfig = Field(default_factory=SelfMetricsConfig)

    model_config = {"populate_by_name": True}


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load and validate configuration.

    The YAML file is optional; ``SKELPO_METRICS_URL``, ``SKELPO_METRICS_KEY``
    and ``LOG_LEVEL`` override whatever it contains.

    Raises:
        FileNotFoundError: ``config_path`` was given but does not exist
        ConfigError: url or key is missing, or validation failed
    """
    import yaml

    raw_config = {}
    if config_path is not None:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    client = raw_config['client'] = dict(raw_config.get('client') or {})
    if env_url := os.getenv(URL_ENV):
        client['url'] = env_url
    if env_key := os.getenv(KEY_ENV):
        client['key'] = env_key

    if env_log_level := os.getenv('LOG_LEVEL'):
        raw_config['global'] = dict(raw_config.get('global') or {}, log_level=env_log_level)

    if not client.get('url'):
        raise ConfigError(f"Could not get value for `{URL_ENV}` env var", identifier="missingEnvVar")
    if not client.get('key'):
        raise ConfigError(f"Could not get value for `{KEY_ENV}` env var", identifier="missingEnvVar")

    try:
        return Config(**raw_config)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed: {e}")
