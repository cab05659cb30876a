from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_TEMPERATURE,
)


class RedisConfig(BaseModel):
    """Connection settings for the Redis store."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    namespace: str = "threatflow:"


class StorageConfig(BaseModel):
    """Storage backend settings."""

    redis: RedisConfig = Field(default_factory=RedisConfig)


class LLMConfig(BaseModel):
    """Language model settings used by AI-backed steps."""

    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE


class HTTPConfig(BaseModel):
    """Outbound HTTP settings for feeds and webhooks."""

    timeout: float = DEFAULT_HTTP_TIMEOUT


class ThreatflowConfig(BaseModel):
    """Top-level configuration model."""

    database_url: Optional[str] = None
    storage: StorageConfig = Field(default_factory=StorageConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    http: HTTPConfig = Field(default_factory=HTTPConfig)
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> ThreatflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to THREATFLOW_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("THREATFLOW_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = ThreatflowConfig(**data)
    else:
        config = ThreatflowConfig()

    env_db_url = os.getenv("THREATFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url

    env_model = os.getenv("THREATFLOW_MODEL")
    if env_model:
        config.llm.model = env_model
    env_max_tokens = os.getenv("AI_MAX_TOKENS")
    if env_max_tokens:
        config.llm.max_tokens = int(env_max_tokens)
    env_temperature = os.getenv("AI_TEMPERATURE")
    if env_temperature:
        config.llm.temperature = float(env_temperature)
    return config
