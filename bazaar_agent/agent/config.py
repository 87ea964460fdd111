"""
Configuration loader for the bazaar agent.

Reads an optional YAML config, injects connection secrets from environment
variables and validates the result.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..errors import ConfigError
from ..hypixel.bazaar import BAZAAR_URL, TIMEOUT

DEFAULT_CONFIG_PATH = "config.yaml"


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class UpstreamConfig(_Section):
    endpoint_url: str = BAZAAR_URL
    timeout_seconds: float = Field(default=TIMEOUT, gt=0)
    # Treat ``success: false`` as a failed fetch instead of processing it
    require_success: bool = False


class StoreConfig(_Section):
    connection_string: str = "mongodb://localhost:27017"
    app_name: str = "hypixel"
    database: str = "skyblock"
    records_collection: str = "bazaar"
    config_collection: str = "config"
    counter_field: str = "bazaarupdated"
    # Create the counter document on first bump instead of silently skipping
    bootstrap_counter: bool = True
    # Needs a replica set
    transactional: bool = False


class PollingConfig(_Section):
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    backoff_initial_seconds: float = Field(default=5.0, gt=0)
    backoff_max_seconds: float = Field(default=300.0, gt=0)

    @model_validator(mode="after")
    def _check_backoff(self) -> PollingConfig:
        if self.backoff_max_seconds < self.backoff_initial_seconds:
            raise ValueError("backoff_max_seconds must be >= backoff_initial_seconds")
        return self


class AgentConfig(_Section):
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)


def load_config(config_path: Optional[str] = None) -> AgentConfig:
    """
    Load configuration from YAML file.

    When ``config_path`` is omitted, ``config.yaml`` is read if it exists and
    defaults are used otherwise. MONGODB_URI and BAZAAR_ENDPOINT_URL from the
    environment (or a .env file) override the file.
    """
    load_dotenv()

    raw: dict = {}
    path = Path(config_path or DEFAULT_CONFIG_PATH)
    if config_path is not None or path.exists():
        try:
            with open(path, "r") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Config {path} must be a mapping at the top level")

    # Inject secrets from environment
    mongo_uri = os.getenv("MONGODB_URI")
    if mongo_uri:
        raw["store"] = {**(raw.get("store") or {}), "connection_string": mongo_uri}
    endpoint = os.getenv("BAZAAR_ENDPOINT_URL")
    if endpoint:
        raw["upstream"] = {**(raw.get("upstream") or {}), "endpoint_url": endpoint}

    try:
        return AgentConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e
