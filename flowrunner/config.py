from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_CHAT_MODEL,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_MAX_STEPS,
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_TEMPERATURE,
)


class EngineConfig(BaseModel):
    """Limits applied by the step runner."""

    step_timeout: Optional[float] = None
    max_steps: Optional[int] = DEFAULT_MAX_STEPS


class HttpConfig(BaseModel):
    timeout: float = DEFAULT_HTTP_TIMEOUT


class SmsConfig(BaseModel):
    """Generic bearer-token SMS REST API."""

    api_url: str = "https://api.yoursmsservice.com/v1/messages"
    api_key: Optional[str] = None
    default_sender: Optional[str] = None


class LlmConfig(BaseModel):
    model: str = DEFAULT_CHAT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    system_prompt: str = DEFAULT_SYSTEM_PROMPT


class BotpressConfig(BaseModel):
    api_url: str = "https://api.botpress.cloud"
    api_token: Optional[str] = None


class FlowrunnerConfig(BaseModel):
    """Top-level configuration model."""

    database_url: Optional[str] = None
    engine: EngineConfig = Field(default_factory=EngineConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    sms: SmsConfig = Field(default_factory=SmsConfig)
    llm: LlmConfig = Field(default_factory=LlmConfig)
    botpress: BotpressConfig = Field(default_factory=BotpressConfig)


def load_config(path: Optional[str] = None) -> FlowrunnerConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FLOWRUNNER_CONFIG env
            variable or 'flowrunner.yaml' in the current directory.
    """

    config_path = path or os.getenv("FLOWRUNNER_CONFIG", "flowrunner.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = FlowrunnerConfig(**data)
    else:
        config = FlowrunnerConfig()

    env_db_url = os.getenv("FLOWRUNNER_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    if os.getenv("SMS_API_KEY"):
        config.sms.api_key = os.getenv("SMS_API_KEY")
    if os.getenv("SMS_DEFAULT_SENDER"):
        config.sms.default_sender = os.getenv("SMS_DEFAULT_SENDER")
    if os.getenv("BOTPRESS_API_TOKEN"):
        config.botpress.api_token = os.getenv("BOTPRESS_API_TOKEN")
    if os.getenv("BOTPRESS_API_URL"):
        config.botpress.api_url = os.getenv("BOTPRESS_API_URL")
    return config
