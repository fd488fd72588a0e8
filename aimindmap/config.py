import json
import os
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .helpers import load_file

DEFAULT_ALLOWED_DOMAINS = ["mhlw.go.jp", "gov.jp", "jil.go.jp", "nenkin.go.jp", "nta.go.jp"]

_MISSING = object()


class Configuration(BaseModel):
    """Base model with dotted-path lookups: config.get("llm.default_profile")"""

    model_config = ConfigDict(extra="forbid")

    def get(self, key: str, default: Any = None) -> Any:
        value: Any = self
        for part in key.split("."):
            if isinstance(value, BaseModel):
                value = getattr(value, part, _MISSING)
            elif isinstance(value, dict):
                value = value.get(part, _MISSING)
            else:
                value = _MISSING
            if value is _MISSING:
                return default
        return default if value is None else value


class ProviderType(str, Enum):
    OPENAI = "openai"
    AZURE_OPENAI = "azure_openai"
    ANTHROPIC = "anthropic"


class ProviderConfig(Configuration):
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    api_version: Optional[str] = None


class LLMProfile(Configuration):
    type: ProviderType
    default_model: str
    options: Dict[str, Any] = Field(default_factory=dict)
    config: ProviderConfig = Field(default_factory=ProviderConfig)


class LLMConfig(Configuration):
    default_profile: Optional[str] = None
    summary_profile: Optional[str] = None
    ideas_profile: Optional[str] = None
    profiles: Dict[str, LLMProfile] = Field(default_factory=dict)


class StorageConfig(Configuration):
    # empty path: volatile, in-memory storage
    path: str = "~/.local/share/aimindmap/store.sqlite3"
    key: str = "aimindmap_data"


class LayoutConfig(Configuration):
    center_x: float = 400
    center_y: float = 300
    level_distance: float = 200
    level_increment: float = 50


class CompanyInfo(Configuration):
    name: str = "社会保険労務士事務所"
    email: str = "info@example.com"
    phone: str = "TEL: 03-1234-5678"
    address: Optional[str] = None
    logo: Optional[str] = None
    website: Optional[str] = None


class NewsletterConfig(Configuration):
    allowed_domains: List[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_DOMAINS))
    user_agent: str = "NewsLetterCreator/1.0 (Business Support Tool)"
    timeout: float = 15
    min_content_length: int = 100
    max_content_length: int = 10000
    summary_max_length: int = 1000
    tone: str = "professional"
    company: CompanyInfo = Field(default_factory=CompanyInfo)


class LoggingConfig(Configuration):
    loglevel: Union[int, str] = "INFO"


class Config(Configuration):
    llm: LLMConfig = Field(default_factory=LLMConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    newsletter: NewsletterConfig = Field(default_factory=NewsletterConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate the JSON config; missing file means all defaults"""
    if config_path is None:
        config_path = os.getenv("CONFIG_PATH", "./config.json")
    config = Config.model_validate(json.loads(load_file(config_path, default="{}")))

    allowed_domains = os.getenv("ALLOWED_DOMAINS")
    if allowed_domains:
        config.newsletter.allowed_domains = [
            domain.strip() for domain in allowed_domains.split(",") if domain.strip()
        ]
    return config
