"""Configuration schema using Pydantic."""

import json
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from wabridge.utils.helpers import normalize_sender_id, parse_csv_values

DEFAULT_TASKS_PROMPT = "List all tasks from data/tasks.json with their status. Be concise."


class WhatsAppConfig(BaseModel):
    """WhatsApp channel configuration."""
    bridge_url: str = "ws://127.0.0.1:3001"
    bridge_auth_token: str = ""
    allow_from: Annotated[list[str], NoDecode] = Field(default_factory=list)  # Allowed phone numbers

    @field_validator("allow_from", mode="before")
    @classmethod
    def normalize_allow_from(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                value = json.loads(text)
            else:
                return parse_csv_values(text)
        if isinstance(value, (list, tuple, set, frozenset)):
            return [v for v in (normalize_sender_id(str(item)) for item in value) if v]
        return value


class ChannelsConfig(BaseModel):
    """Configuration for chat channels."""
    whatsapp: WhatsAppConfig = Field(default_factory=WhatsAppConfig)


class AssistantConfig(BaseModel):
    """Assistant CLI invocation settings."""
    command: str = "claude"
    max_turns: int = Field(default=3, ge=1)
    timeout_seconds: float = Field(default=300, gt=0)
    work_dir: str = ".."
    tasks_prompt: str = DEFAULT_TASKS_PROMPT


class RepliesConfig(BaseModel):
    """Reply chunking settings."""
    max_length: int = Field(default=4000, ge=1)  # WhatsApp truncates far beyond this
    chunk_delay_ms: int = Field(default=500, ge=0)


class Config(BaseSettings):
    """Root configuration for wabridge."""

    model_config = SettingsConfigDict(
        env_prefix="WA_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)
    replies: RepliesConfig = Field(default_factory=RepliesConfig)
    log_level: str = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: Any) -> str:
        text = str(value or "").strip().upper()
        return text or "INFO"

    @property
    def work_path(self) -> Path:
        """Working directory for assistant runs, resolved against the process cwd."""
        return Path(self.assistant.work_dir).expanduser().resolve()

    @property
    def allowed_senders(self) -> frozenset[str]:
        """Immutable allow-list of sender identities. Empty means reject all."""
        return frozenset(self.channels.whatsapp.allow_from)

    @property
    def chunk_delay_s(self) -> float:
        return self.replies.chunk_delay_ms / 1000.0
