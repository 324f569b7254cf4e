"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from toolrelay.llm.models import LLMConfig


class LLMSettings(BaseSettings):
    """Remote completion endpoint configuration."""

    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of the OpenAI-compatible completion endpoint",
    )
    api_keys: list[str] = Field(
        default_factory=list,
        description="API keys rotated on every request. "
                    "Set via LLM__API_KEYS='[\"sk-a\",\"sk-b\"]'",
    )
    model: str = Field(default="gpt-3.5-turbo", description="Model identifier sent upstream")
    provider: str = Field(
        default="openai",
        description="LiteLLM provider used to route the request. 'openai' covers any "
                    "OpenAI-compatible endpoint reachable at base_url.",
    )
    temperature: float = Field(default=0.7, description="Sampling temperature")
    top_p: float = Field(default=1.0, description="Nucleus sampling mass")
    frequency_penalty: float = Field(default=0.2, description="Penalty for repeated tokens")
    presence_penalty: float = Field(default=0.0, description="Penalty for already-present topics")
    max_tokens: int = Field(default=2000, description="Maximum tokens in response")
    retries: int = Field(
        default=3,
        ge=0,
        description="Extra attempts after the first failed one (each on the next key)",
    )

    model_config = SettingsConfigDict(env_prefix="LLM_")

    def to_config(self) -> LLMConfig:
        """
        Build the immutable LLMConfig used by LLMClient.

        Raises:
            pydantic.ValidationError: If no API keys are configured
        """
        return LLMConfig(
            base_url=self.base_url,
            api_keys=self.api_keys,
            model=self.model,
            provider=self.provider,
            temperature=self.temperature,
            top_p=self.top_p,
            frequency_penalty=self.frequency_penalty,
            presence_penalty=self.presence_penalty,
            max_tokens=self.max_tokens,
        )


class ToolSettings(BaseSettings):
    """Tool-calling loop configuration."""

    prefix_char: str = Field(
        default="※",
        min_length=1,
        max_length=1,
        description="Marker character that starts a tool call in model output",
    )
    enabled: list[str] = Field(
        default_factory=list,
        description="Tool names exposed to the model. Empty means plain chat without tools. "
                    "Set via TOOLS__ENABLED='[\"roll_dice\",\"calculate\"]'",
    )
    max_tool_calls: int = Field(default=10, gt=0, description="Turn limit for one conversation")
    call_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Seconds to wait between turns, to avoid hammering the endpoint",
    )
    chain_format: Literal["XML", "markdown", "remove"] = Field(
        default="XML",
        description="How the tool-call chain is embedded in the final answer",
    )

    model_config = SettingsConfigDict(env_prefix="TOOLS_")


class ServerSettings(BaseSettings):
    """OpenAI-compatible HTTP server configuration."""

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=3000, description="Bind port")

    model_config = SettingsConfigDict(env_prefix="SERVER_")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    llm: LLMSettings = Field(default_factory=LLMSettings)
    tools: ToolSettings = Field(default_factory=ToolSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    global _settings
    if env_file:
        _settings = Settings(_env_file=env_file)
    else:
        _settings = Settings()
    return _settings
