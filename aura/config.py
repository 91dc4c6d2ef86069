"""Configuration management for Aura."""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Paths
DEFAULT_CONFIG_PATH = Path("~/.aura/config.yaml").expanduser()
LOCAL_CONFIG_FILENAME = "config.yaml"

DEFAULT_SYSTEM_PROMPT = """You are Aura, an advanced AI system control interface.
Capabilities:
- mute: Mute/Unmute audio.
- lock: Lock workstation.
- clean_desktop: Move all files from Desktop to Documents/DesktopArchive.
- dark_mode: Enable Dark Mode.

Rules:
1. Be extremely concise.
2. If the user wants to perform an action, output the JSON object for that tool on a new line. Format: {"tool": "TOOL_NAME"}.
3. If asked 'what can you do?', list your capabilities.
4. If just chatting, be brief.
5. If the user greets you, reply simply (e.g., 'Ready.')."""


class ModelConfig(BaseModel):
    """Responder model configuration."""

    provider: str = "ollama"
    model: str = "qwen2.5:0.5b"
    base_url: str = "http://127.0.0.1:11434"
    temperature: float = 0.7
    max_tokens: int = 4096
    timeout: float = 120.0
    api_key: str = ""
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    # Offer registered tools to the model as native function definitions.
    native_tools: bool = False


class ToolsConfig(BaseModel):
    """Executor and confirmation gate configuration."""

    enabled: list[str] = [
        "mute",
        "lock",
        "clean_desktop",
        "dark_mode",
    ]
    # Seconds the "executed" acknowledgment stays visible.
    feedback_seconds: float = 3.0
    # Record fields that mark a finished reply as an action descriptor.
    action_fields: list[str] = ["tool"]


class UIConfig(BaseModel):
    """Terminal UI configuration."""

    streaming: bool = True
    bell: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    format: Literal["console", "json"] = "console"


class Config(BaseSettings):
    """Main configuration for Aura."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="AURA_",
        env_file=".env",
        env_nested_delimiter="__",
    )

    @classmethod
    def resolve_default_config_path(cls) -> Path:
        """Resolve default config path with local-first precedence."""
        local_path = Path.cwd() / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            return local_path
        return DEFAULT_CONFIG_PATH

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def load(cls) -> "Config":
        """Load configuration; environment variables are applied by BaseSettings."""
        return cls.from_yaml()

    def save(self, path: Path | str | None = None) -> None:
        """Save configuration to YAML file."""
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
