"""Configuration management."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 3001
    http_port: int = 3002  # Voice token endpoint


class TimingConfig(BaseModel):
    """Game timers, in seconds."""

    turn_timeout: float = Field(default=60.0, gt=0)
    trick_end_delay: float = Field(default=2.0, ge=0)
    reconnection_timeout: float = Field(default=60.0, gt=0)


class VoiceConfig(BaseModel):
    """Voice channel credential settings."""

    app_id: str = ""
    app_certificate: str = ""
    token_ttl: int = 3600


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    show_hands: bool = False


class GameLogSettings(BaseModel):
    """JSONL game replay log settings."""

    enabled: bool = False
    output_path: str = "logs"


class Config(BaseModel):
    """Root configuration."""

    server: ServerConfig = ServerConfig()
    timing: TimingConfig = TimingConfig()
    voice: VoiceConfig = VoiceConfig()
    logging: LoggingConfig = LoggingConfig()
    game_log: GameLogSettings = GameLogSettings()


def load_config(path: Path | str | None = None) -> Config:
    """Load configuration from YAML file.

    Args:
        path: Path to config file. If None, uses default config.

    Returns:
        Config object.
    """
    if path is None:
        return Config()

    config_path = Path(path)
    if not config_path.exists():
        return Config()

    with open(config_path) as f:
        data = yaml.safe_load(f)

    return Config(**data) if data else Config()
