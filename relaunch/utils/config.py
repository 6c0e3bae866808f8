"""
Relaunch Configuration Module.

Centralizes all configuration settings using Pydantic Settings.
Requires Python 3.11+.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Load .env file into os.environ at module import time
# This ensures nested BaseSettings classes can read the values
load_dotenv()

WILDCARD = "*"


def _split_list(v: str | list[str] | None) -> list[str]:
    """Parse a comma-separated string or list into a list of strings."""
    if v is None:
        return []
    if isinstance(v, str):
        return [p.strip() for p in v.split(",") if p.strip()]
    return list(v)


def _split_args(v: str | list[str] | None) -> list[str]:
    """Parse whitespace-separated arguments or a list into a list of strings."""
    if v is None:
        return []
    if isinstance(v, str):
        return v.split()
    return list(v)


def normalize_extension(ext: str) -> str:
    """Normalize an extension pattern so that "go" and ".go" are equivalent."""
    ext = ext.strip()
    if ext == WILDCARD or ext.startswith("."):
        return ext
    return f".{ext}"


def default_artifact() -> Path:
    """Default output binary: named after the current directory, placed in it."""
    cwd = Path.cwd()
    return cwd / cwd.name


class WatchConfig(BaseModel):
    """
    Immutable watch/build/restart configuration.

    Constructed once at startup and passed to every component.
    """

    model_config = ConfigDict(frozen=True)

    extensions: list[str] = Field(default=[".go"])
    artifact: Path
    app_args: list[str] = Field(default_factory=list)
    build_command: str = Field(default="go", min_length=1)
    build_args: list[str] = Field(default_factory=list)
    cooldown: float = Field(default=1.0, ge=0.0, description="Seconds")
    delay: float = Field(default=0.0, ge=0.0, description="Seconds")
    paths: list[Path] = Field(default=[Path(".")])
    recursive: bool = True
    dedup: bool = True

    @field_validator("extensions", mode="before")
    @classmethod
    def parse_extensions(cls, v: str | list[str]) -> list[str]:
        """Parse extensions and add the leading dot where it is missing."""
        exts = [normalize_extension(e) for e in _split_list(v)]
        if not exts:
            raise ValueError("at least one extension pattern is required")
        return exts

    @field_validator("artifact")
    @classmethod
    def absolute_artifact(cls, v: Path) -> Path:
        return Path(os.path.abspath(v.expanduser()))

    @field_validator("app_args", "build_args", mode="before")
    @classmethod
    def parse_args(cls, v: str | list[str] | None) -> list[str]:
        return _split_args(v)

    @field_validator("paths", mode="before")
    @classmethod
    def parse_paths(cls, v: str | list[str | Path]) -> list[str | Path]:
        if isinstance(v, str):
            return _split_list(v)
        return v or [Path(".")]

    @property
    def watch_all(self) -> bool:
        """True when the wildcard pattern is configured."""
        return WILDCARD in self.extensions

    @property
    def build_argv(self) -> list[str]:
        """Full build command line.

        Falls back to ``<command> build -o <artifact>`` when no build
        arguments are configured.
        """
        args = self.build_args or ["build", "-o", str(self.artifact)]
        return [self.build_command, *args]


class WatchSettings(BaseSettings):
    """Watcher/builder settings read from the environment."""

    model_config = SettingsConfigDict(env_prefix="RELAUNCH_", extra="ignore")

    extensions: Annotated[list[str], NoDecode] = Field(default=[".go"])
    output: Path | None = Field(default=None, description="Artifact path")
    app_args: Annotated[list[str], NoDecode] = Field(default_factory=list)
    build_command: str = Field(default="go")
    build_args: Annotated[list[str], NoDecode] = Field(default_factory=list)
    cooldown: float = Field(default=1.0, ge=0.0)
    delay: float = Field(default=0.0, ge=0.0)
    paths: Annotated[list[Path], NoDecode] = Field(default=[Path(".")])
    recursive: bool = Field(default=True)
    dedup: bool = Field(default=True)

    @field_validator("extensions", "paths", mode="before")
    @classmethod
    def parse_comma_list(cls, v: str | list[str]) -> list[str]:
        """Parse from comma-separated string or list."""
        return _split_list(v)

    @field_validator("app_args", "build_args", mode="before")
    @classmethod
    def parse_arg_list(cls, v: str | list[str]) -> list[str]:
        """Parse from whitespace-separated string or list."""
        return _split_args(v)


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console")  # "json" or "console"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {v}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("json", "console"):
            raise ValueError("format must be 'json' or 'console'")
        return v


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="relaunch")
    app_version: str = Field(default="0.1.0")

    # Sub-settings
    watch: WatchSettings = Field(default_factory=WatchSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def to_watch_config(self, **overrides: Any) -> WatchConfig:
        """
        Build the immutable WatchConfig.

        Explicit overrides (typically CLI flags) win over environment
        values; ``None`` overrides are ignored.

        Raises:
            pydantic.ValidationError: If a value is invalid
        """
        values: dict[str, Any] = self.watch.model_dump()
        values["artifact"] = values.pop("output") or default_artifact()
        for key, value in overrides.items():
            if value is None:
                continue
            if key == "output":
                key = "artifact"
            values[key] = value
        return WatchConfig(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings.
    """
    return Settings()
