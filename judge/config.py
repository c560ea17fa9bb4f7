"""Centralized configuration management using Pydantic Settings.

This module provides typed configuration for the judging engine,
loaded from environment variables with sensible defaults.

Usage:
    from judge.config import get_settings
    settings = get_settings()
    timeout_ms = settings.judge.run_timeout_ms
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_bool(v):
    if isinstance(v, str):
        return v.lower() in ("1", "true", "yes")
    return bool(v)


class SandboxSettings(BaseSettings):
    """Docker sandbox bounds and isolation flags."""

    model_config = SettingsConfigDict(env_prefix="SANDBOX_", extra="ignore")

    docker_bin: str = Field(default="docker", description="Docker CLI executable")
    label: str = Field(default="judge.sandbox=1", description="Label put on every sandbox container")
    pids_limit: int = Field(default=64, description="Max processes inside a sandbox")
    nofile_limit: int = Field(default=64, description="Max open file descriptors inside a sandbox")
    max_stdin_bytes: int = Field(default=1024 * 1024, description="Hard cap on stdin payload")
    max_output_bytes: int = Field(default=2 * 1024 * 1024, description="Cap on stdout+stderr before kill")
    min_memory_mb: int = Field(default=16)
    max_memory_mb: int = Field(default=1024)
    min_cpus: float = Field(default=0.1)
    max_cpus: float = Field(default=4.0)
    min_timeout_ms: int = Field(default=100)
    max_timeout_ms: int = Field(default=60000)
    reap_grace_sec: float = Field(default=5.0, description="How long to wait for a killed process to exit")


class JudgeSettings(BaseSettings):
    """Per-stage limits and submission caps."""

    model_config = SettingsConfigDict(env_prefix="JUDGE_", extra="ignore")

    max_source_bytes: int = Field(default=64 * 1024, description="Max submitted source size")
    max_testcase_bytes: int = Field(default=1024 * 1024, description="Max testcase input/output size")
    temp_dir: str = Field(default="/tmp", description="Temp directory inside the sandbox")

    compile_memory_mb: int = Field(default=256)
    compile_cpus: float = Field(default=0.5)
    compile_timeout_ms: int = Field(default=10000)

    run_memory_mb: int = Field(default=256)
    run_cpus: float = Field(default=0.5)
    run_timeout_ms: int = Field(default=5000)


class CleanupSettings(BaseSettings):
    """Background docker prune configuration."""

    model_config = SettingsConfigDict(env_prefix="CLEANUP_", extra="ignore")

    enabled: bool = Field(default=True, description="Enable docker prune sweeps")
    on_start: bool = Field(default=True, description="Sweep once at startup")
    interval_sec: int = Field(default=3600, description="Periodic sweep interval, 0 disables")

    @field_validator("enabled", "on_start", mode="before")
    @classmethod
    def parse_flags(cls, v):
        return _parse_bool(v)


class PostgresSettings(BaseSettings):
    """PostgreSQL connection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POSTGRES_",
        extra="ignore",
        populate_by_name=True,
    )

    enabled: bool = Field(default=False, description="Persist submissions to PostgreSQL")
    host: str = Field(default="postgres", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="judge", description="PostgreSQL user")
    password: str = Field(default="", description="PostgreSQL password")
    database: str = Field(
        default="judgedb",
        validation_alias="POSTGRES_DB",
        description="Database name",
    )
    pool_min_size: int = Field(default=1, description="Minimum pool size")
    pool_max_size: int = Field(default=10, description="Maximum pool size")
    pool_timeout: int = Field(default=30, description="Timeout for acquiring connections")

    @field_validator("enabled", mode="before")
    @classmethod
    def parse_enabled(cls, v):
        return _parse_bool(v)

    def get_dsn(self) -> str:
        """Generate PostgreSQL DSN connection string."""
        return (
            f"host={self.host} port={self.port} user={self.user} "
            f"password={self.password} dbname={self.database} sslmode=disable"
        )


class LogSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")

    level: str = Field(default="INFO", description="Root log level")
    sandbox_debug: bool = Field(default=False, description="Log every docker invocation")

    @field_validator("sandbox_debug", mode="before")
    @classmethod
    def parse_debug(cls, v):
        return _parse_bool(v)


class Settings:
    """Main settings combining all configuration sections.

    Each subsetting is loaded independently with its own prefix.
    """

    def __init__(self) -> None:
        self.sandbox = SandboxSettings()
        self.judge = JudgeSettings()
        self.cleanup = CleanupSettings()
        self.postgres = PostgresSettings()
        self.log = LogSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance (singleton pattern)."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear cached settings (useful for testing)."""
    get_settings.cache_clear()
