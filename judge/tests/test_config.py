"""Tests for centralized configuration."""

import os
from unittest.mock import patch


class TestSandboxSettings:
    def test_defaults(self):
        """Sandbox bounds default to the documented limits."""
        from judge.config import SandboxSettings

        with patch.dict(os.environ, {}, clear=True):
            settings = SandboxSettings()
            assert settings.docker_bin == "docker"
            assert settings.label == "judge.sandbox=1"
            assert settings.pids_limit == 64
            assert settings.max_stdin_bytes == 1024 * 1024
            assert settings.max_output_bytes == 2 * 1024 * 1024
            assert (settings.min_memory_mb, settings.max_memory_mb) == (16, 1024)
            assert (settings.min_timeout_ms, settings.max_timeout_ms) == (100, 60000)

    def test_from_environment(self):
        from judge.config import SandboxSettings

        env = {
            "SANDBOX_DOCKER_BIN": "/usr/local/bin/docker",
            "SANDBOX_MAX_OUTPUT_BYTES": "4096",
            "SANDBOX_REAP_GRACE_SEC": "0.5",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = SandboxSettings()
            assert settings.docker_bin == "/usr/local/bin/docker"
            assert settings.max_output_bytes == 4096
            assert settings.reap_grace_sec == 0.5


class TestJudgeSettings:
    def test_stage_defaults(self):
        """Compile and run stages have separate limits."""
        from judge.config import JudgeSettings

        with patch.dict(os.environ, {}, clear=True):
            settings = JudgeSettings()
            assert settings.compile_timeout_ms == 10000
            assert settings.run_timeout_ms == 5000
            assert settings.compile_memory_mb == settings.run_memory_mb == 256
            assert settings.max_source_bytes == 64 * 1024
            assert settings.temp_dir == "/tmp"

    def test_override_run_timeout(self):
        from judge.config import JudgeSettings

        with patch.dict(os.environ, {"JUDGE_RUN_TIMEOUT_MS": "2000"}, clear=True):
            assert JudgeSettings().run_timeout_ms == 2000


class TestCleanupSettings:
    def test_flag_parsing(self):
        from judge.config import CleanupSettings

        with patch.dict(os.environ, {"CLEANUP_ENABLED": "no", "CLEANUP_ON_START": "TRUE"}, clear=True):
            settings = CleanupSettings()
            assert settings.enabled is False
            assert settings.on_start is True


class TestPostgresSettings:
    def test_defaults(self):
        from judge.config import PostgresSettings

        with patch.dict(os.environ, {}, clear=True):
            settings = PostgresSettings()
            assert settings.enabled is False
            assert settings.host == "postgres"
            assert settings.user == "judge"
            assert settings.database == "judgedb"

    def test_dsn_generation(self):
        """DSN picks up POSTGRES_DB as the database name."""
        from judge.config import PostgresSettings

        env = {
            "POSTGRES_HOST": "dbhost",
            "POSTGRES_PORT": "5433",
            "POSTGRES_USER": "myuser",
            "POSTGRES_PASSWORD": "mypass",
            "POSTGRES_DB": "mydb",
        }
        with patch.dict(os.environ, env, clear=True):
            dsn = PostgresSettings().get_dsn()
            assert "host=dbhost" in dsn
            assert "port=5433" in dsn
            assert "user=myuser" in dsn
            assert "password=mypass" in dsn
            assert "dbname=mydb" in dsn


class TestGetSettings:
    def test_cached(self):
        from judge.config import clear_settings_cache, get_settings

        clear_settings_cache()
        assert get_settings() is get_settings()

    def test_clear_cache_reloads(self):
        from judge.config import clear_settings_cache, get_settings

        with patch.dict(os.environ, {"LOG_LEVEL": "DEBUG"}, clear=True):
            clear_settings_cache()
            first = get_settings()
            assert first.log.level == "DEBUG"
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}, clear=True):
            clear_settings_cache()
            assert get_settings() is not first
            assert get_settings().log.level == "WARNING"
