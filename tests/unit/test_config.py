"""Tests for environment configuration loading and validation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from podtail.config import load_config, parse_since, validate_config
from podtail.models.config import PodTailConfig

_NOW = datetime(2026, 2, 18, 12, 0, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    import os

    for key in list(os.environ):
        if key.startswith("PODTAIL_"):
            monkeypatch.delenv(key)


class TestLoadConfig:
    def test_defaults(self) -> None:
        config = load_config()
        assert config.namespaces == ["default"]
        assert config.include == []
        assert config.exclude == []
        assert config.since is None
        assert not config.since_start
        assert config.output == "text"
        assert config.metrics_port == 0
        assert config.tailer.max_retries == 5
        assert config.log.level == "info"
        assert config.log.format == "auto"

    def test_environment_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PODTAIL_NAMESPACES", "a, b,,c")
        monkeypatch.setenv("PODTAIL_INCLUDE", "api-*")
        monkeypatch.setenv("PODTAIL_EXCLUDE", "istio-*,/canary/")
        monkeypatch.setenv("PODTAIL_CONTAINER", "web")
        monkeypatch.setenv("PODTAIL_SINCE_START", "true")
        monkeypatch.setenv("PODTAIL_OUTPUT", "JSON")
        monkeypatch.setenv("PODTAIL_LOG_LEVEL", "DEBUG")

        config = load_config()

        assert config.namespaces == ["a", "b", "c"]
        assert config.include == ["api-*"]
        assert config.exclude == ["istio-*", "/canary/"]
        assert config.container_name == "web"
        assert config.since_start
        assert config.output == "json"
        assert config.log.level == "debug"

    def test_max_retries_is_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PODTAIL_TAILER_MAX_RETRIES", "50")
        assert load_config().tailer.max_retries == 10

    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PODTAIL_LOG_LEVEL", "verbose")
        with pytest.raises(ValueError, match="Invalid log level"):
            load_config()

    def test_log_format(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PODTAIL_LOG_FORMAT", "Console")
        assert load_config().log.format == "console"

    def test_invalid_log_format(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PODTAIL_LOG_FORMAT", "logfmt")
        with pytest.raises(ValueError, match="Invalid log format"):
            load_config()

    def test_invalid_output(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PODTAIL_OUTPUT", "yaml")
        with pytest.raises(ValueError, match="Invalid output format"):
            load_config()


class TestParseSince:
    @pytest.mark.parametrize(
        ("value", "delta"),
        [
            ("30s", timedelta(seconds=30)),
            ("10m", timedelta(minutes=10)),
            ("2h", timedelta(hours=2)),
            ("1d", timedelta(days=1)),
        ],
    )
    def test_relative_durations(self, value: str, delta: timedelta) -> None:
        assert parse_since(value, now=_NOW) == _NOW - delta

    def test_iso_instant(self) -> None:
        assert parse_since("2026-02-18T10:00:00+02:00") == datetime(2026, 2, 18, 8, 0, 0, tzinfo=UTC)

    def test_naive_instant_is_utc(self) -> None:
        assert parse_since("2026-02-18T10:00:00") == datetime(2026, 2, 18, 10, 0, 0, tzinfo=UTC)

    def test_invalid(self) -> None:
        with pytest.raises(ValueError, match="Invalid since value"):
            parse_since("yesterday")


class TestValidateConfig:
    def test_since_and_since_start_are_exclusive(self) -> None:
        config = PodTailConfig(since_start=True, since=_NOW)
        with pytest.raises(ValueError, match="mutually exclusive"):
            validate_config(config)

    def test_namespaces_required(self) -> None:
        with pytest.raises(ValueError, match="namespace"):
            validate_config(PodTailConfig(namespaces=[]))

    def test_all_namespaces_needs_no_list(self) -> None:
        config = validate_config(PodTailConfig(namespaces=[], all_namespaces=True))
        assert config.all_namespaces
