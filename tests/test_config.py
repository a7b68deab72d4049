"""
Test suite for configuration, structured errors and logging.

    §1  DiffConfig defaults and validation
    §2  load_config precedence
    §3  Error payloads
    §4  Logging
"""

import json
import logging
import os
import sys

import pytest
import structlog
from pydantic import ValidationError

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from structdiff.config import DiffConfig, load_config
from structdiff.errors import (
    ConfigError, DocumentParseError, ErrorCode, ErrorReporter, ParseFailure, Side,
    StructDiffError,
)
from structdiff.formats import parse_yaml
from structdiff.log import PACKAGE_LOGGER, configure_logging
from structdiff.session import DiffSession


@pytest.fixture
def config_file(tmp_path):
    def write(text):
        path = tmp_path / "structdiff.yaml"
        path.write_text(text)
        return path
    return write


@pytest.fixture
def reset_logging():
    yield
    structlog.reset_defaults()
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
    package_logger.addHandler(logging.NullHandler())


# ═══════════════════════════════════════════════════════════════════
#  §1  DIFFCONFIG DEFAULTS AND VALIDATION
# ═══════════════════════════════════════════════════════════════════

class TestDiffConfig:

    def test_defaults(self):
        config = DiffConfig()
        assert config.max_depth == 128
        assert config.sequence_length_threshold == 10_000
        assert config.edit_distance_threshold == 1_000
        assert config.pair_replacements is True
        assert config.log_level == "WARNING"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("STRUCTDIFF_MAX_DEPTH", "64")
        monkeypatch.setenv("STRUCTDIFF_PAIR_REPLACEMENTS", "false")
        config = DiffConfig()
        assert config.max_depth == 64
        assert config.pair_replacements is False

    def test_frozen(self):
        config = DiffConfig()
        with pytest.raises(ValidationError):
            config.max_depth = 3

    @pytest.mark.parametrize("field,value", [
        ("max_depth", 0),
        ("sequence_length_threshold", -1),
        ("edit_distance_threshold", -5),
        ("log_level", "CHATTY"),
    ])
    def test_rejects_invalid(self, field, value):
        with pytest.raises(ValidationError):
            DiffConfig(**{field: value})


# ═══════════════════════════════════════════════════════════════════
#  §2  LOAD_CONFIG PRECEDENCE
# ═══════════════════════════════════════════════════════════════════

class TestLoadConfig:

    def test_no_file(self):
        assert load_config() == DiffConfig()

    def test_section_in_file(self, config_file):
        path = config_file("structdiff:\n  max_depth: 10\n  pair_replacements: false\n")
        config = load_config(path)
        assert config.max_depth == 10
        assert config.pair_replacements is False

    def test_top_level_file(self, config_file):
        config = load_config(config_file("sequence_length_threshold: 50\n"))
        assert config.sequence_length_threshold == 50

    def test_empty_file(self, config_file):
        assert load_config(config_file("")).max_depth == 128

    def test_env_beats_file(self, config_file, monkeypatch):
        monkeypatch.setenv("STRUCTDIFF_MAX_DEPTH", "20")
        assert load_config(config_file("max_depth: 10\n")).max_depth == 20

    def test_overrides_beat_env(self, config_file, monkeypatch):
        monkeypatch.setenv("STRUCTDIFF_MAX_DEPTH", "20")
        path = config_file("max_depth: 10\n")
        assert load_config(path, max_depth=30).max_depth == 30

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc:
            load_config(tmp_path / "nope.yaml")
        assert exc.value.code == ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_bad_yaml(self, config_file):
        with pytest.raises(ConfigError) as exc:
            load_config(config_file("max_depth: [\n"))
        assert exc.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_non_mapping_file(self, config_file):
        with pytest.raises(ConfigError) as exc:
            load_config(config_file("- 1\n- 2\n"))
        assert exc.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_invalid_value_in_file(self, config_file):
        with pytest.raises(ConfigError) as exc:
            load_config(config_file("max_depth: 0\n"))
        assert exc.value.code == ErrorCode.CONFIG_INVALID_VALUE

    def test_unknown_key_in_file(self, config_file):
        with pytest.raises(ConfigError) as exc:
            load_config(config_file("structdiff:\n  bogus: 1\n"))
        assert exc.value.code == ErrorCode.CONFIG_INVALID_VALUE

    def test_invalid_override(self):
        with pytest.raises(ConfigError) as exc:
            load_config(edit_distance_threshold=-1)
        assert exc.value.code == ErrorCode.CONFIG_INVALID_VALUE


# ═══════════════════════════════════════════════════════════════════
#  §3  ERROR PAYLOADS
# ═══════════════════════════════════════════════════════════════════

class TestErrors:

    def test_base_error(self):
        err = StructDiffError(code=ErrorCode.UNKNOWN_KEY, message="nope", details={"key": "x"})
        assert isinstance(err, Exception)
        assert err.error_name == "UNKNOWN_KEY"
        assert err.to_dict() == {
            "code": 2002, "error": "UNKNOWN_KEY", "message": "nope", "details": {"key": "x"},
        }
        assert str(err) == "[2002] UNKNOWN_KEY: nope"

    def test_config_error_details(self):
        err = ConfigError.file_not_found("/etc/structdiff.yaml")
        assert err.details == {"path": "/etc/structdiff.yaml"}

    def test_parse_failure_without_line(self):
        failure = ParseFailure(side=Side.RIGHT, message="too deep")
        assert failure.to_dict() == {"side": "RIGHT", "message": "too deep"}
        assert str(failure) == "[RIGHT] Error: too deep"

    def test_parse_failure_with_line(self):
        failure = ParseFailure(side=Side.LEFT, message="bad", line=3)
        assert failure.to_dict() == {"side": "LEFT", "message": "bad", "line": 3}
        assert str(failure) == "[LEFT] Error: bad at line: 3"

    def test_reporter_collects_both_sides(self):
        reporter = ErrorReporter()
        assert reporter.attempt(Side.LEFT, parse_yaml, "a: [") is None
        assert reporter.attempt(Side.RIGHT, parse_yaml, "a: 1") is not None
        assert reporter.failed
        assert [f.side for f in reporter.failures] == [Side.LEFT]

    def test_reporter_lets_other_errors_through(self):
        def broken(text):
            raise KeyError(text)

        with pytest.raises(KeyError):
            ErrorReporter().attempt(Side.LEFT, broken, "x")

    def test_reporter_quiet_when_clean(self):
        reporter = ErrorReporter()
        reporter.attempt(Side.LEFT, parse_yaml, "a: 1")
        reporter.raise_if_failed()
        assert not reporter.failed


# ═══════════════════════════════════════════════════════════════════
#  §4  LOGGING
# ═══════════════════════════════════════════════════════════════════

class TestLogging:

    def _events(self, path):
        for handler in logging.getLogger(PACKAGE_LOGGER).handlers:
            handler.flush()
        return [json.loads(line) for line in path.read_text().splitlines() if line]

    def test_silent_until_configured(self, capsys):
        structlog.reset_defaults()
        session = DiffSession(config=DiffConfig(sequence_length_threshold=0))
        session.init("a: [1]\n", "a: [2]\n")
        session.step("a")
        with pytest.raises(DocumentParseError):
            session.init("a: [", "a: 1\n")
        session.cleanup()

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""

    def test_events_reach_stdlib_logging(self, caplog):
        structlog.reset_defaults()
        caplog.set_level(logging.DEBUG, logger=PACKAGE_LOGGER)
        session = DiffSession()
        session.init("a: 1\n", "a: 2\n")
        session.step("a")

        messages = [r.getMessage() for r in caplog.records if r.name.startswith("structdiff.")]
        assert any("session_initialized" in m for m in messages)
        assert any("session_step" in m for m in messages)

    def test_json_events_to_file(self, tmp_path, reset_logging):
        log_path = tmp_path / "logs" / "structdiff.jsonl"
        configure_logging(level="DEBUG", json_format=True, destination=str(log_path))

        session = DiffSession()
        session.init("a: 1\n", "a: 2\n")
        session.step("a")

        events = self._events(log_path)
        names = [e["event"] for e in events]
        assert "session_initialized" in names
        assert "session_step" in names
        init = events[names.index("session_initialized")]
        assert init["keys"] == 1
        assert init["level"] == "info"

    def test_level_filters_events(self, tmp_path, reset_logging):
        log_path = tmp_path / "structdiff.jsonl"
        configure_logging(level="INFO", json_format=True, destination=str(log_path))

        session = DiffSession()
        session.init("a: 1\n", "a: 2\n")
        session.step("a")

        names = [e["event"] for e in self._events(log_path)]
        assert "session_initialized" in names
        assert "session_step" not in names

    def test_level_from_config(self, tmp_path, reset_logging):
        log_path = tmp_path / "structdiff.jsonl"
        configure_logging(
            config=DiffConfig(log_level="ERROR"), json_format=True, destination=str(log_path)
        )
        DiffSession().init("a: 1\n", "a: 2\n")
        assert logging.getLogger(PACKAGE_LOGGER).level == logging.ERROR
        assert self._events(log_path) == []

    def test_fallback_event(self, tmp_path, reset_logging):
        log_path = tmp_path / "structdiff.jsonl"
        configure_logging(level="INFO", json_format=True, destination=str(log_path))

        session = DiffSession(config=DiffConfig(sequence_length_threshold=1))
        session.init("[1, 2]", "[2, 1]")
        session.whole_document()

        fallbacks = [e for e in self._events(log_path) if e["event"] == "sequence_positional_fallback"]
        assert len(fallbacks) == 1
        assert fallbacks[0]["reason"] == "length"

    def test_reconfigure_replaces_handler(self, tmp_path, reset_logging):
        configure_logging(destination=str(tmp_path / "one.log"))
        configure_logging(destination=str(tmp_path / "two.log"))
        assert len(logging.getLogger(PACKAGE_LOGGER).handlers) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
