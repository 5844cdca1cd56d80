"""Tests for logging setup, secret redaction and LogContext."""

import logging

import pytest

from curator.utils.logging import LogContext, RedactingFilter, setup_logging

KEY = "AIzaSy" + "b" * 33


class TestRedaction:
    """Tests for RedactingFilter."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            (f"Using api_key={KEY}", "Using api_key=[REDACTED]"),
            ("secret: " + "s" * 24, "secret: [REDACTED]"),
            ("Authorization: Bearer " + "t" * 28, "Authorization: Bearer [REDACTED]"),
            (f"sent {KEY} to server", "sent [REDACTED] to server"),
            ("token=abc", "token=abc"),
            ("no secrets here", "no secrets here"),
        ],
    )
    def test_redact(self, text, expected):
        assert RedactingFilter.redact(text) == expected

    def test_filter_redacts_positional_args(self):
        record = logging.LogRecord("curator", logging.INFO, __file__, 1, "calling with %s", (KEY,), None)

        assert RedactingFilter().filter(record) is True
        assert record.getMessage() == "calling with [REDACTED]"

    def test_filter_redacts_mapping_args(self):
        record = logging.LogRecord(
            "curator", logging.INFO, __file__, 1, "calling with %(key)s", ({"key": KEY, "n": 3},), None
        )

        RedactingFilter().filter(record)

        assert record.args == {"key": "[REDACTED]", "n": 3}


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_console_only(self):
        setup_logging(level="warning")
        package_logger = logging.getLogger("curator")

        assert package_logger.level == logging.WARNING
        assert len(package_logger.handlers) == 1
        assert package_logger.propagate is False

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger("curator").handlers) == 1

    def test_file_handler_redacts(self, tmp_path):
        log_file = tmp_path / "logs" / "curator.log"
        setup_logging(level="DEBUG", log_file=log_file)

        logging.getLogger("curator.tests").warning("key in use: %s", KEY)
        for handler in logging.getLogger("curator").handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "key in use: [REDACTED]" in content
        assert KEY not in content
        assert "WARNING" in content

    def test_quiets_third_party(self):
        logging.getLogger("httpx").setLevel(logging.DEBUG)
        setup_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING


class TestLogContext:
    """Tests for LogContext."""

    @pytest.fixture
    def context_logger(self, caplog):
        caplog.set_level(logging.INFO, logger="tests.logcontext")
        return logging.getLogger("tests.logcontext")

    def test_logs_start_and_completion(self, caplog, context_logger):
        with LogContext("Emotion analysis", logger=context_logger) as ctx:
            pass

        messages = [r.getMessage() for r in caplog.records]
        assert messages[0] == "Emotion analysis..."
        assert messages[1].startswith("Emotion analysis completed in ")
        assert ctx.elapsed >= 0
        assert ctx.elapsed_ms == int(ctx.elapsed * 1000)

    def test_logs_failure_and_propagates(self, caplog, context_logger):
        with pytest.raises(ValueError):
            with LogContext("Growth analysis", logger=context_logger):
                raise ValueError("boom")

        last = caplog.records[-1]
        assert last.levelno == logging.ERROR
        assert "Growth analysis failed after" in last.getMessage()
        assert "boom" in last.getMessage()
