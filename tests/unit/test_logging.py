"""Unit tests for logging functionality."""

import logging
import time

import pytest

from dnscert import _logging
from dnscert._logging import (
    Timer,
    configure_logging,
    get_domain_extra,
    get_logger,
    reset_domain,
    set_domain,
)


class TestGetLogger:
    """Tests for the get_logger function."""

    def test_returns_logger_with_dnscert_namespace(self) -> None:
        logger = get_logger("dnscert.client")
        assert logger.name == "dnscert.client"

    def test_logger_hierarchy(self) -> None:
        parent = logging.getLogger("dnscert")
        child = get_logger("dnscert.client")
        assert child.parent is parent


class TestTimer:
    """Tests for the Timer context manager."""

    def test_measures_elapsed_time(self) -> None:
        with Timer() as t:
            time.sleep(0.01)

        assert t.elapsed_ms >= 9
        assert t.elapsed_ms < 1000

    def test_elapsed_starts_at_zero(self) -> None:
        timer = Timer()
        assert timer.elapsed_ms == 0


class TestNullHandler:
    """Tests for NullHandler setup."""

    def test_root_logger_has_null_handler(self) -> None:
        root = logging.getLogger("dnscert")
        handler_types = [type(h).__name__ for h in root.handlers]
        assert "NullHandler" in handler_types

    def test_library_silent_by_default(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("dnscert.test")
        logger.info("This should not appear")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""


class TestConfigureLogging:
    """Tests for the CLI handler installation."""

    @pytest.fixture(autouse=True)
    def restore(self):
        root = logging.getLogger("dnscert")
        level = root.level
        yield
        if _logging._cli_handler is not None:
            root.removeHandler(_logging._cli_handler)
            _logging._cli_handler = None
        root.setLevel(level)

    def test_installs_stream_handler(self) -> None:
        configure_logging()

        root = logging.getLogger("dnscert")
        assert _logging._cli_handler in root.handlers
        assert root.level == logging.INFO

    def test_debug_level(self) -> None:
        configure_logging(debug=True)

        assert logging.getLogger("dnscert").level == logging.DEBUG

    def test_reconfiguring_replaces_handler(self) -> None:
        configure_logging()
        configure_logging(debug=True)

        root = logging.getLogger("dnscert")
        stream_handlers = [h for h in root.handlers if type(h) is logging.StreamHandler]
        assert stream_handlers == [_logging._cli_handler]


class TestLogCapture:
    """Tests for the log_capture fixture."""

    def test_captures_by_level(self, log_capture) -> None:
        logger = get_logger("dnscert.test")
        logger.debug("Debug message")
        logger.warning("Warning message")

        assert "Debug message" in log_capture.get_messages(logging.DEBUG)
        assert log_capture.get_messages(logging.WARNING) == ["Warning message"]

    def test_filter_by_logger_name(self, log_capture) -> None:
        get_logger("dnscert.client").info("Client message")
        get_logger("dnscert.providers.desec").info("Provider message")

        client_messages = log_capture.get_messages(name="dnscert.client")
        assert "Client message" in client_messages
        assert "Provider message" not in client_messages

        provider_messages = log_capture.get_messages(name="dnscert.providers")
        assert "Provider message" in provider_messages
        assert "Client message" not in provider_messages

    def test_clear_removes_records(self, log_capture) -> None:
        logger = get_logger("dnscert.test")
        logger.info("Message 1")
        logger.info("Message 2")

        assert len(log_capture.records) == 2
        log_capture.clear()
        assert len(log_capture.records) == 0


class TestDomainContext:
    """Tests for the identifier context variable."""

    def test_empty_without_context(self) -> None:
        assert get_domain_extra() == {}

    def test_set_domain(self) -> None:
        token = set_domain("example.com")
        try:
            assert get_domain_extra() == {"domain": "example.com"}
        finally:
            reset_domain(token)

    def test_reset_restores_previous_context(self) -> None:
        outer_token = set_domain("outer.com")
        try:
            inner_token = set_domain("inner.com")
            assert get_domain_extra() == {"domain": "inner.com"}

            reset_domain(inner_token)
            assert get_domain_extra() == {"domain": "outer.com"}
        finally:
            reset_domain(outer_token)

        assert get_domain_extra() == {}

    def test_set_none_returns_empty(self) -> None:
        token = set_domain(None)
        try:
            assert get_domain_extra() == {}
        finally:
            reset_domain(token)

    def test_domain_context_in_log_extra(self, log_capture) -> None:
        logger = get_logger("dnscert.test")
        token = set_domain("test.example.com")
        try:
            logger.info("Test message", extra={"url": "https://example.com", **get_domain_extra()})
        finally:
            reset_domain(token)

        records = log_capture.get_records(logging.INFO)
        assert len(records) == 1
        assert records[0].domain == "test.example.com"
        assert records[0].url == "https://example.com"
