"""
Unit tests for logging setup.
"""

import logging

import pytest

from toolrelay.config.logging import (
    MANAGED_LOGGERS,
    ColoredFormatter,
    SecretFilter,
    get_logger,
    mask_secret,
    setup_logging,
)
from toolrelay.config.settings import LLMSettings, Settings


@pytest.fixture(autouse=True)
def restore_loggers():
    """setup_logging mutates global loggers; put them back after each test."""
    names = (*MANAGED_LOGGERS, "LiteLLM")
    saved = {
        name: (list(logging.getLogger(name).handlers), logging.getLogger(name).level,
               logging.getLogger(name).propagate)
        for name in names
    }
    yield
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers[:] = handlers
        logger.setLevel(level)
        logger.propagate = propagate


def _record(msg, *args, level=logging.WARNING):
    return logging.LogRecord("toolrelay.test", level, __file__, 1, msg, args, None)


class TestMaskSecret:

    def test_long_secret(self):
        assert mask_secret("sk-abcdef123456") == "sk-a...3456"

    def test_short_secret(self):
        assert mask_secret("abc") == "****"


class TestSecretFilter:

    def test_redacts_key_in_formatted_message(self):
        record = _record("attempt failed: Incorrect API key provided: %s", "sk-live-0123456789")
        assert SecretFilter(["sk-live-0123456789"]).filter(record) is True
        assert record.getMessage() == "attempt failed: Incorrect API key provided: sk-l...6789"

    def test_leaves_other_messages_alone(self):
        record = _record("retrying with %s", "next key")
        SecretFilter(["sk-live-0123456789"]).filter(record)
        assert record.args == ("next key",)
        assert record.getMessage() == "retrying with next key"

    def test_no_secrets_configured(self):
        record = _record("plain")
        assert SecretFilter([]).filter(record) is True
        assert record.getMessage() == "plain"

    def test_longest_secret_masked_first(self):
        record = _record("key sk-aaaa1111bbbb2222")
        SecretFilter(["sk-aaaa1111", "sk-aaaa1111bbbb2222"]).filter(record)
        assert record.getMessage() == "key sk-a...2222"


class TestColoredFormatter:

    def test_colors_level_without_mutating_record(self):
        formatter = ColoredFormatter(fmt="%(levelname)s %(message)s")
        record = _record("careful")

        output = formatter.format(record)

        assert output == "\033[33mWARNING\033[0m careful"
        assert record.levelname == "WARNING"


class TestSetupLogging:

    def test_handlers_shared_with_uvicorn(self):
        setup_logging(Settings(_env_file=None, log_level="DEBUG"))

        app_logger = logging.getLogger("toolrelay")
        assert app_logger.level == logging.DEBUG
        assert app_logger.propagate is False
        assert len(app_logger.handlers) == 1
        for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
            assert logging.getLogger(name).handlers == app_logger.handlers
        assert logging.getLogger("LiteLLM").level == logging.DEBUG

    def test_litellm_quieted_above_debug(self):
        setup_logging(Settings(_env_file=None, log_level="INFO"))
        assert logging.getLogger("LiteLLM").level == logging.WARNING

    def test_repeat_setup_replaces_handlers(self):
        settings = Settings(_env_file=None)
        setup_logging(settings)
        setup_logging(settings)
        assert len(logging.getLogger("toolrelay").handlers) == 1

    def test_file_output_is_redacted_utf8(self, tmp_path):
        log_file = tmp_path / "logs" / "toolrelay.log"
        settings = Settings(
            _env_file=None,
            log_file=log_file,
            llm=LLMSettings(api_keys=["sk-secret-key-0001"]),
        )

        setup_logging(settings)
        get_logger("llm.client").warning("工具调用失败 with key sk-secret-key-0001")
        for handler in logging.getLogger("toolrelay").handlers:
            handler.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "工具调用失败 with key sk-s...0001" in text
        assert "sk-secret-key-0001" not in text


class TestGetLogger:

    def test_prefixes_bare_names(self):
        assert get_logger("cli").name == "toolrelay.cli"

    def test_keeps_package_names(self):
        assert get_logger("toolrelay.llm.client").name == "toolrelay.llm.client"
        assert get_logger("toolrelay").name == "toolrelay"
