"""
Tests for logging setup and secret redaction.
"""

import logging

import pytest

from formaloo_flow.config import Settings
from formaloo_flow.logger import LOGGER_NAME, RedactingFilter, setup_global_logger


def _record(message):
    return logging.LogRecord("formaloo_flow.test", logging.INFO, __file__, 1, message, None, None)


@pytest.mark.parametrize("message,leaked", [
    ("Authorization: JWT eyJhbGciOiJIUzI1NiJ9.payload", "eyJhbGciOiJIUzI1NiJ9.payload"),
    ("Authorization: Basic c2VjcmV0LTQ1Ng==", "c2VjcmV0LTQ1Ng=="),
    ("headers X-Api-Key: key-123456789", "key-123456789"),
    ("credential api_key=abcdef123456", "abcdef123456"),
])
def test_secrets_are_masked(message, leaked):
    record = _record(message)

    assert RedactingFilter().filter(record) is True
    assert leaked not in record.msg
    assert leaked[:4] + ".." in record.msg


@pytest.mark.parametrize("message", [
    "Loaded 3 Formaloo forms",
    "Basic settings applied to workspace",
    "Token type JWT expected for pre-issued credentials",
])
def test_ordinary_messages_are_untouched(message):
    record = _record(message)
    RedactingFilter().filter(record)

    assert record.msg == message


def test_setup_is_idempotent():
    logger = setup_global_logger("DEBUG")
    handlers = list(logger.handlers)

    assert setup_global_logger("WARNING") is logging.getLogger(LOGGER_NAME)
    assert logger.handlers == handlers
    assert logger.level == logging.WARNING
    assert any(isinstance(f, RedactingFilter) for h in handlers for f in h.filters)


def test_settings_normalise_urls_and_compute_redis_url():
    settings = Settings(
        FORMALOO_API_URL="https://api.example.com/",
        WEBHOOK_BASE_URL="https://flows.example.com/",
        REDIS_HOST="cache",
        REDIS_PORT=6380,
    )

    assert settings.FORMALOO_API_URL == "https://api.example.com"
    assert settings.REDIS_URL == "redis://cache:6380/0"
    assert settings.webhook_url_for("wf1", "n1") == "https://flows.example.com/api/v1/webhooks/wf1/n1"


def test_settings_reject_non_positive_page_size():
    with pytest.raises(ValueError):
        Settings(FORMALOO_FORMS_PAGE_SIZE=0)
