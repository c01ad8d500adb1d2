from __future__ import annotations

import pytest

from singletable.observability.context import get_request_id, request_id_var
from singletable.observability.logging import configure_logging, get_logger
from singletable.settings import Settings


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("TABLE_NAME", "main-table")
    monkeypatch.setenv("TIMEOUT", "2500")
    monkeypatch.setenv("S3_TIMEOUT", "4000")
    monkeypatch.setenv("DEFAULT_PAGE_LIMIT", "50")
    monkeypatch.setenv("KMS_REGIONS", "us-east-1,,eu-west-1 ")

    s = Settings()

    assert s.table_name == "main-table"
    assert s.dynamodb_timeout_ms == 2500
    assert s.s3_timeout_ms == 4000
    assert s.default_page_limit == 50
    assert s.kms_region_list == ["us-east-1", "eu-west-1"]


def test_production_requires_table_and_key(monkeypatch):
    monkeypatch.delenv("TABLE_NAME", raising=False)
    monkeypatch.delenv("FIELD_ENCRYPTION_KEY", raising=False)

    s = Settings(NODE_ENV="prod")

    assert s.is_production
    with pytest.raises(RuntimeError, match="TABLE_NAME"):
        s.require_in_production()


def test_log_safe_dict_redacts_key():
    s = Settings(FIELD_ENCRYPTION_KEY="super-secret", TABLE_NAME="t")
    safe = s.to_log_safe_dict()
    assert "super-secret" not in repr(safe)
    assert safe["encryption"]["field_encryption_key_configured"] is True


def test_logger_is_usable_and_request_id_is_scoped():
    configure_logging(level="DEBUG")
    log = get_logger("tests")

    token = request_id_var.set("rid-1")
    try:
        assert get_request_id() == "rid-1"
        log.info("test_event", answer=42)
    finally:
        request_id_var.reset(token)
    assert get_request_id() is None
