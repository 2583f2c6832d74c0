from __future__ import annotations

import logging

from apps.core.logging_filters import RedactProcessorSecretsFilter, StripRequestBodyFilter


def test_strip_request_body_filter_redacts_fields():
    record = logging.LogRecord("test", logging.INFO, "path", 1, "msg", args=(), exc_info=None)
    record.request = "req"
    record.request_body = "secret"
    record.data = {"password": "secret"}
    record.body = "secret"

    filt = StripRequestBodyFilter()
    assert filt.filter(record) is True
    assert record.request is None
    assert record.request_body is None
    assert record.data is None
    assert record.body is None



def test_redact_processor_secrets_masks_account_ids():
    record = logging.LogRecord(
        "test", logging.WARNING, "path", 1, "No payee account found for connected account %s", args=("acct_1AbC2dEf",), exc_info=None
    )

    filt = RedactProcessorSecretsFilter()
    assert filt.filter(record) is True
    assert record.getMessage() == "No payee account found for connected account acct_***"


def test_redact_processor_secrets_leaves_plain_messages():
    record = logging.LogRecord("test", logging.INFO, "path", 1, "batch %s done", args=("b1",), exc_info=None)

    RedactProcessorSecretsFilter().filter(record)
    assert record.getMessage() == "batch b1 done"
    assert record.args == ("b1",)
