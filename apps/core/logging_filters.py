from __future__ import annotations

import logging
import re

_ACCOUNT_ID_RE = re.compile(r"acct_[A-Za-z0-9]+")


class StripRequestBodyFilter(logging.Filter):
    """
    Drop request body/content fields from log records to avoid leaking PII.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        for attr in ("request", "request_body", "data", "body"):
            if hasattr(record, attr):
                setattr(record, attr, None)
        return True


class RedactProcessorSecretsFilter(logging.Filter):
    """
    Mask connected payee account ids (acct_...) in formatted log messages.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        message = record.getMessage()
        if "acct_" in message:
            record.msg = _ACCOUNT_ID_RE.sub("acct_***", message)
            record.args = None
        return True
