from __future__ import annotations

import json
import logging

from backoffice.core.logging import JsonFormatter


def test_json_formatter_emits_one_object_per_record():
    record = logging.LogRecord(
        name="backoffice.services.modifications",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="swap reconciliation failed order=%s",
        args=("order_01",),
        exc_info=None,
    )
    line = JsonFormatter().format(record)
    body = json.loads(line)

    assert body["level"] == "WARNING"
    assert body["logger"] == "backoffice.services.modifications"
    assert body["message"] == "swap reconciliation failed order=order_01"
    assert body["ts"].endswith("Z")
