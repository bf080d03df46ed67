"""
Tests for structured JSON logging: formatter payload, LogContext binding,
exception fields and the engine tracer.
"""

import json
import logging
import sys
from decimal import Decimal

from grant_engines.rollup import recompute_engaged
from grant_kernel.exceptions import RecordNotFoundError
from grant_kernel.logging_config import LogContext, StructuredFormatter, get_logger


def _format(record: logging.LogRecord) -> dict:
    return json.loads(StructuredFormatter().format(record))


def _record(msg: str = "event_name", exc_info=None, **extra) -> logging.LogRecord:
    record = logging.LogRecord("budget_base.test", logging.INFO, __file__, 1, msg, (), exc_info)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:

    def test_basic_payload(self):
        payload = _format(_record(amount="12.50"))
        assert payload["message"] == "event_name"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "budget_base.test"
        assert payload["amount"] == "12.50"

    def test_context_fields_included(self):
        with LogContext.bind(actor_id="actor-1", grant_id="grant-9"):
            payload = _format(_record())
        assert payload["actor_id"] == "actor-1"
        assert payload["grant_id"] == "grant-9"
        assert "actor_id" not in _format(_record())

    def test_exception_code_and_attributes(self):
        try:
            raise RecordNotFoundError("grant", "g-1")
        except RecordNotFoundError:
            payload = _format(_record(exc_info=sys.exc_info()))
        assert payload["exc_type"] == "RecordNotFoundError"
        assert payload["exc_code"] == "RECORD_NOT_FOUND"
        assert payload["exc_entity_type"] == "grant"
        assert payload["exc_record_id"] == "g-1"


class TestLoggerNamespace:

    def test_get_logger_prefix(self):
        assert get_logger("modules.x").name == "budget_base.modules.x"


class TestEngineTracer:

    def test_trace_emitted(self, captured_logs):
        recompute_engaged(Decimal("10"), [Decimal("1")])
        traces = [r for r in captured_logs() if r["message"] == "BUDGET_ENGINE_TRACE"]
        assert traces
        assert traces[-1]["engine_name"] == "rollup.engaged"
        assert traces[-1]["engine_version"] == "1.0"
