import json
import logging

from telecare.app import JsonFormatter
from telecare.middleware.tracing import TRACE_ID_CTX_VAR


def _record(msg, level=logging.INFO):
    return logging.LogRecord("telecare", level, __file__, 1, msg, None, None, func="submit")


def test_dict_messages_are_merged_into_payload():
    token = TRACE_ID_CTX_VAR.set("t-123")
    try:
        line = JsonFormatter().format(_record({"function": "analyze_symptoms", "source": "fallback"}))
    finally:
        TRACE_ID_CTX_VAR.reset(token)
    payload = json.loads(line)
    assert payload["function"] == "analyze_symptoms"
    assert payload["source"] == "fallback"
    assert payload["level"] == "INFO"
    assert payload["trace_id"] == "t-123"
    assert payload["timestamp"].endswith("Z")


def test_plain_messages_keep_message_field():
    payload = json.loads(JsonFormatter().format(_record("hello %s" % "world")))
    assert payload["message"] == "hello world"
    assert payload["function"] == "submit"
    assert "trace_id" not in payload
