import json
import logging

from site_auditor.platform.logger import get_logger
from site_auditor.platform.response import api_response, envelope, sse_event


def test_envelope_status_follows_code():
    assert envelope({"a": 1}, "ok", 200)["status"] == "success"
    body = envelope(None, "bad", 502)
    assert body["status"] == "error"
    assert body["data"] == {}


def test_api_response():
    response = api_response(data={"n": 1}, message="done", status_code=201)
    assert response.status_code == 201
    assert json.loads(response.body) == {"status_code": 201, "status": "success", "message": "done", "data": {"n": 1}}


def test_sse_event_encodes_payload():
    event = sse_event("discovered", {"total": 3})
    assert event == {"event": "discovered", "data": '{"total": 3}'}


def test_logger_handlers_attached_once():
    first = get_logger("site_auditor.tests.logger")
    second = get_logger("site_auditor.tests.logger")
    assert first is second
    assert len(first.handlers) == 2
    assert first.level == logging.INFO
