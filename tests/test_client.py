"""
Tests for ministry/client.py — MinistryClient over a mocked requests.Session
"""
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ministry.client import ApiError, ApiResponse, MinistryClient
from utils.config import ClientConfig


def _response(status=200, json_body=None, text=""):
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    if json_body is not None:
        resp.content = b"x"
        resp.json.return_value = json_body
    elif text:
        resp.content = text.encode()
        resp.json.side_effect = ValueError("not json")
        resp.text = text
    else:
        resp.content = b""
    return resp


@pytest.fixture()
def session():
    return MagicMock()


@pytest.fixture()
def api(session):
    cfg = ClientConfig()
    cfg.base_url = "http://ministry.test/"
    manager = MagicMock()
    manager.session = session
    return MinistryClient(cfg, session_manager=manager)


def _call(session):
    args, kwargs = session.request.call_args
    return args[0], args[1], kwargs


class TestTransport:
    def test_get_decodes_json_and_cleans_params(self, api, session):
        session.request.return_value = _response(json_body=[{"id": 1}])
        assert api.get("/api/events", {"regionId": 1, "universityId": "all", "x": None}) == [{"id": 1}]
        method, url, kwargs = _call(session)
        assert method == "GET"
        assert url == "http://ministry.test/api/events"
        assert kwargs["params"] == {"regionId": "1"}
        assert kwargs["json"] is None
        assert kwargs["timeout"] == 30

    def test_empty_params_sent_as_none(self, api, session):
        session.request.return_value = _response(json_body={})
        api.get("/api/regions")
        assert _call(session)[2]["params"] is None

    def test_error_status_raises_with_body_message(self, api, session):
        session.request.return_value = _response(404, json_body={"error": "Event not found"})
        with pytest.raises(ApiError) as excinfo:
            api.get("/api/events/9")
        err = excinfo.value
        assert err.message == "Event not found"
        assert err.status_code == 404
        assert err.path == "/api/events/9"
        assert str(err) == "Event not found (HTTP 404)"

    def test_error_status_without_body(self, api, session):
        session.request.return_value = _response(500)
        with pytest.raises(ApiError, match="status code 500"):
            api.get("/api/members")

    def test_transport_error_wrapped(self, api, session):
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ApiError) as excinfo:
            api.get("/api/members")
        assert excinfo.value.status_code is None
        assert "refused" in str(excinfo.value)

    def test_text_body_returned_as_text(self, api, session):
        session.request.return_value = _response(text="pong")
        assert api.get("/ping") == "pong"

    def test_post_returns_api_response(self, api, session):
        session.request.return_value = _response(201, json_body={"success": True})
        resp = api.post("/api/attendance/enhanced", {"eventId": 1})
        assert resp == ApiResponse(201, {"success": True})
        assert resp.ok
        assert _call(session)[2]["json"] == {"eventId": 1}

    def test_close_delegates(self, api):
        api.close()
        api.session_manager.close.assert_called_once()


class TestReferenceCache:
    def test_regions_cached(self, api, session):
        session.request.return_value = _response(json_body=[{"id": 1, "name": "North"}])
        assert api.list_regions() == [{"id": 1, "name": "North"}]
        assert api.list_regions() == [{"id": 1, "name": "North"}]
        assert session.request.call_count == 1

    def test_cache_keyed_by_params(self, api, session):
        session.request.return_value = _response(json_body=[])
        api.list_universities(1)
        api.list_universities(2)
        api.list_universities(1)
        assert session.request.call_count == 2

    def test_invalidate_reference(self, api, session):
        session.request.return_value = _response(json_body=[])
        api.list_regions()
        api.list_alumni_groups(1)
        assert api.invalidate_reference() == 2
        api.list_regions()
        assert session.request.call_count == 3

    def test_non_list_reference_becomes_empty(self, api, session):
        session.request.return_value = _response(json_body={"error": None})
        assert api.list_small_groups(10) == []


class TestEndpoints:
    def test_current_user_scope_unwraps(self, api, session):
        session.request.return_value = _response(json_body={"scope": {"scope": "region", "regionId": 1}})
        assert api.current_user_scope() == {"scope": "region", "regionId": 1}

    def test_list_events_adds_include_stats(self, api, session):
        session.request.return_value = _response(json_body=[])
        api.list_events({"regionId": 2})
        _, url, kwargs = _call(session)
        assert url.endswith("/api/events/enhanced")
        assert kwargs["params"] == {"includeStats": "true", "regionId": "2"}

    def test_update_attendance_puts_status(self, api, session):
        session.request.return_value = _response(200, json_body={"id": 5})
        resp = api.update_attendance(5, "excused")
        method, url, kwargs = _call(session)
        assert method == "PUT"
        assert url.endswith("/api/attendance")
        assert kwargs["params"] == {"id": "5"}
        assert kwargs["json"] == {"status": "excused"}
        assert resp.status_code == 200

    def test_submit_attendance_posts(self, api, session):
        session.request.return_value = _response(201, json_body={"success": True})
        api.submit_attendance({"eventId": 1, "attendance": []})
        method, url, _ = _call(session)
        assert method == "POST"
        assert url.endswith("/api/attendance/enhanced")

    @pytest.mark.parametrize("endpoint,path", [
        ("regions", "/api/engagement/regions"),
        ("small-groups", "/api/engagement/small-groups"),
        ("members", "/api/engagement/members"),
    ])
    def test_engagement_level(self, api, session, endpoint, path):
        session.request.return_value = _response(json_body=[])
        api.engagement_level(endpoint, {"regionId": 1})
        assert _call(session)[1].endswith(path)

    def test_engagement_level_unknown(self, api):
        with pytest.raises(ValueError):
            api.engagement_level("districts")

    @pytest.mark.parametrize("method,path", [
        ("engagement_analytics", "/api/engagement/analytics"),
        ("export_details", "/api/engagement/export-details"),
        ("student_analytics", "/api/attendance/student-analytics"),
        ("contribution_analytics", "/api/contributions/analytics"),
        ("attendance_dates", "/api/attendance/dates"),
        ("list_attendance", "/api/attendance"),
        ("list_members", "/api/members"),
    ])
    def test_analytics_paths(self, api, session, method, path):
        session.request.return_value = _response(json_body={})
        getattr(api, method)({"currentLevel": "national"})
        _, url, kwargs = _call(session)
        assert url == "http://ministry.test" + path
        assert kwargs["params"] == {"currentLevel": "national"}
