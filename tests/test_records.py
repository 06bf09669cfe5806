"""
Tests for ministry/records.py — AttendanceRecordBrowser
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ministry.client import ApiResponse
from ministry.records import (
    FETCH_ERROR,
    UPDATE_SUCCESS,
    AttendanceRecordBrowser,
    record_event_name,
    record_member_name,
)
from ministry.scope import ScopeSelection


class TestRecordNames:
    def test_event_name(self, sample):
        assert record_event_name(sample["attendance"][0]) == "Sunday Service"
        assert record_event_name(sample["attendance"][2]) == "Leadership Training"
        assert record_event_name({}) == "N/A"

    def test_member_name(self, sample):
        assert record_member_name(sample["attendance"][1]) == "John Okello"
        assert record_member_name({"member": {}}) == "N/A"


class TestFetching:
    def test_no_event_no_fetch(self, client):
        browser = AttendanceRecordBrowser(client)
        assert browser.fetch() == []
        assert not browser.can_fetch()
        assert client.calls_to("list_attendance") == []

    def test_elevated_needs_region(self, client):
        browser = AttendanceRecordBrowser(client, elevated=True)
        browser.set_filters(event="permanent-1")
        assert client.calls_to("list_attendance") == []
        browser.set_filters(selection=ScopeSelection(1))
        assert len(client.calls_to("list_attendance")) == 1

    def test_params(self, client):
        browser = AttendanceRecordBrowser(client, elevated=True)
        browser.set_filters(
            event="training-2", status="present",
            date="2025-03-01 to 2025-03-07", selection=ScopeSelection(1, 10),
        )
        (params,), = client.calls_to("list_attendance")
        assert params == {
            "eventId": 2, "eventType": "training", "status": "present",
            "dateFrom": "2025-03-01", "dateTo": "2025-03-07",
            "regionId": "1", "universityId": "10",
        }

    def test_non_elevated_omits_scope(self, client):
        browser = AttendanceRecordBrowser(client)
        browser.set_filters(event="permanent-1", selection=ScopeSelection(1))
        (params,), = client.calls_to("list_attendance")
        assert "regionId" not in params
        assert params["dateFrom"] is None

    def test_unknown_filter(self, client):
        with pytest.raises(TypeError):
            AttendanceRecordBrowser(client).set_filters(colour="red")

    def test_fetch_error(self, make_client, make_error):
        browser = AttendanceRecordBrowser(make_client(list_attendance=make_error()))
        browser.set_filters(event="permanent-1")
        assert browser.error == FETCH_ERROR

    def test_wrapped_payload(self, make_client, sample):
        browser = AttendanceRecordBrowser(make_client(list_attendance={"attendance": sample["attendance"]}))
        browser.set_filters(event="permanent-1")
        assert len(browser.records) == 3


class TestSearchAndStats:
    @pytest.fixture()
    def browser(self, client):
        b = AttendanceRecordBrowser(client)
        b.set_filters(event="permanent-1")
        return b

    def test_search_is_local(self, browser, client):
        rows = browser.set_filters(search="okello")
        assert [r["id"] for r in rows] == [902]
        assert len(client.calls_to("list_attendance")) == 1

    def test_search_matches_event_name(self, browser):
        browser.set_filters(search="leadership")
        assert [r["id"] for r in browser.visible_records()] == [903]

    def test_stats(self, browser):
        assert browser.stats() == {"total": 3, "present": 1, "absent": 1, "excused": 1}
        browser.set_filters(search="sunday")
        assert browser.stats() == {"total": 2, "present": 1, "absent": 1, "excused": 0}


class TestInlineEdit:
    @pytest.fixture()
    def browser(self, client):
        b = AttendanceRecordBrowser(client)
        b.set_filters(event="permanent-1")
        return b

    def test_start_edit_uses_current_status(self, browser):
        browser.start_edit(902)
        assert browser.edit_status == "absent"

    def test_start_edit_unknown(self, browser):
        with pytest.raises(ValueError):
            browser.start_edit(1)

    def test_save_refetches(self, browser, client):
        browser.start_edit(902)
        browser.set_edit_status("excused")
        assert browser.save_edit()
        assert client.calls_to("update_attendance") == [(902, "excused")]
        assert browser.message == UPDATE_SUCCESS
        assert browser.editing_id is None
        assert len(client.calls_to("list_attendance")) == 2

    def test_rejected_update(self, browser, client):
        client.responses["update_attendance"] = ApiResponse(204, {"error": "Record locked"})
        browser.start_edit(902)
        assert not browser.save_edit()
        assert browser.edit_error == "Record locked"
        assert browser.editing_id == 902

    def test_update_transport_error(self, browser, client, make_error):
        client.responses["update_attendance"] = make_error("Not allowed", 403)
        browser.start_edit(901)
        assert not browser.save_edit()
        assert browser.edit_error == "Failed to update attendance. Not allowed"

    def test_invalid_edit_status(self, browser):
        browser.start_edit(901)
        with pytest.raises(ValueError):
            browser.set_edit_status("late")

    def test_cancel(self, browser):
        browser.start_edit(901)
        browser.cancel_edit()
        with pytest.raises(ValueError):
            browser.save_edit()
