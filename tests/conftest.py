"""
Pytest fixtures for the ministry reports tests.

Provides a recording FakeClient that stands in for MinistryClient, a fixed
"today", and small but realistic ministry API payloads (regions,
universities, events, members, attendance records, available dates and
per-level engagement aggregates).

No fixture touches the network.
"""

import copy
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ministry.client import ApiError, ApiResponse  # noqa: E402
from utils.config import ClientConfig  # noqa: E402

# Wednesday; the week runs Mon 2025-03-10 .. Sun 2025-03-16.
TODAY = date(2025, 3, 12)


# ── Sample payloads ───────────────────────────────────────────────────────────

REGIONS = [
    {"id": 1, "name": "North"},
    {"id": 2, "name": "South"},
]

UNIVERSITIES = {
    1: [{"id": 10, "name": "Makerere", "regionId": 1},
        {"id": 11, "name": "Gulu", "regionId": 1}],
    2: [{"id": 20, "name": "Mbarara", "regionId": 2}],
}

SMALL_GROUPS = {
    10: [{"id": 100, "name": "Alpha", "universityId": 10, "regionId": 1},
         {"id": 101, "name": "Beta", "universityId": 10, "regionId": 1}],
}

ALUMNI_GROUPS = {
    1: [{"id": 500, "name": "Alumni North", "regionId": 1}],
}

EVENTS = [
    {
        "id": 1, "name": "Sunday Service", "type": "permanent", "isActive": True,
        "regionId": 1, "region": {"name": "North"},
        "totalAttendance": 40, "attendanceRate": 80,
    },
    {
        "id": 2, "name": "Leadership Training", "type": "training", "isActive": True,
        "regionId": 1, "universityId": 10,
        "region": {"name": "North"}, "university": {"name": "Makerere"},
        "totalAttendance": 20, "attendanceRate": 65,
    },
    {
        "id": 3, "name": "Old Retreat", "type": "training", "isActive": False,
        "regionId": 2, "region": {"name": "South"},
        "totalAttendance": 0, "attendanceRate": 0,
    },
    {
        "id": 4, "name": "National Conference", "type": "permanent", "isActive": True,
        "totalAttendance": 100, "attendanceRate": 90,
    },
]

MEMBERS = [
    {"id": 11, "firstname": "Grace", "secondname": "Achieng",
     "email": "grace@example.org", "phone": "0700000011", "type": "student", "status": "active"},
    {"id": 12, "firstname": "John", "secondname": "Okello",
     "email": "john@example.org", "phone": "0700000012", "type": "student", "status": "active"},
    {"id": 13, "firstname": "Mary", "secondname": "Nakato",
     "email": None, "phone": None, "type": "alumni", "status": "inactive"},
]

ATTENDANCE = [
    {"id": 901, "status": "present", "recordedAt": "2025-03-09",
     "member": {"firstname": "Grace", "secondname": "Achieng"},
     "permanentministryevent": {"name": "Sunday Service"}},
    {"id": 902, "status": "absent", "recordedAt": "2025-03-09",
     "member": {"firstname": "John", "secondname": "Okello"},
     "permanentministryevent": {"name": "Sunday Service"}},
    {"id": 903, "status": "excused", "recordedAt": "2025-03-02",
     "member": {"firstname": "Mary", "secondname": "Nakato"},
     "trainings": {"name": "Leadership Training"}},
]

DATES = ["2025-03-12", "2025-03-09", "2025-03-02", "2025-02-16", "2025-01-05"]

ENGAGEMENT = {
    "regions": [
        {"region": "North", "regionId": 1, "universityId": 0, "smallGroupId": 0,
         "totalEngagement": 120, "previousPeriodEngagement": 100,
         "eventAttendance": 30, "previousPeriodEventAttendance": 25,
         "engagementRate": 75, "previousPeriodEngagementRate": 70,
         "totalMembers": 160},
        {"region": "South", "regionId": 2, "universityId": 0, "smallGroupId": 0,
         "totalEngagement": 80, "previousPeriodEngagement": 90,
         "eventAttendance": 20, "previousPeriodEventAttendance": 20,
         "engagementRate": 60, "previousPeriodEngagementRate": 65,
         "totalMembers": 100},
    ],
    "universities": [
        {"university": "Makerere", "universityId": 10, "regionId": 1,
         "totalEngagement": 70, "previousPeriodEngagement": 60,
         "eventAttendance": 18, "previousPeriodEventAttendance": 15,
         "engagementRate": 80, "previousPeriodEngagementRate": 72,
         "totalMembers": 90},
        {"university": "Gulu", "universityId": 11, "regionId": 1,
         "totalEngagement": 50, "previousPeriodEngagement": 40,
         "eventAttendance": 12, "previousPeriodEventAttendance": 10,
         "engagementRate": 70, "previousPeriodEngagementRate": 68,
         "totalMembers": 70},
    ],
    "small-groups": [
        {"smallGroup": "Alpha", "smallGroupId": 100, "universityId": 10, "regionId": 1,
         "totalEngagement": 40, "previousPeriodEngagement": 35,
         "eventAttendance": 10, "previousPeriodEventAttendance": 9,
         "engagementRate": 85, "previousPeriodEngagementRate": 80,
         "totalMembers": 50},
    ],
    "members": [
        {"memberId": 11, "memberName": "Grace Achieng", "email": "grace@example.org",
         "regionId": 1, "universityId": 10, "smallGroupId": 100,
         "attendanceRate": 90, "attendanceTrend": 5,
         "totalEngagementScore": 40, "engagementTrend": 10,
         "latestAttendanceStatus": "present", "lastAttendanceDate": "2025-03-09",
         "daysSinceLastAttendance": 3, "memberType": "student", "memberStatus": "active",
         "totalAttendanceDays": 10, "totalDaysAttended": 9},
        {"memberId": 12, "memberName": "John Okello", "email": "john@example.org",
         "regionId": 1, "universityId": 10, "smallGroupId": 100,
         "attendanceRate": 50, "attendanceTrend": -10,
         "totalEngagementScore": 20, "engagementTrend": 0,
         "latestAttendanceStatus": "absent", "lastAttendanceDate": "2025-02-16",
         "daysSinceLastAttendance": 24, "memberType": "student", "memberStatus": "inactive",
         "totalAttendanceDays": 10, "totalDaysAttended": 5},
    ],
    "student-friendly": {
        "members": [],
        "summary": {"totalMembers": 2, "totalActiveEvents": 6,
                    "totalInactiveEvents": 3, "averageAttendanceRate": 70},
    },
}

KEY_METRICS = {
    "totalEngagement": 1250,
    "averageEngagementRate": 72,
    "eventParticipation": 830,
    "designationParticipation": 420,
    "monthlyGrowth": 8,
}

EXPORT_DETAILS = {
    "engagementDetails": [
        {"type": "Event", "memberName": "Grace Achieng", "eventName": "Sunday Service",
         "attendanceStatus": "present", "recordedAt": "2025-03-09T08:30:00Z", "region": "North"},
        {"type": "Designation", "memberName": "John Okello",
         "designationName": "Worship Team Coordinator", "status": "active",
         "createdAt": "2025-02-16", "region": "North"},
    ],
    "appliedFilters": {"currentLevel": "national", "selectedEvent": "all"},
    "totalCount": 2,
}

SCOPES = {
    "superadmin": {"scope": "superadmin"},
    "national": {"scope": "national"},
    "region": {"scope": "region", "regionId": 1, "region": {"name": "North"}},
    "university": {
        "scope": "university", "regionId": 1, "universityId": 10,
        "region": {"name": "North"}, "university": {"name": "Makerere"},
    },
    "smallgroup": {
        "scope": "smallgroup", "regionId": 1, "universityId": 10, "smallGroupId": 100,
        "region": {"name": "North"}, "university": {"name": "Makerere"},
        "smallGroup": {"name": "Alpha"},
    },
}


# ── Fake client ───────────────────────────────────────────────────────────────


class FakeClient:
    """In-memory MinistryClient double that records every call.

    Each helper answers from ``responses[name]``; a value that is an
    exception instance is raised instead, and a callable is called with the
    helper's arguments.
    """

    def __init__(self, **responses):
        self.config = ClientConfig()
        self.calls: list[tuple] = []
        self.responses = {
            "current_user_scope": SCOPES["superadmin"],
            "list_regions": REGIONS,
            "list_universities": lambda region_id: UNIVERSITIES.get(region_id, []),
            "list_small_groups": lambda university_id: SMALL_GROUPS.get(university_id, []),
            "list_alumni_groups": lambda region_id: ALUMNI_GROUPS.get(region_id, []),
            "list_events": EVENTS,
            "list_members": MEMBERS,
            "list_attendance": ATTENDANCE,
            "attendance_dates": {"dates": DATES, "total": len(DATES)},
            "submit_attendance": ApiResponse(201, {"success": True, "results": []}),
            "update_attendance": ApiResponse(200, {"id": 901}),
            "engagement_level": lambda endpoint, params: ENGAGEMENT.get(endpoint, []),
            "engagement_analytics": {"keyMetrics": KEY_METRICS},
            "export_details": EXPORT_DETAILS,
            "student_analytics": [],
            "contribution_analytics": {},
        }
        self.responses.update(responses)
        self.closed = False

    def _answer(self, name, *args):
        self.calls.append((name, *args))
        value = self.responses[name]
        if isinstance(value, Exception):
            raise value
        if callable(value):
            value = value(*args)
        return copy.deepcopy(value)

    def calls_to(self, name):
        """Arguments of every recorded call to *name*."""
        return [call[1:] for call in self.calls if call[0] == name]

    def close(self):
        self.closed = True

    def invalidate_reference(self):
        return 0

    def current_user_scope(self):
        return self._answer("current_user_scope")

    def list_regions(self):
        return self._answer("list_regions")

    def list_universities(self, region_id):
        return self._answer("list_universities", region_id)

    def list_small_groups(self, university_id):
        return self._answer("list_small_groups", university_id)

    def list_alumni_groups(self, region_id):
        return self._answer("list_alumni_groups", region_id)

    def list_events(self, params=None):
        return self._answer("list_events", dict(params or {}))

    def list_members(self, params=None):
        return self._answer("list_members", dict(params or {}))

    def list_attendance(self, params=None):
        return self._answer("list_attendance", dict(params or {}))

    def attendance_dates(self, params=None):
        return self._answer("attendance_dates", dict(params or {}))

    def submit_attendance(self, payload):
        return self._answer("submit_attendance", payload)

    def update_attendance(self, record_id, status):
        return self._answer("update_attendance", record_id, status)

    def engagement_level(self, endpoint, params=None):
        return self._answer("engagement_level", endpoint, dict(params or {}))

    def engagement_analytics(self, params=None):
        return self._answer("engagement_analytics", dict(params or {}))

    def export_details(self, params=None):
        return self._answer("export_details", dict(params or {}))

    def student_analytics(self, params=None):
        return self._answer("student_analytics", dict(params or {}))

    def contribution_analytics(self, params=None):
        return self._answer("contribution_analytics", dict(params or {}))


def api_error(message="Internal Server Error", status_code=500, path="/api/test"):
    return ApiError(message, status_code=status_code, path=path)


# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture()
def today():
    return TODAY


@pytest.fixture()
def client():
    """A FakeClient with the default sample payloads."""
    return FakeClient()


@pytest.fixture()
def make_client():
    """Factory: ``make_client(list_events=[...], list_members=api_error())``."""
    return FakeClient


@pytest.fixture()
def make_error():
    """Factory for ApiError instances to plant in FakeClient responses."""
    return api_error


@pytest.fixture()
def sample():
    """Deep copies of the sample payloads, keyed by name."""
    return copy.deepcopy({
        "regions": REGIONS,
        "universities": UNIVERSITIES,
        "small_groups": SMALL_GROUPS,
        "alumni_groups": ALUMNI_GROUPS,
        "events": EVENTS,
        "members": MEMBERS,
        "attendance": ATTENDANCE,
        "dates": DATES,
        "engagement": ENGAGEMENT,
        "key_metrics": KEY_METRICS,
        "export_details": EXPORT_DETAILS,
        "scopes": SCOPES,
    })
