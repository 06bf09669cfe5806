"""
Table rows and column specs for each drilldown level.

The engagement endpoints return flat aggregates with ``previousPeriod*``
companions; the builders here fold each pair into a comparison cell and add
the participation progress cell the tables render.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from ministry.table import Column, ComparisonCell

# (row field, previous-period field) pairs rendered as comparison cells.
_COMPARISONS = (
    ("totalEngagement", "previousPeriodEngagement"),
    ("eventAttendance", "previousPeriodEventAttendance"),
    ("engagementRate", "previousPeriodEngagementRate"),
)

_IDENTITY = ("region", "regionId", "university", "universityId", "smallGroup", "smallGroupId")


def _progress(capacity: Any, attendance: Any) -> dict[str, int]:
    capacity = capacity or 0
    attendance = attendance or 0
    percentage = round(attendance / capacity * 100) if capacity > 0 else 0
    return {"capacity": capacity, "attendance": attendance, "percentage": percentage}


def _aggregate_rows(data: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    rows = []
    for item in data or []:
        row = {key: item[key] for key in _IDENTITY if key in item}
        for current_key, previous_key in _COMPARISONS:
            row[current_key] = ComparisonCell.from_values(
                item.get(current_key), item.get(previous_key)).to_dict()
        row["engagementTrend"] = row["engagementRate"]["change"]
        row["totalMembers"] = item.get("totalMembers") or 0
        row["participationProgress"] = _progress(
            item.get("totalMembers"), item.get("totalEngagement"))
        rows.append(row)
    return rows


def build_region_rows(data: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return _aggregate_rows(data)


def build_university_rows(data: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return _aggregate_rows(data)


def build_small_group_rows(data: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return _aggregate_rows(data)


def build_member_rows(data: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Member statistics rows with attendance/score comparisons."""
    rows = []
    for m in data or []:
        rate = m.get("attendanceRate") or 0
        attendance_trend = m.get("attendanceTrend") or 0
        score = m.get("totalEngagementScore") or 0
        score_change = round(score * (m.get("engagementTrend") or 0) / 100)
        rows.append({
            "memberId": m.get("memberId"),
            "memberName": m.get("memberName"),
            "email": m.get("email"),
            "phone": m.get("phone"),
            **{key: m.get(key) for key in _IDENTITY},
            "attendanceRate": ComparisonCell.from_values(
                rate, max(0, rate - attendance_trend)).to_dict(),
            "totalAttendanceDays": m.get("totalAttendanceDays") or 0,
            "totalDaysAttended": m.get("totalDaysAttended") or 0,
            "latestAttendanceStatus": m.get("latestAttendanceStatus"),
            "lastAttendanceDate": m.get("lastAttendanceDate"),
            "daysSinceLastAttendance": m.get("daysSinceLastAttendance"),
            "totalEngagementScore": ComparisonCell.from_values(
                score, max(0, score - score_change)).to_dict(),
            "memberType": m.get("memberType"),
            "memberStatus": m.get("memberStatus"),
            "attendanceTrend": attendance_trend,
            "engagementTrend": m.get("engagementTrend") or 0,
            "participationProgress": _progress(
                m.get("totalAttendanceDays"), m.get("totalDaysAttended")),
        })
    return rows


def member_summary(data: list[Mapping[str, Any]]) -> dict[str, Any] | None:
    if not data:
        return None
    total = len(data)
    active = sum(1 for m in data if m.get("memberStatus") == "active")
    recent = sum(
        1 for m in data
        if m.get("daysSinceLastAttendance") is not None and m["daysSinceLastAttendance"] <= 7
    )
    return {
        "totalMembers": total,
        "activeMembers": active,
        "inactiveMembers": total - active,
        "averageAttendanceRate": sum(m.get("attendanceRate") or 0 for m in data) / total,
        "totalEngagementScore": sum(m.get("totalEngagementScore") or 0 for m in data),
        "membersWithRecentAttendance": recent,
    }


# ── Column specs ──────────────────────────────────────────────────────────────


def _aggregate_columns(key: str, label: str) -> list[Column]:
    return [
        Column(key, label, "text"),
        Column("totalEngagement", "STUDENTS PARTICIPATING", "comparison", align="right"),
        Column("eventAttendance", "EVENTS ATTENDED", "comparison", align="right"),
        Column("engagementRate", "PARTICIPATION RATE", "comparison", align="right"),
        Column("participationProgress", "PARTICIPATION PROGRESS", "progress",
               sortable=False, filterable=False, align="center"),
    ]


MEMBER_COLUMNS = [
    Column("memberName", "STUDENT NAME", "text"),
    Column("latestAttendanceStatus", "CURRENT STATUS", "status"),
    Column("attendanceRate", "YOUR ATTENDANCE", "comparison"),
    Column("totalEngagementScore", "YOUR PARTICIPATION SCORE", "comparison"),
    Column("lastAttendanceDate", "LAST TIME YOU CAME", "date"),
    Column("memberType", "TYPE", "text"),
    Column("attendanceTrend", "ATTENDANCE TREND", "indicator"),
    Column("participationProgress", "PARTICIPATION PROGRESS", "progress",
           sortable=False, filterable=False, align="center"),
]

LEVEL_COLUMNS: dict[str, list[Column]] = {
    "national": _aggregate_columns("region", "REGION"),
    "region": _aggregate_columns("university", "UNIVERSITY"),
    "university": _aggregate_columns("smallGroup", "SMALL GROUP"),
    "member": MEMBER_COLUMNS,
}

LEVEL_TITLES: dict[str, dict[str, str]] = {
    "national": {
        "title": "Regional Student Participation Overview",
        "description": (
            "See how students in each region are participating in ministry events"
            " - Click on a region to view universities"
        ),
    },
    "region": {
        "title": "University Student Participation Overview",
        "description": (
            "See how students in each university are participating in ministry events"
            " - Click on a university to view small groups"
        ),
    },
    "university": {
        "title": "Small Group Student Participation Overview",
        "description": (
            "See how students in each small group are participating in ministry events"
            " - Click on a small group to view individual members"
        ),
    },
    "member": {
        "title": "{name} - Student Participation Report",
        "description": "See how students are participating in ministry events and activities",
    },
}

ROW_BUILDERS = {
    "national": build_region_rows,
    "region": build_university_rows,
    "university": build_small_group_rows,
    "member": build_member_rows,
}


def level_title(level: str, name: str | None = None) -> dict[str, str]:
    if level not in LEVEL_TITLES:
        raise ValueError(f"Unknown report level: {level!r}")
    entry = LEVEL_TITLES[level]
    return {
        "title": entry["title"].format(name=name or "Small Group"),
        "description": entry["description"],
    }
