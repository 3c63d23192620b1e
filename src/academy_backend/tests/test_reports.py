"""
Listing and report queries executed against SQLite.
"""

import datetime
import pytest
from sqlalchemy import text

from academy_backend.query.assembler import Page, assemble
from academy_backend.query.spec import FilterSpec
from academy_backend.repositories.reports import (
    advanced_report,
    advanced_report_queries,
    candidate_list_queries,
    fetch_page,
    fetch_rows,
    medical_exam_list_queries,
    run_report,
    workflow_request_queries,
)
from academy_backend.tests.conftest import add_user

TODAY = datetime.date(2024, 6, 30)

ROWS = {
    "cohorts": [
        {"id": "coh-1", "cohort_no": 11, "name": "Eleventh", "track": "army"},
        {"id": "coh-2", "cohort_no": 12, "name": "Twelfth", "track": "navy"},
    ],
    "platoons": [
        {"id": "pl-1", "cohort_id": "coh-1", "platoon_no": 1, "name": "Alpha"},
        {"id": "pl-2", "cohort_id": "coh-2", "platoon_no": 2, "name": "Bravo"},
    ],
    "people": [
        {"id": "per-1", "first_name": "Anna", "last_name": "Smith"},
        {"id": "per-2", "first_name": "Ben", "last_name": "Jones"},
        {"id": "per-3", "first_name": "Cara", "last_name": "100% Smith"},
    ],
    "exam_types": [{"id": "et-1", "name": "Annual physical"}],
    "exams": [
        {"id": "ex-1", "exam_type_id": "et-1", "candidate_id": "cand-1", "status": "done",
         "scheduled_at": "2024-06-01 08:00:00", "performed_at": "2024-06-02 09:00:00"},
        {"id": "ex-2", "exam_type_id": "et-1", "candidate_id": "cand-2", "status": "scheduled",
         "scheduled_at": "2024-07-10 08:00:00", "performed_at": None},
    ],
    "exam_results": [{"id": "res-1", "exam_id": "ex-1", "fit_status": "fit"}],
    "requests": [
        {"id": "req-1", "candidate_id": "cand-1", "title": "Leave request", "body": None,
         "request_type": "leave", "status": "open", "priority": "high", "assigned_to": None,
         "submitted_at": "2024-06-25 10:00:00"},
        {"id": "req-2", "candidate_id": "cand-2", "title": "Equipment", "body": "Boots",
         "request_type": "supply", "status": "in_review", "priority": "low", "assigned_to": None,
         "submitted_at": "2024-06-26 10:00:00"},
    ],
    "courses": [{"id": "co-1", "code": "TAC101", "title": "Tactics"}],
    "course_sections": [{"id": "sec-1", "course_id": "co-1", "term_id": "term-1", "instructor_staff_id": "staff-1"}],
    "enrollments": [{"candidate_id": "cand-1", "section_id": "sec-1"}],
    "assessments": [{"id": "asm-1", "section_id": "sec-1"}],
    "grades": [
        {"id": "g-1", "assessment_id": "asm-1", "candidate_id": "cand-1", "score": 80},
        {"id": "g-2", "assessment_id": "asm-1", "candidate_id": "cand-2", "score": 95},
    ],
    "attendance_sessions": [
        {"id": "ses-1", "section_id": "sec-1", "session_at": "2024-06-20 08:00:00"},
        {"id": "ses-2", "section_id": "sec-1", "session_at": "2024-05-01 08:00:00"},
    ],
    "attendance": [
        {"id": "att-1", "attendance_session_id": "ses-1", "candidate_id": "cand-1", "present": True},
        {"id": "att-2", "attendance_session_id": "ses-1", "candidate_id": "cand-2", "present": False},
        {"id": "att-3", "attendance_session_id": "ses-2", "candidate_id": "cand-2", "present": False},
        {"id": "att-4", "attendance_session_id": "ses-1", "candidate_id": "cand-3", "present": None},
    ],
}


def insert_rows(db, table, rows):
    for row in rows:
        columns = ", ".join(row)
        values = ", ".join(f":{column}" for column in row)
        db.execute(text(f"INSERT INTO {table} ({columns}) VALUES ({values})"), row)


@pytest.fixture
def academy(test_db):
    users = [add_user(test_db, name) for name in ("anna", "ben", "cara")]
    for table, rows in ROWS.items():
        insert_rows(test_db, table, rows)
    insert_rows(test_db, "candidates", [
        {"id": "cand-1", "person_id": "per-1", "user_id": users[0].id, "cohort_id": "coh-1",
         "platoon_id": "pl-1", "candidate_no": "C-001", "status": "active", "military_no": "M-1", "sports_no": "S-1"},
        {"id": "cand-2", "person_id": "per-2", "user_id": users[1].id, "cohort_id": "coh-2",
         "platoon_id": "pl-2", "candidate_no": "C-002", "status": "active", "military_no": "M-2", "sports_no": "S-2"},
        {"id": "cand-3", "person_id": "per-3", "user_id": users[2].id, "cohort_id": "coh-2",
         "platoon_id": "pl-2", "candidate_no": "C-003", "status": "dismissed", "military_no": "M-3", "sports_no": "S-3"},
    ])
    test_db.commit()
    return test_db


class TestCandidateList:

    def test_unfiltered(self, academy):
        total, rows = fetch_page(academy, *candidate_list_queries(FilterSpec(), Page(limit=50)))

        assert total == 3
        assert [row["candidate_no"] for row in rows] == ["C-002", "C-003", "C-001"]

    def test_filtered_total_ignores_pagination(self, academy):
        spec = FilterSpec(cohort_no=12)

        total, rows = fetch_page(academy, *candidate_list_queries(spec, Page(limit=1, offset=1)))

        assert total == 2
        assert [row["candidate_no"] for row in rows] == ["C-003"]

    def test_search_matches_full_name(self, academy):
        total, rows = fetch_page(academy, *candidate_list_queries(FilterSpec(search="anna smi"), Page(limit=50)))

        assert total == 1
        assert rows[0]["username"] == "anna"

    def test_percent_sign_matches_literally(self, academy):
        total, rows = fetch_page(academy, *candidate_list_queries(FilterSpec(search="100%"), Page(limit=50)))

        assert total == 1
        assert rows[0]["candidate_no"] == "C-003"

    def test_injection_attempt_matches_nothing(self, academy):
        spec = FilterSpec(search="'; DROP TABLE candidates; --")

        total, rows = fetch_page(academy, *candidate_list_queries(spec, Page(limit=50)))

        assert (total, rows) == (0, [])
        assert academy.execute(text("SELECT count(*) FROM candidates")).scalar() == 3

    def test_identity_wins_over_number(self, academy):
        spec = FilterSpec(cohort_id="coh-1", cohort_no=12)

        total, rows = fetch_page(academy, *candidate_list_queries(spec, Page(limit=50)))

        assert total == 1
        assert rows[0]["cohort_no"] == 11


class TestMedicalExams:

    def test_date_range_uses_performed_or_scheduled(self, academy):
        spec = FilterSpec(date_from=datetime.date(2024, 7, 1))

        total, rows = fetch_page(academy, *medical_exam_list_queries(spec, Page(limit=200)))

        assert total == 1
        assert rows[0]["id"] == "ex-2"

    def test_fit_status(self, academy):
        total, rows = fetch_page(academy, *medical_exam_list_queries(FilterSpec(fit_status="fit"), Page(limit=200)))

        assert total == 1
        assert rows[0]["exam_type"] == "Annual physical"


class TestWorkflowRequests:

    def test_instructor_sees_own_candidates(self, academy):
        total, rows = fetch_page(
            academy, *workflow_request_queries(FilterSpec(), Page(limit=100), instructor_staff_id="staff-1")
        )

        assert total == 1
        assert rows[0]["id"] == "req-1"

    def test_search_over_nullable_columns(self, academy):
        total, _ = fetch_page(academy, *workflow_request_queries(FilterSpec(search="boots"), Page(limit=100)))

        assert total == 1


class TestAdvancedReport:

    def test_default_windows(self, academy):
        report = run_report(academy, advanced_report_queries(FilterSpec(), today=TODAY))

        assert [row["cohort_no"] for row in report["candidates_by_cohort"]] == [12, 11]
        assert len(report["attendance_daily"]) == 1
        assert report["attendance_daily"][0]["present_count"] == 1
        assert report["attendance_daily"][0]["absent_count"] == 1
        assert report["grades_by_course"][0]["average_score"] == pytest.approx(87.5)
        assert len(report["requests_daily"]) == 2
        assert report["top_absences"][0]["candidate_no"] == "C-002"
        assert report["top_absences"][0]["absent_sessions"] == 1

    def test_cohort_filter_applies_to_every_section(self, academy):
        spec = FilterSpec(cohort_no=11, date_from=datetime.date(2024, 1, 1))

        report = run_report(academy, advanced_report_queries(spec, today=TODAY))

        assert [row["count"] for row in report["candidates_by_cohort"]] == [1]
        assert report["grades_by_course"][0]["total_grades"] == 1
        assert [row["count"] for row in report["requests_daily"]] == [1]
        assert report["top_absences"][0]["absent_sessions"] == 0

    def test_explicit_range_widens_window(self, academy):
        spec = FilterSpec(date_from=datetime.date(2024, 4, 1), date_to=datetime.date(2024, 6, 30))

        report = run_report(academy, advanced_report_queries(spec, today=TODAY))

        assert len(report["attendance_daily"]) == 2
        absences = {row["candidate_no"]: row["absent_sessions"] for row in report["top_absences"]}
        assert absences["C-002"] == 2

    def test_unrecorded_presence_is_not_an_absence(self, academy):
        report = run_report(academy, advanced_report_queries(FilterSpec(), today=TODAY))

        rates = {row["candidate_no"]: row for row in report["top_absences"]}
        assert report["attendance_daily"][0]["absent_count"] == 1
        assert rates["C-003"]["absent_sessions"] == 0
        assert rates["C-003"]["attendance_rate"] == 0
        assert rates["C-002"]["first_name"] == "Ben"
        assert rates["C-001"]["attendance_rate"] == pytest.approx(100.0)

    def test_medical_by_fit(self, academy):
        report = run_report(academy, advanced_report_queries(FilterSpec(), today=TODAY))

        assert report["medical_by_fit"] == [{"fit_status": "fit", "count": 1}]

    def test_summary(self, academy):
        report = advanced_report(academy, FilterSpec(), today=TODAY)

        assert report["summary"]["total_candidates"] == 3
        assert report["summary"]["pending_requests"] == 1
        assert report["summary"]["attendance_rate"] == pytest.approx(33.33)
        assert report["summary"]["average_grade"] == pytest.approx(87.5)
        assert "total_candidates" not in report
        assert set(report) == {
            "summary",
            "candidates_by_cohort",
            "attendance_daily",
            "grades_by_course",
            "requests_daily",
            "medical_by_fit",
            "top_absences",
        }

    def test_summary_of_empty_scope(self, academy):
        report = advanced_report(academy, FilterSpec(cohort_no=99), today=TODAY)

        assert report["summary"] == {
            "total_candidates": 0,
            "pending_requests": 0,
            "attendance_rate": 0,
            "average_grade": None,
        }


def test_offset_without_limit(academy):
    rows = fetch_rows(academy, assemble("cohorts coh", [], "coh.cohort_no", order_by="coh.cohort_no", offset=1))

    assert rows == [{"cohort_no": 12}]


def test_fetch_rows_returns_dicts(academy):
    rows = fetch_rows(academy, assemble("cohorts coh", [], "coh.id, coh.cohort_no", order_by="coh.cohort_no"))

    assert rows == [{"id": "coh-1", "cohort_no": 11}, {"id": "coh-2", "cohort_no": 12}]
