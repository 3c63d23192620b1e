"""
Listing and report queries of the administration portal, and the thin layer
that executes assembled queries. Rows are returned as the store produced them.
"""

import datetime
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from academy_backend.permissions.store import raise_store_error
from academy_backend.query.assembler import Page, Query, assemble, count_and_page, extend, recent_window
from academy_backend.query.fragments import FragmentWriter, scope_fragment
from academy_backend.query.profiles import (
    ATTENDANCE_DATE_FILTERS,
    CANDIDATE_FILTERS,
    COHORT_PLATOON_FILTERS,
    GRADE_SCOPE_FILTERS,
    MEDICAL_EXAM_FILTERS,
    REQUEST_DATE_FILTERS,
    WORKFLOW_REQUEST_FILTERS,
)
from academy_backend.query.spec import FilterSpec

logger = logging.getLogger(__name__)

CANDIDATE_RELATION = """candidates c
JOIN people p ON p.id = c.person_id
JOIN "user" u ON u.id = c.user_id
LEFT JOIN cohorts coh ON coh.id = c.cohort_id
LEFT JOIN platoons pl ON pl.id = c.platoon_id"""

CANDIDATE_PROJECTION = """c.id, c.candidate_no, c.status, c.cohort_id, c.platoon_id,
c.military_no, c.sports_no, p.first_name, p.last_name, u.username, u.email,
coh.cohort_no, coh.name AS cohort_name, pl.platoon_no, pl.name AS platoon_name"""

CANDIDATE_ORDER = "coh.cohort_no DESC NULLS LAST, pl.platoon_no ASC NULLS LAST, c.candidate_no ASC"

MEDICAL_EXAM_RELATION = """exams e
JOIN exam_types et ON et.id = e.exam_type_id
JOIN candidates c ON c.id = e.candidate_id
JOIN people p ON p.id = c.person_id
LEFT JOIN exam_results r ON r.exam_id = e.id
LEFT JOIN cohorts coh ON coh.id = c.cohort_id
LEFT JOIN platoons pl ON pl.id = c.platoon_id"""

MEDICAL_EXAM_PROJECTION = """e.id, e.status, e.scheduled_at, e.performed_at, et.name AS exam_type,
r.fit_status, c.id AS candidate_id, c.candidate_no, p.first_name, p.last_name,
coh.cohort_no, pl.platoon_no"""

WORKFLOW_REQUEST_RELATION = """requests r
JOIN candidates c ON c.id = r.candidate_id
JOIN people p ON p.id = c.person_id
LEFT JOIN cohorts coh ON coh.id = c.cohort_id
LEFT JOIN platoons pl ON pl.id = c.platoon_id"""

WORKFLOW_REQUEST_PROJECTION = """r.id, r.title, r.request_type, r.status, r.priority, r.assigned_to,
r.submitted_at, c.id AS candidate_id, c.candidate_no, p.first_name, p.last_name"""

INSTRUCTOR_CANDIDATES = """r.candidate_id IN (
  SELECT en.candidate_id
  FROM enrollments en
  JOIN course_sections ics ON ics.id = en.section_id
  WHERE ics.instructor_staff_id = {}
)"""

ATTENDANCE_RELATION = """attendance a
JOIN attendance_sessions s ON s.id = a.attendance_session_id
JOIN candidates c ON c.id = a.candidate_id
LEFT JOIN cohorts coh ON coh.id = c.cohort_id
LEFT JOIN platoons pl ON pl.id = c.platoon_id"""

GRADE_RELATION = """grades g
JOIN assessments asm ON asm.id = g.assessment_id
JOIN course_sections cs ON cs.id = asm.section_id
JOIN candidates c ON c.id = g.candidate_id
LEFT JOIN cohorts coh ON coh.id = c.cohort_id
LEFT JOIN platoons pl ON pl.id = c.platoon_id"""

PRESENT = "CASE WHEN a.present THEN 1 ELSE 0 END"
# sessions with no recorded presence count toward neither side
ABSENT = "CASE WHEN a.present = false THEN 1 ELSE 0 END"

PENDING_STATUSES = ("submitted", "in_review")

# dashboard fallbacks when a request carries no date range, in days
ATTENDANCE_WINDOW_DAYS = 14
REQUEST_WINDOW_DAYS = 14
ABSENCE_WINDOW_DAYS = 30


def candidate_list_queries(spec: FilterSpec, page: Page) -> Tuple[Query, Query]:
    return count_and_page(
        CANDIDATE_RELATION,
        [CANDIDATE_FILTERS.build(spec)],
        CANDIDATE_PROJECTION,
        page,
        order_by=CANDIDATE_ORDER,
        max_limit=CANDIDATE_FILTERS.max_limit,
    )


def medical_exam_list_queries(spec: FilterSpec, page: Page) -> Tuple[Query, Query]:
    return count_and_page(
        MEDICAL_EXAM_RELATION,
        [MEDICAL_EXAM_FILTERS.build(spec)],
        MEDICAL_EXAM_PROJECTION,
        page,
        order_by="coalesce(e.performed_at, e.scheduled_at) DESC, c.candidate_no ASC",
        max_limit=MEDICAL_EXAM_FILTERS.max_limit,
    )


def workflow_request_queries(spec: FilterSpec, page: Page, instructor_staff_id: Optional[str] = None) -> Tuple[Query, Query]:
    """Workflow requests, optionally restricted to the candidates an instructor teaches"""
    fragments = []
    if instructor_staff_id is not None:
        fragments.append(scope_fragment(INSTRUCTOR_CANDIDATES, instructor_staff_id))
    start = fragments[0].next_index if fragments else 1
    fragments.append(WORKFLOW_REQUEST_FILTERS.build(spec, start_index=start))

    return count_and_page(
        WORKFLOW_REQUEST_RELATION,
        fragments,
        WORKFLOW_REQUEST_PROJECTION,
        page,
        order_by="r.submitted_at DESC",
        max_limit=WORKFLOW_REQUEST_FILTERS.max_limit,
    )


def advanced_report_queries(spec: FilterSpec, today: Optional[datetime.date] = None) -> Dict[str, Query]:
    """
    Sections of the advanced report.

    All sections share the cohort/platoon fragment; each extends it with its
    own conditions without altering what the other sections see.
    """
    candidates = (COHORT_PLATOON_FILTERS.build(spec),)
    has_range = spec.date_from is not None or spec.date_to is not None

    if has_range:
        attendance_dates = ATTENDANCE_DATE_FILTERS.build(spec)
        request_dates = REQUEST_DATE_FILTERS.build(spec)
        absence_dates = attendance_dates
    else:
        attendance_dates = recent_window("date(s.session_at)", ATTENDANCE_WINDOW_DAYS, today)
        request_dates = recent_window("date(r.submitted_at)", REQUEST_WINDOW_DAYS, today)
        absence_dates = recent_window("date(s.session_at)", ABSENCE_WINDOW_DAYS, today)

    grade_scope = extend(candidates, GRADE_SCOPE_FILTERS.build(spec))
    pending = extend(
        candidates,
        FragmentWriter().add("r.status IN ({}, {})", *PENDING_STATUSES).fragment(),
    )

    return {
        "total_candidates": assemble(
            """candidates c
LEFT JOIN cohorts coh ON coh.id = c.cohort_id
LEFT JOIN platoons pl ON pl.id = c.platoon_id""",
            candidates,
            "count(*) AS total",
        ),
        "pending_requests": assemble(
            WORKFLOW_REQUEST_RELATION,
            pending,
            "count(*) AS total",
        ),
        "attendance_rate": assemble(
            ATTENDANCE_RELATION,
            extend(candidates, attendance_dates),
            f"round(100.0 * sum({PRESENT}) / nullif(count(a.id), 0), 2) AS attendance_rate",
        ),
        "average_grade": assemble(
            GRADE_RELATION,
            grade_scope,
            "round(CAST(avg(g.score) AS NUMERIC), 2) AS average_score",
        ),
        "candidates_by_cohort": assemble(
            """cohorts coh
LEFT JOIN candidates c ON c.cohort_id = coh.id
LEFT JOIN platoons pl ON pl.id = c.platoon_id""",
            candidates,
            "coh.cohort_no, coh.track, count(c.id) AS count",
            group_by="coh.cohort_no, coh.track",
            order_by="coh.cohort_no DESC",
        ),
        "attendance_daily": assemble(
            ATTENDANCE_RELATION,
            extend(candidates, attendance_dates),
            f"""date(s.session_at) AS day,
sum({PRESENT}) AS present_count,
sum({ABSENT}) AS absent_count""",
            group_by="date(s.session_at)",
            order_by="day",
        ),
        "grades_by_course": assemble(
            GRADE_RELATION + "\nJOIN courses co ON co.id = cs.course_id",
            grade_scope,
            "co.code, co.title, round(CAST(avg(g.score) AS NUMERIC), 2) AS average_score, count(*) AS total_grades",
            group_by="co.code, co.title",
            order_by="average_score DESC NULLS LAST",
            limit=8,
        ),
        "requests_daily": assemble(
            WORKFLOW_REQUEST_RELATION,
            extend(candidates, request_dates),
            "date(r.submitted_at) AS day, count(*) AS count",
            group_by="date(r.submitted_at)",
            order_by="day",
        ),
        "medical_by_fit": assemble(
            """exam_results r
JOIN exams e ON e.id = r.exam_id
JOIN candidates c ON c.id = e.candidate_id
LEFT JOIN cohorts coh ON coh.id = c.cohort_id
LEFT JOIN platoons pl ON pl.id = c.platoon_id""",
            candidates,
            "r.fit_status, count(*) AS count",
            group_by="r.fit_status",
            order_by="count DESC",
        ),
        "top_absences": assemble(
            ATTENDANCE_RELATION + "\nJOIN people p ON p.id = c.person_id",
            extend(candidates, absence_dates),
            f"""c.id AS candidate_id, c.candidate_no, p.first_name, p.last_name, coh.cohort_no, pl.platoon_no,
sum({ABSENT}) AS absent_sessions,
round(100.0 * sum({PRESENT}) / nullif(count(*), 0), 2) AS attendance_rate""",
            group_by="c.id, c.candidate_no, p.first_name, p.last_name, coh.cohort_no, pl.platoon_no",
            order_by="absent_sessions DESC, c.candidate_no ASC",
            limit=8,
        ),
    }


def advanced_report(db: Session, spec: FilterSpec, today: Optional[datetime.date] = None) -> Dict[str, Any]:
    """
    Run the advanced report and fold the single-row sections into `summary`.

    An empty attendance scope reports a rate of 0; an empty grade scope
    reports no average.
    """
    rows = run_report(db, advanced_report_queries(spec, today))

    def single(name: str, column: str):
        section = rows.pop(name)
        return section[0][column] if section else None

    summary = {
        "total_candidates": single("total_candidates", "total") or 0,
        "pending_requests": single("pending_requests", "total") or 0,
        "attendance_rate": single("attendance_rate", "attendance_rate") or 0,
        "average_grade": single("average_grade", "average_score"),
    }
    return {"summary": summary, **rows}


def fetch_rows(db: Session, query: Query) -> List[Dict[str, Any]]:
    try:
        result = db.execute(query.statement())
        return [dict(row) for row in result.mappings()]
    except SQLAlchemyError as e:
        logger.error(f"Report query failed: {e}")
        raise_store_error(e)


def fetch_total(db: Session, query: Query) -> int:
    try:
        return int(db.execute(query.statement()).scalar() or 0)
    except SQLAlchemyError as e:
        logger.error(f"Count query failed: {e}")
        raise_store_error(e)


def fetch_page(db: Session, count_query: Query, rows_query: Query) -> Tuple[int, List[Dict[str, Any]]]:
    return fetch_total(db, count_query), fetch_rows(db, rows_query)


def run_report(db: Session, queries: Dict[str, Query]) -> Dict[str, List[Dict[str, Any]]]:
    return {name: fetch_rows(db, query) for name, query in queries.items()}
