"""
Filter profiles of the listing and report endpoints.

Aliases follow the relations in `repositories.reports`: c = candidates,
p = people, coh = cohorts, pl = platoons, e = exams, r = exam results or
requests, s = attendance sessions, cs = course sections.
"""

from academy_backend.query.builder import (
    DateRangeFilter,
    EqualsFilter,
    FilterProfile,
    IdentityFilter,
    SearchFilter,
)

COHORT = IdentityFilter("cohort_id", "coh.id", "cohort_no", "coh.cohort_no")
PLATOON = IdentityFilter("platoon_id", "pl.id", "platoon_no", "pl.platoon_no")

CANDIDATE_FILTERS = FilterProfile(
    "candidates",
    [
        EqualsFilter("status", "c.status"),
        COHORT,
        PLATOON,
        SearchFilter([
            "p.first_name || ' ' || p.last_name",
            "c.candidate_no",
            "c.military_no",
            "c.sports_no",
        ]),
    ],
    default_limit=50,
    max_limit=200,
)

MEDICAL_EXAM_FILTERS = FilterProfile(
    "medical_exams",
    [
        COHORT,
        PLATOON,
        EqualsFilter("exam_type_id", "e.exam_type_id"),
        EqualsFilter("status", "e.status"),
        EqualsFilter("fit_status", "r.fit_status"),
        DateRangeFilter("date(coalesce(e.performed_at, e.scheduled_at))"),
        SearchFilter([
            "p.first_name || ' ' || p.last_name",
            "c.candidate_no",
            "c.military_no",
        ]),
    ],
    default_limit=200,
    max_limit=500,
)

WORKFLOW_REQUEST_FILTERS = FilterProfile(
    "workflow_requests",
    [
        SearchFilter(
            [
                "r.title",
                "r.body",
                "c.candidate_no",
                "c.military_no",
                "p.first_name",
                "p.last_name",
            ],
            coalesce=True,
        ),
        EqualsFilter("status", "r.status"),
        EqualsFilter("request_type", "r.request_type"),
        EqualsFilter("priority", "r.priority"),
        EqualsFilter("assigned_to", "r.assigned_to"),
        COHORT,
        PLATOON,
    ],
    default_limit=100,
    max_limit=300,
)

# Shared prefix of the advanced report: every section filters candidates by
# cohort and platoon, then adds its own conditions.
COHORT_PLATOON_FILTERS = FilterProfile("cohort_platoon", [COHORT, PLATOON])

ATTENDANCE_DATE_FILTERS = FilterProfile("attendance_dates", [DateRangeFilter("date(s.session_at)")])

REQUEST_DATE_FILTERS = FilterProfile("request_dates", [DateRangeFilter("date(r.submitted_at)")])

GRADE_SCOPE_FILTERS = FilterProfile(
    "grade_scope",
    [
        EqualsFilter("term_id", "cs.term_id"),
        EqualsFilter("course_id", "cs.course_id"),
    ],
)
