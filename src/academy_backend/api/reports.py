from typing import Annotated, Any, Dict
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from academy_backend.api.exceptions import ForbiddenException
from academy_backend.database import get_db
from academy_backend.model.organization import Staff
from academy_backend.permissions.auth import require_roles
from academy_backend.permissions.principal import Principal
from academy_backend.query.assembler import Page
from academy_backend.query.profiles import CANDIDATE_FILTERS, MEDICAL_EXAM_FILTERS, WORKFLOW_REQUEST_FILTERS
from academy_backend.query.spec import FilterSpec
from academy_backend.repositories.reports import (
    advanced_report,
    candidate_list_queries,
    fetch_page,
    medical_exam_list_queries,
    workflow_request_queries,
)

reports_router = APIRouter()
instructor_router = APIRouter()

AdminPrincipal = Annotated[Principal, Depends(require_roles("admin"))]


def _page(request: Request, default: int, maximum: int) -> Page:
    return Page.clamp(
        request.query_params.get("limit"),
        request.query_params.get("offset"),
        default=default,
        maximum=maximum,
    )


@reports_router.get("/candidates")
def list_candidates(request: Request, response: Response, principal: AdminPrincipal, db: Session = Depends(get_db)) -> Dict[str, Any]:
    spec = FilterSpec.from_query_params(request.query_params)
    page = _page(request, CANDIDATE_FILTERS.default_limit, CANDIDATE_FILTERS.max_limit)

    total, rows = fetch_page(db, *candidate_list_queries(spec, page))
    response.headers["X-Total-Count"] = str(total)

    return {"total": total, "rows": rows}


@reports_router.get("/medical/exams")
def list_medical_exams(request: Request, response: Response, principal: AdminPrincipal, db: Session = Depends(get_db)) -> Dict[str, Any]:
    spec = FilterSpec.from_query_params(request.query_params)
    page = _page(request, MEDICAL_EXAM_FILTERS.default_limit, MEDICAL_EXAM_FILTERS.max_limit)

    total, rows = fetch_page(db, *medical_exam_list_queries(spec, page))
    response.headers["X-Total-Count"] = str(total)

    return {"total": total, "rows": rows}


@reports_router.get("/reports/advanced")
def get_advanced_report(request: Request, principal: AdminPrincipal, db: Session = Depends(get_db)) -> Dict[str, Any]:
    spec = FilterSpec.from_query_params(request.query_params)
    return advanced_report(db, spec)


@reports_router.get("/requests")
def list_requests(request: Request, response: Response, principal: AdminPrincipal, db: Session = Depends(get_db)) -> Dict[str, Any]:
    spec = FilterSpec.from_query_params(request.query_params)
    page = _page(request, WORKFLOW_REQUEST_FILTERS.default_limit, WORKFLOW_REQUEST_FILTERS.max_limit)

    total, rows = fetch_page(db, *workflow_request_queries(spec, page))
    response.headers["X-Total-Count"] = str(total)

    return {"total": total, "rows": rows}


@instructor_router.get("/requests")
def list_instructor_requests(
    request: Request,
    response: Response,
    principal: Annotated[Principal, Depends(require_roles("instructor"))],
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Workflow requests of the candidates enrolled in the caller's sections"""
    staff_id = db.scalars(select(Staff.id).where(Staff.user_id == principal.user_id)).first()

    if staff_id is None:
        raise ForbiddenException(detail="No staff record for this user")

    spec = FilterSpec.from_query_params(request.query_params)
    page = _page(request, WORKFLOW_REQUEST_FILTERS.default_limit, WORKFLOW_REQUEST_FILTERS.max_limit)

    total, rows = fetch_page(db, *workflow_request_queries(spec, page, instructor_staff_id=staff_id))
    response.headers["X-Total-Count"] = str(total)

    return {"total": total, "rows": rows}
