"""
FilterSpec: the normalized, optional filters one listing or report request
carries, plus the helpers handlers use to build it from raw query parameters.
"""

import datetime
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from academy_backend.errors import ValidationError

TRUE_VALUES = {"true", "1", "yes", "y", "on"}
FALSE_VALUES = {"false", "0", "no", "n", "off"}


def normalize_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    normalized = str(value).strip()
    return normalized or None


def first_present(params: Mapping[str, Any], *names: str) -> Optional[str]:
    """The first of `names` carrying a non-blank value"""
    for name in names:
        value = normalize_string(params.get(name))
        if value is not None:
            return value
    return None


def parse_integer(value: Any, field: str = "value") -> Optional[int]:
    normalized = normalize_string(value)
    if normalized is None:
        return None
    try:
        return int(normalized)
    except ValueError:
        raise ValidationError(f"{field} must be an integer")


def parse_boolean(value: Any, field: str = "value") -> Optional[bool]:
    if isinstance(value, bool):
        return value
    normalized = normalize_string(value)
    if normalized is None:
        return None
    normalized = normalized.lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ValidationError(f"{field} must be a boolean")


def parse_date(value: Any, field: str = "value") -> Optional[datetime.date]:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    normalized = normalize_string(value)
    if normalized is None:
        return None
    try:
        return datetime.date.fromisoformat(normalized[:10])
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")


class FilterSpec(BaseModel):
    """Optional filters of one request; unset fields do not filter"""

    cohort_id: Optional[str] = Field(None, description="Cohort identity, preferred over cohort_no")
    cohort_no: Optional[int] = Field(None, description="Cohort number")
    platoon_id: Optional[str] = Field(None, description="Platoon identity, preferred over platoon_no")
    platoon_no: Optional[int] = Field(None, description="Platoon number")
    search: Optional[str] = Field(None, description="Free-text search term")
    status: Optional[str] = None
    fit_status: Optional[str] = None
    request_type: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    exam_type_id: Optional[str] = None
    term_id: Optional[str] = None
    course_id: Optional[str] = None
    date_from: Optional[datetime.date] = None
    date_to: Optional[datetime.date] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_date_range(self):
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValidationError("date_from must not be after date_to")
        return self

    @classmethod
    def from_query_params(cls, params: Mapping[str, Any]) -> "FilterSpec":
        """
        Normalize raw query parameters.

        Strings are trimmed and empty values dropped; `from`/`to` are accepted
        as aliases of `date_from`/`date_to`. Raises ValidationError on values
        that cannot be parsed.
        """
        date_from = parse_date(first_present(params, "date_from", "from"), "from")
        date_to = parse_date(first_present(params, "date_to", "to"), "to")
        if date_from and date_to and date_from > date_to:
            raise ValidationError("from must not be after to")

        search = normalize_string(params.get("search"))

        return cls(
            cohort_id=normalize_string(params.get("cohort_id")),
            cohort_no=parse_integer(params.get("cohort_no"), "cohort_no"),
            platoon_id=normalize_string(params.get("platoon_id")),
            platoon_no=parse_integer(params.get("platoon_no"), "platoon_no"),
            search=search,
            status=normalize_string(params.get("status")),
            fit_status=normalize_string(params.get("fit_status")),
            request_type=normalize_string(params.get("request_type")),
            priority=normalize_string(params.get("priority")),
            assigned_to=normalize_string(params.get("assigned_to")),
            exam_type_id=normalize_string(params.get("exam_type_id")),
            term_id=normalize_string(params.get("term_id")),
            course_id=normalize_string(params.get("course_id")),
            date_from=date_from,
            date_to=date_to,
        )
