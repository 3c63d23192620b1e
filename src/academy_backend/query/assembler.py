"""
Aggregation query assembler.

Turns an ordered list of predicate fragments into final statements. Every
assembled query numbers its own placeholders from :p1, so a count query and
a row query built from the same fragment list bind identical filter values,
and fragment lists can be extended without touching queries already built.
"""

import datetime
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Tuple

from sqlalchemy import bindparam, text
from sqlalchemy.sql.elements import TextClause

from academy_backend.errors import ValidationError
from academy_backend.query.fragments import FragmentWriter, PredicateFragment, placeholder

logger = logging.getLogger(__name__)

# absolute ceiling for endpoints that do not declare their own
MAX_LIMIT = 500


@dataclass(frozen=True)
class Query:
    sql: str
    params: Tuple[Any, ...] = ()

    def bind_params(self) -> dict:
        return {f"p{index}": value for index, value in enumerate(self.params, start=1)}

    def statement(self) -> TextClause:
        """Executable SQLAlchemy statement with typed bound parameters"""
        return text(self.sql).bindparams(
            *(bindparam(name, value) for name, value in self.bind_params().items())
        )


@dataclass(frozen=True)
class Page:
    limit: int
    offset: int = 0

    @classmethod
    def clamp(cls, limit: Any = None, offset: Any = None, default: int = 50, maximum: int = 200) -> "Page":
        """
        Server-side pagination bounds.

        Missing, unparsable or non-positive limits fall back to `default`;
        limits above `maximum` are cut to it. Negative offsets are rejected.
        """
        try:
            requested = int(limit) if limit not in (None, "") else 0
        except (TypeError, ValueError):
            requested = 0
        if requested <= 0:
            requested = default
        try:
            start = int(offset) if offset not in (None, "") else 0
        except (TypeError, ValueError):
            raise ValidationError("offset must be an integer")
        if start < 0:
            raise ValidationError("offset must not be negative")
        return cls(limit=min(requested, maximum), offset=start)


def extend(fragments: Iterable[PredicateFragment], *more: PredicateFragment) -> Tuple[PredicateFragment, ...]:
    """A new, stricter fragment list; the given list is left as it was"""
    return tuple(fragments) + tuple(more)


def combine(fragments: Iterable[PredicateFragment], start_index: int = 1) -> PredicateFragment:
    """Merge fragments into one, renumbering placeholders in append order"""
    clauses = []
    params = []
    cursor = start_index
    for fragment in fragments:
        if fragment is None or fragment.is_empty:
            continue
        shifted = fragment.renumbered(cursor)
        clauses.extend(shifted.clauses)
        params.extend(shifted.params)
        cursor = shifted.next_index
    return PredicateFragment(tuple(clauses), tuple(params), start_index)


def assemble(
    base_relation: str,
    fragments: Sequence[PredicateFragment],
    projection: str,
    group_by: Optional[str] = None,
    order_by: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    max_limit: int = MAX_LIMIT,
) -> Query:
    """
    SELECT `projection` FROM `base_relation` WHERE <fragments AND-ed>.

    Limit and offset, when given, are bound as the trailing parameters; the
    limit is clamped to `max_limit` and a negative offset is rejected. An
    offset without a limit is bounded by `max_limit`.
    """
    where = combine(fragments)
    parts = [f"SELECT {projection}", f"FROM {base_relation}"]
    params = list(where.params)

    if not where.is_empty:
        parts.append(f"WHERE {where.sql_text}")
    if group_by:
        parts.append(f"GROUP BY {group_by}")
    if order_by:
        parts.append(f"ORDER BY {order_by}")

    if limit is None and offset is not None:
        limit = max_limit
    if limit is not None:
        if limit > max_limit:
            logger.debug(f"Clamping limit {limit} to {max_limit}")
        params.append(max(0, min(int(limit), max_limit)))
        parts.append(f"LIMIT {placeholder(len(params))}")
    if offset is not None:
        if offset < 0:
            raise ValidationError("offset must not be negative")
        params.append(int(offset))
        parts.append(f"OFFSET {placeholder(len(params))}")

    return Query(sql="\n".join(parts), params=tuple(params))


def count_and_page(
    base_relation: str,
    fragments: Sequence[PredicateFragment],
    projection: str,
    page: Page,
    order_by: Optional[str] = None,
    max_limit: int = MAX_LIMIT,
) -> Tuple[Query, Query]:
    """A total-count query and a paginated row query over the same fragments"""
    fragments = tuple(fragments)
    count_query = assemble(base_relation, fragments, "count(*) AS total")
    rows_query = assemble(
        base_relation,
        fragments,
        projection,
        order_by=order_by,
        limit=page.limit,
        offset=page.offset,
        max_limit=max_limit,
    )
    return count_query, rows_query


def recent_window(column: str, days: int, today: Optional[datetime.date] = None) -> PredicateFragment:
    """
    Dashboard fallback restricting `column` to the last `days` days.

    Applied by callers when a request carries no date range; the builder never
    adds it on its own.
    """
    if days <= 0:
        raise ValueError("days must be positive")
    cutoff = (today or datetime.date.today()) - datetime.timedelta(days=days)
    return FragmentWriter().add(f"{column} >= {{}}", cutoff).fragment()
