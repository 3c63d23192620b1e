from .spec import FilterSpec, normalize_string, parse_integer, parse_boolean, parse_date
from .fragments import PredicateFragment, FragmentWriter, scope_fragment, EMPTY
from .builder import (
    FilterField,
    FilterProfile,
    EqualsFilter,
    IdentityFilter,
    SearchFilter,
    DateRangeFilter,
)
from .assembler import Query, Page, assemble, combine, extend, count_and_page, recent_window, MAX_LIMIT

__all__ = [
    "FilterSpec",
    "normalize_string",
    "parse_integer",
    "parse_boolean",
    "parse_date",
    "PredicateFragment",
    "FragmentWriter",
    "scope_fragment",
    "EMPTY",
    "FilterField",
    "FilterProfile",
    "EqualsFilter",
    "IdentityFilter",
    "SearchFilter",
    "DateRangeFilter",
    "Query",
    "Page",
    "assemble",
    "combine",
    "extend",
    "count_and_page",
    "recent_window",
    "MAX_LIMIT",
]
