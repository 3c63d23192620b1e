"""
Filter predicate builder.

A FilterProfile lists, for one endpoint, which FilterSpec fields it accepts
and which column expressions they constrain. Building a profile against a
spec yields one PredicateFragment; fields that are unset contribute nothing.

Column expressions are part of the profile definition in code. Filter values
only ever travel as parameters.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from academy_backend.query.fragments import FragmentWriter, PredicateFragment
from academy_backend.query.spec import FilterSpec

LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Escape LIKE metacharacters so they match literally"""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(term: str) -> str:
    return f"%{escape_like(term.lower())}%"


class FilterField(ABC):

    @abstractmethod
    def apply(self, spec: FilterSpec, writer: FragmentWriter):
        """Add at most one clause for this field to the writer"""


class EqualsFilter(FilterField):
    """`column = value` for a single spec field"""

    def __init__(self, field: str, column: str):
        self.field = field
        self.column = column

    def apply(self, spec: FilterSpec, writer: FragmentWriter):
        value = getattr(spec, self.field)
        if value is None or value == "":
            return
        writer.add(f"{self.column} = {{}}", value)


class IdentityFilter(FilterField):
    """
    One entity addressed either by identity or by its numeric code.

    The identity wins when both are set; the group never emits two clauses.
    """

    def __init__(self, id_field: str, id_column: str, number_field: str, number_column: str):
        self.id_field = id_field
        self.id_column = id_column
        self.number_field = number_field
        self.number_column = number_column

    def apply(self, spec: FilterSpec, writer: FragmentWriter):
        identity = getattr(spec, self.id_field)
        if identity:
            writer.add(f"{self.id_column} = {{}}", identity)
            return
        number = getattr(spec, self.number_field)
        if number is not None:
            writer.add(f"{self.number_column} = {{}}", number)


class SearchFilter(FilterField):
    """Case-insensitive contains over a fixed set of text columns, one shared parameter"""

    def __init__(self, columns: Sequence[str], field: str = "search", coalesce: bool = False):
        if not columns:
            raise ValueError("SearchFilter needs at least one column")
        self.field = field
        self.columns = tuple(columns)
        self.coalesce = coalesce

    def _column(self, column: str) -> str:
        if self.coalesce:
            return f"lower(coalesce({column}, ''))"
        return f"lower({column})"

    def apply(self, spec: FilterSpec, writer: FragmentWriter):
        term = getattr(spec, self.field)
        if term is None or not term.strip():
            return
        alternatives = " OR ".join(
            f"{self._column(column)} LIKE {{0}} ESCAPE '{LIKE_ESCAPE}'" for column in self.columns
        )
        writer.add(f"({alternatives})", contains_pattern(term.strip()))


class DateRangeFilter(FilterField):
    """Inclusive date bounds; a missing bound leaves that side open"""

    def __init__(self, column: str, from_field: str = "date_from", to_field: str = "date_to"):
        self.column = column
        self.from_field = from_field
        self.to_field = to_field

    def apply(self, spec: FilterSpec, writer: FragmentWriter):
        date_from = getattr(spec, self.from_field)
        date_to = getattr(spec, self.to_field)
        if date_from is not None:
            writer.add(f"{self.column} >= {{}}", date_from)
        if date_to is not None:
            writer.add(f"{self.column} <= {{}}", date_to)


class FilterProfile:
    """The filters one endpoint accepts, applied in declaration order"""

    def __init__(self, name: str, fields: List[FilterField], default_limit: int = 50, max_limit: int = 200):
        self.name = name
        self.fields = list(fields)
        self.default_limit = default_limit
        self.max_limit = max_limit

    def build(self, spec: Optional[FilterSpec], start_index: int = 1) -> PredicateFragment:
        writer = FragmentWriter(start_index)
        if spec is not None:
            for field in self.fields:
                field.apply(spec, writer)
        return writer.fragment()

    def __repr__(self):
        return f"FilterProfile({self.name!r})"
