"""
Predicate fragments: ordered WHERE clauses with their positional parameters.

Clauses reference parameters through `:p<n>` placeholders numbered from the
fragment's `start_index`. Fragments are immutable; renumbering returns a new
fragment.
"""

import re
from dataclasses import dataclass
from typing import Any, Tuple

PLACEHOLDER = re.compile(r":p(\d+)\b")


def placeholder(index: int) -> str:
    return f":p{index}"


@dataclass(frozen=True)
class PredicateFragment:
    clauses: Tuple[str, ...] = ()
    params: Tuple[Any, ...] = ()
    start_index: int = 1

    def __post_init__(self):
        object.__setattr__(self, "clauses", tuple(self.clauses))
        object.__setattr__(self, "params", tuple(self.params))
        if self.start_index < 1:
            raise ValueError("start_index must be >= 1")
        for clause in self.clauses:
            for match in PLACEHOLDER.finditer(clause):
                index = int(match.group(1))
                if not self.start_index <= index < self.next_index:
                    raise ValueError(f"Placeholder :p{index} outside of parameter range in {clause!r}")

    @property
    def is_empty(self) -> bool:
        return not self.clauses

    @property
    def next_index(self) -> int:
        """First placeholder index not used by this fragment"""
        return self.start_index + len(self.params)

    @property
    def sql_text(self) -> str:
        return " AND ".join(self.clauses)

    def renumbered(self, start_index: int) -> "PredicateFragment":
        """The same predicate with placeholders numbered from `start_index`"""
        if start_index == self.start_index:
            return self
        shift = start_index - self.start_index

        def _shift(match):
            return placeholder(int(match.group(1)) + shift)

        return PredicateFragment(
            clauses=tuple(PLACEHOLDER.sub(_shift, clause) for clause in self.clauses),
            params=self.params,
            start_index=start_index,
        )


class FragmentWriter:
    """
    Accumulates clauses for one fragment.

    Clause templates use `{}`/`{0}` fields where parameter placeholders go;
    values never become part of the SQL text.
    """

    def __init__(self, start_index: int = 1):
        self.start_index = start_index
        self.clauses = []
        self.params = []

    def add(self, template: str, *values: Any) -> "FragmentWriter":
        placeholders = []
        for value in values:
            placeholders.append(placeholder(self.start_index + len(self.params)))
            self.params.append(value)
        self.clauses.append(template.format(*placeholders))
        return self

    def fragment(self) -> PredicateFragment:
        return PredicateFragment(tuple(self.clauses), tuple(self.params), self.start_index)


def scope_fragment(template: str, *values: Any, start_index: int = 1) -> PredicateFragment:
    """A caller-owned clause, e.g. restricting rows to an instructor's candidates"""
    return FragmentWriter(start_index).add(f"({template})", *values).fragment()


EMPTY = PredicateFragment()
