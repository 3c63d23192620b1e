from typing import FrozenSet, Iterable
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Principal(BaseModel):
    """Authenticated caller of one request: user id and the role names of its claim"""

    user_id: str
    roles: FrozenSet[str] = Field(default_factory=frozenset)

    model_config = ConfigDict(frozen=True)

    @field_validator("roles", mode="before")
    @classmethod
    def _coerce_roles(cls, value):
        if value is None:
            return frozenset()
        if isinstance(value, str):
            return frozenset([value])
        return frozenset(str(role) for role in value)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, candidate_roles: Iterable[str]) -> bool:
        """True iff at least one of the candidate roles is held"""
        return not self.roles.isdisjoint(candidate_roles)
