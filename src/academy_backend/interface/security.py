from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class RoleGet(BaseModel):
    id: str = Field(description="Role unique identifier")
    name: str = Field(description="Role name")
    description: Optional[str] = Field(None, description="Role description")

    model_config = ConfigDict(from_attributes=True)


class PermissionGet(BaseModel):
    id: str = Field(description="Permission unique identifier")
    code: str = Field(description="Stable permission code used in checks")
    description: Optional[str] = Field(None, description="Permission description")

    model_config = ConfigDict(from_attributes=True)


class RolePermissionGet(BaseModel):
    role_id: str
    permission_id: str
    code: str


class RankGet(BaseModel):
    id: str
    name: str
    order_index: int
    category: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RankPolicyGet(BaseModel):
    rank_id: str
    role_id: str

    model_config = ConfigDict(from_attributes=True)


class SecurityUserGet(BaseModel):
    user_id: str
    username: str
    email: Optional[str] = None
    rank_id: Optional[str] = None
    rank_name: Optional[str] = None
    role_ids: List[str] = Field(default_factory=list)
    role_names: List[str] = Field(default_factory=list)


class SecurityOverview(BaseModel):
    roles: List[RoleGet] = Field(default_factory=list)
    permissions: List[PermissionGet] = Field(default_factory=list)
    role_permissions: List[RolePermissionGet] = Field(default_factory=list)
    users: List[SecurityUserGet] = Field(default_factory=list)
    ranks: List[RankGet] = Field(default_factory=list)
    rank_policies: List[RankPolicyGet] = Field(default_factory=list)


class PermissionIdsUpdate(BaseModel):
    permission_ids: List[str] = Field(default_factory=list)


class RoleIdsUpdate(BaseModel):
    role_ids: List[str] = Field(default_factory=list)


class ReplaceResult(BaseModel):
    updated: bool = True
    ids: List[str] = Field(default_factory=list)


class ApplyRankPoliciesResult(BaseModel):
    assigned: int


class MeGet(BaseModel):
    user_id: str
    username: Optional[str] = None
    email: Optional[str] = None
    roles: List[str] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)
