import logging
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from academy_backend.database import get_db
from academy_backend.interface.security import (
    ApplyRankPoliciesResult,
    PermissionIdsUpdate,
    ReplaceResult,
    RoleIdsUpdate,
    SecurityOverview,
)
from academy_backend.permissions.auth import require_permission
from academy_backend.permissions.core import replace_role_permissions, replace_user_roles, security_overview
from academy_backend.permissions.principal import Principal
from academy_backend.permissions.rank_policy import apply_rank_policies, replace_rank_policy

logger = logging.getLogger(__name__)

security_router = APIRouter()

SECURITY_PERMISSION = "security.manage"

SecurityManager = Annotated[Principal, Depends(require_permission(SECURITY_PERMISSION))]


@security_router.get("/overview", response_model=SecurityOverview)
def get_security_overview(principal: SecurityManager, db: Session = Depends(get_db)):
    return security_overview(db)


@security_router.put("/role-permissions/{role_id}", response_model=ReplaceResult)
def put_role_permissions(role_id: str, payload: PermissionIdsUpdate, principal: SecurityManager, db: Session = Depends(get_db)):
    ids = replace_role_permissions(role_id, payload.permission_ids, db)
    logger.info(f"User {principal.user_id} replaced permissions of role {role_id}")
    return ReplaceResult(ids=ids)


@security_router.put("/user-roles/{user_id}", response_model=ReplaceResult)
def put_user_roles(user_id: str, payload: RoleIdsUpdate, principal: SecurityManager, db: Session = Depends(get_db)):
    ids = replace_user_roles(user_id, payload.role_ids, db)
    logger.info(f"User {principal.user_id} replaced roles of user {user_id}")
    return ReplaceResult(ids=ids)


@security_router.put("/rank-policies/{rank_id}", response_model=ReplaceResult)
def put_rank_policy(rank_id: str, payload: RoleIdsUpdate, principal: SecurityManager, db: Session = Depends(get_db)):
    ids = replace_rank_policy(rank_id, payload.role_ids, db)
    logger.info(f"User {principal.user_id} replaced policy of rank {rank_id}")
    return ReplaceResult(ids=ids)


@security_router.post("/apply-rank-policies", response_model=ApplyRankPoliciesResult)
def post_apply_rank_policies(principal: SecurityManager, db: Session = Depends(get_db)):
    return ApplyRankPoliciesResult(assigned=apply_rank_policies(db))
