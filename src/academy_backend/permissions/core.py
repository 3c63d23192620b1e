"""
Permission resolution: role checks on a Principal, effective permission sets
read from the store, and full-replace editing of role grants and user roles.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from academy_backend.errors import Unauthorized
from academy_backend.interface.security import (
    PermissionGet,
    RankGet,
    RankPolicyGet,
    RoleGet,
    RolePermissionGet,
    SecurityOverview,
    SecurityUserGet,
)
from academy_backend.model.auth import Permission, Role, RolePermission, User, UserRole
from academy_backend.model.organization import Rank, RankRolePolicy, Staff
from academy_backend.permissions.principal import Principal
from academy_backend.permissions.store import raise_store_error, replace_link_set

logger = logging.getLogger(__name__)


def has_any_role(principal: Principal, candidate_roles: Iterable[str]) -> bool:
    """Coarse route guard check: does the principal hold any of the candidate roles"""
    return principal.has_any_role(candidate_roles)


def require_any_role(principal: Principal, candidate_roles: Iterable[str]) -> Principal:
    candidates = set(candidate_roles)
    if not has_any_role(principal, candidates):
        logger.warning(f"User {principal.user_id} denied: requires one of {sorted(candidates)}")
        raise Unauthorized()
    return principal


def effective_permissions(user_id: str, db: Session) -> List[str]:
    """Distinct permission codes granted through all current role assignments, ordered by code"""
    stmt = (
        select(Permission.code)
        .select_from(UserRole)
        .join(RolePermission, RolePermission.role_id == UserRole.role_id)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .where(UserRole.user_id == str(user_id))
        .distinct()
        .order_by(Permission.code)
    )
    try:
        return list(db.scalars(stmt).all())
    except SQLAlchemyError as e:
        raise_store_error(e)


def user_role_names(user_id: str, db: Session) -> List[str]:
    """Names of the roles currently assigned to a user, as embedded in issued claims"""
    stmt = (
        select(Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == str(user_id))
        .order_by(Role.name)
    )
    try:
        return list(db.scalars(stmt).all())
    except SQLAlchemyError as e:
        raise_store_error(e)


def replace_role_permissions(role_id: str, permission_ids: Iterable[str], db: Session) -> List[str]:
    """Make the role's grants exactly `permission_ids` in one transaction"""
    return replace_link_set(
        db,
        RolePermission,
        owner_field="role_id",
        owner_id=role_id,
        owner_column=Role.id,
        member_field="permission_id",
        member_ids=permission_ids,
        member_column=Permission.id,
    )


def replace_user_roles(user_id: str, role_ids: Iterable[str], db: Session) -> List[str]:
    """Make the user's role assignments exactly `role_ids` in one transaction"""
    return replace_link_set(
        db,
        UserRole,
        owner_field="user_id",
        owner_id=user_id,
        owner_column=User.id,
        member_field="role_id",
        member_ids=role_ids,
        member_column=Role.id,
    )


class PermissionResolver:
    """
    Request-scoped resolver bound to one session.

    Effective permission sets are memoized for the lifetime of the resolver
    only; callers that change assignments mid-request call `invalidate`.
    """

    def __init__(self, db: Session):
        self.db = db
        self._permissions: Dict[str, List[str]] = {}

    def effective_permissions(self, user_id: str) -> List[str]:
        user_id = str(user_id)
        if user_id not in self._permissions:
            self._permissions[user_id] = effective_permissions(user_id, self.db)
        return self._permissions[user_id]

    def has_permission(self, principal: Principal, code: str) -> bool:
        return code in self.effective_permissions(principal.user_id)

    def require_permission(self, principal: Principal, code: str) -> Principal:
        if not self.has_permission(principal, code):
            logger.warning(f"User {principal.user_id} denied: requires permission {code}")
            raise Unauthorized()
        return principal

    def invalidate(self, user_id: Optional[str] = None):
        if user_id is None:
            self._permissions.clear()
        else:
            self._permissions.pop(str(user_id), None)


def security_overview(db: Session) -> SecurityOverview:
    """Catalogs and assignment tables for the policy administration surface"""

    roles = db.scalars(select(Role).order_by(Role.name)).all()
    permissions = db.scalars(select(Permission).order_by(Permission.code)).all()
    grants = db.execute(
        select(RolePermission.role_id, RolePermission.permission_id, Permission.code)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .order_by(RolePermission.role_id, Permission.code)
    ).all()
    ranks = db.scalars(select(Rank).order_by(Rank.order_index, Rank.name)).all()
    policies = db.scalars(
        select(RankRolePolicy).order_by(RankRolePolicy.rank_id, RankRolePolicy.role_id)
    ).all()

    user_rows = db.execute(
        select(User.id, User.username, User.email, Rank.id.label("rank_id"), Rank.name.label("rank_name"))
        .outerjoin(Staff, Staff.user_id == User.id)
        .outerjoin(Rank, Rank.id == Staff.rank_id)
        .order_by(User.username)
    ).all()
    assignments = db.execute(
        select(UserRole.user_id, Role.id, Role.name)
        .join(Role, Role.id == UserRole.role_id)
        .order_by(Role.name)
    ).all()

    roles_by_user: Dict[str, List[tuple]] = {}
    for user_id, role_id, role_name in assignments:
        roles_by_user.setdefault(user_id, []).append((role_id, role_name))

    users = [
        SecurityUserGet(
            user_id=row.id,
            username=row.username,
            email=row.email,
            rank_id=row.rank_id,
            rank_name=row.rank_name,
            role_ids=[role_id for role_id, _ in roles_by_user.get(row.id, [])],
            role_names=[role_name for _, role_name in roles_by_user.get(row.id, [])],
        )
        for row in user_rows
    ]

    return SecurityOverview(
        roles=[RoleGet.model_validate(role) for role in roles],
        permissions=[PermissionGet.model_validate(permission) for permission in permissions],
        role_permissions=[
            RolePermissionGet(role_id=role_id, permission_id=permission_id, code=code)
            for role_id, permission_id, code in grants
        ],
        users=users,
        ranks=[RankGet.model_validate(rank) for rank in ranks],
        rank_policies=[RankPolicyGet.model_validate(policy) for policy in policies],
    )
