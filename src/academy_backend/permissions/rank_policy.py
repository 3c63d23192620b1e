"""
Rank to role policies.

A rank policy declares which roles staff holding that rank should have.
Applying the policies only ever adds assignments: roles granted by hand, or
left over from an earlier policy, are never revoked here.
"""

import logging
from typing import Iterable, List

from sqlalchemy import and_, exists, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from academy_backend.model.auth import Role, UserRole
from academy_backend.model.organization import Rank, RankRolePolicy, Staff
from academy_backend.permissions.store import insert_if_absent, raise_store_error, replace_link_set

logger = logging.getLogger(__name__)


def replace_rank_policy(rank_id: str, role_ids: Iterable[str], db: Session) -> List[str]:
    """Make the rank's policy exactly `role_ids` in one transaction"""
    return replace_link_set(
        db,
        RankRolePolicy,
        owner_field="rank_id",
        owner_id=rank_id,
        owner_column=Rank.id,
        member_field="role_id",
        member_ids=role_ids,
        member_column=Role.id,
    )


def rank_policy_roles(rank_id: str, db: Session) -> List[str]:
    stmt = (
        select(RankRolePolicy.role_id)
        .where(RankRolePolicy.rank_id == str(rank_id))
        .order_by(RankRolePolicy.role_id)
    )
    return list(db.scalars(stmt).all())


def pending_policy_assignments(db: Session) -> List[tuple]:
    """
    (user_id, role_id) pairs required by a rank policy but not yet assigned.

    Staff without a user, without a rank, with a rank that no longer exists or
    with a rank that has no policy produce no pairs.
    """
    already_assigned = exists().where(
        and_(UserRole.user_id == Staff.user_id, UserRole.role_id == RankRolePolicy.role_id)
    )
    stmt = (
        select(Staff.user_id, RankRolePolicy.role_id)
        .join(RankRolePolicy, RankRolePolicy.rank_id == Staff.rank_id)
        .join(Rank, Rank.id == Staff.rank_id)
        .where(Staff.user_id.isnot(None))
        .where(~already_assigned)
        .distinct()
        .order_by(Staff.user_id, RankRolePolicy.role_id)
    )
    return [(row.user_id, row.role_id) for row in db.execute(stmt)]


def apply_rank_policies(db: Session) -> int:
    """
    Reconcile user role assignments with the rank policies.

    Safe to run repeatedly or concurrently: rows inserted by a concurrent run
    are ignored rather than raised. Returns the number of assignments created.
    """
    try:
        pairs = pending_policy_assignments(db)
        assigned = insert_if_absent(
            db, UserRole, ({"user_id": user_id, "role_id": role_id} for user_id, role_id in pairs)
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Applying rank policies failed: {e}")
        raise_store_error(e)

    logger.info(f"Applied rank policies: {assigned} new role assignments")
    return assigned
