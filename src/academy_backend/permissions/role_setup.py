"""
Built-in roles and permissions.

Seeding only adds what is missing. It never removes grants or changes the
description of an existing role or permission.
"""

import logging
from typing import Dict, List, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from academy_backend.model.auth import Permission, Role, RolePermission
from academy_backend.permissions.store import insert_if_absent, raise_store_error

logger = logging.getLogger(__name__)

DEFAULT_ROLES: Dict[str, str] = {
    "admin": "System administrator",
    "instructor": "Course instructor",
    "candidate": "Officer candidate",
    "media_writer": "Media content writer",
    "media_reviewer": "Media reviewer",
    "media_publisher": "Media publisher",
}

DEFAULT_PERMISSIONS: Dict[str, str] = {
    "security.manage": "Manage roles, permissions and rank policies",
    "candidates.read": "Read candidate records",
    "candidates.write": "Create and update candidate records",
    "reports.read": "Read reports and dashboards",
    "medical.read": "Read medical exams",
    "attendance.write": "Record attendance",
    "grades.write": "Record grades",
    "requests.review": "Review workflow requests",
    "media.posts.read": "Read media posts",
    "media.posts.write": "Create and update media posts",
    "media.posts.review": "Review and approve/reject media posts",
    "media.posts.publish": "Publish/archive/pin media posts",
}

DEFAULT_ROLE_PERMISSIONS: List[Tuple[str, str]] = [
    *[("admin", code) for code in DEFAULT_PERMISSIONS],
    ("instructor", "candidates.read"),
    ("instructor", "attendance.write"),
    ("instructor", "grades.write"),
    ("instructor", "requests.review"),
    ("media_writer", "media.posts.read"),
    ("media_writer", "media.posts.write"),
    ("media_reviewer", "media.posts.read"),
    ("media_reviewer", "media.posts.review"),
    ("media_publisher", "media.posts.read"),
    ("media_publisher", "media.posts.publish"),
]


def _ensure_roles(db: Session, roles: Dict[str, str]) -> Dict[str, str]:
    existing = {role.name: role for role in db.scalars(select(Role).where(Role.name.in_(roles))).all()}
    for name, description in roles.items():
        if name not in existing:
            role = Role(name=name, description=description)
            db.add(role)
            existing[name] = role
    db.flush()
    return {name: role.id for name, role in existing.items()}


def _ensure_permissions(db: Session, permissions: Dict[str, str]) -> Dict[str, str]:
    existing = {
        permission.code: permission
        for permission in db.scalars(select(Permission).where(Permission.code.in_(permissions))).all()
    }
    for code, description in permissions.items():
        if code not in existing:
            permission = Permission(code=code, description=description)
            db.add(permission)
            existing[code] = permission
    db.flush()
    return {code: permission.id for code, permission in existing.items()}


def seed_roles(
    db: Session,
    roles: Dict[str, str] = DEFAULT_ROLES,
    permissions: Dict[str, str] = DEFAULT_PERMISSIONS,
    grants: List[Tuple[str, str]] = DEFAULT_ROLE_PERMISSIONS,
) -> int:
    """
    Create missing built-in roles, permissions and grants.

    Returns:
        Number of grants created.
    """
    try:
        role_ids = _ensure_roles(db, roles)
        permission_ids = _ensure_permissions(db, permissions)
        created = insert_if_absent(
            db,
            RolePermission,
            (
                {"role_id": role_ids[role_name], "permission_id": permission_ids[code]}
                for role_name, code in grants
            ),
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Seeding roles failed: {e}")
        raise_store_error(e)

    logger.info(f"Seeded {len(role_ids)} roles, {len(permission_ids)} permissions, {created} new grants")
    return created
