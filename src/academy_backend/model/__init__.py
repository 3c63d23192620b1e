from .base import Base, metadata
from .auth import User, Role, Permission, RolePermission, UserRole
from .organization import Rank, RankRolePolicy, Staff

__all__ = [
    'Base',
    'metadata',
    # Auth models
    'User',
    'Role',
    'Permission',
    'RolePermission',
    'UserRole',
    # Organization
    'Rank',
    'RankRolePolicy',
    'Staff',
]
