"""
Access control for the academy back end.

Main components:
- principal: the immutable Principal of one request
- claims: signing and verification of session claims
- core: role checks, effective permissions and full-replace editing
- rank_policy: rank to role policies and their reconciliation
- store: atomic set-replace and insert-if-absent helpers
- role_setup: built-in roles and permissions
- auth: FastAPI route guards
"""

from .principal import Principal

from .claims import ClaimVerifier, bearer_token

from .core import (
    has_any_role,
    require_any_role,
    effective_permissions,
    user_role_names,
    replace_role_permissions,
    replace_user_roles,
    security_overview,
    PermissionResolver,
)

from .rank_policy import (
    replace_rank_policy,
    rank_policy_roles,
    apply_rank_policies,
)

__all__ = [
    "Principal",
    "ClaimVerifier",
    "bearer_token",
    # Resolver
    "has_any_role",
    "require_any_role",
    "effective_permissions",
    "user_role_names",
    "replace_role_permissions",
    "replace_user_roles",
    "security_overview",
    "PermissionResolver",
    # Rank policies
    "replace_rank_policy",
    "rank_policy_roles",
    "apply_rank_policies",
]
