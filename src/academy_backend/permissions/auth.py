"""
Route guards: FastAPI dependencies turning the bearer claim of a request into
a Principal and checking it against roles or permissions.
"""

import logging
from typing import Annotated, Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from academy_backend.api.exceptions import to_http_exception
from academy_backend.database import get_db
from academy_backend.errors import Unauthenticated, Unauthorized
from academy_backend.permissions.claims import ClaimVerifier, bearer_token
from academy_backend.permissions.core import PermissionResolver, require_any_role
from academy_backend.permissions.principal import Principal

logger = logging.getLogger(__name__)


def get_claim_verifier(request: Request) -> ClaimVerifier:
    verifier = getattr(request.app.state, "claim_verifier", None)
    if verifier is None:
        verifier = ClaimVerifier.from_settings()
        request.app.state.claim_verifier = verifier
    return verifier


def get_current_principal(
    request: Request,
    verifier: Annotated[ClaimVerifier, Depends(get_claim_verifier)],
) -> Principal:
    token = bearer_token(request.headers.get("Authorization"))
    try:
        return verifier.verify(token)
    except Unauthenticated as e:
        raise to_http_exception(e)


def get_permission_resolver(db: Session = Depends(get_db)) -> PermissionResolver:
    return PermissionResolver(db)


def require_roles(*roles: str) -> Callable[..., Principal]:
    """Dependency factory: the principal must hold at least one of `roles`"""

    def guard(principal: Annotated[Principal, Depends(get_current_principal)]) -> Principal:
        try:
            return require_any_role(principal, roles)
        except Unauthorized as e:
            raise to_http_exception(e)

    return guard


def require_permission(code: str) -> Callable[..., Principal]:
    """Dependency factory: the principal's current roles must grant `code`"""

    def guard(
        principal: Annotated[Principal, Depends(get_current_principal)],
        resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)],
    ) -> Principal:
        try:
            return resolver.require_permission(principal, code)
        except Unauthorized as e:
            raise to_http_exception(e)

    return guard
