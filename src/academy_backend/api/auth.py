from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from academy_backend.database import get_db
from academy_backend.interface.security import MeGet
from academy_backend.model.auth import User
from academy_backend.permissions.auth import get_current_principal, get_permission_resolver
from academy_backend.permissions.core import PermissionResolver, user_role_names
from academy_backend.permissions.principal import Principal
from academy_backend.api.exceptions import NotFoundException

auth_router = APIRouter()


@auth_router.get("/me", response_model=MeGet)
def get_me(
    principal: Annotated[Principal, Depends(get_current_principal)],
    resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)],
    db: Session = Depends(get_db),
):
    """Current user with the roles and permissions held in the store right now"""
    user = db.get(User, principal.user_id)

    if user is None:
        raise NotFoundException(detail="User not found")

    return MeGet(
        user_id=user.id,
        username=user.username,
        email=user.email,
        roles=user_role_names(user.id, db),
        permissions=resolver.effective_permissions(user.id),
    )
