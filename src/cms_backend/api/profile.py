from typing import Annotated, Any, Dict, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from cms_backend.api.auth import get_current_user
from cms_backend.api.exceptions import BadRequestException
from cms_backend.permissions.cache import permission_cache
from cms_backend.permissions.errors import InvalidProjectSelection
from cms_backend.permissions.principal import Manager, Principal, is_admin
from cms_backend.permissions.projects import default_scope

profile_router = APIRouter()


class ProfileGet(BaseModel):
    id: Optional[str] = Field(None, description="User identifier")
    admin: bool = Field(False, description="Whether role checks are bypassed")
    permissions: Dict[str, Any] = Field(default_factory=dict, description="Merged role permissions")
    current_project: Optional[str] = Field(None, description="Selected project, null for the admin view")
    current_project_label: str = Field(description="Label of the selected project")


class ProjectSelect(BaseModel):
    project: Optional[str] = Field(None, description="Project slug, null for the admin view")


def build_profile(user: Principal) -> ProfileGet:
    permissions = permission_cache.permissions_for(user)
    current_project = default_scope.current_project(user, permissions)
    return ProfileGet(
        id=user.id,
        admin=is_admin(user),
        permissions=permissions.to_claim(),
        current_project=current_project,
        current_project_label=default_scope.get_label(current_project),
    )


@profile_router.get("", response_model=ProfileGet)
async def get_profile(user: Annotated[Principal, Depends(get_current_user)]):
    return build_profile(user)


@profile_router.put("/project", response_model=ProfileGet)
async def select_project(selection: ProjectSelect, user: Annotated[Principal, Depends(get_current_user)]):

    if not isinstance(user, Manager):
        raise BadRequestException("Only managers select projects")

    try:
        user = default_scope.select_project(user, selection.project, permission_cache.permissions_for(user))
    except InvalidProjectSelection as e:
        raise BadRequestException(str(e))

    # Persisting the selection is the storage layer's concern
    return build_profile(user)
