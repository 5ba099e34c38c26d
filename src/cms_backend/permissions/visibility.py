"""
Admin-UI visibility policy.

Decides whether the navigation of the admin panel lists a resource. A
resource is shown only to users who can write to it, and only inside the
projects it belongs to. With no project selected the user is in the admin
view spanning all projects, where ``exclude_from_admin_view`` applies.

Whether ``exclude_from_admin_view`` also hides a resource from admins is a
configuration choice, see ``AdminViewMode``.
"""

import logging
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from cms_backend.permissions.cache import PermissionCache, permission_cache
from cms_backend.permissions.core import has_any_permission
from cms_backend.permissions.principal import Manager, UserKind, is_admin
from cms_backend.permissions.projects import ProjectScope
from cms_backend.permissions.resources import WRITE_OPERATIONS, resource_key
from cms_backend.settings import settings

logger = logging.getLogger(__name__)


class AdminViewMode(str, Enum):
    # Admins always see excluded resources in the admin view
    HIDE_FROM_NON_ADMINS = "hide-from-non-admins"
    # Excluded resources are hidden from everyone in the admin view
    HIDE_FROM_EVERYONE = "hide-from-everyone"


class VisibilityOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    exclude_from_admin_view: bool = Field(
        False, validation_alias=AliasChoices("exclude_from_admin_view", "excludeFromAdminView")
    )


def configured_admin_view_mode() -> AdminViewMode:
    try:
        return AdminViewMode(settings.ADMIN_VIEW_EXCLUSION_MODE)
    except ValueError:
        logger.error(
            f"Invalid ADMIN_VIEW_EXCLUSION_MODE '{settings.ADMIN_VIEW_EXCLUSION_MODE}', "
            f"using {AdminViewMode.HIDE_FROM_NON_ADMINS.value}"
        )
        return AdminViewMode.HIDE_FROM_NON_ADMINS


class VisibilityPolicy:
    """Consolidated ``hidden`` predicate for admin navigation"""

    def __init__(self, scope: Optional[ProjectScope] = None,
                 cache: Optional[PermissionCache] = None,
                 mode: Optional[AdminViewMode] = None):
        self.cache = cache or permission_cache
        # Project selections are checked against the catalog the roles were validated with
        self.scope = scope or self.cache.resolver.registry.scope
        self.mode = mode

    def is_hidden_for(self, user, resource, allowed_projects: Iterable[str],
                      options: Union[VisibilityOptions, dict, None] = None) -> bool:
        if options is None:
            options = VisibilityOptions()
        elif isinstance(options, dict):
            options = VisibilityOptions(**options)
        resource = resource_key(resource)

        if user is None:
            return True

        # Read-only access never shows a management resource
        if not has_any_permission(user, resource, WRITE_OPERATIONS, cache=self.cache):
            return True

        permissions = None if is_admin(user) else self.cache.permissions_for(user)
        current_project = self.scope.current_project(user, permissions)

        if current_project is None:
            if not options.exclude_from_admin_view:
                return False
            mode = self.mode or configured_admin_view_mode()
            if mode is AdminViewMode.HIDE_FROM_NON_ADMINS and is_admin(user):
                return False
            return True

        return current_project not in set(allowed_projects)

    def is_hidden(self, resource, allowed_projects: Iterable[str],
                  options: Union[VisibilityOptions, dict, None] = None) -> Callable[..., bool]:
        """Curried form: returns ``hidden(user)`` for the navigation renderer"""
        allowed = tuple(allowed_projects)
        unknown = [slug for slug in allowed if slug not in self.scope]
        if unknown:
            logger.warning(f"Visibility for {resource_key(resource)} lists unknown projects: {unknown}")

        def hidden(user=None) -> bool:
            try:
                return self.is_hidden_for(user, resource, allowed, options)
            except Exception:
                logger.exception(f"Visibility check failed for {resource_key(resource)}, hiding")
                return True

        return hidden


default_policy = VisibilityPolicy()


def is_hidden(resource, allowed_projects: Iterable[str],
              options: Union[VisibilityOptions, dict, None] = None, *,
              mode: Optional[AdminViewMode] = None,
              scope: Optional[ProjectScope] = None,
              cache: Optional[PermissionCache] = None) -> Callable[..., bool]:
    """
    Build the ``hidden`` predicate of a resource.

    Example:
        hidden = is_hidden(ResourceId.NARRATORS, ["wemeditate-app"],
                           VisibilityOptions(exclude_from_admin_view=True))
        hidden(user)
    """
    if mode is None and scope is None and cache is None:
        return default_policy.is_hidden(resource, allowed_projects, options)
    return VisibilityPolicy(scope=scope, cache=cache, mode=mode).is_hidden(resource, allowed_projects, options)


def admin_only_visibility(user=None) -> bool:
    """Hidden for everyone except admins; compares against the admin sentinel only"""
    return not (isinstance(user, Manager) and user.kind is UserKind.ADMIN)
