"""
Project (tenant) scope.

A small closed set of projects is the single source of truth for tenancy.
A manager works inside at most one project at a time; ``None`` stands for
the aggregate admin view spanning all of them.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from cms_backend.permissions.errors import InvalidProjectSelection
from cms_backend.permissions.principal import Manager, MergedPermissions, is_admin

logger = logging.getLogger(__name__)


class Project(BaseModel):
    model_config = ConfigDict(frozen=True)

    slug: str
    label: str


PROJECTS: Tuple[Project, ...] = (
    Project(slug="wemeditate-web", label="WeMeditate Web"),
    Project(slug="wemeditate-app", label="WeMeditate App"),
    Project(slug="sahaj-atlas", label="Sahaj Atlas"),
)

# Label for the admin view (no project selected)
ADMIN_PROJECT_LABEL = "All Content"


class ProjectScope:
    """Closed catalog of projects plus current-project validation"""

    def __init__(self, projects: Optional[Iterable[Project]] = None):
        self._projects: Tuple[Project, ...] = tuple(projects if projects is not None else PROJECTS)
        self._by_slug: Dict[str, Project] = {project.slug: project for project in self._projects}

    @property
    def projects(self) -> Tuple[Project, ...]:
        return self._projects

    @property
    def slugs(self) -> Tuple[str, ...]:
        return tuple(self._by_slug)

    def __contains__(self, slug) -> bool:
        return slug in self._by_slug

    def get_label(self, slug: Optional[str]) -> str:
        """Human-readable label; unknown slugs are returned unchanged"""
        if slug is None:
            return ADMIN_PROJECT_LABEL
        project = self._by_slug.get(slug)
        return project.label if project else slug

    def options(self) -> List[Dict[str, str]]:
        """Select options for admin fields"""
        return [{"value": project.slug, "label": project.label} for project in self._projects]

    def is_valid(self, slug: Optional[str]) -> bool:
        return slug is None or slug in self._by_slug

    def current_project(self, user, permissions: Optional[MergedPermissions] = None) -> Optional[str]:
        """
        Effective project of a user.

        Only managers select projects. A selection outside the catalog, or
        outside the user's resolved ``projects`` (e.g. after a role change),
        is treated as unset. Admins may select any project in the catalog.
        """
        if not isinstance(user, Manager) or user.current_project is None:
            return None

        selected = user.current_project
        if selected not in self._by_slug:
            logger.warning(f"User {user.id} selected unknown project '{selected}', using admin view")
            return None

        if is_admin(user):
            return selected

        permissions = permissions if permissions is not None else user.permissions
        if permissions is None or selected not in permissions.projects:
            logger.warning(f"User {user.id} no longer has access to project '{selected}', selection reset")
            return None

        return selected

    def select_project(self, user: Manager, slug: Optional[str],
                       permissions: Optional[MergedPermissions] = None) -> Manager:
        """Return a copy of ``user`` with ``current_project`` set to ``slug``"""
        if not self.is_valid(slug):
            raise InvalidProjectSelection(f"Unknown project '{slug}'")

        if slug is not None and not is_admin(user):
            permissions = permissions if permissions is not None else user.permissions
            if permissions is None or slug not in permissions.projects:
                raise InvalidProjectSelection(f"User {user.id} has no role in project '{slug}'")

        return user.model_copy(update={"current_project": slug})


default_scope = ProjectScope()
