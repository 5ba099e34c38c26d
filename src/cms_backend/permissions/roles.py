"""
Role catalog.

Roles are defined once at process start and never mutated. Manager roles
are bound to one project through their ``project`` field; client roles are
bound to the project named by their own slug. The catalog is validated
eagerly and any inconsistency aborts startup with ``ConfigurationError``.
"""

from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cms_backend.permissions.errors import ConfigurationError
from cms_backend.permissions.projects import ProjectScope, default_scope
from cms_backend.permissions.resources import Operation, ResourceId, resource_key


class RoleKind(str, Enum):
    MANAGER = "manager"
    CLIENT = "client"


class Role(BaseModel):
    model_config = ConfigDict(frozen=True)

    slug: str
    label: str
    description: str = ""
    permissions: Dict[str, FrozenSet[Operation]] = Field(default_factory=dict)

    @field_validator("permissions", mode="before")
    @classmethod
    def normalize_resources(cls, value):
        if isinstance(value, Mapping):
            return {resource_key(resource): operations for resource, operations in value.items()}
        return value

    @property
    def bound_project(self) -> Optional[str]:
        return None


class ManagerRole(Role):
    project: str

    @property
    def bound_project(self) -> Optional[str]:
        return self.project


class ClientRole(Role):
    @property
    def bound_project(self) -> Optional[str]:
        # Client role slugs are project slugs
        return self.slug


AnyRole = Union[ManagerRole, ClientRole]


class RoleRegistry:
    """Immutable lookup of manager and client roles by slug"""

    def __init__(
        self,
        manager_roles: Mapping[str, ManagerRole],
        client_roles: Mapping[str, ClientRole],
        scope: Optional[ProjectScope] = None,
        resources: Union[Type[Enum], Iterable[str]] = ResourceId,
    ):
        self.scope = scope or default_scope
        self.resources: FrozenSet[str] = frozenset(resource_key(resource) for resource in resources)

        self._validate(manager_roles, RoleKind.MANAGER)
        self._validate(client_roles, RoleKind.CLIENT)

        overlap = set(manager_roles) & set(client_roles)
        if overlap:
            raise ConfigurationError(f"Role slugs defined for both managers and clients: {sorted(overlap)}")

        self._roles = {
            RoleKind.MANAGER: MappingProxyType(dict(manager_roles)),
            RoleKind.CLIENT: MappingProxyType(dict(client_roles)),
        }

    @classmethod
    def from_definitions(
        cls,
        manager_definitions: Mapping[str, Mapping],
        client_definitions: Mapping[str, Mapping],
        scope: Optional[ProjectScope] = None,
        resources: Union[Type[Enum], Iterable[str]] = ResourceId,
    ) -> "RoleRegistry":
        """Build a registry from plain mappings, e.g. loaded from a config file"""
        try:
            manager_roles = {
                slug: ManagerRole.model_validate({"slug": slug, **definition})
                for slug, definition in manager_definitions.items()
            }
            client_roles = {
                slug: ClientRole.model_validate({"slug": slug, **definition})
                for slug, definition in client_definitions.items()
            }
        except ValidationError as e:
            raise ConfigurationError(f"Invalid role definition: {e}") from e

        return cls(manager_roles, client_roles, scope=scope, resources=resources)

    def _validate(self, roles: Mapping[str, Role], kind: RoleKind) -> None:
        expected_type = ManagerRole if kind is RoleKind.MANAGER else ClientRole

        for slug, role in roles.items():
            if not isinstance(role, expected_type):
                raise ConfigurationError(f"Role '{slug}' must be a {expected_type.__name__}")
            if role.slug != slug:
                raise ConfigurationError(f"Role registered as '{slug}' declares slug '{role.slug}'")

            if role.bound_project not in self.scope:
                if kind is RoleKind.CLIENT:
                    raise ConfigurationError(f"Client role '{slug}' does not name a known project")
                raise ConfigurationError(f"Manager role '{slug}' is bound to unknown project '{role.project}'")

            unknown = set(role.permissions) - self.resources
            if unknown:
                raise ConfigurationError(f"Role '{slug}' references unknown resources: {sorted(unknown)}")

    def lookup(self, slug: str, kind: RoleKind = RoleKind.MANAGER) -> Optional[AnyRole]:
        return self._roles[RoleKind(kind)].get(slug)

    def manager_role(self, slug: str) -> Optional[ManagerRole]:
        return self.lookup(slug, RoleKind.MANAGER)

    def client_role(self, slug: str) -> Optional[ClientRole]:
        return self.lookup(slug, RoleKind.CLIENT)

    def roles(self, kind: RoleKind = RoleKind.MANAGER) -> Mapping[str, AnyRole]:
        return self._roles[RoleKind(kind)]

    def role_options(self, kind: RoleKind = RoleKind.MANAGER) -> List[Dict[str, str]]:
        """Select options for the roles field of managers or clients"""
        return [{"label": role.label, "value": role.slug} for role in self._roles[RoleKind(kind)].values()]

    def __contains__(self, slug) -> bool:
        return any(slug in roles for roles in self._roles.values())


# Built-in catalog

MANAGER_ROLES: Dict[str, ManagerRole] = {
    "meditations-editor": ManagerRole(
        slug="meditations-editor",
        label="Meditations Editor",
        description="Can create and edit meditations, upload related media and files",
        project="wemeditate-web",
        permissions={
            ResourceId.MEDITATIONS: ["read", "create", "update"],
            ResourceId.MEDIA: ["read", "create"],
            ResourceId.FILE_ATTACHMENTS: ["read", "create"],
        },
    ),
    "path-editor": ManagerRole(
        slug="path-editor",
        label="Path Editor",
        description="Can edit lessons and external videos, upload related media and files",
        project="wemeditate-app",
        permissions={
            ResourceId.LESSONS: ["read", "update"],
            ResourceId.EXTERNAL_VIDEOS: ["read", "update"],
            ResourceId.MEDIA: ["read", "create"],
            ResourceId.FILE_ATTACHMENTS: ["read", "create"],
        },
    ),
    "translator": ManagerRole(
        slug="translator",
        label="Translator",
        description="Can edit localized fields in pages and music",
        project="wemeditate-web",
        permissions={
            ResourceId.PAGES: ["read", "translate"],
            ResourceId.MUSIC: ["read", "translate"],
        },
    ),
}

CLIENT_ROLES: Dict[str, ClientRole] = {
    "wemeditate-web": ClientRole(
        slug="wemeditate-web",
        label="We Meditate Web",
        description="Access for We Meditate web frontend application",
        permissions={
            ResourceId.WEMEDITATE_WEB_SETTINGS: ["read"],
            ResourceId.MEDITATIONS: ["read"],
            ResourceId.FRAMES: ["read"],
            ResourceId.NARRATORS: ["read"],
            ResourceId.MEDIA: ["read"],
            ResourceId.FILE_ATTACHMENTS: ["read"],
            ResourceId.PAGES: ["read"],
            ResourceId.MUSIC: ["read"],
            ResourceId.FORMS: ["read"],
            ResourceId.AUTHORS: ["read"],
            ResourceId.MEDITATION_TAGS: ["read"],
            ResourceId.PAGE_TAGS: ["read"],
            ResourceId.MUSIC_TAGS: ["read"],
            ResourceId.FORM_SUBMISSIONS: ["create"],
        },
    ),
    "wemeditate-app": ClientRole(
        slug="wemeditate-app",
        label="We Meditate App",
        description="Access for We Meditate mobile application",
        permissions={
            ResourceId.WEMEDITATE_APP_SETTINGS: ["read"],
            ResourceId.MEDITATIONS: ["read"],
            ResourceId.FRAMES: ["read"],
            ResourceId.NARRATORS: ["read"],
            ResourceId.LESSONS: ["read"],
            ResourceId.EXTERNAL_VIDEOS: ["read"],
            ResourceId.MUSIC: ["read"],
            ResourceId.MEDIA: ["read"],
            ResourceId.FILE_ATTACHMENTS: ["read"],
            ResourceId.MEDITATION_TAGS: ["read"],
            ResourceId.PAGE_TAGS: ["read"],
            ResourceId.MUSIC_TAGS: ["read"],
        },
    ),
    "sahaj-atlas": ClientRole(
        slug="sahaj-atlas",
        label="Sahaj Atlas",
        description="Access for Sahaj Atlas application",
        permissions={
            ResourceId.SAHAJ_ATLAS_SETTINGS: ["read"],
            ResourceId.MEDIA: ["read"],
            ResourceId.FILE_ATTACHMENTS: ["read"],
        },
    ),
}

_default_registry: Optional[RoleRegistry] = None


def default_registry() -> RoleRegistry:
    """Registry over the built-in catalog, validated on first use"""
    global _default_registry
    if _default_registry is None:
        _default_registry = RoleRegistry(MANAGER_ROLES, CLIENT_ROLES)
    return _default_registry
