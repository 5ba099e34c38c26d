"""
Principal types evaluated by the permission system.

Two kinds of users exist:

- ``Manager``: a CMS editor. Roles may be assigned per locale, document-level
  grants may be attached, and one project may be selected at a time.
- ``Client``: an API client. Roles are global and each role slug names the
  project it serves.

Both carry a ``permissions`` field holding the resolved ``MergedPermissions``
cache, populated whenever the record is read (see ``cache.py``).
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from cms_backend.permissions.resources import Operation, parse_operation, resource_key

PROJECTS_CLAIM_KEY = "projects"
LOCALES_CLAIM_KEY = "locales"


class UserKind(str, Enum):
    INACTIVE = "inactive"
    STANDARD = "standard"
    ADMIN = "admin"


class MergedPermissions(BaseModel):
    """Resolved permission set of a user (the cache payload)"""

    model_config = ConfigDict(frozen=True)

    resources: Dict[str, FrozenSet[Operation]] = Field(default_factory=dict)
    projects: FrozenSet[str] = Field(default_factory=frozenset)
    # Translate-granting operations per assigned locale; empty for global assignments
    locales: Dict[str, Dict[str, FrozenSet[Operation]]] = Field(default_factory=dict)

    def operations(self, resource) -> FrozenSet[Operation]:
        return self.resources.get(resource_key(resource), frozenset())

    def allows(self, resource, operation) -> bool:
        return parse_operation(operation) in self.operations(resource)

    def is_empty(self) -> bool:
        return not self.resources

    @property
    def is_per_locale(self) -> bool:
        return bool(self.locales)

    def locale_operations(self, locale: str, resource) -> FrozenSet[Operation]:
        return self.locales.get(locale, {}).get(resource_key(resource), frozenset())

    def to_claim(self) -> Dict[str, Any]:
        """
        Serialize to the profile/token shape:
        ``{resource: [ops], projects: [...], locales: {locale: {resource: [ops]}}}``
        """
        claim: Dict[str, Any] = {
            resource: sorted(op.value for op in operations)
            for resource, operations in sorted(self.resources.items())
        }
        if self.projects:
            claim[PROJECTS_CLAIM_KEY] = sorted(self.projects)
        if self.locales:
            claim[LOCALES_CLAIM_KEY] = {
                locale: {
                    resource: sorted(op.value for op in operations)
                    for resource, operations in sorted(grants.items())
                }
                for locale, grants in sorted(self.locales.items())
            }
        return claim

    @classmethod
    def from_claim(cls, claim: Any) -> "MergedPermissions":
        """Parse the profile/token shape; raises ValueError when malformed"""
        if not isinstance(claim, dict):
            raise ValueError(f"Permissions claim must be a mapping, got {type(claim).__name__}")

        resources: Dict[str, FrozenSet[Operation]] = {}
        projects: FrozenSet[str] = frozenset()
        locales: Dict[str, Dict[str, FrozenSet[Operation]]] = {}

        for key, values in claim.items():
            if key == LOCALES_CLAIM_KEY:
                locales = _parse_locale_claim(values)
                continue
            if not isinstance(values, (list, tuple, set, frozenset)):
                raise ValueError(f"Permissions claim entry '{key}' must be a list")
            if key == PROJECTS_CLAIM_KEY:
                projects = frozenset(str(value) for value in values)
            else:
                resources[str(key)] = frozenset(parse_operation(value) for value in values)

        return cls(resources=resources, projects=projects, locales=locales)


def _parse_locale_claim(value: Any) -> Dict[str, Dict[str, FrozenSet[Operation]]]:
    if not isinstance(value, dict):
        raise ValueError("Permissions claim entry 'locales' must be a mapping")

    locales: Dict[str, Dict[str, FrozenSet[Operation]]] = {}
    for locale, grants in value.items():
        if not isinstance(grants, dict):
            raise ValueError(f"Locale grants for '{locale}' must be a mapping")
        locales[str(locale)] = {}
        for resource, operations in grants.items():
            if not isinstance(operations, (list, tuple, set, frozenset)):
                raise ValueError(f"Locale grant '{locale}.{resource}' must be a list")
            locales[str(locale)][str(resource)] = frozenset(parse_operation(op) for op in operations)
    return locales


class CustomResourceAccess(BaseModel):
    """Document-level grant independent of roles"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    resource: str = Field(validation_alias=AliasChoices("resource", "relationTo", "relation_to"))
    document_id: str = Field(validation_alias=AliasChoices("document_id", "value", "documentId"))

    @field_validator("resource", mode="before")
    @classmethod
    def normalize_resource(cls, value):
        return resource_key(value)

    @field_validator("document_id", mode="before")
    @classmethod
    def normalize_document_id(cls, value):
        return str(value)

    def matches(self, resource, document_id) -> bool:
        return self.resource == resource_key(resource) and self.document_id == str(document_id)


class Manager(BaseModel):
    """Privileged CMS user"""

    model_config = ConfigDict(extra="allow", from_attributes=True)

    id: Optional[str] = None
    kind: UserKind = UserKind.STANDARD
    roles: Union[List[str], Dict[str, List[str]]] = Field(default_factory=list)
    custom_resource_access: List[CustomResourceAccess] = Field(default_factory=list)
    current_project: Optional[str] = None
    permissions: Optional[MergedPermissions] = None

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        return None if value is None else str(value)

    @field_validator("roles", mode="before")
    @classmethod
    def default_roles(cls, value):
        return [] if value is None else value

    @field_validator("custom_resource_access", mode="before")
    @classmethod
    def default_custom_access(cls, value):
        return [] if value is None else value

    @property
    def is_active(self) -> bool:
        return self.kind != UserKind.INACTIVE

    @property
    def has_localized_roles(self) -> bool:
        return isinstance(self.roles, dict)


class Client(BaseModel):
    """API client with project-bound roles"""

    model_config = ConfigDict(extra="allow", from_attributes=True)

    id: Optional[str] = None
    active: bool = True
    roles: List[str] = Field(default_factory=list)
    permissions: Optional[MergedPermissions] = None

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        return None if value is None else str(value)

    @field_validator("roles", mode="before")
    @classmethod
    def default_roles(cls, value):
        return [] if value is None else value

    @property
    def is_active(self) -> bool:
        return self.active


Principal = Union[Manager, Client]


def is_admin(user) -> bool:
    """Strict admin check; only a Manager whose kind is the admin sentinel qualifies"""
    return isinstance(user, Manager) and user.kind is UserKind.ADMIN


def is_client(user) -> bool:
    return isinstance(user, Client)
