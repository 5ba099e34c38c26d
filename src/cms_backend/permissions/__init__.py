"""
Permission system for the CMS backend

Decides whether a user may perform an operation on a resource, and derives
admin-UI visibility from the same permission model across projects and
locales.

Main components:
- projects: closed project catalog and current-project validation
- resources: closed resource and operation catalogs
- roles: immutable role registry, validated at startup
- principal: Manager / Client principals and MergedPermissions
- resolver: role assignment -> MergedPermissions
- cache: read-through cache on user records and session snapshots
- core: has_permission, the authorization gate
- handlers: per-resource access-control callbacks
- visibility: admin navigation hidden predicates
"""

from .errors import (
    PermissionSystemError,
    ConfigurationError,
    InvalidProjectSelection,
)

from .resources import (
    Operation,
    ResourceId,
    ADMIN_ONLY_RESOURCES,
    WRITE_OPERATIONS,
)

from .principal import (
    UserKind,
    MergedPermissions,
    CustomResourceAccess,
    Manager,
    Client,
    Principal,
    is_admin,
)

from .projects import (
    Project,
    PROJECTS,
    ADMIN_PROJECT_LABEL,
    ProjectScope,
    default_scope,
)

from .roles import (
    RoleKind,
    Role,
    ManagerRole,
    ClientRole,
    RoleRegistry,
    MANAGER_ROLES,
    CLIENT_ROLES,
    default_registry,
)

from .resolver import (
    PermissionResolver,
    resolve,
    role_slugs,
    locale_roles,
)

from .cache import (
    PermissionCache,
    permission_cache,
    register_read_through,
    encode_permissions_claim,
    decode_permissions_claim,
    SessionSnapshotStore,
)

from .core import (
    FieldContext,
    has_permission,
    has_any_permission,
    check_admin,
    create_field_access,
    create_locale_filter,
)

from .handlers import (
    ResourceAccessHandler,
    AccessRegistry,
    access_registry,
    initialize_access_handlers,
)

from .visibility import (
    AdminViewMode,
    VisibilityOptions,
    VisibilityPolicy,
    is_hidden,
    admin_only_visibility,
)

__all__ = [
    # Errors
    "PermissionSystemError",
    "ConfigurationError",
    "InvalidProjectSelection",

    # Catalogs
    "Operation",
    "ResourceId",
    "ADMIN_ONLY_RESOURCES",
    "WRITE_OPERATIONS",
    "Project",
    "PROJECTS",
    "ADMIN_PROJECT_LABEL",
    "ProjectScope",
    "default_scope",

    # Principals
    "UserKind",
    "MergedPermissions",
    "CustomResourceAccess",
    "Manager",
    "Client",
    "Principal",
    "is_admin",

    # Roles
    "RoleKind",
    "Role",
    "ManagerRole",
    "ClientRole",
    "RoleRegistry",
    "MANAGER_ROLES",
    "CLIENT_ROLES",
    "default_registry",

    # Resolution and caching
    "PermissionResolver",
    "resolve",
    "role_slugs",
    "locale_roles",
    "PermissionCache",
    "permission_cache",
    "register_read_through",
    "encode_permissions_claim",
    "decode_permissions_claim",
    "SessionSnapshotStore",

    # Authorization
    "FieldContext",
    "has_permission",
    "has_any_permission",
    "check_admin",
    "create_field_access",
    "create_locale_filter",
    "ResourceAccessHandler",
    "AccessRegistry",
    "access_registry",
    "initialize_access_handlers",

    # Visibility
    "AdminViewMode",
    "VisibilityOptions",
    "VisibilityPolicy",
    "is_hidden",
    "admin_only_visibility",
]
