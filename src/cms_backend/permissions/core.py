"""
Authorization gate.

``has_permission`` is the single runtime entry point deciding whether a user
may perform an operation on a resource. It is a pure function that returns a
boolean; denials are never raised. Any unexpected error while evaluating a
decision is logged and turned into a deny.
"""

import logging
from typing import Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict

from cms_backend.permissions.cache import PermissionCache, permission_cache
from cms_backend.permissions.principal import Manager, MergedPermissions, is_admin, is_client
from cms_backend.permissions.resources import (
    ADMIN_ONLY_RESOURCES,
    TRANSLATE_GRANTING,
    Operation,
    parse_operation,
    resource_key,
)
from cms_backend.settings import settings

logger = logging.getLogger(__name__)


class FieldContext(BaseModel):
    """Field being accessed, for field-level checks"""

    model_config = ConfigDict(frozen=True)

    localized: bool = False


def _has_document_grant(user, resource: str, document_id) -> bool:
    if not isinstance(user, Manager) or document_id is None:
        return False
    return any(access.matches(resource, document_id) for access in user.custom_resource_access)


def _can_translate(resource: str, permissions: MergedPermissions, locale: Optional[str]) -> bool:
    """
    Translate needs ``update`` or ``translate`` on the resource, and for
    per-locale assignments it must come from a role assigned for the
    target locale itself.
    """
    if not permissions.operations(resource) & TRANSLATE_GRANTING:
        return False

    if not permissions.is_per_locale:
        return True

    target_locale = locale or settings.DEFAULT_LOCALE
    return bool(permissions.locale_operations(target_locale, resource) & TRANSLATE_GRANTING)


def _evaluate(user, resource: str, operation: Operation, document_id,
              locale: Optional[str], field: Optional[FieldContext],
              implicit_read: bool, cache: PermissionCache) -> bool:
    if user is None:
        return False

    if not user.is_active:
        return False

    if is_admin(user):
        return True

    if resource in ADMIN_ONLY_RESOURCES:
        return False

    # Document-level grants allow any operation on their document
    if _has_document_grant(user, resource, document_id):
        return True

    permissions = cache.permissions_for(user)
    operations = permissions.operations(resource)

    if operation is Operation.TRANSLATE:
        return _can_translate(resource, permissions, locale)

    # A write to a localized field is a translate decision for the target locale
    if field is not None and field.localized and operation is Operation.UPDATE:
        if Operation.UPDATE in operations and not permissions.is_per_locale:
            return True
        return _can_translate(resource, permissions, locale)

    if Operation.TRANSLATE in operations and Operation.UPDATE not in operations:
        # Translate-only grant: read everything, write localized fields only
        if operation is Operation.READ:
            return True
        if operation is Operation.UPDATE:
            return field is None
        if operation in (Operation.CREATE, Operation.DELETE):
            return operation in operations

    # Managers with any role may browse resources they hold no grant for
    if implicit_read and operation is Operation.READ and isinstance(user, Manager):
        if not operations and not permissions.is_empty():
            return True

    # API clients never delete, whatever their roles say
    if is_client(user) and operation is Operation.DELETE:
        return False

    return operation in operations


def has_permission(user, resource, operation, document_id=None, *,
                   locale: Optional[str] = None,
                   field: Optional[FieldContext] = None,
                   implicit_read: bool = True,
                   cache: Optional[PermissionCache] = None) -> bool:
    """
    Check if a user may perform ``operation`` on ``resource``.

    Args:
        user: Manager, Client or None for anonymous callers
        resource: Resource id (``ResourceId`` member or slug)
        operation: One of create, read, update, delete, translate
        document_id: Optional document for document-level grants
        locale: Target locale of a localized write
        field: Field being accessed, for field-level checks
        implicit_read: Let managers with any role read ungranted resources
        cache: Permission cache to consult (defaults to the global one)

    Returns:
        True if permission is granted, False otherwise
    """
    try:
        decision = _evaluate(
            user,
            resource_key(resource),
            parse_operation(operation),
            document_id,
            locale,
            field,
            implicit_read,
            cache or permission_cache,
        )
    except Exception:
        logger.exception(
            f"Permission check failed for user {getattr(user, 'id', None)} "
            f"on {resource}:{operation}, denying"
        )
        return False

    if not decision:
        logger.debug(f"Denied {operation} on {resource} for user {getattr(user, 'id', None)}")
    return decision


def check_admin(user) -> bool:
    """Check if user has admin privileges"""
    return is_admin(user)


def has_any_permission(user, resource, operations, **kwargs) -> bool:
    return any(has_permission(user, resource, operation, **kwargs) for operation in operations)


def create_field_access(resource, localized: bool) -> Dict[str, Callable[..., bool]]:
    """
    Field-level access callbacks.

    Returns a mapping with ``read``, ``create`` and ``update`` callables
    taking ``(user, locale=None)``.
    """
    field = FieldContext(localized=localized)

    def _access(operation: Operation):
        def check(user, locale: Optional[str] = None) -> bool:
            return has_permission(user, resource, operation, locale=locale, field=field)
        return check

    return {
        "read": _access(Operation.READ),
        "create": _access(Operation.CREATE),
        "update": _access(Operation.UPDATE),
    }


def create_locale_filter(user, resource, cache: Optional[PermissionCache] = None) -> bool:
    """
    Query-level filter applied after a read/update check passed.

    Locale filtering itself happens on localized fields, so the result is a
    plain boolean: whether the user may see documents of the resource at all.
    """
    if user is None or not user.is_active:
        return False

    if is_admin(user):
        return True

    try:
        permissions = (cache or permission_cache).permissions_for(user)
    except ValueError:
        logger.exception(f"Unreadable permissions for user {getattr(user, 'id', None)}")
        return False

    if permissions.operations(resource):
        return True

    # Managers with roles get implicit read access
    return isinstance(user, Manager) and not permissions.is_empty()
