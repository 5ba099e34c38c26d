"""
Permission resolution.

Turns a user's role assignment into a ``MergedPermissions`` set by taking
the union of every assigned role's grants. Resolution is pure, total and
idempotent: the same assignment always yields the same set, and adding a
role never removes an operation.

Per-locale manager assignments are resolved two ways:

- without a locale, the union across all locales. This is the set used for
  admin-UI visibility and non-localized operations;
- with a locale, only the roles assigned for that locale. This is the set
  used for locale-targeted writes (``translate``).
"""

import logging
from collections import defaultdict
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from cms_backend.permissions.principal import (
    Client,
    Manager,
    MergedPermissions,
    is_admin,
)
from cms_backend.permissions.resources import TRANSLATE_GRANTING, Operation
from cms_backend.permissions.roles import RoleKind, RoleRegistry, default_registry

logger = logging.getLogger(__name__)


def role_kind(user) -> RoleKind:
    return RoleKind.CLIENT if isinstance(user, Client) else RoleKind.MANAGER


def locale_roles(user) -> Dict[str, List[str]]:
    """Per-locale role slugs of a manager; empty for list assignments and clients"""
    if isinstance(user, Manager) and isinstance(user.roles, dict):
        return {locale: list(slugs or []) for locale, slugs in user.roles.items()}
    return {}


def role_slugs(user, locale: Optional[str] = None) -> List[str]:
    """
    Role slugs assigned to a user, in assignment order without duplicates.

    A plain list assignment applies to every locale. For a per-locale
    assignment, ``locale=None`` returns the union across all locales.
    """
    roles = getattr(user, "roles", None) or []

    if isinstance(roles, dict):
        if locale is not None:
            collected: Iterable[str] = roles.get(locale) or []
        else:
            collected = [slug for slugs in roles.values() for slug in (slugs or [])]
    else:
        collected = roles

    return list(dict.fromkeys(collected))


class PermissionResolver:
    """Computes ``MergedPermissions`` from role assignments"""

    def __init__(self, registry: Optional[RoleRegistry] = None):
        self.registry = registry or default_registry()

    def merge_role_permissions(self, slugs: Iterable[str],
                               kind: RoleKind = RoleKind.MANAGER,
                               user_id: Optional[str] = None) -> MergedPermissions:
        """Union the grants and bound projects of the given roles"""
        resources: Dict[str, Set[Operation]] = defaultdict(set)
        projects: Set[str] = set()

        for slug in slugs:
            role = self.registry.lookup(slug, kind)

            if role is None:
                logger.warning(f"Unknown {RoleKind(kind).value} role '{slug}' assigned to user {user_id}, ignoring")
                continue

            for resource, operations in role.permissions.items():
                resources[resource].update(operations)

            if role.bound_project is not None:
                projects.add(role.bound_project)

        return MergedPermissions(
            resources={resource: frozenset(operations) for resource, operations in resources.items()},
            projects=frozenset(projects),
        )

    def locale_grants(self, user, kind: RoleKind = RoleKind.MANAGER) -> Dict[str, Dict[str, FrozenSet[Operation]]]:
        """Translate-granting operations of each assigned locale's own roles"""
        grants: Dict[str, Dict[str, FrozenSet[Operation]]] = {}

        for locale in locale_roles(user):
            merged = self.merge_role_permissions(role_slugs(user, locale), kind, getattr(user, "id", None))
            grants[locale] = {
                resource: operations & TRANSLATE_GRANTING
                for resource, operations in merged.resources.items()
                if operations & TRANSLATE_GRANTING
            }

        return grants

    def resolve(self, user, locale: Optional[str] = None) -> MergedPermissions:
        """
        Resolve the permission set of a user.

        Admins resolve to an empty set; the authorization gate short-circuits
        them before the set is consulted. Document-level grants are not folded
        in since the result is document independent.

        ``projects`` is always the union across all locales, even when a
        ``locale`` is given. Per-locale assignments also record the
        translate-granting operations of every assigned locale, so translate
        decisions can be taken from a session snapshot.
        """
        if user is None or is_admin(user):
            return MergedPermissions()

        kind = role_kind(user)
        user_id = getattr(user, "id", None)

        merged = self.merge_role_permissions(role_slugs(user, locale), kind, user_id)

        if locale_roles(user):
            update = {"locales": self.locale_grants(user, kind)}
            if locale is not None:
                update["projects"] = self.merge_role_permissions(role_slugs(user), kind, user_id).projects
            merged = merged.model_copy(update=update)

        logger.debug(f"Resolved permissions for user {user_id} (locale={locale}): {merged.to_claim()}")
        return merged


_default_resolver: Optional[PermissionResolver] = None


def default_resolver() -> PermissionResolver:
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = PermissionResolver()
    return _default_resolver


def resolve(user, locale: Optional[str] = None) -> MergedPermissions:
    """Resolve with the built-in role catalog"""
    return default_resolver().resolve(user, locale)
