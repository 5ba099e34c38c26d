"""
Tests for the role catalog and its startup validation.
"""

import pytest
from pydantic import ValidationError

from cms_backend.permissions.errors import ConfigurationError
from cms_backend.permissions.resources import Operation, ResourceId
from cms_backend.permissions.roles import (
    CLIENT_ROLES,
    MANAGER_ROLES,
    ClientRole,
    ManagerRole,
    RoleKind,
    RoleRegistry,
    default_registry,
)


class TestDefaultCatalog:

    def test_default_registry_loads(self):
        registry = default_registry()
        assert registry.manager_role("translator") is MANAGER_ROLES["translator"]
        assert registry.client_role("sahaj-atlas") is CLIENT_ROLES["sahaj-atlas"]

    def test_roles_are_looked_up_per_kind(self):
        registry = default_registry()
        assert registry.lookup("translator", RoleKind.CLIENT) is None
        assert registry.lookup("wemeditate-web", RoleKind.MANAGER) is None
        assert "translator" in registry
        assert "wemeditate-web" in registry
        assert "owner" not in registry

    def test_permissions_are_normalized(self):
        editor = MANAGER_ROLES["meditations-editor"]
        assert editor.permissions["meditations"] == frozenset(
            {Operation.READ, Operation.CREATE, Operation.UPDATE}
        )
        assert ResourceId.MEDITATIONS.value in editor.permissions

    def test_client_roles_bind_their_own_project(self):
        assert CLIENT_ROLES["wemeditate-app"].bound_project == "wemeditate-app"
        assert MANAGER_ROLES["path-editor"].bound_project == "wemeditate-app"

    def test_role_options(self):
        options = default_registry().role_options(RoleKind.MANAGER)
        assert {"label": "Translator", "value": "translator"} in options
        assert len(options) == len(MANAGER_ROLES)


class TestRegistryValidation:

    def test_slug_mismatch(self, test_scope):
        roles = {"editor": ManagerRole(slug="writer", label="Writer", project="alpha")}
        with pytest.raises(ConfigurationError):
            RoleRegistry(roles, {}, scope=test_scope, resources=["articles"])

    def test_manager_role_with_unknown_project(self, test_scope):
        roles = {"editor": ManagerRole(slug="editor", label="Editor", project="delta")}
        with pytest.raises(ConfigurationError, match="unknown project"):
            RoleRegistry(roles, {}, scope=test_scope, resources=["articles"])

    def test_client_role_must_name_a_project(self, test_scope):
        roles = {"mobile": ClientRole(slug="mobile", label="Mobile")}
        with pytest.raises(ConfigurationError, match="known project"):
            RoleRegistry({}, roles, scope=test_scope, resources=["articles"])

    def test_unknown_resource(self, test_scope):
        roles = {
            "editor": ManagerRole(
                slug="editor", label="Editor", project="alpha",
                permissions={"comments": ["read"]},
            )
        }
        with pytest.raises(ConfigurationError, match="comments"):
            RoleRegistry(roles, {}, scope=test_scope, resources=["articles"])

    def test_wrong_role_variant(self, test_scope):
        roles = {"alpha": ClientRole(slug="alpha", label="Alpha")}
        with pytest.raises(ConfigurationError):
            RoleRegistry(roles, {}, scope=test_scope, resources=["articles"])

    def test_slug_shared_by_both_variants(self, test_scope):
        manager_roles = {"alpha": ManagerRole(slug="alpha", label="Alpha", project="alpha")}
        client_roles = {"alpha": ClientRole(slug="alpha", label="Alpha")}
        with pytest.raises(ConfigurationError, match="both"):
            RoleRegistry(manager_roles, client_roles, scope=test_scope, resources=["articles"])

    def test_from_definitions(self, test_scope):
        registry = RoleRegistry.from_definitions(
            {"editor": {"label": "Editor", "project": "alpha", "permissions": {"articles": ["read"]}}},
            {"beta": {"label": "Beta App"}},
            scope=test_scope,
            resources=["articles"],
        )
        assert registry.manager_role("editor").permissions["articles"] == frozenset({Operation.READ})
        assert registry.client_role("beta").bound_project == "beta"

    def test_from_definitions_rejects_unknown_operation(self, test_scope):
        with pytest.raises(ConfigurationError):
            RoleRegistry.from_definitions(
                {"editor": {"label": "Editor", "project": "alpha", "permissions": {"articles": ["publish"]}}},
                {},
                scope=test_scope,
                resources=["articles"],
            )


class TestImmutability:

    def test_registry_mapping_is_read_only(self, test_registry):
        with pytest.raises(TypeError):
            test_registry.roles(RoleKind.MANAGER)["intruder"] = MANAGER_ROLES["translator"]

    def test_roles_are_frozen(self, test_registry):
        role = test_registry.manager_role("editor")
        with pytest.raises(ValidationError):
            role.project = "beta"
