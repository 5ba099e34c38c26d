"""
Tests for resource access handlers and the FastAPI integration.
"""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from cms_backend.api.auth import get_current_user, require_permission
from cms_backend.api.profile import profile_router
from cms_backend.permissions.handlers import (
    AccessRegistry,
    AdminOnlyAccessHandler,
    ResourceAccessHandler,
    initialize_access_handlers,
)
from cms_backend.permissions.principal import Client, Manager
from cms_backend.permissions.resources import Operation, ResourceId


@pytest.fixture
def meditations_editor():
    return Manager(id="42", roles=["meditations-editor"], current_project="wemeditate-web")


@pytest.fixture
def web_translator():
    return Manager(id="43", roles=["translator"])


@pytest.fixture
def web_client():
    return Client(id="7", roles=["wemeditate-web"])


class TestResourceAccessHandler:
    """Test role-based handlers over the built-in catalog"""

    def test_granted_operations(self, meditations_editor):
        handler = ResourceAccessHandler(ResourceId.MEDITATIONS)
        assert handler.read(meditations_editor)
        assert handler.create(meditations_editor)
        assert handler.update(meditations_editor)
        assert not handler.delete(meditations_editor)

    def test_implicit_read(self, meditations_editor):
        assert ResourceAccessHandler(ResourceId.PAGES).read(meditations_editor)
        assert not ResourceAccessHandler(ResourceId.PAGES, implicit_read=False).read(meditations_editor)

    def test_clients(self, web_client):
        handler = ResourceAccessHandler(ResourceId.FORM_SUBMISSIONS)
        assert handler.create(web_client)
        assert not handler.read(web_client)
        assert not ResourceAccessHandler(ResourceId.LESSONS).read(web_client)

    def test_override(self):
        handler = ResourceAccessHandler(
            ResourceId.MEDITATIONS,
            overrides={"read": lambda user, document_id=None, locale=None: True},
        )
        assert handler.check(None, "read")
        assert not handler.check(None, "update")

    def test_as_access(self, web_client):
        access = ResourceAccessHandler(ResourceId.MEDITATIONS).as_access()
        assert set(access) == {operation.value for operation in Operation}
        assert access["read"](web_client)
        assert not access["delete"](web_client)
        assert not access["read"](None)

    def test_admin_only_handler(self, meditations_editor):
        handler = AdminOnlyAccessHandler(ResourceId.MEDITATIONS)
        admin = Manager(id="1", kind="admin")
        assert handler.check(admin, "delete")
        assert not handler.check(meditations_editor, "read")


class TestAccessRegistry:

    def test_unregistered_resource_is_admin_only(self, meditations_editor):
        registry = AccessRegistry()
        assert ResourceId.MEDITATIONS not in registry
        assert not registry.check(meditations_editor, ResourceId.MEDITATIONS, "read")
        assert registry.check(Manager(kind="admin"), ResourceId.MEDITATIONS, "read")

    def test_initialize_registers_every_resource(self, meditations_editor):
        registry = initialize_access_handlers(AccessRegistry(), explicit_read=[ResourceId.PAGES])

        for resource in ResourceId:
            assert resource in registry

        assert registry.check(meditations_editor, ResourceId.MEDITATIONS, "create")
        assert registry.check(meditations_editor, ResourceId.MUSIC, "read")
        assert not registry.check(meditations_editor, ResourceId.PAGES, "read")
        assert not registry.check(meditations_editor, ResourceId.MANAGERS, "read")


# ============================================================================
# FastAPI integration
# ============================================================================

def make_app(user=None):
    app = FastAPI()

    @app.get("/meditations/{id}")
    async def get_meditation(id: str, user=Depends(require_permission(ResourceId.MEDITATIONS, "read"))):
        return {"id": id}

    @app.put("/pages/{id}")
    async def update_page(id: str, user=Depends(require_permission(ResourceId.PAGES, "update"))):
        return {"id": id}

    @app.delete("/pages/{id}")
    async def delete_page(id: str, user=Depends(require_permission(ResourceId.PAGES, "delete"))):
        return {"id": id}

    app.include_router(profile_router, prefix="/me")

    if user is not None:
        app.dependency_overrides[get_current_user] = lambda: user

    return TestClient(app)


class TestRequirePermission:

    def test_unauthenticated(self):
        client = make_app()
        assert client.get("/meditations/1").status_code == 401

    def test_translate_only_role_updates(self, web_translator):
        client = make_app(web_translator)
        assert client.put("/pages/3").status_code == 200

        response = client.delete("/pages/3")
        assert response.status_code == 403
        assert response.json()["detail"] == {"resource": "pages", "operation": "delete"}

    def test_document_grant(self):
        user = Manager(id="44", custom_resource_access=[{"relationTo": "meditations", "value": 7}])
        client = make_app(user)
        assert client.get("/meditations/7").status_code == 200
        assert client.get("/meditations/8").status_code == 403

    def test_inactive_manager(self):
        user = Manager(id="45", kind="inactive", roles=["meditations-editor"])
        assert make_app(user).get("/meditations/1").status_code == 403


class TestProfileRouter:

    def test_get_profile(self, meditations_editor):
        response = make_app(meditations_editor).get("/me")
        assert response.status_code == 200

        profile = response.json()
        assert profile["id"] == "42"
        assert profile["admin"] is False
        assert profile["permissions"]["meditations"] == ["create", "read", "update"]
        assert profile["permissions"]["projects"] == ["wemeditate-web"]
        assert profile["current_project"] == "wemeditate-web"
        assert profile["current_project_label"] == "WeMeditate Web"

    def test_profile_of_locale_translator(self):
        translator = Manager(id="46", roles={"cs": ["translator"]})
        profile = make_app(translator).get("/me").json()
        assert profile["permissions"]["pages"] == ["read", "translate"]
        assert profile["permissions"]["locales"] == {
            "cs": {"music": ["translate"], "pages": ["translate"]},
        }

    def test_select_admin_view(self, meditations_editor):
        response = make_app(meditations_editor).put("/me/project", json={"project": None})
        assert response.status_code == 200
        assert response.json()["current_project"] is None
        assert response.json()["current_project_label"] == "All Content"

    def test_select_foreign_project(self, meditations_editor):
        response = make_app(meditations_editor).put("/me/project", json={"project": "wemeditate-app"})
        assert response.status_code == 400

    def test_admin_selects_any_project(self):
        admin = Manager(id="1", kind="admin")
        response = make_app(admin).put("/me/project", json={"project": "sahaj-atlas"})
        assert response.status_code == 200
        assert response.json()["current_project"] == "sahaj-atlas"
        assert response.json()["admin"] is True

    def test_clients_cannot_select(self, web_client):
        response = make_app(web_client).put("/me/project", json={"project": "wemeditate-web"})
        assert response.status_code == 400
