"""
Pytest configuration and fixtures for all tests.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from cms_backend.model import Base
from cms_backend.permissions.cache import PermissionCache
from cms_backend.permissions.principal import Client, Manager
from cms_backend.permissions.projects import Project, ProjectScope
from cms_backend.permissions.resolver import PermissionResolver
from cms_backend.permissions.roles import ClientRole, ManagerRole, RoleRegistry


# ============================================================================
# A small catalog with three projects, used by most decision tests
# ============================================================================

TEST_RESOURCES = ["articles", "pages", "media", "managers"]


@pytest.fixture(scope="session")
def test_scope():
    return ProjectScope([
        Project(slug="alpha", label="Alpha"),
        Project(slug="beta", label="Beta"),
        Project(slug="gamma", label="Gamma"),
    ])


@pytest.fixture(scope="session")
def test_registry(test_scope):
    manager_roles = {
        "editor": ManagerRole(
            slug="editor", label="Editor", project="alpha",
            permissions={"articles": ["read", "update"]},
        ),
        "translator": ManagerRole(
            slug="translator", label="Translator", project="beta",
            permissions={"articles": ["read", "translate"]},
        ),
        "publisher": ManagerRole(
            slug="publisher", label="Publisher", project="alpha",
            permissions={"articles": ["create", "update", "delete"], "media": ["read", "create"]},
        ),
    }
    client_roles = {
        "alpha": ClientRole(slug="alpha", label="Alpha App", permissions={"articles": ["read"]}),
        "beta": ClientRole(slug="beta", label="Beta App", permissions={"articles": ["read", "update", "delete"]}),
    }
    return RoleRegistry(manager_roles, client_roles, scope=test_scope, resources=TEST_RESOURCES)


@pytest.fixture
def test_resolver(test_registry):
    return PermissionResolver(test_registry)


@pytest.fixture
def test_cache(test_resolver):
    return PermissionCache(test_resolver)


# ============================================================================
# Principals
# ============================================================================

@pytest.fixture
def admin_user():
    return Manager(id="admin-1", kind="admin")


@pytest.fixture
def editor_user():
    return Manager(id="editor-1", roles=["editor"], current_project="alpha")


@pytest.fixture
def no_role_user():
    return Manager(id="nobody-1", roles=[])


@pytest.fixture
def fr_translator():
    return Manager(id="translator-1", roles={"fr": ["translator"]}, current_project="beta")


@pytest.fixture
def beta_client():
    return Client(id="client-1", roles=["beta"])


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def Session(engine):
    """Create session factory."""
    return sessionmaker(bind=engine)
