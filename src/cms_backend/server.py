from fastapi import FastAPI

from cms_backend.api.profile import profile_router
from cms_backend.permissions.handlers import initialize_access_handlers
from cms_backend.permissions.roles import default_registry

app = FastAPI(title="CMS backend")

# Fails startup on an inconsistent role catalog
default_registry()
initialize_access_handlers()

app.include_router(profile_router, prefix="/me", tags=["profile"])
