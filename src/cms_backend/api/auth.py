"""
Request-level access control.

The host application authenticates the caller and binds the principal by
overriding ``get_current_user``. Routes then declare the permission they
need with ``require_permission``.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Request

from cms_backend.api.exceptions import ForbiddenException, UnauthorizedException
from cms_backend.permissions.core import has_permission
from cms_backend.permissions.principal import Principal
from cms_backend.permissions.resources import Operation, resource_key

logger = logging.getLogger(__name__)


async def get_current_user() -> Principal:
    """Bound by the host application; unauthenticated by default"""
    raise UnauthorizedException("No authenticated user")


def require_permission(resource, operation, document_param: Optional[str] = "id"):
    """
    Dependency factory checking ``operation`` on ``resource``.

    The document id is taken from the path parameter ``document_param`` and
    the target locale from the ``locale`` query parameter.
    """
    resource = resource_key(resource)
    operation = Operation(operation)

    async def dependency(request: Request, user: Annotated[Principal, Depends(get_current_user)]) -> Principal:
        document_id = request.path_params.get(document_param) if document_param else None
        locale = request.query_params.get("locale")

        if not has_permission(user, resource, operation, document_id, locale=locale):
            logger.info(f"Forbidden: user {getattr(user, 'id', None)} {operation.value} on {resource}")
            raise ForbiddenException(detail={"resource": resource, "operation": operation.value})

        return user

    return dependency
