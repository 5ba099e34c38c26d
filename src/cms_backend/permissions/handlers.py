from typing import Callable, Dict, Iterable, Optional
from cms_backend.permissions.core import create_locale_filter, has_permission
from cms_backend.permissions.principal import is_admin
from cms_backend.permissions.resources import Operation, ResourceId, resource_key

AccessCallback = Callable[..., bool]


class ResourceAccessHandler:
    """Access-control callbacks of one resource, one per operation"""
    
    def __init__(self, resource, implicit_read: bool = True,
                 overrides: Optional[Dict[str, AccessCallback]] = None):
        self.resource = resource_key(resource)
        self.implicit_read = implicit_read
        self.overrides = dict(overrides or {})
    
    def check(self, user, operation, document_id=None, locale: Optional[str] = None) -> bool:
        """Check if user can perform an action on this resource.

        Args:
            user: Current user (None for anonymous callers)
            operation: Operation to perform (e.g., create, update)
            document_id: Optional document the operation targets
            locale: Optional target locale of the request
        """
        operation = Operation(operation)
        override = self.overrides.get(operation.value)
        if override is not None:
            return bool(override(user, document_id=document_id, locale=locale))
        
        if operation is Operation.READ:
            return self.read(user, document_id, locale)
        if operation is Operation.UPDATE:
            return self.update(user, document_id, locale)
        
        return has_permission(user, self.resource, operation, document_id, locale=locale)
    
    def read(self, user, document_id=None, locale: Optional[str] = None) -> bool:
        if not has_permission(user, self.resource, Operation.READ, document_id,
                              locale=locale, implicit_read=self.implicit_read):
            return False
        if not self.implicit_read:
            return True
        # Document-level grants already passed the check above
        return create_locale_filter(user, self.resource) or document_id is not None
    
    def create(self, user, document_id=None, locale: Optional[str] = None) -> bool:
        return self.check(user, Operation.CREATE, document_id, locale)
    
    def update(self, user, document_id=None, locale: Optional[str] = None) -> bool:
        if not has_permission(user, self.resource, Operation.UPDATE, document_id, locale=locale):
            return False
        return create_locale_filter(user, self.resource) or document_id is not None
    
    def delete(self, user, document_id=None, locale: Optional[str] = None) -> bool:
        return self.check(user, Operation.DELETE, document_id, locale)
    
    def translate(self, user, document_id=None, locale: Optional[str] = None) -> bool:
        return self.check(user, Operation.TRANSLATE, document_id, locale)
    
    def as_access(self) -> Dict[str, AccessCallback]:
        """Access mapping in the shape the admin framework expects"""
        return {
            operation.value: (lambda user, document_id=None, locale=None, _op=operation:
                              self.check(user, _op, document_id, locale))
            for operation in Operation
        }


class AdminOnlyAccessHandler(ResourceAccessHandler):
    """Fallback for resources without a registered handler"""
    
    def check(self, user, operation, document_id=None, locale: Optional[str] = None) -> bool:
        return is_admin(user)
    
    def read(self, user, document_id=None, locale: Optional[str] = None) -> bool:
        return is_admin(user)
    
    def update(self, user, document_id=None, locale: Optional[str] = None) -> bool:
        return is_admin(user)


class AccessRegistry:
    """Registry for managing resource access handlers"""
    
    def __init__(self):
        self._handlers: Dict[str, ResourceAccessHandler] = {}
    
    def register(self, resource, handler: ResourceAccessHandler):
        """Register an access handler for a resource"""
        self._handlers[resource_key(resource)] = handler
    
    def get_handler(self, resource) -> Optional[ResourceAccessHandler]:
        """Get the access handler for a resource"""
        return self._handlers.get(resource_key(resource))
    
    def check(self, user, resource, operation, document_id=None, locale: Optional[str] = None) -> bool:
        """Check access, falling back to admin-only for unregistered resources"""
        handler = self.get_handler(resource)
        if handler is None:
            handler = AdminOnlyAccessHandler(resource)
        return handler.check(user, operation, document_id, locale)
    
    def __contains__(self, resource) -> bool:
        return resource_key(resource) in self._handlers


# Global registry instance
access_registry = AccessRegistry()


def initialize_access_handlers(registry: Optional[AccessRegistry] = None,
                               resources: Iterable = ResourceId,
                               explicit_read: Iterable = ()) -> AccessRegistry:
    """Register a role-based handler for every resource.

    Resources listed in ``explicit_read`` require an explicit read grant.
    """
    registry = registry if registry is not None else access_registry
    explicit = {resource_key(resource) for resource in explicit_read}
    
    for resource in resources:
        key = resource_key(resource)
        registry.register(key, ResourceAccessHandler(key, implicit_read=key not in explicit))
    
    return registry
