from .base import Base, metadata
from .auth import Manager, Client

__all__ = [
    'Base',
    'metadata',
    'Manager',
    'Client',
]
