"""
Error taxonomy for the permission system.

Authorization denials are never exceptions; decision functions return False.
Unknown role slugs found while resolving a user are logged and skipped. The
classes below cover configuration problems detected at startup and invalid
input at the few seams that change user state.
"""


class PermissionSystemError(Exception):
    """Base class for permission system errors"""


class ConfigurationError(PermissionSystemError):
    """Raised when the role catalog is inconsistent at load time"""


class InvalidProjectSelection(PermissionSystemError, ValueError):
    """Raised when a user selects a project outside their scope"""
