"""
Closed catalogs of resources and operations known to the permission system.
"""

from enum import Enum
from typing import FrozenSet, Tuple


class Operation(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    TRANSLATE = "translate"


# Any of these makes a resource manageable in the admin UI
WRITE_OPERATIONS: Tuple[Operation, ...] = (Operation.CREATE, Operation.UPDATE, Operation.DELETE)

# Operations that satisfy a translate request at collection level
TRANSLATE_GRANTING: FrozenSet[Operation] = frozenset(
    {Operation.UPDATE, Operation.TRANSLATE}
)


class ResourceId(str, Enum):
    """Collections and globals managed by the CMS"""

    # Content
    MEDITATIONS = "meditations"
    PAGES = "pages"
    MUSIC = "music"
    ALBUMS = "albums"
    LESSONS = "lessons"
    LECTURES = "lectures"
    FORMS = "forms"
    FORM_SUBMISSIONS = "form-submissions"

    # Resources
    MEDIA = "media"
    FILE_ATTACHMENTS = "file-attachments"
    EXTERNAL_VIDEOS = "external-videos"
    FRAMES = "frames"
    NARRATORS = "narrators"
    AUTHORS = "authors"

    # Tags
    MEDITATION_TAGS = "meditation-tags"
    PAGE_TAGS = "page-tags"
    MUSIC_TAGS = "music-tags"

    # Project settings (globals)
    WEMEDITATE_WEB_SETTINGS = "we-meditate-web-settings"
    WEMEDITATE_APP_SETTINGS = "we-meditate-app-settings"
    SAHAJ_ATLAS_SETTINGS = "sahaj-atlas-settings"

    # System
    MANAGERS = "managers"
    CLIENTS = "clients"
    PAYLOAD_JOBS = "payload-jobs"


# Only admins may touch these, whatever their roles say
ADMIN_ONLY_RESOURCES: FrozenSet[str] = frozenset(
    {ResourceId.MANAGERS.value, ResourceId.CLIENTS.value, ResourceId.PAYLOAD_JOBS.value}
)


def resource_key(resource) -> str:
    """Normalize a resource identifier (enum member or slug) to its slug"""
    if isinstance(resource, Enum):
        return str(resource.value)
    return str(resource)


def parse_operation(operation) -> Operation:
    """Coerce an operation name to Operation; raises ValueError when unknown"""
    if isinstance(operation, Operation):
        return operation
    return Operation(operation)
