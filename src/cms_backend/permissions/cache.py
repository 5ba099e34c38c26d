"""
Permission caching.

Two copies of a user's resolved permissions exist:

1. A read-through cache stored on the user record. It is recomputed every
   time the record is materialized from storage, so writers changing a role
   assignment never invalidate anything explicitly.
2. A session snapshot taken at login and embedded in the session token (and
   optionally kept in a session store). It stays stable for the session and
   only changes on the next login or an explicit token refresh.
"""

import base64
import binascii
import json
import logging
from typing import Any, Callable, Optional

from aiocache import Cache
from sqlalchemy import event

from cms_backend.permissions.principal import MergedPermissions
from cms_backend.permissions.resolver import PermissionResolver, default_resolver
from cms_backend.settings import settings

logger = logging.getLogger(__name__)


class PermissionCache:
    """Read-through cache of ``MergedPermissions`` on the user record"""

    def __init__(self, resolver: Optional[PermissionResolver] = None):
        self.resolver = resolver or default_resolver()

    def materialize(self, user):
        """Return a copy of ``user`` whose ``permissions`` are freshly resolved"""
        if user is None:
            return None
        return user.model_copy(update={"permissions": self.resolver.resolve(user)})

    def permissions_for(self, user) -> MergedPermissions:
        """Cached permissions of ``user``, resolving them when absent"""
        cached = getattr(user, "permissions", None)
        if cached is None:
            logger.debug(f"Permission cache miss for user {getattr(user, 'id', None)}")
            return self.resolver.resolve(user)
        if not isinstance(cached, MergedPermissions):
            # Raw claims, e.g. a profile payload that was not validated
            return MergedPermissions.from_claim(cached)
        return cached

    def bind(self, user, permissions: MergedPermissions):
        """Return a copy of ``user`` carrying a session snapshot instead of a fresh resolution"""
        return user.model_copy(update={"permissions": permissions})

    def refresh_record(self, record, to_principal: Callable[[Any], Any]) -> None:
        """Recompute the ``permissions`` attribute of a storage record in place"""
        try:
            record.permissions = self.resolver.resolve(to_principal(record))
        except Exception:
            logger.exception(f"Could not resolve permissions for {record!r}, denying all")
            record.permissions = MergedPermissions()


permission_cache = PermissionCache()


def register_read_through(model_cls, cache: Optional[PermissionCache] = None,
                          to_principal: Optional[Callable[[Any], Any]] = None) -> None:
    """
    Populate ``permissions`` whenever an instance of ``model_cls`` is loaded
    or refreshed from the database.

    ``to_principal`` converts the record into a principal; by default the
    record's own ``to_principal()`` method is used.
    """
    convert = to_principal or (lambda record: record.to_principal())

    def _populate(target, *args):
        (cache or permission_cache).refresh_record(target, convert)

    event.listen(model_cls, "load", _populate)
    event.listen(model_cls, "refresh", _populate)
    logger.debug(f"Registered permission read-through for {model_cls.__name__}")


def encode_permissions_claim(permissions: MergedPermissions) -> str:
    """Encode permissions for embedding in a session token"""
    payload = json.dumps(permissions.to_claim(), sort_keys=True)
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_permissions_claim(claim: str) -> MergedPermissions:
    """Decode a token claim; raises ValueError when the claim is malformed"""
    try:
        payload = base64.b64decode(claim.encode("ascii"), validate=True)
        data = json.loads(payload.decode("utf-8"))
    except (binascii.Error, UnicodeError, json.JSONDecodeError, AttributeError) as e:
        raise ValueError(f"Malformed permissions claim: {e}") from e
    return MergedPermissions.from_claim(data)


def build_snapshot_cache() -> Cache:
    """Cache backend for session snapshots, chosen from settings"""
    if settings.PERMISSION_CACHE_BACKEND == "redis":
        return Cache(
            Cache.REDIS,
            endpoint=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
            namespace="perm_session",
        )
    return Cache(Cache.MEMORY, namespace="perm_session")


class SessionSnapshotStore:
    """Session-length copy of a user's permissions, keyed by session id"""

    def __init__(self, backend: Optional[Cache] = None, cache: Optional[PermissionCache] = None,
                 ttl_seconds: Optional[int] = None):
        self.backend = backend if backend is not None else build_snapshot_cache()
        self.cache = cache or permission_cache
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.SESSION_TTL

    def _key(self, session_id: str) -> str:
        return f"session:{session_id}"

    async def save(self, session_id: str, user) -> MergedPermissions:
        """Snapshot the user's current permissions for this session (login)"""
        permissions = self.cache.permissions_for(user)
        payload = json.dumps({
            "user_id": getattr(user, "id", None),
            "permissions": permissions.to_claim(),
        })
        await self.backend.set(self._key(session_id), payload, ttl=self.ttl_seconds)
        logger.debug(f"Stored permission snapshot for session {session_id}")
        return permissions

    async def load(self, session_id: str) -> Optional[MergedPermissions]:
        """Snapshot of a session; None when missing, expired or unreadable"""
        raw = await self.backend.get(self._key(session_id))
        if raw is None:
            return None
        try:
            data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
            return MergedPermissions.from_claim(data["permissions"])
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Discarding unreadable permission snapshot for session {session_id}: {e}")
            await self.invalidate(session_id)
            return None

    async def refresh(self, session_id: str, user) -> MergedPermissions:
        """Explicit token refresh: replace the snapshot with a fresh resolution"""
        return await self.save(session_id, self.cache.materialize(user))

    async def invalidate(self, session_id: str) -> None:
        await self.backend.delete(self._key(session_id))
        logger.info(f"Invalidated permission snapshot for session {session_id}")
