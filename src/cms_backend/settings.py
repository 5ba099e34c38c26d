import os
import threading

class BackendSettings:
    _instance = None
    _lock = threading.Lock()

    def __init__(self):
        # Localization
        self.DEFAULT_LOCALE = os.environ.get("DEFAULT_LOCALE", "en")
        # Admin view: "hide-from-non-admins" or "hide-from-everyone"
        self.ADMIN_VIEW_EXCLUSION_MODE = os.environ.get("ADMIN_VIEW_EXCLUSION_MODE", "hide-from-non-admins")
        # Session permission snapshots
        self.SESSION_TTL = int(os.environ.get("SESSION_TTL", "7200"))
        self.PERMISSION_CACHE_BACKEND = os.environ.get("PERMISSION_CACHE_BACKEND", "memory").lower()
        self.REDIS_HOST = os.environ.get("REDIS_HOST", "localhost")
        self.REDIS_PORT = int(os.environ.get("REDIS_PORT", "6379"))
        self.REDIS_PASSWORD = os.environ.get("REDIS_PASSWORD", "")

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(BackendSettings, cls).__new__(cls)
        return cls._instance

settings = BackendSettings()
