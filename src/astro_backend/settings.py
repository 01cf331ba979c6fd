import os
import threading


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ["true", "1", "yes", "on"]


class BackendSettings:
    _instance = None
    _lock = threading.Lock()

    def __init__(self):
        self.DEBUG_MODE = os.environ.get("DEBUG_MODE","development")
        self.LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

        # Store settings
        self.DATABASE_URL = os.environ.get("DATABASE_URL") or self._postgres_url()

        # Cache settings
        self.CACHE_BACKEND = os.environ.get("CACHE_BACKEND", "redis").lower()
        self.REDIS_HOST = os.environ.get("REDIS_HOST", "localhost")
        self.REDIS_PORT = int(os.environ.get("REDIS_PORT", "6379"))
        self.REDIS_PASSWORD = os.environ.get("REDIS_PASSWORD", "")
        self.REDIS_DB = int(os.environ.get("REDIS_DB", "2"))

        # Effective permission sets are short lived, catalog listings change rarely
        self.PERMISSION_CACHE_TTL = int(os.environ.get("PERMISSION_CACHE_TTL", "900"))
        self.CATALOG_CACHE_TTL = int(os.environ.get("CATALOG_CACHE_TTL", "3600"))

        self.BOOTSTRAP_ON_STARTUP = _env_flag("BOOTSTRAP_ON_STARTUP", "true")

    @staticmethod
    def _postgres_url() -> str:
        user = os.environ.get("POSTGRES_USER", "postgres")
        password = os.environ.get("POSTGRES_PASSWORD", "")
        host = os.environ.get("POSTGRES_URL", "localhost:5432")
        database = os.environ.get("POSTGRES_DB", "astro_users")
        return f"postgresql://{user}:{password}@{host}/{database}"

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(BackendSettings, cls).__new__(cls)
        return cls._instance

settings = BackendSettings()
